"""
Custom application exceptions.
Project: AutoService CRM

Domain exceptions with a fixed HTTP status and machine-readable code,
rendered by the handlers in main.py as the error envelope.

NOTE: ValidationError here is distinct from pydantic.ValidationError.
- pydantic.ValidationError: malformed request payloads (rendered by the
  RequestValidationError handler, also as VALIDATION_ERROR)
- ValidationError: business rule violations raised by the service layer
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError

__all__ = [
    "AppException",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "is_unique_violation",
    "translate_integrity_error",
]

logger = logging.getLogger(__name__)


class AppException(Exception):
    """
    Base exception for the application.

    Attributes:
        status_code: HTTP status returned to the client
        error_code: Stable identifier of the error for the frontend
        detail: Human-readable message
        extra: Optional structured details (rendered as error.details)
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.detail = detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(detail)


class ValidationError(ValueError, AppException):
    """
    Business rule violation.

    Inherits from ValueError so it can be raised from pydantic validators,
    where it surfaces as a request validation error.

    Examples:
        - "Сумма процентов мастеров должна быть равна 100%"
        - "Скидка превышает стоимость"
    """

    status_code: int = 400
    error_code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        detail: str = "Ошибка валидации",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Bypass ValueError.__init__
        AppException.__init__(self, detail, error_code, extra)


class AuthenticationError(AppException):
    """Missing, invalid or expired credentials."""

    status_code: int = 401
    error_code: str = "AUTHENTICATION_ERROR"

    def __init__(
        self,
        detail: str = "Ошибка аутентификации",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class AuthorizationError(AppException):
    """
    The caller is authenticated but not allowed to touch the resource.

    Examples:
        - "Доступ к заказу запрещен"
        - "Требуется одна из ролей: admin, director"
    """

    status_code: int = 403
    error_code: str = "INSUFFICIENT_PERMISSIONS"

    def __init__(
        self,
        detail: str = "Недостаточно прав доступа",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class NotFoundError(AppException):
    """The requested entity does not exist."""

    status_code: int = 404
    error_code: str = "NOT_FOUND"

    def __init__(
        self,
        detail: str = "Ресурс не найден",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class ConflictError(AppException):
    """
    The operation collides with existing data.

    Used for unique-constraint violations (duplicate phone, email) and
    for identifier allocation that kept losing races.
    """

    status_code: int = 409
    error_code: str = "CONFLICT"

    def __init__(
        self,
        detail: str = "Конфликт данных",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
CHECK_VIOLATION = "23514"
NOT_NULL_VIOLATION = "23502"


def _sqlstate(error: IntegrityError) -> Optional[str]:
    """Extracts the SQLSTATE from the driver error wrapped by SQLAlchemy."""
    orig = error.orig
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    cause = getattr(orig, "__cause__", None)
    code = getattr(cause, "sqlstate", None)
    return str(code) if code else None


def is_unique_violation(error: IntegrityError) -> bool:
    return _sqlstate(error) == UNIQUE_VIOLATION


def translate_integrity_error(error: IntegrityError) -> AppException:
    """
    Maps a store constraint violation onto the error taxonomy.

    Args:
        error: IntegrityError raised on flush/commit

    Returns:
        ConflictError for unique violations, ValidationError for
        foreign-key, check and not-null violations, a generic
        AppException otherwise.
    """
    code = _sqlstate(error)

    if code == UNIQUE_VIOLATION:
        return ConflictError("Запись уже существует")
    if code == FOREIGN_KEY_VIOLATION:
        return ValidationError("Нарушена целостность данных")
    if code == CHECK_VIOLATION:
        return ValidationError("Нарушено ограничение")
    if code == NOT_NULL_VIOLATION:
        return ValidationError("Отсутствуют обязательные поля")

    logger.error("Unclassified integrity error (sqlstate=%s): %s", code, error)
    return AppException("Внутренняя ошибка сервера", error_code="DATABASE_ERROR")
