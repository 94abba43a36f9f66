"""
Pydantic schemas for AutoService CRM

Validation and serialization schemas used by the API.
"""

from autocrm.schemas.common import ApiResponse, MessageResponse, Page, Pagination, PaginationParams
from autocrm.schemas.token import TokenPayload, TokenRefresh, TokenResponse
from autocrm.schemas.user import (
    GoogleLogin,
    LoginResponse,
    MeResponse,
    PhoneCodeResponse,
    PhoneLoginRequest,
    PhoneVerify,
    UserCreate,
    UserLogin,
    UserResponse,
    UserUpdate,
)
from autocrm.schemas.client import ClientCreate, ClientRead, ClientSummary, ClientUpdate
from autocrm.schemas.service import ServiceCreate, ServiceRead, ServiceUpdate
from autocrm.schemas.order import (
    MasterAssignmentRead,
    MasterShare,
    OrderCreate,
    OrderMastersUpdate,
    OrderRead,
    OrderServiceLine,
    OrderStatus,
    OrderStatusUpdate,
    OrderUpdate,
)
from autocrm.schemas.parts_sale import PartsSaleCreate, PartsSaleRead, PartsSaleUpdate
from autocrm.schemas.debt import DebtCreate, DebtRead, DebtUpdate
from autocrm.schemas.payment import PaymentCreate, PaymentRead, PaymentType
from autocrm.schemas.salary import (
    BonusCreate,
    BonusRead,
    SalaryPay,
    SalaryRead,
    WeeklyRecalculationResult,
    WeeklySalaryRead,
)
from autocrm.schemas.notification import MarkAllReadResult, NotificationRead
from autocrm.schemas.stats import DashboardStats, OrdersStats, TopMaster

__all__ = [
    "ApiResponse",
    "MessageResponse",
    "Page",
    "Pagination",
    "PaginationParams",
    "TokenPayload",
    "TokenRefresh",
    "TokenResponse",
    "GoogleLogin",
    "LoginResponse",
    "MeResponse",
    "PhoneCodeResponse",
    "PhoneLoginRequest",
    "PhoneVerify",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "UserUpdate",
    "ClientCreate",
    "ClientRead",
    "ClientSummary",
    "ClientUpdate",
    "ServiceCreate",
    "ServiceRead",
    "ServiceUpdate",
    "MasterAssignmentRead",
    "MasterShare",
    "OrderCreate",
    "OrderMastersUpdate",
    "OrderRead",
    "OrderServiceLine",
    "OrderStatus",
    "OrderStatusUpdate",
    "OrderUpdate",
    "PartsSaleCreate",
    "PartsSaleRead",
    "PartsSaleUpdate",
    "DebtCreate",
    "DebtRead",
    "DebtUpdate",
    "PaymentCreate",
    "PaymentRead",
    "PaymentType",
    "BonusCreate",
    "BonusRead",
    "SalaryPay",
    "SalaryRead",
    "WeeklyRecalculationResult",
    "WeeklySalaryRead",
    "MarkAllReadResult",
    "NotificationRead",
    "DashboardStats",
    "OrdersStats",
    "TopMaster",
]
