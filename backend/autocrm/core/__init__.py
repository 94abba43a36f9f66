"""
Core infrastructure
Project: AutoService CRM

Configuration, database, security, access rules and exceptions.
"""
