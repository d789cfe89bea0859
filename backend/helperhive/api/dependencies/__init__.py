# backend/helperhive/api/dependencies/__init__.py
"""Dependency providers for routes."""

from .auth import (
    get_current_active_user,
    get_current_user,
    get_current_user_sse,
    require_admin,
    require_customer,
    require_provider,
    require_role,
    require_verified,
)
from .database import get_db

__all__ = [
    "get_current_active_user",
    "get_current_user",
    "get_current_user_sse",
    "get_db",
    "require_admin",
    "require_customer",
    "require_provider",
    "require_role",
    "require_verified",
]
