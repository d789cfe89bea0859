"""Versioned API routers, mounted under /api/v1 by main.py."""

from . import admin, auth, bookings, health, payments, realtime, services, users

__all__ = ["admin", "auth", "bookings", "health", "payments", "realtime", "services", "users"]
