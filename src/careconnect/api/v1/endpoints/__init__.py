"""API v1 endpoints package."""

from . import admin_users, auth, health, system_logs

__all__ = [
	"admin_users",
	"auth",
	"health",
	"system_logs",
]
