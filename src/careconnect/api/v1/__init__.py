"""API v1: versioned router.

Router structure
----------------
PUBLIC (no auth):
  /health              → health checks (liveness, readiness)

AUTHENTICATED (session token required, checked per endpoint):
  /auth/create-role       → select a role
  /auth/get-role          → resolve a role (self, or any user for super-admin)
  /auth/complete-profile  → fill in the role profile
  /auth/super-admin       → caller's super-admin profile

SUPER-ADMIN (RBAC enforced at endpoint level):
  /admin/users/*               → activate / deactivate
  /admin/users-verification/*  → verify / un-verify
  /admin/system-logs           → audit trail
"""
from fastapi import APIRouter

from .endpoints import admin_users, auth, health, system_logs

router = APIRouter(prefix="/api/v1")

# =========================================================================
# PUBLIC ENDPOINTS (no auth required)
# =========================================================================

router.include_router(health.router, tags=["Health"])

# =========================================================================
# AUTHENTICATED ENDPOINTS
# =========================================================================

# The edge gate exempts /api/v1/auth/* and /api/v1/admin/*, so every
# endpoint below MUST declare CurrentSession or SuperAdminSession itself.
router.include_router(auth.router, tags=["Authentication"])

# =========================================================================
# ADMIN ENDPOINTS (super-admin only)
# =========================================================================

router.include_router(admin_users.router, tags=["Admin - User Management"])
router.include_router(system_logs.router, tags=["Admin - System Logs"])
