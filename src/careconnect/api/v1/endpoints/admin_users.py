"""
Admin User Lifecycle API Endpoints.

- PUT /admin/users/{user_id}               activate / deactivate
- PUT /admin/users-verification/{user_id}  verify / un-verify

Both require super-admin and append a system log entry.
"""
from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.exceptions import UserNotFoundError
from ....core.rbac import SuperAdminSession
from ....db.session import get_db
from ....models.user import User
from ....repositories.user_repository import UserRepository
from ....schemas.user import UserActivationUpdate, UserStatusResponse, UserVerificationUpdate
from ....services import audit_service
from ....services.session_service import UserMetadata

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin")


# =============================================================================
# Dependencies
# =============================================================================

async def get_user_repo(
    db: AsyncSession = Depends(get_db),
) -> UserRepository:
    """Get user repository with database session."""
    return UserRepository(db)


def _status_response(user: User) -> UserStatusResponse:
    metadata = UserMetadata.from_mapping(user.user_metadata)
    return UserStatusResponse(
        id=user.id,
        role=metadata.role.value if metadata.role else None,
        is_active=metadata.is_active,
        is_verified=metadata.is_verified,
        profile_completed=metadata.profile_completed,
    )


# =============================================================================
# UPDATE ENDPOINTS
# =============================================================================

@router.put(
    "/users/{user_id}",
    response_model=UserStatusResponse,
    summary="Activate or deactivate a user",
    description="Set is_active in the user's metadata. Super-admin only.",
)
async def update_user_activation(
    user_id: str,
    payload: UserActivationUpdate,
    admin: SuperAdminSession,
    repo: UserRepository = Depends(get_user_repo),
) -> UserStatusResponse:
    user = await repo.update_metadata(user_id, is_active=payload.is_active)
    if user is None:
        raise UserNotFoundError(user_id)

    action = audit_service.USER_ACTIVATED if payload.is_active else audit_service.USER_DEACTIVATED
    await audit_service.log_action(
        repo.session, admin.user.id, action, {"target_user_id": user_id}
    )
    await repo.session.commit()

    logger.info(action, admin_id=admin.user.id, user_id=user_id)
    return _status_response(user)


@router.put(
    "/users-verification/{user_id}",
    response_model=UserStatusResponse,
    summary="Verify or un-verify a user",
    description="Set is_verified in the user's metadata. Super-admin only.",
)
async def update_user_verification(
    user_id: str,
    payload: UserVerificationUpdate,
    admin: SuperAdminSession,
    repo: UserRepository = Depends(get_user_repo),
) -> UserStatusResponse:
    user = await repo.update_metadata(user_id, is_verified=payload.is_verified)
    if user is None:
        raise UserNotFoundError(user_id)

    action = audit_service.USER_VERIFIED if payload.is_verified else audit_service.USER_UNVERIFIED
    await audit_service.log_action(
        repo.session, admin.user.id, action, {"target_user_id": user_id}
    )
    await repo.session.commit()

    logger.info(action, admin_id=admin.user.id, user_id=user_id)
    return _status_response(user)
