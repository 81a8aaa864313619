"""
Role Selection and Resolution API Endpoints.

- POST /auth/create-role       pick a role (first sign-in)
- POST /auth/get-role          resolve a user's role
- POST /auth/complete-profile  fill in the role profile
- GET  /auth/super-admin       caller's super-admin profile

These paths are exempt from the edge gate; each endpoint authenticates
the caller itself.
"""
from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.access_policy import dashboard_path, role_page_path
from ....core.config import Settings, get_settings
from ....core.exceptions import ForbiddenError, NotFoundError
from ....core.rbac import CurrentSession, get_role_resolver
from ....core.role_cookie import set_role_cookie
from ....db.session import SessionFactory, get_db
from ....models.enums import Role
from ....repositories.profile_repository import ProfileRepository
from ....repositories.user_role_repository import UserRoleRepository
from ....schemas.auth import (
    CompleteProfileRequest,
    CompleteProfileResponse,
    CreateRoleRequest,
    CreateRoleResponse,
    GetRoleRequest,
    GetRoleResponse,
    SuperAdminProfileResponse,
)
from ....services.role_assignment_service import RoleAssignmentService
from ....services.role_resolver import RoleResolver, write_back_role

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth")


async def get_role_assignment_service(
    db: AsyncSession = Depends(get_db),
) -> RoleAssignmentService:
    return RoleAssignmentService(db)


@router.post(
    "/create-role",
    response_model=CreateRoleResponse,
    summary="Select a role",
    description=(
        "Assign a role to the signed-in user, create the placeholder role "
        "profile and seed the user's metadata. super-admin cannot be selected."
    ),
)
async def create_role(
    payload: CreateRoleRequest,
    session: CurrentSession,
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
    service: RoleAssignmentService = Depends(get_role_assignment_service),
) -> CreateRoleResponse:
    role = await service.select_role(session.user.id, payload.role, name=payload.name)
    set_role_cookie(response, role, session.user.id, settings=settings)
    return CreateRoleResponse(role=role, redirect_to=role_page_path(role, "complete-profile"))


@router.post(
    "/get-role",
    response_model=GetRoleResponse,
    summary="Resolve a user's role",
    description=(
        "Resolve the role for user_id using every source, including the "
        "identity record. Callers may only resolve their own role unless "
        "they are super-admin."
    ),
)
async def get_role(
    payload: GetRoleRequest,
    session: CurrentSession,
    request: Request,
    response: Response,
    background_tasks: BackgroundTasks,
    settings: Annotated[Settings, Depends(get_settings)],
    resolver: Annotated[RoleResolver, Depends(get_role_resolver)],
    session_factory: SessionFactory,
    db: AsyncSession = Depends(get_db),
) -> GetRoleResponse:
    caller = session.user
    is_self = payload.user_id == caller.id

    if not is_self:
        caller_is_admin = caller.metadata.role is Role.SUPER_ADMIN or (
            await UserRoleRepository(db).get_role(caller.id) is Role.SUPER_ADMIN
        )
        if not caller_is_admin:
            logger.warning("get_role_forbidden", user_id=caller.id, target_user_id=payload.user_id)
            raise ForbiddenError(
                message="You may only resolve your own role",
                error_code="ROLE_LOOKUP_FORBIDDEN",
            )

    resolution = await resolver.resolve(
        payload.user_id,
        metadata_role=caller.metadata.role if is_self else None,
        role_cookie=request.cookies.get(settings.ROLE_COOKIE_NAME),
        allow_admin_lookup=True,
    )

    if resolution.role is not None:
        if is_self:
            set_role_cookie(response, resolution.role, caller.id, settings=settings)
        if resolution.needs_writeback:
            background_tasks.add_task(
                write_back_role, session_factory, payload.user_id, resolution.role
            )

    return GetRoleResponse(
        user_id=payload.user_id,
        role=resolution.role,
        source=resolution.source.value if resolution.source else None,
    )


@router.post(
    "/complete-profile",
    response_model=CompleteProfileResponse,
    summary="Complete the role profile",
    description="Fill in the role-specific profile and mark the profile completed.",
)
async def complete_profile(
    payload: CompleteProfileRequest,
    session: CurrentSession,
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
    service: RoleAssignmentService = Depends(get_role_assignment_service),
) -> CompleteProfileResponse:
    role = await service.complete_profile(session.user.id, payload)
    set_role_cookie(response, role, session.user.id, settings=settings)
    return CompleteProfileResponse(role=role, redirect_to=dashboard_path(role))


@router.get(
    "/super-admin",
    response_model=SuperAdminProfileResponse,
    summary="Get super-admin profile",
    description="Return the caller's super-admin profile. The role is checked in user_roles.",
)
async def get_super_admin(
    session: CurrentSession,
    db: AsyncSession = Depends(get_db),
) -> SuperAdminProfileResponse:
    user_id = session.user.id
    if await UserRoleRepository(db).get_role(user_id) is not Role.SUPER_ADMIN:
        raise ForbiddenError(message="Super-admin access required", error_code="SUPER_ADMIN_REQUIRED")

    profile = await ProfileRepository(db).get(Role.SUPER_ADMIN, user_id)
    if profile is None:
        raise NotFoundError(
            message="Super-admin profile not found",
            resource_type="super_admin",
            resource_id=user_id,
        )
    return SuperAdminProfileResponse.model_validate(profile)
