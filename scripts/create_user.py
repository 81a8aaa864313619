#!/usr/bin/env python3
# ============================================================
# DEV / BOOTSTRAP SCRIPT
# ============================================================
# Purpose : Create an identity record, optionally assign a role, and
#           print a session token plus the /auth/callback URL to sign in.
#           super-admin cannot be self-selected through the API, so the
#           first super-admin is created here.
#
# Usage:
#   DATABASE_URL=postgresql+asyncpg://... python scripts/create_user.py EMAIL
#   python scripts/create_user.py admin@example.com --role super-admin --name "Ops Admin"
#
# Token issuing is refused when APP_ENV=production.
# ============================================================
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parent.parent
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from src.careconnect.core.access_policy import AUTH_CALLBACK_PATH  # noqa: E402
from src.careconnect.core.config import get_settings  # noqa: E402
from src.careconnect.core.security import create_access_token  # noqa: E402
from src.careconnect.db.session import get_db_manager, session_scope  # noqa: E402
from src.careconnect.models.enums import Role  # noqa: E402
from src.careconnect.repositories.profile_repository import ProfileRepository  # noqa: E402
from src.careconnect.repositories.user_repository import UserRepository  # noqa: E402
from src.careconnect.repositories.user_role_repository import UserRoleRepository  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="create_user.py",
        description="Create a user (and optionally a role) and print a sign-in token.",
    )
    parser.add_argument("email", help="Login email of the user")
    parser.add_argument(
        "--role",
        choices=[role.value for role in Role],
        default=None,
        help="Assign this role and create its placeholder profile.",
    )
    parser.add_argument("--name", default=None, help="Display name stored as full_name")
    parser.add_argument(
        "--no-token",
        action="store_true",
        help="Only create the records; do not print a session token.",
    )
    return parser.parse_args()


async def main(args: argparse.Namespace) -> int:
    settings = get_settings()
    role = Role(args.role) if args.role else None
    db_manager = get_db_manager()

    try:
        async with session_scope(db_manager.session_factory) as db:
            users = UserRepository(db)
            user = await users.get_by_email(args.email)
            if user is None:
                user = await users.create(args.email)
                print(f"User created: ID={user.id}")
            else:
                print(f"User found: ID={user.id}")

            if role is not None:
                await UserRoleRepository(db).upsert(user.id, role)
                await ProfileRepository(db).create_placeholder(
                    role, user.id, name=args.name, email=user.email
                )
                changes: dict[str, object] = {
                    "role": role.value,
                    "is_active": True,
                    "is_verified": role in (Role.PATIENT, Role.SUPER_ADMIN),
                    "profile_completed": False,
                }
                if args.name:
                    changes["full_name"] = args.name
                await users.update_metadata(user.id, **changes)
                print(f"Role assigned: {role.value}")
            user_id = user.id
    finally:
        await db_manager.close()

    if args.no_token:
        return 0
    if settings.is_production:
        print("ERROR: refusing to print a session token with APP_ENV=production.", file=sys.stderr)
        return 1

    token = create_access_token(subject=user_id, settings=settings, email=args.email)
    print(f"Token: {token}")
    print(f"Sign in: http://{settings.HOST}:{settings.PORT}{AUTH_CALLBACK_PATH}?token={token}")
    return 0


if __name__ == "__main__":
    os.chdir(_REPO_ROOT)
    sys.exit(asyncio.run(main(_parse_args())))
