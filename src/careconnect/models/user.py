"""
Identity Record Model.

SQLAlchemy 2.0 ORM model for the identity store's user record.

Design:
    - ``user_metadata`` is the loosely-typed bag the identity store keeps
      per user (role, profile_completed, is_verified, is_active, full_name).
      The gates never read it raw; they go through ``UserMetadata``.
    - No role column: the role lives in metadata, with ``user_roles`` as the
      durable fallback (see models/user_role.py).
    - Credentials and sign-in are owned by the hosted identity provider and
      are not modelled here.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base


def new_user_id() -> str:
    """Generate an opaque identity id."""
    return str(uuid.uuid4())


class User(Base):
    """
    Identity record.

    Attributes:
        id: Opaque unique identifier (JWT ``sub``)
        email: Unique login email
        user_metadata: Mutable metadata bag
        created_at: Sign-up timestamp
        updated_at: Last metadata change
        last_sign_in_at: Last session issued for this user
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_user_id)

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Login email (stored lowercase)"
    )

    user_metadata: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Identity metadata: role, profile_completed, is_verified, is_active, full_name"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )
    last_sign_in_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<User(id='{self.id}', role='{self.user_metadata.get('role')}')>"
