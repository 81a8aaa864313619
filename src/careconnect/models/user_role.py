"""
UserRole Model.

One row per user mapping ``user_id`` to a role. It is the queryable
fallback for ``users.user_metadata['role']`` and the source of truth in the
window between role selection and the metadata write becoming visible.
Metadata wins once it carries a role.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base


class UserRole(Base):
    """Role assignment row (``user_roles``)."""

    __tablename__ = "user_roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        comment="doctor, nurse, patient, pharmacist, super-admin"
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

    def __repr__(self) -> str:
        return f"<UserRole(user_id='{self.user_id}', role='{self.role}')>"
