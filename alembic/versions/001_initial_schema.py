"""Initial schema.

Revision ID: 001
Revises: None
Create Date: 2026-10-19

Running ``alembic upgrade head`` on a clean database applies the whole
schema in one step.

Tables created
--------------
- users         : identity records; role and lifecycle flags live in
                  the ``user_metadata`` JSON column
- user_roles    : one role row per user (fallback for metadata.role)
- doctors       : doctor profile  (license_number, specialization, hospital_id)
- nurses        : nurse profile   (license_number, department, hospital_id)
- patients      : patient profile (dob, blood_type, allergies, doctor_id)
- pharmacists   : pharmacist profile (license_number, pharmacy_id)
- super_admins  : super-admin profile (access_level, managed_entities)
- system_logs   : append-only audit trail of admin lifecycle actions

Rollback
--------
``downgrade()`` drops everything leaf-first.
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_PROFILE_TABLES = ("doctors", "nurses", "patients", "pharmacists", "super_admins")


def _profile_columns() -> list[sa.Column]:
    """Columns every role profile table carries."""
    return [
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _profile_constraints() -> list:
    return [
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    ]


def upgrade() -> None:
    # =======================================================================
    # 1. USERS (identity records)
    # =======================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, comment="Login email (stored lowercase)"),
        sa.Column(
            "user_metadata",
            sa.JSON(),
            nullable=False,
            server_default="{}",
            comment="Identity metadata: role, profile_completed, is_verified, is_active, full_name",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_sign_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # =======================================================================
    # 2. USER_ROLES
    # =======================================================================
    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, comment="doctor, nurse, patient, pharmacist, super-admin"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"], unique=True)
    op.create_index("ix_user_roles_role", "user_roles", ["role"])

    # =======================================================================
    # 3. ROLE PROFILES
    # =======================================================================
    op.create_table(
        "doctors",
        *_profile_columns(),
        sa.Column("license_number", sa.String(100), nullable=False, server_default="PENDING"),
        sa.Column("specialization", sa.String(100), nullable=False, server_default="General"),
        sa.Column("hospital_id", sa.String(36), nullable=True),
        *_profile_constraints(),
    )
    op.create_table(
        "nurses",
        *_profile_columns(),
        sa.Column("license_number", sa.String(100), nullable=False, server_default="PENDING"),
        sa.Column("department", sa.String(100), nullable=False, server_default="General"),
        sa.Column("hospital_id", sa.String(36), nullable=True),
        *_profile_constraints(),
    )
    op.create_table(
        "patients",
        *_profile_columns(),
        sa.Column("dob", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column("blood_type", sa.String(5), nullable=True),
        sa.Column("allergies", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("doctor_id", sa.String(36), nullable=True),
        *_profile_constraints(),
    )
    op.create_table(
        "pharmacists",
        *_profile_columns(),
        sa.Column("license_number", sa.String(100), nullable=False, server_default="PENDING"),
        sa.Column("pharmacy_id", sa.String(36), nullable=True),
        *_profile_constraints(),
    )
    op.create_table(
        "super_admins",
        *_profile_columns(),
        sa.Column("access_level", sa.String(20), nullable=False, server_default="full", comment="full, limited"),
        sa.Column("managed_entities", sa.JSON(), nullable=False, server_default="[]"),
        *_profile_constraints(),
    )
    for table in _PROFILE_TABLES:
        op.create_index(f"ix_{table}_user_id", table, ["user_id"], unique=True)

    # =======================================================================
    # 4. SYSTEM_LOGS
    # =======================================================================
    op.create_table(
        "system_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False, comment="Actor who performed the action"),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_system_logs_user_id", "system_logs", ["user_id"])
    op.create_index("ix_system_logs_action", "system_logs", ["action"])
    op.create_index("ix_system_logs_timestamp", "system_logs", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_system_logs_timestamp", table_name="system_logs")
    op.drop_index("ix_system_logs_action", table_name="system_logs")
    op.drop_index("ix_system_logs_user_id", table_name="system_logs")
    op.drop_table("system_logs")

    for table in reversed(_PROFILE_TABLES):
        op.drop_index(f"ix_{table}_user_id", table_name=table)
        op.drop_table(table)

    op.drop_index("ix_user_roles_role", table_name="user_roles")
    op.drop_index("ix_user_roles_user_id", table_name="user_roles")
    op.drop_table("user_roles")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
