"""create accreditation tables

Revision ID: 6a1c0e2f9b73
Revises:
Create Date: 2026-03-02 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "6a1c0e2f9b73"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ROLE_VALUES = (
    "ADMIN",
    "ACCREDITATION_APPROVER",
    "ACCREDITATION_EDITOR",
    "CHECKPOINT_OPERATOR",
    "VIEW_ONLY",
)
STATUS_VALUES = ("DRAFT", "PENDING", "APPROVED", "REJECTED", "REVOKED")
PHASE_VALUES = ("BUMP_IN", "LIVE", "BUMP_OUT")
OUTCOME_VALUES = ("ALLOW", "DENY")
REASON_VALUES = (
    "UNKNOWN_TOKEN",
    "TOKEN_RETIRED",
    "NOT_APPROVED",
    "NO_TOKEN",
    "OUTSIDE_EVENT_WINDOW",
    "PHASE_NOT_GRANTED",
    "OUTSIDE_GRANT_WINDOW",
)
ACTION_VALUES = (
    "CREATED",
    "UPDATED",
    "SUBMITTED",
    "RESUBMITTED",
    "RETURNED_TO_DRAFT",
    "APPROVED",
    "REJECTED",
    "REVOKED",
)
RETIREMENT_VALUES = ("REVOKED", "ROTATED")


def _enum(name: str, values: Sequence[str]) -> sa.Enum:
    # Stored as VARCHAR; adding a value never needs an ALTER TYPE.
    return sa.Enum(*values, name=name, native_enum=False)


def _user_fk(column: str, *, index: bool = False) -> sa.Column:
    return sa.Column(
        column,
        sa.String(length=36),
        sa.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=index,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("role", _enum("account_role_enum", ROLE_VALUES), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_superuser", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_is_active", "users", ["is_active"])

    op.create_table(
        "accreditation_projects",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("bump_in_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("bump_in_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("live_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("live_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("bump_out_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("bump_out_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("access_groups", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _user_fk("created_by_id"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_accreditation_projects_id", "accreditation_projects", ["id"])
    op.create_index("ix_accreditation_projects_code", "accreditation_projects", ["code"], unique=True)
    op.create_index("ix_accreditation_projects_is_active", "accreditation_projects", ["is_active"])

    op.create_table(
        "accreditations",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("accreditation_number", sa.String(length=32), nullable=False),
        sa.Column(
            "project_id",
            sa.String(length=36),
            sa.ForeignKey("accreditation_projects.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("organization", sa.String(length=255), nullable=False),
        sa.Column("job_title", sa.String(length=255), nullable=False),
        sa.Column("access_group", sa.String(length=128), nullable=False),
        sa.Column("qid_number", sa.String(length=11), nullable=True),
        sa.Column("qid_expiry", sa.Date(), nullable=True),
        sa.Column("passport_number", sa.String(length=12), nullable=True),
        sa.Column("passport_country", sa.String(length=64), nullable=True),
        sa.Column("passport_expiry", sa.Date(), nullable=True),
        sa.Column("hayya_visa_number", sa.String(length=32), nullable=True),
        sa.Column("hayya_visa_expiry", sa.Date(), nullable=True),
        sa.Column("has_bump_in_access", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("bump_in_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bump_in_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("has_live_access", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("live_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("live_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("has_bump_out_access", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("bump_out_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bump_out_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", _enum("accreditation_status_enum", STATUS_VALUES), nullable=False, server_default="DRAFT"),
        sa.Column("verification_token", sa.String(length=128), nullable=True),
        sa.Column("revocation_reason", sa.Text(), nullable=True),
        _user_fk("created_by_id", index=True),
        _user_fk("approved_by_id"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        _user_fk("revoked_by_id"),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("verification_token", name="uq_accreditations_verification_token"),
    )
    op.create_index("ix_accreditations_id", "accreditations", ["id"])
    op.create_index("ix_accreditations_accreditation_number", "accreditations", ["accreditation_number"], unique=True)
    op.create_index("ix_accreditations_project_id", "accreditations", ["project_id"])
    op.create_index("ix_accreditations_organization", "accreditations", ["organization"])
    op.create_index("ix_accreditations_status", "accreditations", ["status"])
    op.create_index("ix_accreditations_project_status", "accreditations", ["project_id", "status"])
    op.create_index("ix_accreditations_project_qid", "accreditations", ["project_id", "qid_number"])
    op.create_index("ix_accreditations_project_passport", "accreditations", ["project_id", "passport_number"])

    op.create_table(
        "accreditation_tokens",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column(
            "accreditation_id",
            sa.String(length=36),
            sa.ForeignKey("accreditations.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        _user_fk("issued_by_id"),
        sa.Column("retired_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retired_reason", _enum("accreditation_token_retirement_enum", RETIREMENT_VALUES), nullable=True),
    )
    op.create_index("ix_accreditation_tokens_token", "accreditation_tokens", ["token"], unique=True)
    op.create_index("ix_accreditation_tokens_accreditation_id", "accreditation_tokens", ["accreditation_id"])

    op.create_table(
        "accreditation_history",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "accreditation_id",
            sa.String(length=36),
            sa.ForeignKey("accreditations.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("action", _enum("accreditation_history_action_enum", ACTION_VALUES), nullable=False),
        sa.Column("old_status", _enum("accreditation_status_enum", STATUS_VALUES), nullable=True),
        sa.Column("new_status", _enum("accreditation_status_enum", STATUS_VALUES), nullable=True),
        _user_fk("performed_by_id", index=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
    )
    op.create_index("ix_accreditation_history_id", "accreditation_history", ["id"])
    op.create_index("ix_accreditation_history_accreditation_id", "accreditation_history", ["accreditation_id"])
    op.create_index("ix_accreditation_history_occurred_at", "accreditation_history", ["occurred_at"])
    op.create_index("ix_accreditation_history_record_time", "accreditation_history", ["accreditation_id", "occurred_at"])
    op.create_index("ix_accreditation_history_action", "accreditation_history", ["action"])

    op.create_table(
        "accreditation_scans",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "accreditation_id",
            sa.String(length=36),
            sa.ForeignKey("accreditations.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("scanned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("outcome", _enum("accreditation_scan_outcome_enum", OUTCOME_VALUES), nullable=False),
        sa.Column("reason", _enum("accreditation_scan_reason_enum", REASON_VALUES), nullable=True),
        sa.Column("phase", _enum("accreditation_phase_enum", PHASE_VALUES), nullable=True),
        sa.Column("token_fingerprint", sa.String(length=16), nullable=True),
        _user_fk("scanned_by_id", index=True),
        sa.Column("device", sa.String(length=255), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
    )
    op.create_index("ix_accreditation_scans_id", "accreditation_scans", ["id"])
    op.create_index("ix_accreditation_scans_accreditation_id", "accreditation_scans", ["accreditation_id"])
    op.create_index("ix_accreditation_scans_token_fingerprint", "accreditation_scans", ["token_fingerprint"])
    op.create_index("ix_accreditation_scans_record_time", "accreditation_scans", ["accreditation_id", "scanned_at"])
    op.create_index("ix_accreditation_scans_time_desc", "accreditation_scans", [sa.text("scanned_at DESC")])
    op.create_index("ix_accreditation_scans_outcome", "accreditation_scans", ["outcome"])


def downgrade() -> None:
    op.drop_table("accreditation_scans")
    op.drop_table("accreditation_history")
    op.drop_table("accreditation_tokens")
    op.drop_table("accreditations")
    op.drop_table("accreditation_projects")
    op.drop_table("users")
