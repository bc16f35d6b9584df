# backend/accredb/apps/accounts/models.py

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    String,
)

from accredb.database import Base
from accredb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class AccountRole(str, enum.Enum):
    """Roles the accreditation core checks before a lifecycle operation.

    Accounts themselves are issued by the surrounding portal; this service
    only reads them.
    """

    ADMIN = "ADMIN"
    ACCREDITATION_APPROVER = "ACCREDITATION_APPROVER"
    ACCREDITATION_EDITOR = "ACCREDITATION_EDITOR"
    CHECKPOINT_OPERATOR = "CHECKPOINT_OPERATOR"      # gate scanners
    VIEW_ONLY = "VIEW_ONLY"


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


class User(Base):
    """
    Portal user as seen by the accreditation core.

    `is_superuser` bypasses role checks (platform support accounts).
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    role = Column(
        Enum(AccountRole, name="account_role_enum", native_enum=False),
        nullable=False,
        default=AccountRole.VIEW_ONLY,
        index=True,
    )
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_superuser = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def has_role(self, *roles: AccountRole) -> bool:
        if self.is_superuser:
            return True
        return self.role in roles

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"
