from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from accredb.database import Base
from accredb.utils.identifiers import generate_uuid7

from .enums import AccreditationStatus, Phase, TokenRetirement


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccreditationProject(Base):
    """
    A time-bounded event that accreditations are issued for.

    Phase windows are half-open [start, end). Their relative order is not
    enforced: phases may overlap or leave gaps.
    """

    __tablename__ = "accreditation_projects"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(20), nullable=False, unique=True, index=True)

    bump_in_start = Column(DateTime(timezone=True), nullable=False)
    bump_in_end = Column(DateTime(timezone=True), nullable=False)
    live_start = Column(DateTime(timezone=True), nullable=False)
    live_end = Column(DateTime(timezone=True), nullable=False)
    bump_out_start = Column(DateTime(timezone=True), nullable=False)
    bump_out_end = Column(DateTime(timezone=True), nullable=False)

    # Fixed at creation.
    access_groups = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def phase_window(self, phase: Phase) -> tuple[datetime, datetime]:
        if phase == Phase.BUMP_IN:
            return self.bump_in_start, self.bump_in_end
        if phase == Phase.LIVE:
            return self.live_start, self.live_end
        return self.bump_out_start, self.bump_out_end

    def __repr__(self) -> str:
        return f"<AccreditationProject id={self.id} code={self.code}>"


class Accreditation(Base):
    """
    An access credential for one person on one project.

    Status changes go through the workflow registry only; rows are never
    deleted. `verification_token` mirrors the active row in
    `accreditation_tokens`.
    """

    __tablename__ = "accreditations"
    __table_args__ = (
        Index("ix_accreditations_project_status", "project_id", "status"),
        Index("ix_accreditations_project_qid", "project_id", "qid_number"),
        Index("ix_accreditations_project_passport", "project_id", "passport_number"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    accreditation_number = Column(String(32), nullable=False, unique=True, index=True)
    project_id = Column(
        String(36),
        ForeignKey("accreditation_projects.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    organization = Column(String(255), nullable=False, index=True)
    job_title = Column(String(255), nullable=False)
    access_group = Column(String(128), nullable=False)

    qid_number = Column(String(11), nullable=True)
    qid_expiry = Column(Date, nullable=True)
    passport_number = Column(String(12), nullable=True)
    passport_country = Column(String(64), nullable=True)
    passport_expiry = Column(Date, nullable=True)
    hayya_visa_number = Column(String(32), nullable=True)
    hayya_visa_expiry = Column(Date, nullable=True)

    has_bump_in_access = Column(Boolean, nullable=False, default=False)
    bump_in_start = Column(DateTime(timezone=True), nullable=True)
    bump_in_end = Column(DateTime(timezone=True), nullable=True)
    has_live_access = Column(Boolean, nullable=False, default=False)
    live_start = Column(DateTime(timezone=True), nullable=True)
    live_end = Column(DateTime(timezone=True), nullable=True)
    has_bump_out_access = Column(Boolean, nullable=False, default=False)
    bump_out_start = Column(DateTime(timezone=True), nullable=True)
    bump_out_end = Column(DateTime(timezone=True), nullable=True)

    status = Column(
        SAEnum(AccreditationStatus, name="accreditation_status_enum", native_enum=False),
        nullable=False,
        default=AccreditationStatus.DRAFT,
        index=True,
    )
    verification_token = Column(String(128), nullable=True, unique=True)
    revocation_reason = Column(Text, nullable=True)

    created_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    approved_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    revoked_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    project = relationship("AccreditationProject", lazy="select")

    __mapper_args__ = {"version_id_col": version}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def has_grant(self, phase: Phase) -> bool:
        if phase == Phase.BUMP_IN:
            return bool(self.has_bump_in_access)
        if phase == Phase.LIVE:
            return bool(self.has_live_access)
        return bool(self.has_bump_out_access)

    def grant_window(self, phase: Phase) -> tuple[datetime | None, datetime | None]:
        if phase == Phase.BUMP_IN:
            return self.bump_in_start, self.bump_in_end
        if phase == Phase.LIVE:
            return self.live_start, self.live_end
        return self.bump_out_start, self.bump_out_end

    def granted_phases(self) -> list[Phase]:
        return [phase for phase in Phase if self.has_grant(phase)]

    def __repr__(self) -> str:
        return f"<Accreditation id={self.id} number={self.accreditation_number} status={self.status}>"


class AccreditationToken(Base):
    """
    Ledger of every verification token ever issued.

    Tokens are never reissued. A row with `retired_at IS NULL` is the
    credential's active token; retired rows keep old badges resolvable so
    scans of them can still be attributed and denied.
    """

    __tablename__ = "accreditation_tokens"

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    token = Column(String(128), nullable=False, unique=True, index=True)
    accreditation_id = Column(
        String(36),
        ForeignKey("accreditations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    issued_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    issued_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    retired_at = Column(DateTime(timezone=True), nullable=True)
    retired_reason = Column(
        SAEnum(TokenRetirement, name="accreditation_token_retirement_enum", native_enum=False),
        nullable=True,
    )

    @property
    def is_active(self) -> bool:
        return self.retired_at is None

    def __repr__(self) -> str:
        return f"<AccreditationToken accreditation={self.accreditation_id} active={self.is_active}>"
