from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum as SAEnum, ForeignKey, Index, JSON, String, Text, desc

from ...database import Base
from ...utils.identifiers import generate_uuid7
from ..accreditation.enums import AccreditationStatus, DenyReason, HistoryAction, Phase, ScanOutcome


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccreditationHistory(Base):
    """
    Append-only lifecycle trail: one row per mutating operation on an
    accreditation, written in the same transaction as the change.
    """

    __tablename__ = "accreditation_history"
    __table_args__ = (
        Index("ix_accreditation_history_record_time", "accreditation_id", "occurred_at"),
        Index("ix_accreditation_history_action", "action"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    accreditation_id = Column(
        String(36),
        ForeignKey("accreditations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    action = Column(SAEnum(HistoryAction, name="accreditation_history_action_enum", native_enum=False), nullable=False)
    old_status = Column(
        SAEnum(AccreditationStatus, name="accreditation_status_enum", native_enum=False),
        nullable=True,
    )
    new_status = Column(
        SAEnum(AccreditationStatus, name="accreditation_status_enum", native_enum=False),
        nullable=True,
    )
    performed_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    notes = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AccreditationHistory id={self.id} accreditation={self.accreditation_id} "
            f"action={self.action} {self.old_status}->{self.new_status}>"
        )


class AccreditationScan(Base):
    """
    One row per verification attempt, allowed or denied.

    `accreditation_id` is empty when the presented token resolved to
    nothing. Only a short fingerprint of the token is kept.
    """

    __tablename__ = "accreditation_scans"
    __table_args__ = (
        Index("ix_accreditation_scans_record_time", "accreditation_id", "scanned_at"),
        Index("ix_accreditation_scans_time_desc", desc("scanned_at")),
        Index("ix_accreditation_scans_outcome", "outcome"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    accreditation_id = Column(
        String(36),
        ForeignKey("accreditations.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    scanned_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    outcome = Column(SAEnum(ScanOutcome, name="accreditation_scan_outcome_enum", native_enum=False), nullable=False)
    reason = Column(SAEnum(DenyReason, name="accreditation_scan_reason_enum", native_enum=False), nullable=True)
    phase = Column(SAEnum(Phase, name="accreditation_phase_enum", native_enum=False), nullable=True)
    token_fingerprint = Column(String(16), nullable=True, index=True)
    scanned_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    device = Column(String(255), nullable=True)
    ip_address = Column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<AccreditationScan id={self.id} accreditation={self.accreditation_id} outcome={self.outcome}>"
