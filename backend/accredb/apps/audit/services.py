from __future__ import annotations

from datetime import datetime
import logging
from typing import Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..accreditation import models as accreditation_models
from ..accreditation.enums import AccreditationStatus, DenyReason, HistoryAction, Phase, ScanOutcome
from . import models

logger = logging.getLogger(__name__)

MAX_SCAN_PAGE_SIZE = 200


def record(
    db: Session,
    *,
    accreditation_id: str,
    action: HistoryAction,
    old_status: Optional[AccreditationStatus],
    new_status: Optional[AccreditationStatus],
    performed_by_id: Optional[str],
    notes: Optional[str] = None,
    details: Optional[dict] = None,
    occurred_at: Optional[datetime] = None,
) -> models.AccreditationHistory:
    """
    Append a lifecycle history row to the caller's transaction.

    Never commits. Unlike best-effort logging, a failure here is raised so
    the caller rolls back the change the row documents.
    """
    entry = models.AccreditationHistory(
        accreditation_id=accreditation_id,
        action=action,
        old_status=old_status,
        new_status=new_status,
        performed_by_id=performed_by_id,
        notes=notes,
        details=details,
    )
    if occurred_at is not None:
        entry.occurred_at = occurred_at
    db.add(entry)
    db.flush()
    logger.debug(
        "Recorded accreditation history",
        extra={"accreditation_id": accreditation_id, "action": action.value, "history_id": entry.id},
    )
    return entry


def record_scan(
    db: Session,
    *,
    accreditation_id: Optional[str],
    outcome: ScanOutcome,
    reason: Optional[DenyReason],
    phase: Optional[Phase],
    scanned_at: datetime,
    token_fingerprint: Optional[str] = None,
    scanned_by_id: Optional[str] = None,
    device: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> models.AccreditationScan:
    scan = models.AccreditationScan(
        accreditation_id=accreditation_id,
        outcome=outcome,
        reason=reason,
        phase=phase,
        scanned_at=scanned_at,
        token_fingerprint=token_fingerprint,
        scanned_by_id=scanned_by_id,
        device=device[:255] if device else None,
        ip_address=ip_address[:64] if ip_address else None,
    )
    db.add(scan)
    db.flush()
    return scan


def list_history(
    db: Session,
    *,
    accreditation_id: str,
) -> Sequence[models.AccreditationHistory]:
    return (
        db.query(models.AccreditationHistory)
        .filter(models.AccreditationHistory.accreditation_id == accreditation_id)
        .order_by(models.AccreditationHistory.occurred_at.desc(), models.AccreditationHistory.id.desc())
        .all()
    )


def list_scans(
    db: Session,
    *,
    accreditation_id: Optional[str] = None,
    project_id: Optional[str] = None,
    outcome: Optional[ScanOutcome] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[Sequence[models.AccreditationScan], int]:
    page = max(page, 1)
    page_size = min(max(page_size, 1), MAX_SCAN_PAGE_SIZE)

    query = db.query(models.AccreditationScan)
    if accreditation_id:
        query = query.filter(models.AccreditationScan.accreditation_id == accreditation_id)
    if project_id:
        query = query.join(
            accreditation_models.Accreditation,
            accreditation_models.Accreditation.id == models.AccreditationScan.accreditation_id,
        ).filter(accreditation_models.Accreditation.project_id == project_id)
    if outcome:
        query = query.filter(models.AccreditationScan.outcome == outcome)
    if start:
        query = query.filter(models.AccreditationScan.scanned_at >= start)
    if end:
        query = query.filter(models.AccreditationScan.scanned_at < end)

    total = query.count()
    rows = (
        query.order_by(models.AccreditationScan.scanned_at.desc(), models.AccreditationScan.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return rows, total
