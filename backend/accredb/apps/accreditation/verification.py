"""
Checkpoint verification: token -> credential -> decision, with one scan
row per attempt.

The scan row is committed before `verify` returns; a storage failure
surfaces as a retryable error rather than an unlogged decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from accredb.apps.audit import services as audit_services
from accredb.errors import Transient

from . import access, models, schemas, tokens
from .enums import AccreditationStatus, DenyReason, Phase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    decision: access.Decision
    verified_at: datetime
    summary: Optional[schemas.CredentialSummary] = None

    def to_response(self) -> schemas.VerificationResponse:
        return schemas.VerificationResponse(
            outcome=self.decision.outcome,
            reason=self.decision.reason,
            phase=self.decision.phase,
            verified_at=self.verified_at,
            credential=self.summary,
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_summary(
    credential: models.Accreditation,
    project: models.AccreditationProject,
) -> schemas.CredentialSummary:
    phases: Dict[str, Optional[schemas.PhaseWindow]] = {}
    for phase in Phase:
        if not credential.has_grant(phase):
            phases[phase.value] = None
            continue
        override_start, override_end = credential.grant_window(phase)
        project_start, project_end = project.phase_window(phase)
        phases[phase.value] = schemas.PhaseWindow(
            start=override_start or project_start,
            end=override_end or project_end,
        )
    return schemas.CredentialSummary(
        accreditation_id=credential.id,
        accreditation_number=credential.accreditation_number,
        first_name=credential.first_name,
        last_name=credential.last_name,
        organization=credential.organization,
        job_title=credential.job_title,
        access_group=credential.access_group,
        qid_number=credential.qid_number,
        passport_number=credential.passport_number,
        project_name=project.name,
        project_code=project.code,
        status=credential.status,
        phases=phases,
    )


def resolve_token(db: Session, token: str) -> Optional[models.AccreditationToken]:
    return (
        db.query(models.AccreditationToken)
        .filter(models.AccreditationToken.token == token)
        .first()
    )


def _decide(
    db: Session,
    token: str,
    now: datetime,
) -> tuple[access.Decision, Optional[models.Accreditation], Optional[models.AccreditationProject]]:
    if not token:
        return access.Decision.deny(DenyReason.UNKNOWN_TOKEN), None, None

    ledger_row = resolve_token(db, token)
    if ledger_row is None:
        return access.Decision.deny(DenyReason.UNKNOWN_TOKEN), None, None

    credential = db.get(models.Accreditation, ledger_row.accreditation_id)
    if credential is None:
        return access.Decision.deny(DenyReason.UNKNOWN_TOKEN), None, None
    project = credential.project

    if not ledger_row.is_active and credential.status == AccreditationStatus.APPROVED:
        # Superseded badge for a credential that is otherwise valid.
        return access.Decision.deny(DenyReason.TOKEN_RETIRED), credential, project

    return access.evaluate(credential, project, now), credential, project


def verify(
    db: Session,
    token: str,
    now: Optional[datetime] = None,
    *,
    scanned_by_id: Optional[str] = None,
    device: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> VerificationResult:
    now = access.as_utc(now) if now is not None else _utcnow()
    token = (token or "").strip()
    token_tag = tokens.fingerprint(token) if token else None

    try:
        decision, credential, project = _decide(db, token, now)
        audit_services.record_scan(
            db,
            accreditation_id=credential.id if credential is not None else None,
            outcome=decision.outcome,
            reason=decision.reason,
            phase=decision.phase,
            scanned_at=now,
            token_fingerprint=token_tag,
            scanned_by_id=scanned_by_id,
            device=device,
            ip_address=ip_address,
        )
        summary = build_summary(credential, project) if credential is not None else None
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(
            "Scan could not be recorded",
            extra={"token_fingerprint": token_tag, "error": exc.__class__.__name__},
        )
        raise Transient("Verification is temporarily unavailable") from exc

    log = logger.debug if decision.allowed else logger.info
    log(
        "Accreditation scan",
        extra={
            "token_fingerprint": token_tag,
            "accreditation_id": summary.accreditation_id if summary else None,
            "outcome": decision.outcome.value,
            "reason": decision.reason.value if decision.reason else None,
            "phase": decision.phase.value if decision.phase else None,
        },
    )
    return VerificationResult(decision=decision, verified_at=now, summary=summary)
