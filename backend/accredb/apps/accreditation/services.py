from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, timezone
import logging
import os
from typing import Any, Dict, Iterator, List, Optional, Sequence
from urllib.parse import quote

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from accredb.apps.accounts import models as account_models
from accredb.apps.accounts.models import AccountRole
from accredb.apps.audit import models as audit_models
from accredb.apps.audit import services as audit_services
from accredb.apps.workflow import apply_transition
from accredb.errors import Conflict, NotFound, ServiceError, Transient, Unauthorized, ValidationFailed
from accredb.utils.identifiers import next_accreditation_number

from . import access, models, schemas, tokens, verification
from .enums import AccreditationStatus, HistoryAction, Phase, ScanOutcome, TokenRetirement

logger = logging.getLogger(__name__)

VERIFY_BASE_URL = os.getenv("ACCREDITATION_VERIFY_BASE_URL", "http://localhost:5173/verify")

PROJECT_ADMIN_ROLES = (AccountRole.ADMIN,)
EDITOR_ROLES = (AccountRole.ADMIN, AccountRole.ACCREDITATION_EDITOR)
APPROVER_ROLES = (AccountRole.ADMIN, AccountRole.ACCREDITATION_APPROVER)
REVOKER_ROLES = (AccountRole.ADMIN, AccountRole.ACCREDITATION_APPROVER)
SCANNER_ROLES = (
    AccountRole.ADMIN,
    AccountRole.ACCREDITATION_APPROVER,
    AccountRole.CHECKPOINT_OPERATOR,
)
TOKEN_VIEWER_ROLES = (
    AccountRole.ADMIN,
    AccountRole.ACCREDITATION_APPROVER,
    AccountRole.ACCREDITATION_EDITOR,
)

EDITABLE_STATUSES = (
    AccreditationStatus.DRAFT,
    AccreditationStatus.REJECTED,
    AccreditationStatus.REVOKED,
)

_PHASE_WINDOW_FIELDS = (
    ("bump_in_start", "bump_in_end"),
    ("live_start", "live_end"),
    ("bump_out_start", "bump_out_end"),
)
_HOLDER_FIELDS = (
    "first_name",
    "last_name",
    "organization",
    "job_title",
    "access_group",
    "qid_number",
    "qid_expiry",
    "passport_number",
    "passport_country",
    "passport_expiry",
    "hayya_visa_number",
    "hayya_visa_expiry",
)
_GRANT_FIELDS = tuple(field for phase in Phase for field in schemas.grant_fields(phase))
# Columns an edit may change but never clear.
_REQUIRED_RECORD_FIELDS = (
    "first_name",
    "last_name",
    "organization",
    "job_title",
    "access_group",
    "has_bump_in_access",
    "has_live_access",
    "has_bump_out_access",
)
_REQUIRED_PROJECT_FIELDS = ("name", "is_active")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# TRANSACTIONS
# ---------------------------------------------------------------------------


@contextmanager
def _unit_of_work(db: Session) -> Iterator[None]:
    """
    Commit once on success; roll back everything on any failure.

    Storage errors are mapped to retryable service errors here so callers
    only ever see the typed taxonomy.
    """
    try:
        yield
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except StaleDataError as exc:
        db.rollback()
        logger.warning("Concurrent update detected", extra={"error": str(exc)})
        raise Conflict("Record was modified concurrently; reload and retry") from exc
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity conflict", extra={"error": str(getattr(exc, "orig", exc))})
        raise Conflict("Conflicting write; reload and retry") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Storage error, transaction rolled back", extra={"error": exc.__class__.__name__})
        raise Transient("Storage temporarily unavailable") from exc
    except Exception:
        db.rollback()
        raise


# ---------------------------------------------------------------------------
# AUTHORISATION
# ---------------------------------------------------------------------------


def _require_role(
    actor: Optional[account_models.User],
    roles: Sequence[AccountRole],
    *,
    action: str,
    owner_id: Optional[str] = None,
) -> None:
    if actor is None or not getattr(actor, "is_active", False):
        raise Unauthorized(f"An active user is required to {action}")
    if actor.has_role(*roles):
        return
    if owner_id is not None and actor.id == owner_id:
        return
    raise Unauthorized(f"Insufficient permissions to {action}")


# ---------------------------------------------------------------------------
# LOADERS
# ---------------------------------------------------------------------------


def get_project(db: Session, project_id: str) -> models.AccreditationProject:
    project = db.get(models.AccreditationProject, project_id)
    if project is None:
        raise NotFound("Accreditation project not found")
    return project


def list_projects(db: Session, *, active_only: bool = False) -> Sequence[models.AccreditationProject]:
    query = db.query(models.AccreditationProject)
    if active_only:
        query = query.filter(models.AccreditationProject.is_active.is_(True))
    return query.order_by(models.AccreditationProject.created_at.desc()).all()


def get_accreditation(db: Session, accreditation_id: str) -> models.Accreditation:
    record = db.get(models.Accreditation, accreditation_id)
    if record is None:
        raise NotFound("Accreditation not found")
    return record


def _load_for_update(db: Session, accreditation_id: str) -> models.Accreditation:
    # populate_existing: a second transaction racing on the same row must
    # see the committed status, not a stale identity-map copy.
    record = (
        db.query(models.Accreditation)
        .filter(models.Accreditation.id == accreditation_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if record is None:
        raise NotFound("Accreditation not found")
    return record


def list_accreditations(
    db: Session,
    *,
    project_id: Optional[str] = None,
    status: Optional[AccreditationStatus] = None,
    search: Optional[str] = None,
) -> Sequence[models.Accreditation]:
    query = db.query(models.Accreditation)
    if project_id:
        query = query.filter(models.Accreditation.project_id == project_id)
    if status:
        query = query.filter(models.Accreditation.status == status)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                models.Accreditation.accreditation_number.ilike(pattern),
                models.Accreditation.first_name.ilike(pattern),
                models.Accreditation.last_name.ilike(pattern),
                models.Accreditation.organization.ilike(pattern),
            )
        )
    return query.order_by(models.Accreditation.created_at.desc()).all()


# ---------------------------------------------------------------------------
# VALIDATION
# ---------------------------------------------------------------------------


def _validate_project_windows(values: Dict[str, Any]) -> None:
    failures: List[Dict[str, str]] = []
    for start_field, end_field in _PHASE_WINDOW_FIELDS:
        start, end = access.as_utc(values.get(start_field)), access.as_utc(values.get(end_field))
        if start is None or end is None:
            failures.append({"field": start_field, "reason": "start and end required"})
        elif start >= end:
            failures.append({"field": start_field, "reason": "start must be before end"})
    if failures:
        raise ValidationFailed("Invalid phase windows", detail=failures)


def _reject_cleared(data: Dict[str, Any], required: Sequence[str]) -> None:
    failures = [
        {"field": field, "reason": "cannot be cleared"}
        for field in required
        if field in data and data[field] is None
    ]
    if failures:
        raise ValidationFailed("Required fields cannot be empty", detail=failures)


def _check_overrides_within(
    db: Session,
    project_id: str,
    windows: Dict[str, Any],
    phases: Sequence[Phase],
) -> None:
    """Existing override windows must still fit inside the changed phase windows."""
    if not phases:
        return
    failures: List[Dict[str, str]] = []
    records = (
        db.query(models.Accreditation)
        .filter(models.Accreditation.project_id == project_id)
        .order_by(models.Accreditation.accreditation_number)
        .all()
    )
    for record in records:
        for phase in phases:
            _, start_field, end_field = schemas.grant_fields(phase)
            start, end = access.as_utc(getattr(record, start_field)), access.as_utc(getattr(record, end_field))
            if start is not None and start < access.as_utc(windows[start_field]):
                failures.append(
                    {"field": start_field, "reason": f"{record.accreditation_number} override starts before the new window"}
                )
            if end is not None and end > access.as_utc(windows[end_field]):
                failures.append(
                    {"field": end_field, "reason": f"{record.accreditation_number} override ends after the new window"}
                )
    if failures:
        raise ValidationFailed(
            "Phase change would leave accreditation overrides outside the project window",
            detail=failures,
        )


def _validate_holder(project: models.AccreditationProject, values: Dict[str, Any]) -> None:
    failures: List[Dict[str, str]] = []

    if values.get("access_group") not in (project.access_groups or []):
        failures.append({"field": "access_group", "reason": "not an access group of this project"})

    has_qid = bool(values.get("qid_number") and values.get("qid_expiry"))
    has_passport = bool(values.get("passport_number") and values.get("passport_expiry"))
    if not (has_qid or has_passport):
        failures.append({"field": "qid_number", "reason": "QID or passport with expiry required"})
    if bool(values.get("hayya_visa_number")) != bool(values.get("hayya_visa_expiry")):
        failures.append({"field": "hayya_visa_number", "reason": "visa number and expiry go together"})

    granted = False
    for phase in Phase:
        flag, start_field, end_field = schemas.grant_fields(phase)
        start, end = values.get(start_field), values.get(end_field)
        if values.get(flag):
            granted = True
        elif start is not None or end is not None:
            failures.append({"field": flag, "reason": "override window set without the grant"})
            continue
        if start is not None and end is not None and access.as_utc(start) >= access.as_utc(end):
            failures.append({"field": start_field, "reason": "start must be before end"})
            continue
        project_start, project_end = project.phase_window(phase)
        if start is not None and access.as_utc(start) < access.as_utc(project_start):
            failures.append({"field": start_field, "reason": "override starts before the project phase"})
        if end is not None and access.as_utc(end) > access.as_utc(project_end):
            failures.append({"field": end_field, "reason": "override ends after the project phase"})
    if not granted:
        failures.append({"field": "has_bump_in_access", "reason": "at least one access phase required"})

    if failures:
        raise ValidationFailed("Invalid accreditation details", detail=failures)


def _check_duplicate_identity(
    db: Session,
    *,
    project_id: str,
    values: Dict[str, Any],
    exclude_id: Optional[str] = None,
) -> None:
    conditions = []
    if values.get("qid_number"):
        conditions.append(models.Accreditation.qid_number == values["qid_number"])
    if values.get("passport_number"):
        conditions.append(models.Accreditation.passport_number == values["passport_number"])
    if not conditions:
        return

    query = db.query(models.Accreditation).filter(
        models.Accreditation.project_id == project_id,
        models.Accreditation.status != AccreditationStatus.REJECTED,
        or_(*conditions),
    )
    if exclude_id:
        query = query.filter(models.Accreditation.id != exclude_id)
    existing = query.first()
    if existing is not None:
        raise ValidationFailed(
            f"An accreditation already exists for this holder ({existing.accreditation_number}, {existing.status.value})",
            detail=[{"field": "qid_number" if values.get("qid_number") else "passport_number", "reason": "duplicate holder"}],
        )


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


# ---------------------------------------------------------------------------
# PROJECTS
# ---------------------------------------------------------------------------


def create_project(
    db: Session,
    actor: account_models.User,
    data: schemas.ProjectCreate,
) -> models.AccreditationProject:
    _require_role(actor, PROJECT_ADMIN_ROLES, action="create accreditation projects")
    values = data.model_dump()
    _validate_project_windows(values)

    with _unit_of_work(db):
        existing = (
            db.query(models.AccreditationProject)
            .filter(func.upper(models.AccreditationProject.code) == values["code"].upper())
            .first()
        )
        if existing is not None:
            raise ValidationFailed(
                "Project code already in use",
                detail=[{"field": "code", "reason": "must be unique"}],
            )
        project = models.AccreditationProject(created_by_id=actor.id, **values)
        db.add(project)
        db.flush()

    logger.info("Accreditation project created", extra={"project_id": project.id, "actor_id": actor.id})
    return project


def update_project(
    db: Session,
    project_id: str,
    actor: account_models.User,
    changes: schemas.ProjectUpdate,
) -> models.AccreditationProject:
    _require_role(actor, PROJECT_ADMIN_ROLES, action="update accreditation projects")
    data = changes.model_dump(exclude_unset=True)
    if "access_groups" in data:
        raise ValidationFailed(
            "Access groups are fixed once a project is created",
            detail=[{"field": "access_groups", "reason": "immutable"}],
        )
    _reject_cleared(data, _REQUIRED_PROJECT_FIELDS)

    with _unit_of_work(db):
        project = get_project(db, project_id)
        merged = {
            field: data.get(field, getattr(project, field))
            for pair in _PHASE_WINDOW_FIELDS
            for field in pair
        }
        _validate_project_windows(merged)
        changed_phases = [
            phase
            for phase in Phase
            if any(
                field in data and access.as_utc(data[field]) != access.as_utc(getattr(project, field))
                for field in schemas.grant_fields(phase)[1:]
            )
        ]
        _check_overrides_within(db, project.id, merged, changed_phases)
        for field, value in data.items():
            setattr(project, field, value)
        db.add(project)

    return project


def project_stats(db: Session, project_id: str) -> schemas.ProjectStats:
    get_project(db, project_id)
    rows = (
        db.query(models.Accreditation.status, func.count(models.Accreditation.id))
        .filter(models.Accreditation.project_id == project_id)
        .group_by(models.Accreditation.status)
        .all()
    )
    by_status = {status.value: 0 for status in AccreditationStatus}
    for status, count in rows:
        by_status[getattr(status, "value", status)] = count

    scan_rows = (
        db.query(audit_models.AccreditationScan.outcome, func.count(audit_models.AccreditationScan.id))
        .join(models.Accreditation, models.Accreditation.id == audit_models.AccreditationScan.accreditation_id)
        .filter(models.Accreditation.project_id == project_id)
        .group_by(audit_models.AccreditationScan.outcome)
        .all()
    )
    scans = {getattr(outcome, "value", outcome): count for outcome, count in scan_rows}
    return schemas.ProjectStats(
        project_id=project_id,
        total=sum(by_status.values()),
        by_status=by_status,
        scans_allowed=scans.get(ScanOutcome.ALLOW.value, 0),
        scans_denied=scans.get(ScanOutcome.DENY.value, 0),
    )


# ---------------------------------------------------------------------------
# RECORDS
# ---------------------------------------------------------------------------


def _next_number(db: Session) -> str:
    column = models.Accreditation.accreditation_number
    last = db.query(column).order_by(func.length(column).desc(), column.desc()).first()
    return next_accreditation_number(last[0] if last else None)


def create_accreditation(
    db: Session,
    actor: account_models.User,
    data: schemas.AccreditationCreate,
) -> models.Accreditation:
    _require_role(actor, EDITOR_ROLES, action="create accreditations")
    values = data.model_dump()

    with _unit_of_work(db):
        project = get_project(db, values["project_id"])
        if not project.is_active:
            raise ValidationFailed(
                "Project is not accepting accreditations",
                detail=[{"field": "project_id", "reason": "project inactive"}],
            )
        _validate_holder(project, values)
        _check_duplicate_identity(db, project_id=project.id, values=values)

        record = models.Accreditation(
            accreditation_number=_next_number(db),
            status=AccreditationStatus.DRAFT,
            created_by_id=actor.id,
            **values,
        )
        db.add(record)
        db.flush()
        audit_services.record(
            db,
            accreditation_id=record.id,
            action=HistoryAction.CREATED,
            old_status=None,
            new_status=AccreditationStatus.DRAFT,
            performed_by_id=actor.id,
        )

    logger.info(
        "Accreditation created",
        extra={"accreditation_id": record.id, "number": record.accreditation_number, "actor_id": actor.id},
    )
    return record


def update_accreditation(
    db: Session,
    accreditation_id: str,
    actor: account_models.User,
    changes: schemas.AccreditationUpdate,
) -> models.Accreditation:
    data = changes.model_dump(exclude_unset=True)

    with _unit_of_work(db):
        record = _load_for_update(db, accreditation_id)
        _require_role(actor, EDITOR_ROLES, action="edit accreditations", owner_id=record.created_by_id)
        if record.status not in EDITABLE_STATUSES:
            raise ValidationFailed(
                f"Accreditation is {record.status.value}; return it to draft before editing",
                detail=[{"field": "status", "reason": "edit allowed in DRAFT, REJECTED or REVOKED"}],
            )
        _reject_cleared(data, _REQUIRED_RECORD_FIELDS)

        merged = {field: getattr(record, field) for field in _HOLDER_FIELDS + _GRANT_FIELDS}
        merged.update(data)
        _validate_holder(record.project, merged)
        if "qid_number" in data or "passport_number" in data:
            _check_duplicate_identity(db, project_id=record.project_id, values=merged, exclude_id=record.id)

        diff = {}
        for field, value in data.items():
            old_value = getattr(record, field)
            if old_value != value:
                diff[field] = {"from": _json_safe(old_value), "to": _json_safe(value)}
                setattr(record, field, value)

        if diff:
            db.add(record)
            audit_services.record(
                db,
                accreditation_id=record.id,
                action=HistoryAction.UPDATED,
                old_status=record.status,
                new_status=None,
                performed_by_id=actor.id,
                details={"changes": diff},
            )

    return record


# ---------------------------------------------------------------------------
# LIFECYCLE
# ---------------------------------------------------------------------------


def _token_taken(db: Session, candidate: str) -> bool:
    return (
        db.query(models.AccreditationToken.id)
        .filter(models.AccreditationToken.token == candidate)
        .first()
        is not None
    )


def _retire_token(
    db: Session,
    record: models.Accreditation,
    *,
    reason: TokenRetirement,
    now: datetime,
) -> None:
    if not record.verification_token:
        return
    active = (
        db.query(models.AccreditationToken)
        .filter(
            models.AccreditationToken.accreditation_id == record.id,
            models.AccreditationToken.retired_at.is_(None),
        )
        .all()
    )
    for row in active:
        row.retired_at = now
        row.retired_reason = reason
        db.add(row)
    record.verification_token = None


def _issue_token(
    db: Session,
    record: models.Accreditation,
    *,
    actor_id: str,
    now: datetime,
) -> None:
    token = tokens.mint(lambda candidate: _token_taken(db, candidate))
    db.add(
        models.AccreditationToken(
            token=token,
            accreditation_id=record.id,
            issued_at=now,
            issued_by_id=actor_id,
        )
    )
    record.verification_token = token


def _ensure_ledger_row(db: Session, record: models.Accreditation, *, actor_id: str, now: datetime) -> None:
    # Tokens attached before the ledger existed are registered on reuse.
    if not _token_taken(db, record.verification_token):
        db.add(
            models.AccreditationToken(
                token=record.verification_token,
                accreditation_id=record.id,
                issued_at=now,
                issued_by_id=actor_id,
            )
        )


def _log_transition(record: models.Accreditation, old_status: AccreditationStatus, actor_id: str, trigger: str) -> None:
    logger.info(
        "Accreditation transition",
        extra={
            "accreditation_id": record.id,
            "trigger": trigger,
            "from_status": old_status.value,
            "to_status": record.status.value,
            "actor_id": actor_id,
        },
    )


def submit(
    db: Session,
    accreditation_id: str,
    actor: account_models.User,
    *,
    notes: Optional[str] = None,
) -> models.Accreditation:
    """Submit a draft, or resubmit a rejected/revoked record, for approval."""
    with _unit_of_work(db):
        record = _load_for_update(db, accreditation_id)
        _require_role(actor, EDITOR_ROLES, action="submit accreditations", owner_id=record.created_by_id)
        old_status = record.status
        trigger = apply_transition(db, record, to_state=AccreditationStatus.PENDING)

        if old_status == AccreditationStatus.REVOKED:
            record.revocation_reason = None
            record.revoked_by_id = None
            record.revoked_at = None
        db.add(record)
        audit_services.record(
            db,
            accreditation_id=record.id,
            action=HistoryAction.SUBMITTED if old_status == AccreditationStatus.DRAFT else HistoryAction.RESUBMITTED,
            old_status=old_status,
            new_status=record.status,
            performed_by_id=actor.id,
            notes=notes,
        )

    _log_transition(record, old_status, actor.id, trigger)
    return record


def approve(
    db: Session,
    accreditation_id: str,
    actor: account_models.User,
    *,
    notes: Optional[str] = None,
    rotate_token: bool = False,
    now: Optional[datetime] = None,
) -> models.Accreditation:
    """
    Approve a pending record and bind it to a verification token.

    An already attached token is kept so printed badges stay valid,
    unless `rotate_token` is set.
    """
    _require_role(actor, APPROVER_ROLES, action="approve accreditations")
    now = now or _utcnow()

    with _unit_of_work(db):
        record = _load_for_update(db, accreditation_id)
        old_status = record.status
        trigger = apply_transition(db, record, to_state=AccreditationStatus.APPROVED)

        if record.verification_token and rotate_token:
            _retire_token(db, record, reason=TokenRetirement.ROTATED, now=now)
            _issue_token(db, record, actor_id=actor.id, now=now)
            token_action = "rotated"
        elif record.verification_token:
            _ensure_ledger_row(db, record, actor_id=actor.id, now=now)
            token_action = "reused"
        else:
            _issue_token(db, record, actor_id=actor.id, now=now)
            token_action = "minted"

        record.approved_by_id = actor.id
        record.approved_at = now
        db.add(record)
        audit_services.record(
            db,
            accreditation_id=record.id,
            action=HistoryAction.APPROVED,
            old_status=old_status,
            new_status=record.status,
            performed_by_id=actor.id,
            notes=notes,
            details={
                "token": token_action,
                "token_fingerprint": tokens.fingerprint(record.verification_token),
            },
            occurred_at=now,
        )

    _log_transition(record, old_status, actor.id, trigger)
    return record


def reject(
    db: Session,
    accreditation_id: str,
    actor: account_models.User,
    *,
    notes: Optional[str] = None,
) -> models.Accreditation:
    _require_role(actor, APPROVER_ROLES, action="reject accreditations")

    with _unit_of_work(db):
        record = _load_for_update(db, accreditation_id)
        old_status = record.status
        trigger = apply_transition(db, record, to_state=AccreditationStatus.REJECTED)
        record.approved_by_id = actor.id
        db.add(record)
        audit_services.record(
            db,
            accreditation_id=record.id,
            action=HistoryAction.REJECTED,
            old_status=old_status,
            new_status=record.status,
            performed_by_id=actor.id,
            notes=notes,
        )

    _log_transition(record, old_status, actor.id, trigger)
    return record


def return_to_draft(
    db: Session,
    accreditation_id: str,
    actor: account_models.User,
    *,
    notes: Optional[str] = None,
) -> models.Accreditation:
    _require_role(actor, APPROVER_ROLES, action="return accreditations to draft")

    with _unit_of_work(db):
        record = _load_for_update(db, accreditation_id)
        old_status = record.status
        trigger = apply_transition(db, record, to_state=AccreditationStatus.DRAFT)
        db.add(record)
        audit_services.record(
            db,
            accreditation_id=record.id,
            action=HistoryAction.RETURNED_TO_DRAFT,
            old_status=old_status,
            new_status=record.status,
            performed_by_id=actor.id,
            notes=notes or "Returned to draft for editing",
        )

    _log_transition(record, old_status, actor.id, trigger)
    return record


def revoke(
    db: Session,
    accreditation_id: str,
    actor: account_models.User,
    *,
    reason: Optional[str],
    now: Optional[datetime] = None,
) -> models.Accreditation:
    """Revoke an approved record. The active token stops verifying immediately."""
    _require_role(actor, REVOKER_ROLES, action="revoke accreditations")
    now = now or _utcnow()

    with _unit_of_work(db):
        record = _load_for_update(db, accreditation_id)
        old_status = record.status
        trigger = apply_transition(
            db,
            record,
            to_state=AccreditationStatus.REVOKED,
            context={"revocation_reason": reason},
        )
        reason = reason.strip()
        _retire_token(db, record, reason=TokenRetirement.REVOKED, now=now)
        record.revocation_reason = reason
        record.revoked_by_id = actor.id
        record.revoked_at = now
        db.add(record)
        audit_services.record(
            db,
            accreditation_id=record.id,
            action=HistoryAction.REVOKED,
            old_status=old_status,
            new_status=record.status,
            performed_by_id=actor.id,
            notes=reason,
            occurred_at=now,
        )

    _log_transition(record, old_status, actor.id, trigger)
    return record


# ---------------------------------------------------------------------------
# VERIFICATION
# ---------------------------------------------------------------------------


def verify(
    db: Session,
    token: str,
    now: Optional[datetime] = None,
    *,
    actor: Optional[account_models.User] = None,
    device: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> verification.VerificationResult:
    if actor is not None:
        _require_role(actor, SCANNER_ROLES, action="verify accreditations")
    return verification.verify(
        db,
        token,
        now,
        scanned_by_id=actor.id if actor is not None else None,
        device=device,
        ip_address=ip_address,
    )


def verification_url(token: str) -> str:
    return f"{VERIFY_BASE_URL.rstrip('/')}/{quote(token, safe='')}"


def get_verification_url(
    db: Session,
    accreditation_id: str,
    actor: account_models.User,
) -> schemas.VerificationUrlRead:
    _require_role(actor, TOKEN_VIEWER_ROLES, action="view verification links")
    record = get_accreditation(db, accreditation_id)
    if not record.verification_token:
        raise ValidationFailed(
            "Accreditation has no active verification token",
            detail=[{"field": "status", "reason": f"record is {record.status.value}"}],
        )
    return schemas.VerificationUrlRead(
        accreditation_id=record.id,
        url=verification_url(record.verification_token),
    )
