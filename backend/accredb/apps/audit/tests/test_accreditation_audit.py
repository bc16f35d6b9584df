from __future__ import annotations

from datetime import timedelta

from accredb.apps.accreditation.enums import AccreditationStatus, DenyReason, HistoryAction, Phase, ScanOutcome
from accredb.apps.audit import models as audit_models
from accredb.apps.audit import services as audit_services
from conftest import day


def test_record_appends_history_without_committing(db_session, make_accreditation, make_user):
    record = make_accreditation()
    actor = make_user()

    entry = audit_services.record(
        db_session,
        accreditation_id=record.id,
        action=HistoryAction.SUBMITTED,
        old_status=AccreditationStatus.DRAFT,
        new_status=AccreditationStatus.PENDING,
        performed_by_id=actor.id,
        notes="first pass",
    )
    assert entry.id is not None

    db_session.rollback()
    assert db_session.query(audit_models.AccreditationHistory).count() == 0


def test_list_history_is_newest_first(db_session, make_accreditation):
    record = make_accreditation()
    for offset, action in enumerate([HistoryAction.CREATED, HistoryAction.SUBMITTED, HistoryAction.APPROVED]):
        audit_services.record(
            db_session,
            accreditation_id=record.id,
            action=action,
            old_status=None,
            new_status=None,
            performed_by_id=None,
            occurred_at=day(offset),
        )
    db_session.commit()

    history = audit_services.list_history(db_session, accreditation_id=record.id)
    assert [h.action for h in history] == [HistoryAction.APPROVED, HistoryAction.SUBMITTED, HistoryAction.CREATED]


def test_list_scans_filters_and_paginates(db_session, make_accreditation, project):
    record = make_accreditation()
    for minute in range(5):
        audit_services.record_scan(
            db_session,
            accreditation_id=record.id,
            outcome=ScanOutcome.ALLOW,
            reason=None,
            phase=Phase.LIVE,
            scanned_at=day(3) + timedelta(minutes=minute),
        )
    audit_services.record_scan(
        db_session,
        accreditation_id=None,
        outcome=ScanOutcome.DENY,
        reason=DenyReason.UNKNOWN_TOKEN,
        phase=None,
        scanned_at=day(3),
        token_fingerprint="deadbeef",
        device="gate-" + "x" * 400,
    )
    db_session.commit()

    rows, total = audit_services.list_scans(db_session, page=1, page_size=2)
    assert total == 6
    assert len(rows) == 2

    rows, total = audit_services.list_scans(db_session, project_id=project.id)
    assert total == 5
    assert all(r.accreditation_id == record.id for r in rows)

    rows, total = audit_services.list_scans(db_session, outcome=ScanOutcome.DENY)
    assert total == 1
    assert rows[0].reason == DenyReason.UNKNOWN_TOKEN
    assert len(rows[0].device) == 255

    rows, total = audit_services.list_scans(
        db_session,
        start=day(3) + timedelta(minutes=1),
        end=day(3) + timedelta(minutes=3),
    )
    assert total == 2
