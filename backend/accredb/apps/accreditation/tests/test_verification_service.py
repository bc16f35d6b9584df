from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from accredb.apps.accounts.models import AccountRole
from accredb.apps.accreditation import models, services, tokens, verification
from accredb.apps.accreditation.enums import AccreditationStatus, DenyReason, Phase, ScanOutcome
from accredb.apps.audit import models as audit_models
from accredb.apps.audit import services as audit_services
from accredb.errors import Transient
from conftest import day


def _scans(db):
    return db.query(audit_models.AccreditationScan).order_by(audit_models.AccreditationScan.id).all()


@pytest.fixture()
def approved(db_session, make_accreditation, make_user):
    approver = make_user(AccountRole.ACCREDITATION_APPROVER)
    record = make_accreditation()
    services.submit(db_session, record.id, make_user(AccountRole.ACCREDITATION_EDITOR))
    services.approve(db_session, record.id, approver)
    return record


def test_every_verify_writes_exactly_one_scan(db_session, approved):
    token = approved.verification_token
    cases = [
        (token, day(3), ScanOutcome.ALLOW, None),
        (token, day(1), ScanOutcome.DENY, DenyReason.PHASE_NOT_GRANTED),
        (token, day(10), ScanOutcome.DENY, DenyReason.OUTSIDE_EVENT_WINDOW),
        ("not-a-token", day(3), ScanOutcome.DENY, DenyReason.UNKNOWN_TOKEN),
        ("", day(3), ScanOutcome.DENY, DenyReason.UNKNOWN_TOKEN),
    ]
    for index, (presented, now, outcome, reason) in enumerate(cases, start=1):
        result = verification.verify(db_session, presented, now)
        scans = _scans(db_session)
        assert len(scans) == index
        assert scans[-1].outcome == outcome
        assert scans[-1].reason == reason
        assert result.decision.outcome == outcome
        assert result.decision.reason == reason


def test_allow_returns_summary_without_token(db_session, approved):
    result = verification.verify(db_session, approved.verification_token, day(3), device="gate-1", ip_address="10.0.0.7")

    assert result.decision.allowed
    assert result.decision.phase == Phase.LIVE
    payload = result.to_response().model_dump(mode="json")
    assert approved.verification_token not in str(payload)
    assert payload["credential"]["accreditation_number"] == approved.accreditation_number
    assert payload["credential"]["phases"]["BUMP_IN"] is None
    assert payload["credential"]["phases"]["LIVE"] is not None

    scan = _scans(db_session)[-1]
    assert scan.accreditation_id == approved.id
    assert scan.device == "gate-1"
    assert scan.token_fingerprint == tokens.fingerprint(approved.verification_token)


def test_revoked_token_is_not_approved(db_session, approved, make_user):
    token = approved.verification_token
    services.revoke(db_session, approved.id, make_user(AccountRole.ADMIN), reason="Badge reported stolen")

    result = verification.verify(db_session, token, day(3))

    assert result.decision.reason == DenyReason.NOT_APPROVED
    assert result.summary.status == AccreditationStatus.REVOKED
    assert _scans(db_session)[-1].accreditation_id == approved.id


def test_revoked_token_stays_denied_after_reapproval(db_session, approved, make_user):
    admin = make_user(AccountRole.ADMIN)
    old_token = approved.verification_token
    services.revoke(db_session, approved.id, admin, reason="Reissued")
    services.submit(db_session, approved.id, admin)
    services.approve(db_session, approved.id, admin)

    assert approved.verification_token != old_token
    assert verification.verify(db_session, old_token, day(3)).decision.reason == DenyReason.TOKEN_RETIRED
    assert verification.verify(db_session, approved.verification_token, day(3)).decision.allowed


def test_rotated_token_is_retired(db_session, make_accreditation, make_user):
    admin = make_user(AccountRole.ADMIN)
    old_token = "f" * 32
    record = make_accreditation("PENDING", verification_token=old_token)
    db_session.add(models.AccreditationToken(token=old_token, accreditation_id=record.id, issued_at=day(-30)))
    db_session.commit()

    services.approve(db_session, record.id, admin, rotate_token=True)

    assert record.verification_token != old_token
    assert verification.verify(db_session, old_token, day(3)).decision.reason == DenyReason.TOKEN_RETIRED
    assert verification.verify(db_session, record.verification_token, day(3)).decision.allowed

def test_storage_failure_is_transient_and_unrecorded(db_session, approved, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(audit_services, "record_scan", broken)

    with pytest.raises(Transient) as excinfo:
        verification.verify(db_session, approved.verification_token, day(3))

    assert excinfo.value.retryable is True
    assert _scans(db_session) == []
