from __future__ import annotations

import json

import pytest
from starlette.requests import Request

from accredb import main
from accredb.apps.accounts.models import AccountRole
from accredb.apps.accreditation import router as accreditation_router
from accredb.apps.accreditation import schemas, services
from accredb.apps.audit import models as audit_models
from accredb.errors import Conflict, InvalidTransition, NotFound, Transient, Unauthorized, ValidationFailed
from conftest import day


def _request(ip: str = "10.1.2.3", device: str = "gate-north") -> Request:
    return Request(
        {
            "type": "http",
            "path": "/accreditation/verify",
            "headers": [(b"x-device-id", device.encode())],
            "client": (ip, 4321),
        }
    )


def _body(response):
    return json.loads(response.body)


def test_service_errors_propagate_from_routes(db_session, make_user, make_accreditation):
    admin = make_user(AccountRole.ADMIN)
    record = make_accreditation("DRAFT")

    with pytest.raises(InvalidTransition):
        accreditation_router.approve_accreditation(record.id, None, db=db_session, current_user=admin)
    with pytest.raises(NotFound):
        accreditation_router.get_accreditation("missing", db=db_session, current_user=admin)
    with pytest.raises(NotFound):
        accreditation_router.accreditation_history("missing", db=db_session, current_user=admin)
    with pytest.raises(Unauthorized):
        accreditation_router.submit_accreditation(
            record.id, None, db=db_session, current_user=make_user(AccountRole.VIEW_ONLY)
        )


def test_app_handler_renders_typed_json(db_session, make_user, make_accreditation):
    admin = make_user(AccountRole.ADMIN)
    record = make_accreditation("DRAFT")
    with pytest.raises(InvalidTransition) as excinfo:
        accreditation_router.approve_accreditation(record.id, None, db=db_session, current_user=admin)

    response = main.handle_service_error(_request(), excinfo.value)
    assert response.status_code == 409
    assert _body(response) == {
        "error": "invalid_transition",
        "message": "Cannot transition from DRAFT to APPROVED",
        "detail": [{"field": "status", "reason": "Cannot transition from DRAFT to APPROVED"}],
        "retryable": False,
    }
    assert "retry-after" not in response.headers
    assert response.headers["cache-control"] == "no-store"

    assert main.service_error_response(Unauthorized("nope")).status_code == 403


def test_revoke_without_reason_is_422(db_session, make_user, make_accreditation):
    admin = make_user(AccountRole.ADMIN)
    record = make_accreditation("PENDING")
    accreditation_router.approve_accreditation(record.id, schemas.ApproveRequest(), db=db_session, current_user=admin)

    with pytest.raises(ValidationFailed) as excinfo:
        accreditation_router.revoke_accreditation(
            record.id, schemas.RevokeRequest(reason=" "), db=db_session, current_user=admin
        )
    response = main.service_error_response(excinfo.value)
    assert response.status_code == 422
    assert _body(response)["detail"] == [{"field": "reason", "reason": "revocation reason required"}]


def test_retryable_errors_carry_retry_after():
    for exc, status_code in ((Conflict("raced"), 409), (Transient("db down"), 503)):
        response = main.service_error_response(exc)
        assert response.status_code == status_code
        assert response.headers["retry-after"] == "1"
        assert _body(response)["retryable"] is True


def test_verify_status_codes_and_no_cache(db_session, make_user, make_accreditation, monkeypatch):
    operator = make_user(AccountRole.CHECKPOINT_OPERATOR)
    admin = make_user(AccountRole.ADMIN)
    record = make_accreditation("PENDING")
    services.approve(db_session, record.id, admin)

    monkeypatch.setattr(services.verification, "_utcnow", lambda: day(3))
    allowed = accreditation_router.verify_token(record.verification_token, _request(), db=db_session, current_user=operator)
    assert allowed.status_code == 200
    assert allowed.headers["cache-control"].startswith("no-store")
    payload = _body(allowed)
    assert payload["outcome"] == "ALLOW"
    assert payload["phase"] == "LIVE"
    assert record.verification_token not in allowed.body.decode()

    monkeypatch.setattr(services.verification, "_utcnow", lambda: day(1))
    denied = accreditation_router.verify_token(record.verification_token, _request(), db=db_session, current_user=operator)
    assert denied.status_code == 403
    assert _body(denied)["reason"] == "PHASE_NOT_GRANTED"

    unknown = accreditation_router.verify_token("0" * 32, _request(), db=db_session, current_user=operator)
    assert unknown.status_code == 404
    assert _body(unknown)["credential"] is None

    scans = db_session.query(audit_models.AccreditationScan).all()
    assert len(scans) == 3
    assert {s.device for s in scans} == {"gate-north"}
    assert {s.ip_address for s in scans} == {"10.1.2.3"}
    assert {s.scanned_by_id for s in scans} == {operator.id}


def test_scan_page_lists_recent_scans(db_session, make_user):
    operator = make_user(AccountRole.CHECKPOINT_OPERATOR)
    for _ in range(3):
        accreditation_router.verify_token("missing-token", _request(), db=db_session, current_user=operator)

    page = accreditation_router.list_scans(
        accreditation_id=None,
        project_id=None,
        outcome=None,
        start=None,
        end=None,
        page=1,
        page_size=2,
        db=db_session,
        current_user=make_user(AccountRole.ADMIN),
    )
    assert page.total == 3
    assert len(page.items) == 2
    assert page.items[0].reason == "UNKNOWN_TOKEN"
