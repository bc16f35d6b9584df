from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from jose import jwt

from accredb import security
from accredb.apps.accounts.models import AccountRole


def _jwt(subject, *, key=None, expires_in=timedelta(minutes=5)):
    payload = {"sub": subject, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, key or security.SECRET_KEY, algorithm=security.JWT_ALGORITHM)


def test_decode_subject_accepts_valid_token():
    assert security.decode_subject(_jwt("user-1")) == "user-1"


@pytest.mark.parametrize(
    "token",
    [
        "not-a-jwt",
        _jwt("user-1", key="someone-elses-key"),
        _jwt("user-1", expires_in=timedelta(minutes=-5)),
    ],
)
def test_decode_subject_rejects_bad_tokens(token):
    assert security.decode_subject(token) is None


def test_current_user_resolution(db_session, make_user):
    user = make_user(AccountRole.CHECKPOINT_OPERATOR)

    assert security.get_current_user(token=_jwt(user.id), db=db_session).id == user.id

    with pytest.raises(HTTPException) as excinfo:
        security.get_current_user(token=_jwt("nobody"), db=db_session)
    assert excinfo.value.status_code == 401


def test_inactive_user_is_blocked(db_session, make_user):
    user = make_user(AccountRole.ADMIN, is_active=False)
    with pytest.raises(HTTPException) as excinfo:
        security.get_current_active_user(current_user=user)
    assert excinfo.value.status_code == 400


def test_require_roles(db_session, make_user):
    gate = security.require_roles(AccountRole.CHECKPOINT_OPERATOR, "ADMIN")
    operator = make_user(AccountRole.CHECKPOINT_OPERATOR)
    viewer = make_user(AccountRole.VIEW_ONLY)
    superuser = make_user(AccountRole.VIEW_ONLY, is_superuser=True)

    assert gate(current_user=operator) is operator
    assert gate(current_user=superuser) is superuser
    with pytest.raises(HTTPException) as excinfo:
        gate(current_user=viewer)
    assert excinfo.value.status_code == 403

    with pytest.raises(ValueError):
        security.require_roles("JANITOR")


def test_scanner_gate(make_user):
    assert security.require_scanner(current_user=make_user(AccountRole.ACCREDITATION_APPROVER))
    with pytest.raises(HTTPException):
        security.require_scanner(current_user=make_user(AccountRole.ACCREDITATION_EDITOR))
