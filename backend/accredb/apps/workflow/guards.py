from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

GuardResult = List[Dict[str, str]]


def _get_value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _first_value(key: str, *objs: Any) -> Any:
    for obj in objs:
        value = _get_value(obj, key)
        if value not in (None, ""):
            return value
    return None


def guard_identity_documents(
    db: Optional[Session],
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    qid_number = _first_value("qid_number", after_obj, before_obj)
    qid_expiry = _first_value("qid_expiry", after_obj, before_obj)
    passport_number = _first_value("passport_number", after_obj, before_obj)
    passport_expiry = _first_value("passport_expiry", after_obj, before_obj)

    if qid_number and qid_expiry:
        return []
    if passport_number and passport_expiry:
        return []

    missing = []
    if qid_number and not qid_expiry:
        missing.append({"field": "qid_expiry", "reason": "QID expiry required"})
    elif passport_number and not passport_expiry:
        missing.append({"field": "passport_expiry", "reason": "passport expiry required"})
    else:
        missing.append({"field": "qid_number", "reason": "QID or passport required"})
    return missing


def guard_access_grants(
    db: Optional[Session],
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    granted = any(
        _first_value(flag, after_obj, before_obj)
        for flag in ("has_bump_in_access", "has_live_access", "has_bump_out_access")
    )
    if granted:
        return []
    return [{"field": "has_bump_in_access", "reason": "at least one access phase required"}]


def guard_revocation_reason(
    db: Optional[Session],
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    reason = _get_value(after_obj, "revocation_reason")
    if not reason or not str(reason).strip():
        return [{"field": "reason", "reason": "revocation reason required"}]
    return []
