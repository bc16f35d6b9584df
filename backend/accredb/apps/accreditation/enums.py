from __future__ import annotations

import enum


class AccreditationStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REVOKED = "REVOKED"


class Phase(str, enum.Enum):
    BUMP_IN = "BUMP_IN"
    LIVE = "LIVE"
    BUMP_OUT = "BUMP_OUT"


class ScanOutcome(str, enum.Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


class DenyReason(str, enum.Enum):
    UNKNOWN_TOKEN = "UNKNOWN_TOKEN"
    TOKEN_RETIRED = "TOKEN_RETIRED"
    NOT_APPROVED = "NOT_APPROVED"
    NO_TOKEN = "NO_TOKEN"
    OUTSIDE_EVENT_WINDOW = "OUTSIDE_EVENT_WINDOW"
    PHASE_NOT_GRANTED = "PHASE_NOT_GRANTED"
    OUTSIDE_GRANT_WINDOW = "OUTSIDE_GRANT_WINDOW"


class HistoryAction(str, enum.Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    SUBMITTED = "SUBMITTED"
    RESUBMITTED = "RESUBMITTED"
    RETURNED_TO_DRAFT = "RETURNED_TO_DRAFT"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REVOKED = "REVOKED"


class TokenRetirement(str, enum.Enum):
    REVOKED = "REVOKED"
    ROTATED = "ROTATED"
