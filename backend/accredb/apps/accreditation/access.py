"""
Access window evaluation for checkpoint scans.

Pure computation: no queries, no writes. The verification service
records the outcome.

Phase windows are half-open (start <= now < end). When windows overlap,
the first phase in PHASE_PRIORITY that contains `now` governs; later
phases are not consulted even if the credential holds their grant.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from .enums import AccreditationStatus, DenyReason, Phase, ScanOutcome

PHASE_PRIORITY: Tuple[Phase, ...] = (Phase.BUMP_IN, Phase.LIVE, Phase.BUMP_OUT)


@dataclass(frozen=True)
class Decision:
    outcome: ScanOutcome
    reason: Optional[DenyReason] = None
    phase: Optional[Phase] = None

    @property
    def allowed(self) -> bool:
        return self.outcome == ScanOutcome.ALLOW

    @classmethod
    def allow(cls, phase: Phase) -> "Decision":
        return cls(outcome=ScanOutcome.ALLOW, phase=phase)

    @classmethod
    def deny(cls, reason: DenyReason, phase: Optional[Phase] = None) -> "Decision":
        return cls(outcome=ScanOutcome.DENY, reason=reason, phase=phase)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything stored is UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def in_window(now: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    start, end = as_utc(start), as_utc(end)
    if start is None or end is None:
        return False
    return start <= as_utc(now) < end


def active_phase(project: Any, now: datetime) -> Optional[Phase]:
    for phase in PHASE_PRIORITY:
        start, end = project.phase_window(phase)
        if in_window(now, start, end):
            return phase
    return None


def evaluate(credential: Any, project: Any, now: datetime) -> Decision:
    status = getattr(credential.status, "value", credential.status)
    if status != AccreditationStatus.APPROVED.value:
        return Decision.deny(DenyReason.NOT_APPROVED)

    if not credential.verification_token:
        return Decision.deny(DenyReason.NO_TOKEN)

    phase = active_phase(project, now)
    if phase is None:
        return Decision.deny(DenyReason.OUTSIDE_EVENT_WINDOW)

    if not credential.has_grant(phase):
        return Decision.deny(DenyReason.PHASE_NOT_GRANTED, phase)

    override_start, override_end = credential.grant_window(phase)
    if (override_start is not None or override_end is not None) and not _in_override(now, override_start, override_end):
        return Decision.deny(DenyReason.OUTSIDE_GRANT_WINDOW, phase)

    return Decision.allow(phase)


def _in_override(now: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    # A half-specified override only bounds one side.
    now = as_utc(now)
    if start is not None and now < as_utc(start):
        return False
    if end is not None and now >= as_utc(end):
        return False
    return True
