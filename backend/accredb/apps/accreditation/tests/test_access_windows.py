from __future__ import annotations

from datetime import timedelta

import pytest

from accredb.apps.accreditation import access
from accredb.apps.accreditation.enums import AccreditationStatus, DenyReason, Phase, ScanOutcome
from accredb.apps.accreditation.models import Accreditation, AccreditationProject
from conftest import day


def _gapped_project(**overrides) -> AccreditationProject:
    values = dict(
        name="Gapped",
        code="GAP",
        bump_in_start=day(0),
        bump_in_end=day(2),
        live_start=day(3),
        live_end=day(5),
        bump_out_start=day(6),
        bump_out_end=day(7),
        access_groups=["Crew"],
    )
    values.update(overrides)
    return AccreditationProject(**values)


def _credential(**overrides) -> Accreditation:
    values = dict(
        status=AccreditationStatus.APPROVED,
        verification_token="a" * 32,
        has_bump_in_access=False,
        has_live_access=True,
        has_bump_out_access=False,
    )
    values.update(overrides)
    return Accreditation(**values)


def test_live_only_credential_across_schedule():
    project = _gapped_project()
    credential = _credential()

    assert access.evaluate(credential, project, day(2.5)) == access.Decision.deny(DenyReason.OUTSIDE_EVENT_WINDOW)
    assert access.evaluate(credential, project, day(4)) == access.Decision.allow(Phase.LIVE)
    assert access.evaluate(credential, project, day(6)) == access.Decision.deny(DenyReason.PHASE_NOT_GRANTED, Phase.BUMP_OUT)
    # Inside bump-in, which this credential does not hold.
    assert access.evaluate(credential, project, day(1)).reason == DenyReason.PHASE_NOT_GRANTED
    assert access.evaluate(credential, project, day(8)).reason == DenyReason.OUTSIDE_EVENT_WINDOW


def test_windows_are_half_open():
    project = _gapped_project()
    credential = _credential()

    assert access.evaluate(credential, project, day(3)).allowed
    assert not access.evaluate(credential, project, day(5)).allowed
    assert access.evaluate(credential, project, day(5) - timedelta(microseconds=1)).allowed


@pytest.mark.parametrize(
    "status",
    [AccreditationStatus.DRAFT, AccreditationStatus.PENDING, AccreditationStatus.REJECTED, AccreditationStatus.REVOKED],
)
def test_non_approved_is_denied_first(status):
    decision = access.evaluate(_credential(status=status, verification_token=None), _gapped_project(), day(4))
    assert decision.outcome == ScanOutcome.DENY
    assert decision.reason == DenyReason.NOT_APPROVED
    assert decision.phase is None


def test_missing_token_is_denied():
    decision = access.evaluate(_credential(verification_token=None), _gapped_project(), day(4))
    assert decision.reason == DenyReason.NO_TOKEN


def test_overlap_resolves_by_fixed_priority():
    # Bump-in and live both cover D1.5..D2.
    project = _gapped_project(bump_in_end=day(2), live_start=day(1.5))
    live_only = _credential()
    both = _credential(has_bump_in_access=True)

    assert access.active_phase(project, day(1.75)) == Phase.BUMP_IN
    # Bump-in governs even though the live grant would have matched.
    assert access.evaluate(live_only, project, day(1.75)) == access.Decision.deny(DenyReason.PHASE_NOT_GRANTED, Phase.BUMP_IN)
    assert access.evaluate(both, project, day(1.75)) == access.Decision.allow(Phase.BUMP_IN)
    assert access.evaluate(live_only, project, day(2.5)) == access.Decision.allow(Phase.LIVE)


def test_override_window_narrows_grant():
    project = _gapped_project()
    credential = _credential(live_start=day(3.5), live_end=day(4))

    assert access.evaluate(credential, project, day(3.25)) == access.Decision.deny(DenyReason.OUTSIDE_GRANT_WINDOW, Phase.LIVE)
    assert access.evaluate(credential, project, day(3.5)).allowed
    assert access.evaluate(credential, project, day(4)).reason == DenyReason.OUTSIDE_GRANT_WINDOW


def test_half_specified_override_bounds_one_side():
    project = _gapped_project()
    starts_late = _credential(live_start=day(4))
    ends_early = _credential(live_end=day(3.5))

    assert access.evaluate(starts_late, project, day(3.5)).reason == DenyReason.OUTSIDE_GRANT_WINDOW
    assert access.evaluate(starts_late, project, day(4.5)).allowed
    assert access.evaluate(ends_early, project, day(3.25)).allowed
    assert access.evaluate(ends_early, project, day(4)).reason == DenyReason.OUTSIDE_GRANT_WINDOW


def test_naive_datetimes_are_treated_as_utc():
    project = _gapped_project(live_start=day(3).replace(tzinfo=None), live_end=day(5).replace(tzinfo=None))
    assert access.evaluate(_credential(), project, day(4)).allowed
    assert access.evaluate(_credential(), project, day(4).replace(tzinfo=None)).allowed
