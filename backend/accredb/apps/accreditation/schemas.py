from __future__ import annotations

import re
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import AccreditationStatus, DenyReason, Phase, ScanOutcome

QID_PATTERN = re.compile(r"^[0-9]{11}$")
PASSPORT_PATTERN = re.compile(r"^[A-Za-z0-9]{6,12}$")

_GRANT_FIELDS = {
    Phase.BUMP_IN: ("has_bump_in_access", "bump_in_start", "bump_in_end"),
    Phase.LIVE: ("has_live_access", "live_start", "live_end"),
    Phase.BUMP_OUT: ("has_bump_out_access", "bump_out_start", "bump_out_end"),
}


# ---------------------------------------------------------------------------
# PROJECTS
# ---------------------------------------------------------------------------


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=20)
    bump_in_start: datetime
    bump_in_end: datetime
    live_start: datetime
    live_end: datetime
    bump_out_start: datetime
    bump_out_end: datetime
    access_groups: List[str] = Field(min_length=1)
    is_active: bool = True

    @field_validator("access_groups")
    @classmethod
    def _clean_groups(cls, value: List[str]) -> List[str]:
        cleaned: List[str] = []
        for group in value:
            label = group.strip()
            if label and label not in cleaned:
                cleaned.append(label)
        if not cleaned:
            raise ValueError("At least one access group is required")
        return cleaned


class ProjectUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    bump_in_start: Optional[datetime] = None
    bump_in_end: Optional[datetime] = None
    live_start: Optional[datetime] = None
    live_end: Optional[datetime] = None
    bump_out_start: Optional[datetime] = None
    bump_out_end: Optional[datetime] = None
    is_active: Optional[bool] = None
    # Accepted so the service can refuse it with a clear error.
    access_groups: Optional[List[str]] = None


class ProjectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    code: str
    bump_in_start: datetime
    bump_in_end: datetime
    live_start: datetime
    live_end: datetime
    bump_out_start: datetime
    bump_out_end: datetime
    access_groups: List[str]
    is_active: bool
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProjectStats(BaseModel):
    project_id: str
    total: int
    by_status: Dict[str, int]
    scans_allowed: int
    scans_denied: int


# ---------------------------------------------------------------------------
# ACCREDITATIONS
# ---------------------------------------------------------------------------


class _HolderFields(BaseModel):
    @field_validator("qid_number", check_fields=False)
    @classmethod
    def _check_qid(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        value = value.strip()
        if not QID_PATTERN.match(value):
            raise ValueError("QID must be exactly 11 digits")
        return value

    @field_validator("passport_number", check_fields=False)
    @classmethod
    def _check_passport(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        value = value.strip().upper()
        if not PASSPORT_PATTERN.match(value):
            raise ValueError("Passport number must be 6-12 letters or digits")
        return value


class AccreditationCreate(_HolderFields):
    project_id: str = Field(min_length=1)
    first_name: str = Field(min_length=1, max_length=128)
    last_name: str = Field(min_length=1, max_length=128)
    organization: str = Field(min_length=1, max_length=255)
    job_title: str = Field(min_length=1, max_length=255)
    access_group: str = Field(min_length=1, max_length=128)

    qid_number: Optional[str] = None
    qid_expiry: Optional[date] = None
    passport_number: Optional[str] = None
    passport_country: Optional[str] = None
    passport_expiry: Optional[date] = None
    hayya_visa_number: Optional[str] = Field(default=None, max_length=32)
    hayya_visa_expiry: Optional[date] = None

    has_bump_in_access: bool = False
    bump_in_start: Optional[datetime] = None
    bump_in_end: Optional[datetime] = None
    has_live_access: bool = False
    live_start: Optional[datetime] = None
    live_end: Optional[datetime] = None
    has_bump_out_access: bool = False
    bump_out_start: Optional[datetime] = None
    bump_out_end: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_identity_and_grants(self) -> "AccreditationCreate":
        has_qid = bool(self.qid_number and self.qid_expiry)
        has_passport = bool(self.passport_number and self.passport_expiry)
        if not (has_qid or has_passport):
            raise ValueError("QID number and expiry, or passport number and expiry, are required")
        if not (self.has_bump_in_access or self.has_live_access or self.has_bump_out_access):
            raise ValueError("At least one access phase must be selected")
        return self


class AccreditationUpdate(_HolderFields):
    """Partial edit. `project_id` and `status` cannot be changed here."""

    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    organization: Optional[str] = Field(default=None, min_length=1, max_length=255)
    job_title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    access_group: Optional[str] = Field(default=None, min_length=1, max_length=128)

    qid_number: Optional[str] = None
    qid_expiry: Optional[date] = None
    passport_number: Optional[str] = None
    passport_country: Optional[str] = None
    passport_expiry: Optional[date] = None
    hayya_visa_number: Optional[str] = Field(default=None, max_length=32)
    hayya_visa_expiry: Optional[date] = None

    has_bump_in_access: Optional[bool] = None
    bump_in_start: Optional[datetime] = None
    bump_in_end: Optional[datetime] = None
    has_live_access: Optional[bool] = None
    live_start: Optional[datetime] = None
    live_end: Optional[datetime] = None
    has_bump_out_access: Optional[bool] = None
    bump_out_start: Optional[datetime] = None
    bump_out_end: Optional[datetime] = None


class AccreditationRead(BaseModel):
    """Staff view. The verification token is only exposed via its URL endpoint."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    accreditation_number: str
    project_id: str
    first_name: str
    last_name: str
    organization: str
    job_title: str
    access_group: str
    qid_number: Optional[str] = None
    qid_expiry: Optional[date] = None
    passport_number: Optional[str] = None
    passport_country: Optional[str] = None
    passport_expiry: Optional[date] = None
    hayya_visa_number: Optional[str] = Field(default=None, max_length=32)
    hayya_visa_expiry: Optional[date] = None
    has_bump_in_access: bool
    bump_in_start: Optional[datetime] = None
    bump_in_end: Optional[datetime] = None
    has_live_access: bool
    live_start: Optional[datetime] = None
    live_end: Optional[datetime] = None
    has_bump_out_access: bool
    bump_out_start: Optional[datetime] = None
    bump_out_end: Optional[datetime] = None
    status: AccreditationStatus
    revocation_reason: Optional[str] = None
    created_by_id: Optional[str] = None
    approved_by_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    revoked_by_id: Optional[str] = None
    revoked_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ApproveRequest(BaseModel):
    notes: Optional[str] = None
    rotate_token: bool = False


class NotesRequest(BaseModel):
    notes: Optional[str] = None


class RevokeRequest(BaseModel):
    reason: Optional[str] = None


class VerificationUrlRead(BaseModel):
    accreditation_id: str
    url: str


# ---------------------------------------------------------------------------
# VERIFICATION
# ---------------------------------------------------------------------------


class PhaseWindow(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class CredentialSummary(BaseModel):
    """What a guard sees at the gate. Never carries the token."""

    accreditation_id: str
    accreditation_number: str
    first_name: str
    last_name: str
    organization: str
    job_title: str
    access_group: str
    qid_number: Optional[str] = None
    passport_number: Optional[str] = None
    project_name: str
    project_code: str
    status: AccreditationStatus
    phases: Dict[str, Optional[PhaseWindow]]


class VerificationResponse(BaseModel):
    outcome: ScanOutcome
    reason: Optional[DenyReason] = None
    phase: Optional[Phase] = None
    verified_at: datetime
    credential: Optional[CredentialSummary] = None


def grant_fields(phase: Phase) -> tuple[str, str, str]:
    return _GRANT_FIELDS[phase]
