from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from ..accreditation.enums import AccreditationStatus, DenyReason, HistoryAction, Phase, ScanOutcome


class HistoryEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    accreditation_id: str
    action: HistoryAction
    old_status: Optional[AccreditationStatus] = None
    new_status: Optional[AccreditationStatus] = None
    performed_by_id: Optional[str] = None
    occurred_at: datetime
    notes: Optional[str] = None
    details: Optional[dict] = None


class ScanEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    accreditation_id: Optional[str] = None
    scanned_at: datetime
    outcome: ScanOutcome
    reason: Optional[DenyReason] = None
    phase: Optional[Phase] = None
    token_fingerprint: Optional[str] = None
    scanned_by_id: Optional[str] = None
    device: Optional[str] = None
    ip_address: Optional[str] = None


class ScanPage(BaseModel):
    items: List[ScanEventRead]
    total: int
    page: int
    page_size: int
