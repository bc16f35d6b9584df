from __future__ import annotations

import os
import re
import time
import uuid
from typing import Optional

ACCREDITATION_NUMBER_PREFIX = "ACC"
_NUMBER_PATTERN = re.compile(r"^[A-Z]+-(\d+)$")


def generate_uuid7() -> str:
    """
    Generate a UUIDv7 string (time-ordered).

    Layout: 48-bit Unix timestamp in milliseconds, 4-bit version,
    2-bit variant, remaining bits random. Used as primary key default so
    history and scan rows sort by insertion time.
    """
    ts_ms = int(time.time() * 1000)
    raw = bytearray(ts_ms.to_bytes(6, "big", signed=False) + os.urandom(10))
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


def next_accreditation_number(last_number: Optional[str], prefix: str = ACCREDITATION_NUMBER_PREFIX) -> str:
    """
    Return the number following `last_number`, e.g. ACC-0041 -> ACC-0042.

    Unparseable or missing values restart the sequence at 0001. Numbers
    widen past four digits rather than wrapping.
    """
    sequence = 0
    if last_number:
        match = _NUMBER_PATTERN.match(last_number.strip().upper())
        if match:
            sequence = int(match.group(1))
    return f"{prefix}-{sequence + 1:04d}"
