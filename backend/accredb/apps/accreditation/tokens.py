"""
Verification token generation.

Tokens are opaque hex strings embedded in badge QR codes. They carry at
least 128 bits of entropy; the uniqueness loop only guards against a
collision with a token already in the ledger.
"""

from __future__ import annotations

import hashlib
import os
import secrets
from typing import Callable, Optional

from accredb.errors import Transient

MIN_TOKEN_BYTES = 16

TOKEN_BYTES = max(int(os.getenv("ACCREDITATION_TOKEN_BYTES", "16")), MIN_TOKEN_BYTES)
MAX_MINT_ATTEMPTS = max(int(os.getenv("ACCREDITATION_TOKEN_MAX_ATTEMPTS", "10")), 1)


def mint(is_taken: Optional[Callable[[str], bool]] = None) -> str:
    """Return a fresh token; `is_taken` reports candidates already issued."""
    for _ in range(MAX_MINT_ATTEMPTS):
        candidate = secrets.token_hex(TOKEN_BYTES)
        if is_taken is None or not is_taken(candidate):
            return candidate
    raise Transient("Failed to generate a unique verification token")


def fingerprint(token: str) -> str:
    """Short, non-reversible tag for logs and scan rows."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:8]
