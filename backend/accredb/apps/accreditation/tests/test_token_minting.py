from __future__ import annotations

import re

import pytest

from accredb.apps.accreditation import tokens
from accredb.errors import Transient


def test_minted_tokens_are_distinct():
    minted = {tokens.mint() for _ in range(10_000)}
    assert len(minted) == 10_000


def test_token_has_at_least_128_bits():
    token = tokens.mint()
    assert re.fullmatch(r"[0-9a-f]+", token)
    assert len(token) * 4 >= 128


def test_mint_skips_taken_candidates():
    seen = []

    def is_taken(candidate):
        seen.append(candidate)
        return len(seen) < 3

    token = tokens.mint(is_taken)
    assert token == seen[-1]
    assert len(seen) == 3


def test_mint_gives_up_after_bounded_attempts():
    calls = []

    def always_taken(candidate):
        calls.append(candidate)
        return True

    with pytest.raises(Transient) as excinfo:
        tokens.mint(always_taken)
    assert excinfo.value.retryable is True
    assert len(calls) == tokens.MAX_MINT_ATTEMPTS


def test_fingerprint_is_short_and_stable():
    assert tokens.fingerprint("abc") == tokens.fingerprint("abc")
    assert len(tokens.fingerprint("abc")) == 8
    assert tokens.fingerprint("abc") != tokens.fingerprint("abd")
