"""
File: tests/unit/test_pkce.py
Description: PKCE S256 校验单元测试 (RFC 7636 附录 B 向量)

Created: 2026-03-07
"""

import pytest

from app.domains.oauth.pkce import compute_code_challenge, validate_code_verifier

RFC_VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
RFC_CHALLENGE = "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_compute_code_challenge_matches_rfc_vector() -> None:
    challenge = compute_code_challenge(RFC_VERIFIER)

    assert challenge == RFC_CHALLENGE
    assert "=" not in challenge


def test_validate_code_verifier() -> None:
    assert validate_code_verifier(RFC_VERIFIER, RFC_CHALLENGE)
    assert not validate_code_verifier(RFC_VERIFIER + "x", RFC_CHALLENGE)
    # 大小写敏感的精确比对
    assert not validate_code_verifier(RFC_VERIFIER, RFC_CHALLENGE.lower())


@pytest.mark.parametrize("position", [0, 21, len(RFC_VERIFIER) - 1])
def test_single_character_mutation_rejected(position: int) -> None:
    original = RFC_VERIFIER[position]
    replacement = "A" if original != "A" else "B"
    mutated = RFC_VERIFIER[:position] + replacement + RFC_VERIFIER[position + 1 :]

    assert len(mutated) == len(RFC_VERIFIER)
    assert not validate_code_verifier(mutated, RFC_CHALLENGE)


def test_empty_inputs_rejected() -> None:
    assert not validate_code_verifier("", RFC_CHALLENGE)
    assert not validate_code_verifier(RFC_VERIFIER, "")


def test_non_ascii_challenge_rejected() -> None:
    assert not validate_code_verifier(RFC_VERIFIER, "挑战值")
