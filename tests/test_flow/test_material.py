"""Tests for PKCE verifier/challenge and state/nonce generation."""

from __future__ import annotations

import base64
import hashlib
import re

from oauth_code_token.flow.material import (
    base64url_nopad,
    compute_code_challenge,
    generate_secret_material,
)

_UNRESERVED = re.compile(r"^[A-Za-z0-9\-._~]+$")


class TestComputeCodeChallenge:
    def test_rfc7636_appendix_b(self) -> None:
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert compute_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_matches_sha256(self) -> None:
        verifier = "x" * 50
        expected = (
            base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest())
            .rstrip(b"=")
            .decode()
        )
        assert compute_code_challenge(verifier) == expected


class TestBase64UrlNoPad:
    def test_strips_padding(self) -> None:
        assert base64url_nopad(b"a") == "YQ"

    def test_url_safe_alphabet(self) -> None:
        assert base64url_nopad(b"\xfb\xff") == "-_8"


class TestGenerateSecretMaterial:
    def test_verifier_is_43_unreserved_chars(self) -> None:
        material = generate_secret_material()
        assert len(material.code_verifier) == 43
        assert _UNRESERVED.match(material.code_verifier)
        assert "=" not in material.code_verifier

    def test_challenge_derived_from_verifier(self) -> None:
        material = generate_secret_material()
        assert material.code_challenge == compute_code_challenge(material.code_verifier)
        assert material.code_challenge_method == "S256"

    def test_state_and_nonce_are_hex(self) -> None:
        material = generate_secret_material()
        for value in (material.state, material.nonce):
            assert len(value) == 44
            assert re.match(r"^[0-9a-f]+$", value)

    def test_state_and_nonce_differ(self) -> None:
        material = generate_secret_material()
        assert material.state != material.nonce

    def test_fresh_material_each_call(self) -> None:
        first = generate_secret_material()
        second = generate_secret_material()
        assert first.code_verifier != second.code_verifier
        assert first.state != second.state
