"""PKCE and anti-CSRF material generation.

Implements the S256 method of :rfc:`7636`. All randomness comes from the
:mod:`secrets` module (the operating system CSPRNG); the byte counts below
are fixed so that the provider's challenge check succeeds deterministically.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from oauth_code_token.models import SecretMaterial

VERIFIER_BYTES = 32
STATE_BYTES = 22
NONCE_BYTES = 22


def base64url_nopad(data: bytes) -> str:
    """URL-safe base64 with the ``=`` padding stripped."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def compute_code_challenge(code_verifier: str) -> str:
    """Derive the S256 code challenge: ``BASE64URL(SHA256(ASCII(verifier)))``."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64url_nopad(digest)


def generate_secret_material() -> SecretMaterial:
    """Generate a fresh verifier, challenge, ``state`` and ``nonce``.

    Called once per process by the orchestrator. The 32-byte verifier
    encodes to 43 characters, the minimum length RFC 7636 allows.

    Returns:
        Immutable :class:`~oauth_code_token.models.SecretMaterial`.
    """
    code_verifier = base64url_nopad(secrets.token_bytes(VERIFIER_BYTES))
    return SecretMaterial(
        code_verifier=code_verifier,
        code_challenge=compute_code_challenge(code_verifier),
        code_challenge_method="S256",
        state=secrets.token_hex(STATE_BYTES),
        nonce=secrets.token_hex(NONCE_BYTES),
    )
