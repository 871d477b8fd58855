"""Canonical Pydantic models shared across all oauth-code-token modules.

This is the single source of truth for data shapes in the project:

**Configuration** -- :class:`FlowConfig`, produced once by
:func:`oauth_code_token.config.resolve_flow_config` and immutable for the
rest of the process.

**Flow material and results** -- :class:`SecretMaterial` (PKCE verifier and
challenge plus the ``state`` / ``nonce`` CSRF tokens), :class:`FlowResult`
(the body written back to the browser and printed to stdout) and the
:class:`FlowState` / :class:`ResultSource` enumerations.

All models are frozen; nothing in the flow mutates them after creation.
"""

from __future__ import annotations

import enum
import json
import re
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

_LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})
_HEX_TOKEN = re.compile(r"^[0-9a-f]+$")


def is_loopback_host(hostname: str | None) -> bool:
    """Return True if *hostname* names the local machine."""
    return (hostname or "").lower() in _LOOPBACK_HOSTS


# --- Configuration ---


class FlowConfig(BaseModel):
    """Validated settings for a single authorization attempt.

    Built from the ``AUTH_ENDPOINT``, ``TOKEN_ENDPOINT``, ``CLIENT_ID``,
    ``CLIENT_SECRET``, ``SCOPE``, ``REDIRECT_URL`` and ``SPA`` settings.
    The redirect URL must point at the loopback interface with an explicit
    port: that port is where the callback listener binds.

    Example::

        FlowConfig(
            auth_endpoint="https://idp.example/authorize",
            token_endpoint="https://idp.example/token",
            client_id="abc",
            scopes=("openid", "profile"),
            redirect_url="http://localhost:4321/cb",
        )
    """

    model_config = ConfigDict(frozen=True)

    auth_endpoint: str = Field(description="Provider authorization endpoint")
    token_endpoint: str = Field(description="Provider token endpoint")
    client_id: str = Field(description="OAuth client identifier")
    client_secret: str = Field(
        default="",
        description="Client secret for confidential clients; empty omits it",
    )
    scopes: tuple[str, ...] = Field(description="Requested scopes, in order")
    redirect_url: str = Field(description="Loopback redirect URI registered with the provider")
    is_spa: bool = Field(
        default=False,
        description="Send an Origin header with the token request (SPA clients)",
    )

    @field_validator("client_id")
    @classmethod
    def _require_client_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("CLIENT_ID must not be empty")
        return value

    @field_validator("auth_endpoint", "token_endpoint")
    @classmethod
    def _check_endpoint(cls, value: str) -> str:
        value = value.strip()
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ValueError(f"'{value}' is not an absolute http(s) URL")
        if parts.scheme == "http" and not is_loopback_host(parts.hostname):
            raise ValueError(f"'{value}' must use https")
        return value

    @field_validator("scopes", mode="before")
    @classmethod
    def _normalise_scopes(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple)):
            seen: list[str] = []
            for item in value:
                item = str(item).strip()
                if item and item not in seen:
                    seen.append(item)
            if not seen:
                raise ValueError("SCOPE must contain at least one scope")
            return tuple(seen)
        return value

    @field_validator("redirect_url")
    @classmethod
    def _check_redirect_url(cls, value: str) -> str:
        value = value.strip()
        parts = urlsplit(value)
        if parts.scheme != "http" or not is_loopback_host(parts.hostname):
            raise ValueError(
                f"'{value}' must be an http URL on localhost or a loopback address"
            )
        try:
            port = parts.port
        except ValueError as exc:
            raise ValueError(f"'{value}' has an invalid port") from exc
        if port is None:
            raise ValueError(f"'{value}' must include an explicit port")
        return value

    @property
    def scope(self) -> str:
        """Scopes joined with a single space, as transmitted to the provider."""
        return " ".join(self.scopes)

    @property
    def redirect_host(self) -> str:
        return urlsplit(self.redirect_url).hostname or "localhost"

    @property
    def redirect_port(self) -> int:
        port = urlsplit(self.redirect_url).port
        assert port is not None  # guaranteed by validation
        return port

    @property
    def redirect_path(self) -> str:
        return urlsplit(self.redirect_url).path or "/"

    @property
    def origin(self) -> str:
        """``<scheme>://<hostname>`` of the redirect URL, used as the SPA ``Origin``."""
        parts = urlsplit(self.redirect_url)
        return f"{parts.scheme}://{parts.hostname}"


# --- Flow material ---


class SecretMaterial(BaseModel):
    """PKCE and anti-CSRF values for one process run.

    Generated exactly once by
    :func:`oauth_code_token.flow.material.generate_secret_material` and held
    only in memory. ``code_challenge`` is the unpadded base64url SHA-256 of
    ``code_verifier``; ``state`` binds the callback to the launch page and
    ``nonce`` is forwarded to the provider without further checks.
    """

    model_config = ConfigDict(frozen=True)

    code_verifier: str = Field(repr=False)
    code_challenge: str
    code_challenge_method: str = "S256"
    state: str = Field(repr=False)
    nonce: str = Field(repr=False)

    @field_validator("code_verifier", "code_challenge")
    @classmethod
    def _check_pkce_length(cls, value: str) -> str:
        # RFC 7636: 43-128 characters
        if not (43 <= len(value) <= 128):
            raise ValueError("PKCE values must be 43-128 characters")
        return value

    @field_validator("code_challenge_method")
    @classmethod
    def _only_s256(cls, value: str) -> str:
        if value != "S256":
            raise ValueError("Only S256 code challenge method is supported")
        return value

    @field_validator("state", "nonce")
    @classmethod
    def _check_hex_token(cls, value: str) -> str:
        # At least 16 random bytes, hex encoded
        if len(value) < 32 or not _HEX_TOKEN.match(value):
            raise ValueError("state and nonce must be at least 32 hex characters")
        return value


# --- Flow state and results ---


class FlowState(str, enum.Enum):
    """Process-level state of the single authorization attempt."""

    LISTENING = "listening"
    EXCHANGING = "exchanging"
    COMPLETE = "complete"
    REJECTED = "rejected"


class ResultSource(str, enum.Enum):
    """Where a :class:`FlowResult` body came from."""

    PROVIDER = "provider"
    LOCAL = "local"


class FlowResult(BaseModel):
    """The body answered to the browser and printed for the operator.

    Provider bodies are passed through verbatim and never parsed. Local
    bodies are synthesized JSON error objects (CSRF rejection, denied
    consent, transport failure).
    """

    model_config = ConfigDict(frozen=True)

    body: str
    status_code: int = 200
    source: ResultSource = ResultSource.PROVIDER

    @property
    def ok(self) -> bool:
        """True when the provider answered with a 2xx status."""
        return self.source == ResultSource.PROVIDER and 200 <= self.status_code < 300

    @classmethod
    def local_error(cls, error: str, description: str, status_code: int = 400) -> FlowResult:
        """Build a locally synthesized JSON error result."""
        return cls(
            body=error_payload(error, description),
            status_code=status_code,
            source=ResultSource.LOCAL,
        )


def error_payload(error: str, description: str) -> str:
    """Serialise an OAuth-style ``{"error", "error_description"}`` JSON object."""
    return json.dumps({"error": error, "error_description": description})
