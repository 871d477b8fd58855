"""Shared test fixtures for oauth-code-token.

Provides reusable fixtures for building flow configurations, deterministic
secret material, isolated environments, output state and the CLI runner.
These fixtures are automatically discovered by pytest and available to
all test modules without explicit imports.
"""

from __future__ import annotations

import socket
from pathlib import Path

import pytest

from oauth_code_token.config import OPTIONAL_KEYS, REQUIRED_KEYS
from oauth_code_token.flow.material import compute_code_challenge
from oauth_code_token.models import FlowConfig, SecretMaterial
from oauth_code_token.output import OutputFormat, OutputManager, reset_output, set_output

CODE_VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
STATE = "5f2b9c0e4d7a1f3b8c6e2d9a0b4f7c1e3a5d8b2f6c9e"
NONCE = "0d4e8a1c5f9b3e7d2a6c0f4b8e1d5a9c3f7b2e6d0a4c"


def find_free_port() -> int:
    """Return a loopback port that is free right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def make_config(**kwargs: object) -> FlowConfig:
    defaults: dict[str, object] = {
        "auth_endpoint": "https://idp.example/authorize",
        "token_endpoint": "https://idp.example/token",
        "client_id": "abc",
        "scopes": ("openid", "profile"),
        "redirect_url": "http://localhost:4321/cb",
    }
    defaults.update(kwargs)
    return FlowConfig(**defaults)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Flow fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def material() -> SecretMaterial:
    """Fixed secret material (the RFC 7636 appendix B verifier)."""
    return SecretMaterial(
        code_verifier=CODE_VERIFIER,
        code_challenge=compute_code_challenge(CODE_VERIFIER),
        state=STATE,
        nonce=NONCE,
    )


@pytest.fixture
def flow_config() -> FlowConfig:
    """A public (non-SPA, no secret) client redirecting to localhost:4321."""
    return make_config()


@pytest.fixture
def config_factory():
    """Build a FlowConfig from the defaults above, overriding any field."""
    return make_config


@pytest.fixture
def free_port() -> int:
    return find_free_port()


# ---------------------------------------------------------------------------
# Environment isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate settings and data to a temporary directory.

    Clears every setting variable, points XDG_DATA_HOME into tmp_path so
    crash logs never touch the real home directory, and changes the
    working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    for var in REQUIRED_KEYS + OPTIONAL_KEYS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Set up a quiet output manager for tests that don't care about output.

    Installs a PLAIN-format, quiet OutputManager as the global output
    and resets it after the test completes.
    """
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
