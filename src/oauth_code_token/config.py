"""Configuration resolution with config-file / environment precedence.

This module turns the operator's settings into a validated
:class:`~oauth_code_token.models.FlowConfig` before the flow starts:

* **Config file** -- an optional JSON object passed with ``--config``
  whose keys are the setting names (``AUTH_ENDPOINT``, ``SCOPE``, ...).
  See :func:`load_config_file`.
* **Environment** -- the same names read from ``os.environ``.
* **Precedence resolution** -- :func:`resolve_flow_config` takes each key
  from the config file first and falls back to the environment. Empty
  values count as missing.
* **Data directory** -- :func:`get_data_dir` locates the XDG data
  directory used for crash logs.

Every failure is reported as :class:`~oauth_code_token.exceptions.ConfigError`.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from oauth_code_token.exceptions import ConfigError
from oauth_code_token.models import FlowConfig

_APP_NAME = "oauth-code-token"

REQUIRED_KEYS = ("AUTH_ENDPOINT", "TOKEN_ENDPOINT", "CLIENT_ID", "SCOPE", "REDIRECT_URL")
OPTIONAL_KEYS = ("CLIENT_SECRET", "SPA")

_FIELD_KEYS = {
    "auth_endpoint": "AUTH_ENDPOINT",
    "token_endpoint": "TOKEN_ENDPOINT",
    "client_id": "CLIENT_ID",
    "client_secret": "CLIENT_SECRET",
    "scopes": "SCOPE",
    "redirect_url": "REDIRECT_URL",
    "is_spa": "SPA",
}

_TRUTHY = frozenset({"1", "true", "yes", "on"})


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/oauth-code-token/`` (default
    ``~/.local/share/oauth-code-token/``).
    On macOS/Windows: ``~/.oauth-code-token/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Config file ---


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load a JSON config file holding setting names as keys.

    Args:
        path: Path to the JSON file.

    Returns:
        The parsed JSON object.

    Raises:
        ConfigError: If the file does not exist, contains invalid JSON, or
            its top level is not an object.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise ConfigError(f"File {path} does not exist.")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _lookup(key: str, file_values: Mapping[str, Any], environ: Mapping[str, str]) -> Any:
    """Return the file value for *key*, falling back to the environment."""
    value = file_values.get(key)
    if not _is_blank(value):
        return value
    value = environ.get(key)
    if not _is_blank(value):
        return value
    return None


def parse_bool(value: Any) -> bool:
    """Interpret a ``SPA``-style flag from JSON or an environment string."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


def resolve_flow_config(
    config_path: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> FlowConfig:
    """Merge the config file and environment into a validated :class:`FlowConfig`.

    Precedence (high to low):
        1. Config file values (``--config``)
        2. Environment variables

    Args:
        config_path: Optional JSON config file.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        The immutable flow configuration.

    Raises:
        ConfigError: If the config file is unusable, a required key is
            missing, or a value fails validation.
    """
    env = os.environ if environ is None else environ
    file_values = load_config_file(config_path) if config_path is not None else {}

    values: dict[str, Any] = {}
    for key in REQUIRED_KEYS:
        value = _lookup(key, file_values, env)
        if value is None:
            raise ConfigError(f"{key} is required.")
        values[key] = value

    values["CLIENT_SECRET"] = _lookup("CLIENT_SECRET", file_values, env) or ""
    values["SPA"] = parse_bool(_lookup("SPA", file_values, env))

    scope = values["SCOPE"]
    if not isinstance(scope, (str, list)):
        raise ConfigError("SCOPE must be a comma-separated string or a list of scopes.")

    try:
        return FlowConfig(
            **{field: values[key] for field, key in _FIELD_KEYS.items()}
        )
    except ValidationError as exc:
        raise ConfigError(_describe_validation_error(exc)) from exc


def _describe_validation_error(exc: ValidationError) -> str:
    """Render pydantic errors using the setting names the operator knows."""
    messages = []
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else ""
        key = _FIELD_KEYS.get(field, field)
        msg = err["msg"].removeprefix("Value error, ")
        messages.append(f"Invalid {key}: {msg}")
    return "; ".join(messages)
