"""Authorization URL construction."""

from __future__ import annotations

from urllib.parse import quote, urlencode

from oauth_code_token.models import FlowConfig, SecretMaterial


def authorization_params(config: FlowConfig, material: SecretMaterial) -> list[tuple[str, str]]:
    """Return the authorization request parameters in transmission order."""
    return [
        ("client_id", config.client_id),
        ("response_type", "code"),
        ("scope", config.scope),
        ("redirect_uri", config.redirect_url),
        ("state", material.state),
        ("nonce", material.nonce),
        ("code_challenge", material.code_challenge),
        ("code_challenge_method", material.code_challenge_method),
    ]


def build_authorization_url(config: FlowConfig, material: SecretMaterial) -> str:
    """Compose the provider authorization URL for this flow.

    Every value is percent-encoded with no safe characters, so spaces in
    the scope become ``%20`` and the redirect URI's ``:`` and ``/`` are
    escaped. An endpoint that already carries a query string keeps it.

    Args:
        config: The validated flow configuration.
        material: The session's PKCE and CSRF material.

    Returns:
        The absolute URL the launch page links to.
    """
    query = urlencode(authorization_params(config, material), quote_via=quote)
    endpoint = config.auth_endpoint.rstrip("?&")
    separator = "&" if "?" in endpoint else "?"
    return f"{endpoint}{separator}{query}"
