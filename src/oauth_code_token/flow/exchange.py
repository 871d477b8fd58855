"""Authorization-code-for-token exchange.

:class:`TokenExchanger` issues the single ``POST`` to the provider's token
endpoint. It never raises past its boundary: provider responses of any
status are passed through unparsed, and transport failures are turned into
a locally synthesized JSON error body, so the callback listener always has
a string it can write back to the browser verbatim.
"""

from __future__ import annotations

from typing import Optional

import httpx

from oauth_code_token.models import FlowConfig, FlowResult, ResultSource, SecretMaterial
from oauth_code_token.output import debug

DEFAULT_TIMEOUT = 30.0
MAX_REDIRECTS = 3


def build_token_request(
    config: FlowConfig,
    material: SecretMaterial,
    code: str,
) -> tuple[dict[str, str], dict[str, str]]:
    """Build the form fields and headers of the token request.

    ``client_secret`` is included only for confidential clients (non-empty
    secret). SPA clients get an ``Origin`` header matching the redirect
    URL's scheme and host, which some providers (Azure AD) require before
    they redeem a code issued to a single-page application.

    Returns:
        A ``(data, headers)`` tuple.
    """
    data: dict[str, str] = {
        "grant_type": "authorization_code",
        "code": code,
        "client_id": config.client_id,
        "code_verifier": material.code_verifier,
        "redirect_uri": config.redirect_url,
    }
    if config.client_secret:
        data["client_secret"] = config.client_secret

    headers: dict[str, str] = {
        "Content-Type": "application/x-www-form-urlencoded",
        "Accept": "application/json",
    }
    if config.is_spa:
        headers["Origin"] = config.origin

    return data, headers


class TokenExchanger:
    """Exchange an authorization code at the token endpoint.

    Args:
        config: The validated flow configuration.
        material: The session's PKCE material (the verifier is sent).
        timeout: Seconds before the request is abandoned; expiry is
            reported like any other transport failure.
        transport: Optional httpx transport, used by tests to stand in for
            the provider.
    """

    def __init__(
        self,
        config: FlowConfig,
        material: SecretMaterial,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        self._material = material
        self._timeout = timeout
        self._transport = transport

    def exchange(self, code: str) -> FlowResult:
        """POST the code and return the provider's body unmodified.

        Args:
            code: The authorization code from the callback.

        Returns:
            A provider :class:`~oauth_code_token.models.FlowResult` carrying
            the raw body and status, or a local ``transport_error`` result
            (status 502) when the request could not be completed or the
            response body could not be decoded.
        """
        data, headers = build_token_request(self._config, self._material, code)
        debug(f"POST {self._config.token_endpoint}")

        try:
            with httpx.Client(
                timeout=self._timeout,
                follow_redirects=True,
                max_redirects=MAX_REDIRECTS,
                transport=self._transport,
            ) as client:
                response = client.post(
                    self._config.token_endpoint,
                    data=data,
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            description = str(exc) or exc.__class__.__name__
            debug(f"Token request failed: {description}")
            return FlowResult.local_error("transport_error", description, status_code=502)

        debug(f"Token endpoint answered {response.status_code}")
        return FlowResult(
            body=response.text,
            status_code=response.status_code,
            source=ResultSource.PROVIDER,
        )
