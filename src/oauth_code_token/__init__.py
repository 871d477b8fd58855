"""oauth-code-token -- fetch a token with the OAuth 2.0 Authorization Code flow + PKCE.

The tool runs one interactive login per invocation. It generates PKCE and
anti-CSRF material, starts a short-lived HTTP listener on the loopback port
named by ``REDIRECT_URL``, serves a launch page that links to the identity
provider, validates the provider's redirect and exchanges the authorization
code at the token endpoint. The raw token response is printed to stdout.

Typical workflow::

    oauth-code-token --config idp.json
    # open http://localhost:<port>/ and click "Sign in"

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: Config-file / environment resolution into a ``FlowConfig``.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    flow: The authorization-flow core (material, URL, listener, exchange).
"""

__version__ = "0.1.0"
