"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~oauth_code_token.exceptions.OAuthCodeTokenError`
subclass. Shell wrappers can inspect the exit code to tell a rejected
login from a network failure without parsing stderr.

Example::

    $ oauth-code-token -c idp.json > token.json
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the token endpoint answered with an error
"""

EXIT_SUCCESS = 0
"""The token endpoint returned a successful response."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (including configuration errors)."""

EXIT_AUTH_FAILURE = 3
"""The login was rejected (provider error response, denied consent, CSRF)."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred while contacting the token endpoint."""

EXIT_LISTENER_ERROR = 8
"""The loopback listener could not be bound to the redirect port."""

EXIT_TIMEOUT = 9
"""No authorization callback completed before the idle timeout."""

EXIT_INTERRUPTED = 130
"""The operator interrupted the process (Ctrl-C)."""
