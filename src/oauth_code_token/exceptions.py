"""Exception hierarchy for oauth-code-token.

All exceptions inherit from :class:`OAuthCodeTokenError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`oauth_code_token.exit_codes`. The top-level error handler in
:func:`oauth_code_token.app.main` catches ``OAuthCodeTokenError`` and exits
with the appropriate code, while unexpected exceptions produce a crash log
and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    OAuthCodeTokenError (exit 1)
    +-- ConfigError                (exit 1)
    +-- AuthError                  (exit 3)
    |   +-- CSRFValidationError
    |   +-- AuthorizationDeniedError
    +-- ListenerError              (exit 8)
    +-- FlowTimeoutError           (exit 9)
"""

from oauth_code_token.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_LISTENER_ERROR,
    EXIT_TIMEOUT,
)


class OAuthCodeTokenError(Exception):
    """Base exception for all oauth-code-token errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`oauth_code_token.exit_codes`. The entry point
    catches this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(OAuthCodeTokenError):
    """Raised when a required setting is missing or cannot be parsed."""

    exit_code = EXIT_GENERIC_FAILURE


class AuthError(OAuthCodeTokenError):
    """Raised when the login attempt is rejected."""

    exit_code = EXIT_AUTH_FAILURE


class CSRFValidationError(AuthError):
    """Raised when the callback ``state`` does not match the generated one.

    A mismatched or missing state must never reach the token endpoint.
    """


class AuthorizationDeniedError(AuthError):
    """Raised when the provider redirects back with an ``error`` parameter.

    Args:
        error: The provider's ``error`` code (e.g. ``access_denied``).
        description: The provider's ``error_description``, if any.
    """

    def __init__(self, error: str, description: str = ""):
        message = f"Authorization failed: {error}"
        if description:
            message += f" - {description}"
        super().__init__(message)
        self.error = error
        self.description = description


class ListenerError(OAuthCodeTokenError):
    """Raised when the loopback listener cannot bind its port."""

    exit_code = EXIT_LISTENER_ERROR


class FlowTimeoutError(OAuthCodeTokenError):
    """Raised when no callback completes the flow before the idle timeout."""

    exit_code = EXIT_TIMEOUT
