"""Loopback HTTP listener that serves the launch page and receives the callback.

The listener is a :class:`~http.server.ThreadingHTTPServer`: every
connection is handled on its own thread, so a token exchange that hangs on
the provider never stops the launch page from being served to a retried
browser tab. It hosts two routes:

* ``/`` -- the launch page, rendered once per process from the session's
  fixed authorization URL.
* ``<redirect path>?...`` -- the provider redirect. The ``state`` is
  checked before anything else; only a matching state with a code reaches
  the :class:`~oauth_code_token.flow.exchange.TokenExchanger`.

Anything else receives an empty 404.
"""

from __future__ import annotations

import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Optional, Protocol
from urllib.parse import parse_qs, urlsplit

from oauth_code_token.exceptions import (
    AuthError,
    AuthorizationDeniedError,
    CSRFValidationError,
    ListenerError,
)
from oauth_code_token.flow.session import FlowSession, FlowTracker
from oauth_code_token.models import FlowResult
from oauth_code_token.output import debug, warning

CSRF_ERROR_DESCRIPTION = "Error validating state. Possible CSRF."


class Exchanger(Protocol):
    def exchange(self, code: str) -> FlowResult: ...


def validate_state(expected: str, actual: Optional[str]) -> None:
    """Check the callback ``state`` against the session's.

    ``state`` is a CSRF correlation token, not a credential, so a plain
    exact comparison is used.

    Raises:
        CSRFValidationError: If *actual* is missing or differs.
    """
    if actual is None or actual != expected:
        raise CSRFValidationError(CSRF_ERROR_DESCRIPTION)


def _first(params: dict[str, list[str]], name: str) -> Optional[str]:
    values = params.get(name)
    return values[0] if values else None


class _LoopbackServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, address: tuple[str, int], listener: CallbackListener) -> None:
        self.listener = listener
        super().__init__(address, _CallbackHandler)


class _LoopbackServerV6(_LoopbackServer):
    address_family = socket.AF_INET6


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _LoopbackServer
    server_version = "oauth-code-token"

    def do_GET(self) -> None:
        listener = self.server.listener
        listener.tracker.touch()
        parsed = urlsplit(self.path)

        if parsed.path == listener.callback_path and parsed.query:
            self._handle_callback(listener, parse_qs(parsed.query))
        elif parsed.path == "/":
            self._send(200, "text/html; charset=utf-8", listener.session.launch_page)
        else:
            self._send(404, "text/plain; charset=utf-8", "")

    def _handle_callback(self, listener: CallbackListener, params: dict[str, list[str]]) -> None:
        def respond(result: FlowResult) -> None:
            self._send(result.status_code, "application/json", result.body)

        listener.handle_callback(params, respond)

    def _send(self, status: int, content_type: str, body: str) -> None:
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(payload)
        self.wfile.flush()

    def log_message(self, format: str, *args: Any) -> None:
        debug(f"{self.address_string()} {format % args}")


class CallbackListener:
    """Short-lived HTTP server bound to the redirect URL's loopback port.

    Args:
        session: The flow session (config, material, launch page).
        exchanger: Performs the token exchange for a validated code.
        tracker: Receives state transitions and the final result.

    Raises:
        ListenerError: If the port cannot be bound.
    """

    def __init__(
        self,
        session: FlowSession,
        exchanger: Exchanger,
        tracker: Optional[FlowTracker] = None,
    ) -> None:
        self.session = session
        self.exchanger = exchanger
        self.tracker = tracker or FlowTracker()
        self.callback_path = session.config.redirect_path

        host = session.config.redirect_host
        bind_host = "127.0.0.1" if host == "localhost" else host
        server_cls = _LoopbackServerV6 if ":" in bind_host else _LoopbackServer
        try:
            self._server = server_cls((bind_host, session.config.redirect_port), self)
        except OSError as exc:
            raise ListenerError(
                f"Cannot listen on {bind_host}:{session.config.redirect_port}: {exc}"
            ) from exc
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        """The bound port (differs from the configured one only when it is 0)."""
        return self._server.server_address[1]

    @property
    def local_url(self) -> str:
        """The launch page URL the operator opens to start the login."""
        return f"http://localhost:{self.port}/"

    def handle_callback(
        self,
        params: dict[str, list[str]],
        respond: Callable[[FlowResult], None],
    ) -> FlowResult:
        """Validate a callback query and run the exchange when it is genuine.

        The result is handed to *respond* (which writes the HTTP response)
        before the tracker is updated, so the orchestrator never shuts the
        listener down ahead of the browser receiving its body.

        Args:
            params: Parsed callback query string.
            respond: Writes a result back to the browser.

        Returns:
            The result written to the browser.

        Raises:
            Exception: Whatever the exchanger raises. The browser receives
                a local ``server_error`` result and the flow completes with
                it first.
        """
        try:
            code = self._validate_callback(params)
        except AuthError as exc:
            warning(f"Rejected callback: {exc}")
            result = self._rejection_result(exc)
            try:
                respond(result)
            finally:
                self.tracker.reject(result)
            return result

        self.tracker.begin_exchange()
        debug("State validated, exchanging authorization code")
        try:
            result = self.exchanger.exchange(code)
        except Exception as exc:
            # Never leave the tracker in EXCHANGING.
            failure = FlowResult.local_error(
                "server_error",
                f"Token exchange failed: {exc.__class__.__name__}",
                status_code=500,
            )
            try:
                respond(failure)
            finally:
                self.tracker.complete(failure)
            raise
        try:
            respond(result)
        finally:
            self.tracker.complete(result)
        return result

    def _validate_callback(self, params: dict[str, list[str]]) -> str:
        """Return the authorization code of a genuine callback.

        Raises:
            CSRFValidationError: The state is missing or does not match.
            AuthorizationDeniedError: The provider reported an error.
            AuthError: No code was supplied.
        """
        validate_state(self.session.material.state, _first(params, "state"))

        provider_error = _first(params, "error")
        if provider_error:
            raise AuthorizationDeniedError(
                provider_error, _first(params, "error_description") or ""
            )

        code = _first(params, "code")
        if not code:
            raise AuthError("No authorization code received.")
        return code

    @staticmethod
    def _rejection_result(exc: AuthError) -> FlowResult:
        if isinstance(exc, CSRFValidationError):
            return FlowResult.local_error("invalid_state", str(exc))
        if isinstance(exc, AuthorizationDeniedError):
            return FlowResult.local_error(exc.error, exc.description)
        return FlowResult.local_error("invalid_request", str(exc))

    def start(self) -> None:
        """Serve requests on a daemon thread until :meth:`close` is called."""
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="oauth-code-token-listener",
            daemon=True,
        )
        self._thread.start()

    def close(self) -> None:
        """Stop serving and release the listening socket."""
        if self._thread is not None:
            self._server.shutdown()
            self._thread.join()
            self._thread = None
        self._server.server_close()

    def __enter__(self) -> CallbackListener:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
