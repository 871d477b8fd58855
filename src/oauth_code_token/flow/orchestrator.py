"""One-shot orchestration of the authorization flow.

:class:`FlowOrchestrator` wires the pieces together for a single login:

1. Creates the :class:`~oauth_code_token.flow.session.FlowSession`
   (secret material + authorization URL), exactly once.
2. Binds the :class:`~oauth_code_token.flow.listener.CallbackListener`
   on the redirect URL's loopback port.
3. Tells the operator which local URL to open (optionally opening it).
4. Blocks until a callback completes the exchange, the listener has been
   idle for too long, or the operator interrupts the process.
5. Closes the listener and returns the
   :class:`~oauth_code_token.models.FlowResult`.

Rejected callbacks (bad ``state``, denied consent) leave the listener
running so the operator can click "Sign in" again. A new attempt with new
material always means a new process.
"""

from __future__ import annotations

import threading
import webbrowser
from typing import Optional

from oauth_code_token.exceptions import FlowTimeoutError
from oauth_code_token.flow.exchange import DEFAULT_TIMEOUT, TokenExchanger
from oauth_code_token.flow.listener import CallbackListener, Exchanger
from oauth_code_token.flow.session import FlowSession, FlowTracker
from oauth_code_token.models import FlowConfig, FlowResult
from oauth_code_token.output import debug, info, suggest

DEFAULT_IDLE_TIMEOUT = 300.0
_POLL_INTERVAL = 0.5


class FlowOrchestrator:
    """Run exactly one Authorization Code + PKCE attempt.

    Args:
        config: The validated flow configuration.
        timeout: Token request timeout in seconds.
        idle_timeout: Seconds without listener activity before giving up;
            ``0`` or ``None`` waits indefinitely.
        open_browser: Open the launch page in the default browser.
        exchanger: Optional replacement for the
            :class:`~oauth_code_token.flow.exchange.TokenExchanger`.
        session: Optional pre-built session (material is otherwise
            generated here).
    """

    def __init__(
        self,
        config: FlowConfig,
        timeout: float = DEFAULT_TIMEOUT,
        idle_timeout: Optional[float] = DEFAULT_IDLE_TIMEOUT,
        open_browser: bool = False,
        exchanger: Optional[Exchanger] = None,
        session: Optional[FlowSession] = None,
    ) -> None:
        self.session = session or FlowSession.create(config)
        self.exchanger = exchanger or TokenExchanger(
            config, self.session.material, timeout=timeout
        )
        self.tracker = FlowTracker()
        self._idle_timeout = idle_timeout or None
        self._open_browser = open_browser

    def run(self) -> FlowResult:
        """Serve the flow until it completes and return the result.

        Raises:
            ListenerError: If the redirect port cannot be bound.
            FlowTimeoutError: If the idle timeout expires first.
        """
        listener = CallbackListener(self.session, self.exchanger, self.tracker)
        with listener:
            debug(f"Listening on port: {listener.port}")
            local_url = listener.local_url
            info(f"Please open {local_url} in a browser to retrieve a token.")
            if self._open_browser:
                threading.Thread(
                    target=webbrowser.open, args=(local_url,), daemon=True
                ).start()
            else:
                suggest("Pass --open to launch the browser automatically.")
            return self._wait()

    def _wait(self) -> FlowResult:
        while not self.tracker.wait(_POLL_INTERVAL):
            if self._idle_timeout is not None and self.tracker.idle_seconds >= self._idle_timeout:
                raise FlowTimeoutError(self._timeout_message())

        result = self.tracker.result
        assert result is not None  # set before the completion event
        return result

    def _timeout_message(self) -> str:
        message = f"No authorization completed within {self._idle_timeout:g} seconds of inactivity."
        rejected = self.tracker.last_rejection
        if rejected is not None:
            message += f" The last callback was rejected: {rejected.body}"
        return message
