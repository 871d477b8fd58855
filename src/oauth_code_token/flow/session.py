"""Per-process flow session and state tracking.

:class:`FlowSession` is the immutable bundle of configuration, secret
material and the authorization URL derived from them. It is created once by
:class:`~oauth_code_token.flow.orchestrator.FlowOrchestrator` and shared
read-only with the listener threads.

:class:`FlowTracker` is the only mutable object in the flow: it records the
state machine (``LISTENING`` -> ``EXCHANGING`` -> ``COMPLETE``, or
``REJECTED``) and wakes the orchestrator once a result is available.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from oauth_code_token.flow.authorize import build_authorization_url
from oauth_code_token.flow.material import generate_secret_material
from oauth_code_token.flow.page import render_launch_page
from oauth_code_token.models import FlowConfig, FlowResult, FlowState, SecretMaterial


@dataclass(frozen=True)
class FlowSession:
    """Configuration and material for the single authorization attempt."""

    config: FlowConfig
    material: SecretMaterial
    authorization_url: str
    launch_page: str = field(repr=False)

    @classmethod
    def create(cls, config: FlowConfig, material: Optional[SecretMaterial] = None) -> FlowSession:
        """Generate material (unless given) and render the URL and page once."""
        if material is None:
            material = generate_secret_material()
        url = build_authorization_url(config, material)
        return cls(
            config=config,
            material=material,
            authorization_url=url,
            launch_page=render_launch_page(url),
        )


class FlowTracker:
    """Thread-safe record of the flow state and its final result."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._state = FlowState.LISTENING
        self._result: Optional[FlowResult] = None
        self._rejections = 0
        self._last_rejection: Optional[FlowResult] = None
        self._last_activity = time.monotonic()

    def touch(self) -> None:
        """Note listener activity; resets the idle clock."""
        with self._lock:
            self._last_activity = time.monotonic()

    @property
    def idle_seconds(self) -> float:
        with self._lock:
            if self._state == FlowState.EXCHANGING:
                return 0.0
            return time.monotonic() - self._last_activity

    @property
    def state(self) -> FlowState:
        with self._lock:
            return self._state

    @property
    def result(self) -> Optional[FlowResult]:
        with self._lock:
            return self._result

    @property
    def rejections(self) -> int:
        with self._lock:
            return self._rejections

    @property
    def last_rejection(self) -> Optional[FlowResult]:
        with self._lock:
            return self._last_rejection

    def begin_exchange(self) -> None:
        with self._lock:
            if self._state != FlowState.COMPLETE:
                self._state = FlowState.EXCHANGING

    def reject(self, result: FlowResult) -> None:
        """Record a rejected callback. The listener keeps serving afterwards.

        A rejection that arrives during an exchange is counted but leaves
        the state at ``EXCHANGING``, so the idle clock stays paused.
        """
        with self._lock:
            if self._state == FlowState.COMPLETE:
                return
            if self._state != FlowState.EXCHANGING:
                self._state = FlowState.REJECTED
            self._rejections += 1
            self._last_rejection = result

    def complete(self, result: FlowResult) -> None:
        """Record the exchange result; only the first completion is kept."""
        with self._lock:
            if self._state == FlowState.COMPLETE:
                return
            self._state = FlowState.COMPLETE
            self._result = result
        self._done.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the flow completes. Returns False on timeout."""
        return self._done.wait(timeout)
