"""The authorization-flow core.

Exports:
    :func:`generate_secret_material` -- PKCE verifier/challenge plus
    ``state`` and ``nonce``.
    :func:`build_authorization_url` -- the provider authorization URL.
    :class:`TokenExchanger` -- the token-endpoint POST.
    :class:`CallbackListener` -- the loopback HTTP listener.
    :class:`FlowSession` / :class:`FlowTracker` -- per-process session and
    state machine.
    :class:`FlowOrchestrator` -- runs one login end to end.
"""

from oauth_code_token.flow.authorize import build_authorization_url
from oauth_code_token.flow.exchange import TokenExchanger, build_token_request
from oauth_code_token.flow.listener import CallbackListener, validate_state
from oauth_code_token.flow.material import compute_code_challenge, generate_secret_material
from oauth_code_token.flow.orchestrator import FlowOrchestrator
from oauth_code_token.flow.session import FlowSession, FlowTracker

__all__ = [
    "CallbackListener",
    "FlowOrchestrator",
    "FlowSession",
    "FlowTracker",
    "TokenExchanger",
    "build_authorization_url",
    "build_token_request",
    "compute_code_challenge",
    "generate_secret_material",
    "validate_state",
]
