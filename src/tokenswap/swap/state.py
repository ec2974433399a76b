"""Explicit per-session swap state.

``SessionState`` is an immutable value; the functions below return a new
state for each step. Illegal transitions raise ``ValueError`` because they
are programming errors, not swap failures.

    IDLE -> VALIDATING -> QUOTING -> [AWAITING_APPROVAL] -> SWAPPING -> SETTLED
                 \\            \\               \\               \\
                  +------------+---------------+---------------+--> FAILED
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from tokenswap.errors import SwapError
from tokenswap.models import Failure, SwapOutcome, SwapQuote, SwapReceipt, Success


class SwapPhase(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    QUOTING = "quoting"
    AWAITING_APPROVAL = "awaiting_approval"
    SWAPPING = "swapping"
    SETTLED = "settled"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (SwapPhase.SETTLED, SwapPhase.FAILED)


_TRANSITIONS = {
    SwapPhase.IDLE: {SwapPhase.VALIDATING, SwapPhase.FAILED},
    SwapPhase.VALIDATING: {SwapPhase.QUOTING, SwapPhase.FAILED},
    SwapPhase.QUOTING: {SwapPhase.AWAITING_APPROVAL, SwapPhase.SWAPPING, SwapPhase.FAILED},
    SwapPhase.AWAITING_APPROVAL: {SwapPhase.SWAPPING, SwapPhase.FAILED},
    SwapPhase.SWAPPING: {SwapPhase.SETTLED, SwapPhase.FAILED},
    SwapPhase.SETTLED: set(),
    SwapPhase.FAILED: set(),
}


@dataclass(frozen=True)
class SessionState:
    phase: SwapPhase = SwapPhase.IDLE
    history: Tuple[SwapPhase, ...] = (SwapPhase.IDLE,)
    quote: Optional[SwapQuote] = None
    approval_tx_hash: Optional[str] = None
    receipt: Optional[SwapReceipt] = None
    error: Optional[SwapError] = None

    @property
    def done(self) -> bool:
        return self.phase.terminal


def can_transition(current: SwapPhase, target: SwapPhase) -> bool:
    return target in _TRANSITIONS[current]


def advance(state: SessionState, phase: SwapPhase, **changes) -> SessionState:
    """Move to ``phase``, optionally attaching ``quote``/``approval_tx_hash``."""
    if not can_transition(state.phase, phase):
        raise ValueError(f"Illegal swap transition {state.phase.value} -> {phase.value}")
    return replace(state, phase=phase, history=state.history + (phase,), **changes)


def fail(state: SessionState, error: SwapError) -> SessionState:
    return advance(state, SwapPhase.FAILED, error=error)


def settle(state: SessionState, receipt: SwapReceipt) -> SessionState:
    return advance(state, SwapPhase.SETTLED, receipt=receipt)


def outcome(state: SessionState) -> SwapOutcome:
    """The tagged result of a finished session."""
    if state.phase == SwapPhase.SETTLED:
        return Success(state.receipt)
    if state.phase == SwapPhase.FAILED:
        return Failure(state.error)
    raise ValueError(f"Session has not finished (phase {state.phase.value})")
