"""Swap orchestration: allowance sequencing and per-request sessions.

``SwapService`` lives in ``tokenswap.swap.service`` and is imported from
there directly.
"""

from tokenswap.swap.allowance import AllowanceCoordinator
from tokenswap.swap.session import SwapSession
from tokenswap.swap.state import SessionState, SwapPhase

__all__ = [
    "AllowanceCoordinator",
    "SessionState",
    "SwapPhase",
    "SwapSession",
]
