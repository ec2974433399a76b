"""Error taxonomy for swap operations.

Two layers:

- Exceptions (``TokenSwapError`` and subclasses) are raised at the chain
  boundary: contract reads, transaction submission and confirmation.
- ``SwapError`` values are what engines, the allowance coordinator and the
  session hand back inside a ``Failure``. Engines translate boundary
  exceptions into these; callers switch on ``SwapError.kind``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class SwapErrorKind(str, Enum):
    """Failure categories a calling surface can render."""

    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INSUFFICIENT_ALLOWANCE = "insufficient_allowance"
    PAIR_NOT_FOUND = "pair_not_found"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    UNVERIFIED_TOKEN = "unverified_token"
    CONTRACT_CALL_ERROR = "contract_call_error"
    CONTRACT_REVERT = "contract_revert"


@dataclass(frozen=True)
class SwapError:
    """Structured failure reason: kind plus a human-readable cause."""

    kind: SwapErrorKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def retryable(self) -> bool:
        """Only transient reads may be retried as-is."""
        return self.kind == SwapErrorKind.CONTRACT_CALL_ERROR

    @property
    def requires_requote(self) -> bool:
        """A reverted swap must be re-quoted before another attempt."""
        return self.kind in (
            SwapErrorKind.CONTRACT_REVERT,
            SwapErrorKind.INSUFFICIENT_ALLOWANCE,
        )

    @property
    def is_local(self) -> bool:
        """Caller input errors detected before touching the network."""
        return self.kind in (
            SwapErrorKind.INVALID_AMOUNT,
            SwapErrorKind.INSUFFICIENT_BALANCE,
        )

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "details": {k: str(v) for k, v in self.details.items()},
        }

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class TokenSwapError(Exception):
    """Base exception for chain-boundary failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(TokenSwapError):
    """Raised when settings are missing or inconsistent."""

    pass


class ContractCallError(TokenSwapError):
    """A read against a contract failed.

    ``transient`` separates "could not reach the provider" (retry the read)
    from "the address did not answer like the expected contract"
    (empty output, undecodable data, revert on a view call).
    """

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        function: Optional[str] = None,
        transient: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.address = address
        self.function = function
        self.transient = transient


class ContractRevertError(TokenSwapError):
    """On-chain execution rejected a transaction.

    Raised when gas estimation hits a revert (nothing broadcast) or when a
    mined receipt reports ``status == 0``.
    """

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        tx_hash: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.reason = reason or message
        self.tx_hash = tx_hash


# Revert reason fragments that mean the spender was not approved for enough.
_ALLOWANCE_MARKERS = (
    "ERC20InsufficientAllowance",
    "insufficient allowance",
    "TRANSFER_FROM_FAILED",
    "0xfb8f41b2",  # ERC20InsufficientAllowance selector (OpenZeppelin 5)
)


def classify_revert(exc: ContractRevertError, action: str) -> SwapError:
    """Map an on-chain rejection to a ``SwapError``."""
    details = {"reason": exc.reason}
    if exc.tx_hash:
        details["tx_hash"] = exc.tx_hash

    if any(marker.lower() in exc.reason.lower() for marker in _ALLOWANCE_MARKERS):
        return SwapError(
            SwapErrorKind.INSUFFICIENT_ALLOWANCE,
            f"{action} rejected: spender allowance too low ({exc.reason})",
            details,
        )
    return SwapError(
        SwapErrorKind.CONTRACT_REVERT,
        f"{action} reverted on-chain: {exc.reason}",
        details,
    )


def call_failure(exc: ContractCallError, action: str) -> SwapError:
    """Map a failed read to ``CONTRACT_CALL_ERROR``."""
    details: Dict[str, Any] = {"transient": exc.transient}
    if exc.address:
        details["address"] = exc.address
    if exc.function:
        details["function"] = exc.function
    return SwapError(
        SwapErrorKind.CONTRACT_CALL_ERROR,
        f"{action} failed: {exc.message}",
        details,
    )


def token_failure(exc: ContractCallError, token: str) -> SwapError:
    """Map a failed token metadata read.

    A permanent failure means the address does not behave like a token
    (``UNVERIFIED_TOKEN``); a transient one stays ``CONTRACT_CALL_ERROR``.
    """
    if exc.transient:
        return call_failure(exc, f"Token check for {token}")
    return SwapError(
        SwapErrorKind.UNVERIFIED_TOKEN,
        f"{token} does not answer standard token queries",
        {"token": token, "cause": exc.message},
    )
