"""Value types shared by the chain layer, engines and sessions.

All amounts are ``int`` in the token's base units.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, Generic, Optional, Tuple, TypeVar, Union

from tokenswap.errors import SwapError

T = TypeVar("T")

Account = str


@dataclass(frozen=True)
class TokenDescriptor:
    """Static token metadata. ``address`` is the identity key."""

    address: str
    decimals: int
    symbol: str


@dataclass(frozen=True)
class Allowance:
    """Point-in-time allowance read. Never cached."""

    owner: str
    spender: str
    amount: int


@dataclass(frozen=True)
class PairReserves:
    """Reserves ordered to match the requested path (``token_a`` is the input).

    ``as_of`` is the pair's ``blockTimestampLast``; advisory only.
    """

    pair: str
    token_a: str
    reserve_a: int
    token_b: str
    reserve_b: int
    as_of: int

    @property
    def is_empty(self) -> bool:
        return self.reserve_a == 0 or self.reserve_b == 0


@dataclass(frozen=True)
class SwapQuote:
    """Derived quote. Recomputed on every input change, never persisted."""

    input_amount: int
    expected_output: int
    minimum_output: int
    path: Tuple[str, ...]
    engine: str
    slippage_bps: int = 0
    rate: Optional[int] = None
    reserves: Optional[PairReserves] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        if self.minimum_output > self.expected_output:
            raise ValueError("minimum_output cannot exceed expected_output")
        if min(self.input_amount, self.expected_output, self.minimum_output) < 0:
            raise ValueError("quote amounts must be non-negative")

    @property
    def token_in(self) -> str:
        return self.path[0]

    @property
    def token_out(self) -> str:
        return self.path[-1]


@dataclass(frozen=True)
class SwapRequest:
    """The unit of work submitted to an engine."""

    account: Account
    path: Tuple[str, ...]
    input_amount: int
    slippage_bps: int = 50
    deadline: Optional[int] = None  # unix seconds; None = now + configured window

    def __post_init__(self):
        object.__setattr__(self, "path", tuple(self.path))
        if len(self.path) < 2:
            raise ValueError("swap path needs at least two tokens")
        if len({addr.lower() for addr in self.path}) != len(self.path):
            raise ValueError("swap path tokens must be distinct")
        if not 0 <= self.slippage_bps <= 10_000:
            raise ValueError(f"slippage_bps out of range: {self.slippage_bps}")

    @property
    def token_in(self) -> str:
        return self.path[0]

    @property
    def token_out(self) -> str:
        return self.path[-1]


@dataclass(frozen=True)
class BalanceSnapshot:
    """Native and token balances of one account at one moment."""

    account: Account
    native: int
    tokens: Dict[str, int]
    as_of: float = field(default_factory=time.time)

    def of(self, token: str) -> int:
        for address, amount in self.tokens.items():
            if address.lower() == token.lower():
                return amount
        raise KeyError(token)


@dataclass(frozen=True)
class SwapReceipt:
    """What a confirmed swap produced."""

    tx_hash: str
    amount_in: int
    amount_out: Optional[int]  # None if the receipt carries no output transfer
    path: Tuple[str, ...]
    approval_tx_hash: Optional[str] = None
    balance_in_after: Optional[int] = None
    balance_out_after: Optional[int] = None


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    ok = True


@dataclass(frozen=True)
class Failure:
    error: SwapError

    ok = False


Result = Union[Success[T], Failure]
SwapOutcome = Union[Success[SwapReceipt], Failure]
