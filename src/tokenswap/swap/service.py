"""Swap service facade.

Owns the provider, token client, pair oracle, allowance coordinator and both
engines. Human-readable amounts are converted to base units here, once, and
everything below works in integers.
"""

import logging
from typing import Dict, Optional

from tokenswap.chain.accounts import AccountStream
from tokenswap.chain.pair import PoolStatus
from tokenswap.chain.provider import WalletProvider
from tokenswap.chain.token import TokenClient
from tokenswap.config import Settings, get_settings
from tokenswap.errors import ContractCallError, SwapError, SwapErrorKind, token_failure
from tokenswap.models import (
    BalanceSnapshot,
    Failure,
    Result,
    Success,
    SwapOutcome,
    SwapQuote,
    SwapReceipt,
    SwapRequest,
)
from tokenswap.routing.amm import AMMEngine, SwapDirection
from tokenswap.routing.base import SwapEngine
from tokenswap.routing.factory import create_amm_engine, create_fixed_rate_engine, create_pair_oracle
from tokenswap.routing.fixed_rate import FixedRateEngine
from tokenswap.swap.allowance import AllowanceCoordinator
from tokenswap.swap.session import SwapSession
from tokenswap.units import HumanAmount, to_base_units

logger = logging.getLogger(__name__)


class SwapService:
    """Entry point used by the CLI and the HTTP API."""

    def __init__(
        self,
        provider,
        tokens: TokenClient,
        fixed_rate: FixedRateEngine,
        amm: AMMEngine,
    ):
        self.provider = provider
        self.tokens = tokens
        self.fixed_rate = fixed_rate
        self.amm = amm
        self._snapshots: Dict[str, BalanceSnapshot] = {}

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, provider=None) -> "SwapService":
        settings = settings or get_settings()
        provider = provider or WalletProvider.from_settings(settings)
        tokens = TokenClient(provider)
        allowances = AllowanceCoordinator(tokens)
        pairs = create_pair_oracle(provider, settings)
        return cls(
            provider,
            tokens,
            fixed_rate=create_fixed_rate_engine(provider, tokens, allowances, settings),
            amm=create_amm_engine(provider, tokens, allowances, pairs=pairs, settings=settings),
        )

    @property
    def tracked_tokens(self) -> tuple:
        """Distinct tokens across both engines, in a stable order."""
        seen = []
        for token in self.fixed_rate.path + self.amm.path(SwapDirection.A_TO_B):
            if token.lower() not in [t.lower() for t in seen]:
                seen.append(token)
        return tuple(seen)

    # ---------- balances ----------

    async def balances(self, account: str, refresh: bool = False) -> BalanceSnapshot:
        """Native plus token balances; cached until invalidated.

        Raises:
            ContractCallError: a read failed (the cache is left untouched)
        """
        key = account.lower()
        if not refresh and key in self._snapshots:
            return self._snapshots[key]

        native = await self.provider.get_balance(account)
        tokens = {}
        for token in self.tracked_tokens:
            tokens[token] = await self.tokens.balance_of(token, account)

        snapshot = BalanceSnapshot(account=account, native=native, tokens=tokens)
        self._snapshots[key] = snapshot
        return snapshot

    def invalidate(self, account: Optional[str] = None) -> None:
        """Drop cached balance snapshots (one account, or all)."""
        if account is None:
            self._snapshots.clear()
        else:
            self._snapshots.pop(account.lower(), None)

    async def watch_accounts(self, stream: Optional[AccountStream] = None) -> None:
        """Invalidate cached balances on every wallet account change.

        Runs until the stream is closed.
        """
        stream = stream or self.provider.subscribe_accounts()
        async for event in stream:
            if event.disconnected:
                logger.info("Wallet disconnected; clearing cached balances")
            else:
                logger.info(f"Active account changed to {event.account}")
            self.invalidate()

    # ---------- amounts ----------

    async def to_base(self, token: str, amount: HumanAmount) -> Result[int]:
        """Parse a human amount for ``token``. Non-positive is ``INVALID_AMOUNT``."""
        try:
            descriptor = await self.tokens.describe(token)
        except ContractCallError as e:
            logger.warning(f"Token {token} metadata read failed: {e}")
            return Failure(token_failure(e, token))
        try:
            base = to_base_units(amount, descriptor.decimals)
        except ValueError as e:
            return Failure(SwapError(SwapErrorKind.INVALID_AMOUNT, str(e), {"amount": amount}))
        if base <= 0:
            return Failure(
                SwapError(SwapErrorKind.INVALID_AMOUNT, "Amount must be greater than zero", {"amount": amount})
            )
        return Success(base)

    # ---------- quotes ----------

    async def quote_fixed(self, amount: HumanAmount) -> Result[SwapQuote]:
        base = await self.to_base(self.fixed_rate.input_token, amount)
        if isinstance(base, Failure):
            return base
        return await self.fixed_rate.quote(base.value)

    async def quote_amm(
        self,
        direction: SwapDirection,
        amount: HumanAmount,
        slippage_bps: Optional[int] = None,
    ) -> Result[SwapQuote]:
        path = self.amm.path(direction)
        base = await self.to_base(path[0], amount)
        if isinstance(base, Failure):
            return base
        return await self.amm.quote(base.value, path, slippage_bps)

    async def pool_status(self, direction: SwapDirection = SwapDirection.A_TO_B) -> PoolStatus:
        token_in, token_out = self.amm.path(direction)
        return await self.amm.pairs.pool_status(token_in, token_out)

    # ---------- swaps ----------

    async def _after_swap(self, request: SwapRequest, receipt: SwapReceipt) -> None:
        self.invalidate(request.account)

    def session(self, engine: SwapEngine, request: SwapRequest) -> SwapSession:
        return SwapSession(engine, request, on_settled=self._after_swap)

    async def swap_fixed(self, account: str, amount: HumanAmount) -> SwapOutcome:
        base = await self.to_base(self.fixed_rate.input_token, amount)
        if isinstance(base, Failure):
            return base
        request = self.fixed_rate.request(account, base.value)
        return await self.session(self.fixed_rate, request).run()

    async def swap_amm(
        self,
        account: str,
        direction: SwapDirection,
        amount: HumanAmount,
        slippage_bps: Optional[int] = None,
        deadline: Optional[int] = None,
    ) -> SwapOutcome:
        path = self.amm.path(direction)
        base = await self.to_base(path[0], amount)
        if isinstance(base, Failure):
            return base
        try:
            request = self.amm.request(account, direction, base.value, slippage_bps, deadline)
        except ValueError as e:
            return Failure(SwapError(SwapErrorKind.INVALID_AMOUNT, str(e), {"slippage_bps": slippage_bps}))
        return await self.session(self.amm, request).run()


_service: Optional[SwapService] = None


def get_swap_service() -> SwapService:
    """Get or create the swap service instance."""
    global _service
    if _service is None:
        _service = SwapService.from_settings()
    return _service
