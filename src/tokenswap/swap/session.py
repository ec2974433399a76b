"""Per-request swap orchestration.

A ``SwapSession`` drives one ``SwapRequest`` through an engine:

1. validate the amount (local)
2. check the balance (local comparison, one read)
3. quote at submission time
4. ensure allowance (approve and wait, if needed)
5. submit the swap and wait for confirmation
6. refresh balances

The first failing step ends the session with ``Failure``; later steps are
skipped. Nothing is rolled back: an approval confirmed in step 4 stays in
place, and a retry will find it instead of approving again.
"""

import logging
from typing import Awaitable, Callable, Optional

from tokenswap.errors import ContractCallError, SwapError, SwapErrorKind, call_failure
from tokenswap.models import Failure, SwapOutcome, SwapReceipt, SwapRequest
from tokenswap.routing.base import SwapEngine, invalid_amount
from tokenswap.swap.state import SessionState, SwapPhase, advance, fail, outcome, settle

logger = logging.getLogger(__name__)

SettledHook = Callable[[SwapRequest, SwapReceipt], Awaitable[None]]


class SwapSession:
    """Runs one swap request; single use."""

    def __init__(
        self,
        engine: SwapEngine,
        request: SwapRequest,
        on_settled: Optional[SettledHook] = None,
    ):
        self.engine = engine
        self.request = request
        self.on_settled = on_settled
        self.state = SessionState()

    @property
    def phase(self) -> SwapPhase:
        return self.state.phase

    def _fail(self, error: SwapError) -> SwapOutcome:
        self.state = fail(self.state, error)
        logger.info(f"Swap session failed in {self.state.history[-2].value}: {error}")
        return outcome(self.state)

    async def run(self) -> SwapOutcome:
        if self.state.phase != SwapPhase.IDLE:
            raise RuntimeError("SwapSession.run() may only be called once")

        request = self.request
        self.state = advance(self.state, SwapPhase.VALIDATING)

        failure = invalid_amount(request.input_amount)
        if failure:
            return self._fail(failure.error)
        if not self.engine.supports(request.path):
            return self._fail(
                SwapError(
                    SwapErrorKind.PAIR_NOT_FOUND,
                    f"{self.engine.name} cannot swap along {' -> '.join(request.path)}",
                    {"path": ",".join(request.path)},
                )
            )

        balance = await self.engine.check_balance(request)
        if isinstance(balance, Failure):
            return self._fail(balance.error)

        self.state = advance(self.state, SwapPhase.QUOTING)
        quote = await self.engine.quote_for(request)
        if isinstance(quote, Failure):
            return self._fail(quote.error)

        try:
            current = await self.engine.tokens.allowance(request.token_in, request.account, self.engine.spender)
        except ContractCallError as e:
            return self._fail(call_failure(e, "Allowance check"))

        approval_tx_hash = None
        if current.amount < request.input_amount:
            self.state = advance(self.state, SwapPhase.AWAITING_APPROVAL, quote=quote.value)
            approval = await self.engine.allowances.ensure_allowance(
                request.token_in, request.account, self.engine.spender, request.input_amount, current=current
            )
            if isinstance(approval, Failure):
                return self._fail(approval.error)
            approval_tx_hash = approval.value

        self.state = advance(
            self.state, SwapPhase.SWAPPING, quote=quote.value, approval_tx_hash=approval_tx_hash
        )
        result = await self.engine.submit(request, quote.value, approval_tx_hash=approval_tx_hash)
        if isinstance(result, Failure):
            return self._fail(result.error)

        self.state = settle(self.state, result.value)
        if self.on_settled is not None:
            await self.on_settled(request, result.value)
        return outcome(self.state)
