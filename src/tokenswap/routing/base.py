"""Abstract swap engine interface.

An engine prices a swap (``quote``) and executes it (``submit`` for the bare
transaction, ``execute`` for the full checked sequence). Every operation
returns ``Success``/``Failure`` instead of raising for expected failures.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from tokenswap.errors import (
    ContractCallError,
    ContractRevertError,
    SwapError,
    SwapErrorKind,
    call_failure,
    classify_revert,
)
from tokenswap.models import (
    Failure,
    Result,
    Success,
    SwapOutcome,
    SwapQuote,
    SwapReceipt,
    SwapRequest,
)

logger = logging.getLogger(__name__)


def invalid_amount(amount) -> Optional[Failure]:
    """Local input check; never touches the network."""
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        return Failure(
            SwapError(
                SwapErrorKind.INVALID_AMOUNT,
                f"Amount must be a positive integer in base units, got {amount!r}",
                {"amount": amount},
            )
        )
    return None


class SwapEngine(ABC):
    """Base class for swap engines.

    Args:
        provider: ``WalletProvider`` (or anything with the same surface)
        tokens: ``TokenClient`` sharing the same provider
        allowances: ``AllowanceCoordinator`` used by ``execute``
    """

    def __init__(self, provider, tokens, allowances):
        self.provider = provider
        self.tokens = tokens
        self.allowances = allowances

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine identifier."""
        pass

    @property
    @abstractmethod
    def spender(self) -> str:
        """Contract that pulls the input token and therefore needs allowance."""
        pass

    @abstractmethod
    def supports(self, path: Sequence[str]) -> bool:
        """Whether this engine can swap along ``path``."""
        pass

    @abstractmethod
    async def quote(
        self,
        input_amount: int,
        path: Optional[Sequence[str]] = None,
        slippage_bps: Optional[int] = None,
    ) -> Result[SwapQuote]:
        """Price a swap of ``input_amount`` base units."""
        pass

    @abstractmethod
    def build_swap_call(self, request: SwapRequest, quote: SwapQuote) -> Any:
        """Bound contract function that performs the swap."""
        pass

    @abstractmethod
    def amount_out_from_receipt(self, request: SwapRequest, receipt: dict) -> Optional[int]:
        """Output credited to ``request.account`` by a mined swap, or None."""
        pass

    async def quote_for(self, request: SwapRequest) -> Result[SwapQuote]:
        return await self.quote(request.input_amount, request.path, request.slippage_bps)

    async def check_balance(self, request: SwapRequest) -> Result[int]:
        """Local pre-check: the account holds at least ``input_amount``."""
        try:
            balance = await self.tokens.balance_of(request.token_in, request.account)
        except ContractCallError as e:
            logger.warning(f"Balance read failed for {request.account}: {e}")
            return Failure(call_failure(e, "Balance check"))

        if balance < request.input_amount:
            logger.info(
                f"Insufficient balance: {request.account} holds {balance}, needs {request.input_amount}"
            )
            return Failure(
                SwapError(
                    SwapErrorKind.INSUFFICIENT_BALANCE,
                    f"Balance {balance} is below the requested {request.input_amount}",
                    {"balance": balance, "required": request.input_amount, "token": request.token_in},
                )
            )
        return Success(balance)

    async def submit(
        self,
        request: SwapRequest,
        quote: SwapQuote,
        approval_tx_hash: Optional[str] = None,
    ) -> SwapOutcome:
        """Send the swap, wait for confirmation and refresh balances.

        Success is reported only after the transaction is mined.
        ``amount_out`` comes from the receipt's logs, so other activity on
        the account cannot skew it; the balance re-read only fills
        ``balance_*_after`` and may fail without failing the swap.
        """
        try:
            handle = await self.provider.transact(self.build_swap_call(request, quote))
            receipt = await handle.wait()
        except ContractRevertError as e:
            error = classify_revert(e, f"{self.name} swap")
            logger.error(f"{self.name} swap failed: {error}")
            return Failure(error)
        except ContractCallError as e:
            logger.warning(f"{self.name} swap could not be submitted: {e}")
            return Failure(call_failure(e, f"{self.name} swap submission"))

        amount_out = self.amount_out_from_receipt(request, receipt)
        if amount_out is None:
            logger.warning(f"Swap {handle.tx_hash} confirmed but its receipt shows no output transfer")

        balance_in = balance_out = None
        try:
            balance_in = await self.tokens.balance_of(request.token_in, request.account)
            balance_out = await self.tokens.balance_of(request.token_out, request.account)
        except ContractCallError as e:
            logger.warning(f"Swap {handle.tx_hash} confirmed but balance refresh failed: {e}")

        logger.info(
            f"{self.name} swap settled: {request.input_amount} {request.token_in} -> "
            f"{amount_out} {request.token_out} (tx {handle.tx_hash})"
        )
        return Success(
            SwapReceipt(
                tx_hash=handle.tx_hash,
                amount_in=request.input_amount,
                amount_out=amount_out,
                path=request.path,
                approval_tx_hash=approval_tx_hash,
                balance_in_after=balance_in,
                balance_out_after=balance_out,
            )
        )

    async def execute(self, request: SwapRequest) -> SwapOutcome:
        """Full checked sequence: amount, balance, fresh quote, allowance, swap."""
        failure = invalid_amount(request.input_amount)
        if failure:
            return failure

        if not self.supports(request.path):
            return Failure(
                SwapError(
                    SwapErrorKind.PAIR_NOT_FOUND,
                    f"{self.name} cannot swap along {' -> '.join(request.path)}",
                    {"path": ",".join(request.path)},
                )
            )

        balance = await self.check_balance(request)
        if not balance.ok:
            return balance

        quote = await self.quote_for(request)
        if not quote.ok:
            return quote

        approval = await self.allowances.ensure_allowance(
            request.token_in, request.account, self.spender, request.input_amount
        )
        if not approval.ok:
            return approval

        return await self.submit(request, quote.value, approval_tx_hash=approval.value)
