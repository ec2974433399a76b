"""Fixed-rate swap against a dedicated exchange contract.

The contract burns the input token (EURT, 6 decimals) and mints the output
token (TASK, 18 decimals) at an owner-set integer ``conversionRate``:
``rate`` input units buy one output unit. Only that one direction exists.
"""

import logging
from typing import Optional, Sequence

from tokenswap.chain.abi import FIXED_RATE_SWAP_ABI
from tokenswap.errors import ContractCallError, SwapError, SwapErrorKind, call_failure
from tokenswap.models import Failure, Result, Success, SwapQuote, SwapRequest
from tokenswap.routing.base import SwapEngine, invalid_amount

logger = logging.getLogger(__name__)


def fixed_rate_output(amount: int, rate: int, input_decimals: int, output_decimals: int) -> int:
    """``floor(amount * 10**(output_decimals - input_decimals) / rate)``.

    Matches the contract's integer math for 6 -> 18 decimals
    (``amount * 10**12 / rate``) and stays exact when the output token has
    fewer decimals than the input.
    """
    if rate <= 0:
        raise ValueError(f"conversion rate must be positive: {rate}")
    if amount < 0:
        raise ValueError(f"amount must be non-negative: {amount}")

    delta = output_decimals - input_decimals
    if delta >= 0:
        return (amount * 10**delta) // rate
    return amount // (10**-delta * rate)


class FixedRateEngine(SwapEngine):
    """Quotes and executes swaps at the contract's live conversion rate."""

    def __init__(
        self,
        provider,
        tokens,
        allowances,
        swap_address: str,
        input_token: str,
        output_token: str,
    ):
        super().__init__(provider, tokens, allowances)
        self.swap_address = swap_address
        self.input_token = input_token
        self.output_token = output_token
        self._contract = provider.contract(swap_address, FIXED_RATE_SWAP_ABI)

    @property
    def name(self) -> str:
        return "FixedRate"

    @property
    def spender(self) -> str:
        return self.swap_address

    @property
    def path(self) -> tuple:
        return (self.input_token, self.output_token)

    def supports(self, path: Sequence[str]) -> bool:
        return [a.lower() for a in path] == [self.input_token.lower(), self.output_token.lower()]

    async def conversion_rate(self) -> int:
        """Read the rate live; it is never cached across quotes."""
        return int(await self.provider.call(self._contract.functions.conversionRate()))

    async def quote(
        self,
        input_amount: int,
        path: Optional[Sequence[str]] = None,
        slippage_bps: Optional[int] = None,
    ) -> Result[SwapQuote]:
        """Quote ``input_amount`` of the input token.

        ``slippage_bps`` is accepted for interface parity and ignored: the
        contract takes no output guard, so the minimum equals the expectation.
        """
        failure = invalid_amount(input_amount)
        if failure:
            return failure

        if path is not None and not self.supports(path):
            return Failure(
                SwapError(
                    SwapErrorKind.PAIR_NOT_FOUND,
                    f"Fixed-rate exchange only swaps {self.input_token} -> {self.output_token}",
                    {"path": ",".join(path)},
                )
            )

        try:
            token_in = await self.tokens.describe(self.input_token)
            token_out = await self.tokens.describe(self.output_token)
            rate = await self.conversion_rate()
        except ContractCallError as e:
            logger.warning(f"Fixed-rate quote read failed: {e}")
            return Failure(call_failure(e, "Fixed-rate quote"))

        if rate <= 0:
            return Failure(
                SwapError(
                    SwapErrorKind.CONTRACT_CALL_ERROR,
                    f"Exchange reported a non-positive conversion rate ({rate})",
                    {"address": self.swap_address, "rate": rate, "transient": False},
                )
            )

        expected = fixed_rate_output(input_amount, rate, token_in.decimals, token_out.decimals)
        logger.debug(
            f"Fixed-rate quote: {input_amount} {token_in.symbol} -> {expected} {token_out.symbol} "
            f"(rate {rate})"
        )
        return Success(
            SwapQuote(
                input_amount=input_amount,
                expected_output=expected,
                minimum_output=expected,
                path=self.path,
                engine=self.name,
                rate=rate,
            )
        )

    def build_swap_call(self, request: SwapRequest, quote: SwapQuote):
        return self._contract.functions.swapEURTtoTASK(request.input_amount)

    def amount_out_from_receipt(self, request: SwapRequest, receipt: dict) -> Optional[int]:
        """``taskAmount`` of this exchange's ``SwapExecuted`` for the account."""
        for event in self.provider.decode_logs(self._contract, "SwapExecuted", receipt):
            if (
                event["address"].lower() == self.swap_address.lower()
                and event["user"].lower() == request.account.lower()
            ):
                return int(event["taskAmount"])
        return None

    def request(self, account: str, input_amount: int) -> SwapRequest:
        """Convenience constructor for this engine's only path."""
        return SwapRequest(account=account, path=self.path, input_amount=input_amount, slippage_bps=0)
