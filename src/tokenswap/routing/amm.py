"""Constant-product AMM swaps through a Uniswap V2 style router.

Quotes are priced by the router's own ``getAmountsOut`` so the client agrees
bit-for-bit with on-chain execution; the local formula below is kept for
offline previews and as an opt-out when router pricing is disabled.
Execution passes ``amountOutMin`` and ``deadline`` to the router, which
enforces both on-chain.
"""

import logging
from enum import Enum
from typing import Optional, Sequence

from tokenswap.chain.abi import ERC20_ABI, UNISWAP_V2_ROUTER_ABI
from tokenswap.errors import ContractCallError, SwapError, SwapErrorKind, call_failure, token_failure
from tokenswap.models import Failure, Result, Success, SwapQuote, SwapRequest
from tokenswap.routing.base import SwapEngine, invalid_amount

logger = logging.getLogger(__name__)

BPS_DENOMINATOR = 10_000
DEFAULT_SLIPPAGE_BPS = 50  # 0.5%

# Uniswap V2: 0.3% fee taken from the input
FEE_NUMERATOR = 997
FEE_DENOMINATOR = 1000


class SwapDirection(str, Enum):
    """Which way to trade across the configured pair."""

    A_TO_B = "a_to_b"
    B_TO_A = "b_to_a"


def constant_product_amount_out(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_numerator: int = FEE_NUMERATOR,
    fee_denominator: int = FEE_DENOMINATOR,
) -> int:
    """UniswapV2Library.getAmountOut, in exact integer arithmetic.

    ``amountOut = reserveOut * amountInWithFee / (reserveIn * 1000 + amountInWithFee)``
    with ``amountInWithFee = amountIn * 997``.
    """
    if amount_in <= 0:
        raise ValueError(f"amount_in must be positive: {amount_in}")
    if reserve_in <= 0 or reserve_out <= 0:
        raise ValueError(f"reserves must be positive: in={reserve_in}, out={reserve_out}")

    amount_in_with_fee = amount_in * fee_numerator
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * fee_denominator + amount_in_with_fee
    return numerator // denominator


def apply_slippage(expected_output: int, slippage_bps: int = DEFAULT_SLIPPAGE_BPS) -> int:
    """Minimum acceptable output: ``floor(expected * (10000 - bps) / 10000)``."""
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise ValueError(f"slippage_bps must be within [0, 10000]: {slippage_bps}")
    if expected_output < 0:
        raise ValueError(f"expected_output must be non-negative: {expected_output}")
    return expected_output * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


class AMMEngine(SwapEngine):
    """Two-token swaps over one V2 pair."""

    def __init__(
        self,
        provider,
        tokens,
        allowances,
        pairs,
        router_address: str,
        token_a: str,
        token_b: str,
        default_slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        deadline_seconds: int = 20 * 60,
        router_pricing: bool = True,
    ):
        super().__init__(provider, tokens, allowances)
        self.pairs = pairs
        self.router_address = router_address
        self.token_a = token_a
        self.token_b = token_b
        self.default_slippage_bps = default_slippage_bps
        self.deadline_seconds = deadline_seconds
        self.router_pricing = router_pricing
        self._router = provider.contract(router_address, UNISWAP_V2_ROUTER_ABI)

    @property
    def name(self) -> str:
        return "AMM"

    @property
    def spender(self) -> str:
        return self.router_address

    def path(self, direction: SwapDirection) -> tuple:
        """Fixed two-token path for ``direction``."""
        direction = SwapDirection(direction)
        if direction == SwapDirection.A_TO_B:
            return (self.token_a, self.token_b)
        return (self.token_b, self.token_a)

    def supports(self, path: Sequence[str]) -> bool:
        if len(path) != 2:
            return False
        pair = {self.token_a.lower(), self.token_b.lower()}
        return {a.lower() for a in path} == pair and path[0].lower() != path[1].lower()

    def deadline(self) -> int:
        return self.provider.now() + self.deadline_seconds

    async def _verify_tokens(self, path: Sequence[str]) -> Optional[Failure]:
        """Every path member must answer ``symbol()`` and ``decimals()``."""
        for token in path:
            try:
                await self.tokens.describe(token)
            except ContractCallError as e:
                logger.warning(f"Token {token} failed verification: {e}")
                return Failure(token_failure(e, token))
        return None

    async def _router_amount_out(self, input_amount: int, path: Sequence[str]) -> int:
        amounts = await self.provider.call(
            self._router.functions.getAmountsOut(input_amount, list(path))
        )
        return int(amounts[-1])

    async def quote(
        self,
        input_amount: int,
        path: Optional[Sequence[str]] = None,
        slippage_bps: Optional[int] = None,
    ) -> Result[SwapQuote]:
        """Price ``input_amount`` along ``path`` (default A -> B).

        Order of checks: amount, token verification, pair existence, pool
        liquidity, price, slippage floor.
        """
        failure = invalid_amount(input_amount)
        if failure:
            return failure

        path = tuple(path) if path is not None else self.path(SwapDirection.A_TO_B)
        slippage_bps = self.default_slippage_bps if slippage_bps is None else slippage_bps
        if not self.supports(path):
            return Failure(
                SwapError(
                    SwapErrorKind.PAIR_NOT_FOUND,
                    f"AMM engine is configured for {self.token_a}/{self.token_b} only",
                    {"path": ",".join(path)},
                )
            )
        if not 0 <= slippage_bps <= BPS_DENOMINATOR:
            return Failure(
                SwapError(
                    SwapErrorKind.INVALID_AMOUNT,
                    f"Slippage must be between 0 and {BPS_DENOMINATOR} bps, got {slippage_bps}",
                    {"slippage_bps": slippage_bps},
                )
            )

        failure = await self._verify_tokens(path)
        if failure:
            return failure

        token_in, token_out = path
        try:
            pair = await self.pairs.find_pair(token_in, token_out)
            if pair is None:
                return Failure(
                    SwapError(
                        SwapErrorKind.PAIR_NOT_FOUND,
                        "No liquidity pool exists for this token pair",
                        {"token_in": token_in, "token_out": token_out},
                    )
                )

            reserves = await self.pairs.get_reserves(pair, token_in, token_out)
            if reserves.is_empty:
                return Failure(
                    SwapError(
                        SwapErrorKind.INSUFFICIENT_LIQUIDITY,
                        "The pool exists but holds no liquidity",
                        {"pair": pair, "reserve_in": reserves.reserve_a, "reserve_out": reserves.reserve_b},
                    )
                )

            if self.router_pricing:
                expected = await self._router_amount_out(input_amount, path)
            else:
                expected = constant_product_amount_out(
                    input_amount, reserves.reserve_a, reserves.reserve_b
                )
        except ContractCallError as e:
            logger.warning(f"AMM quote read failed: {e}")
            return Failure(call_failure(e, "AMM quote"))

        minimum = apply_slippage(expected, slippage_bps)
        logger.debug(
            f"AMM quote: {input_amount} {token_in} -> {expected} {token_out} "
            f"(min {minimum} @ {slippage_bps} bps, reserves {reserves.reserve_a}/{reserves.reserve_b})"
        )
        return Success(
            SwapQuote(
                input_amount=input_amount,
                expected_output=expected,
                minimum_output=minimum,
                path=path,
                engine=self.name,
                slippage_bps=slippage_bps,
                reserves=reserves,
            )
        )

    def build_swap_call(self, request: SwapRequest, quote: SwapQuote):
        deadline = request.deadline if request.deadline is not None else self.deadline()
        if deadline <= self.provider.now():
            # the router rejects it; submitting surfaces that as a revert
            logger.warning(f"Submitting swap with a deadline already in the past ({deadline})")
        return self._router.functions.swapExactTokensForTokens(
            request.input_amount,
            quote.minimum_output,
            list(request.path),
            request.account,
            deadline,
        )

    def amount_out_from_receipt(self, request: SwapRequest, receipt: dict) -> Optional[int]:
        """Sum of output-token ``Transfer`` logs paying the account."""
        token_out = self.provider.contract(request.token_out, ERC20_ABI)
        credited = [
            int(event["value"])
            for event in self.provider.decode_logs(token_out, "Transfer", receipt)
            if event["address"].lower() == request.token_out.lower()
            and event["to"].lower() == request.account.lower()
        ]
        return sum(credited) if credited else None

    def request(
        self,
        account: str,
        direction: SwapDirection,
        input_amount: int,
        slippage_bps: Optional[int] = None,
        deadline: Optional[int] = None,
    ) -> SwapRequest:
        return SwapRequest(
            account=account,
            path=self.path(direction),
            input_amount=input_amount,
            slippage_bps=self.default_slippage_bps if slippage_bps is None else slippage_bps,
            deadline=deadline,
        )
