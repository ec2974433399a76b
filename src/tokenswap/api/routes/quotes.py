"""Quote endpoints. Quotes are advisory; nothing is signed here."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from tokenswap.api.contracts import QuoteResponse, error_exception
from tokenswap.errors import ContractCallError, call_failure
from tokenswap.models import Failure, Result, SwapQuote
from tokenswap.routing.amm import SwapDirection
from tokenswap.swap.service import SwapService, get_swap_service

router = APIRouter(prefix="/quotes")


async def _respond(service: SwapService, result: Result[SwapQuote]) -> QuoteResponse:
    if isinstance(result, Failure):
        raise error_exception(result.error)
    quote = result.value
    try:
        output = await service.tokens.describe(quote.token_out)
    except ContractCallError as e:
        raise error_exception(call_failure(e, "Token metadata read"))
    return QuoteResponse.from_quote(quote, output)


@router.get("/fixed-rate", response_model=QuoteResponse)
async def quote_fixed_rate(
    amount: str = Query(..., description="Input amount in whole tokens, e.g. 100.5"),
    service: SwapService = Depends(get_swap_service),
) -> QuoteResponse:
    """Quote the fixed-rate exchange at its current conversion rate."""
    return await _respond(service, await service.quote_fixed(amount))


@router.get("/amm", response_model=QuoteResponse)
async def quote_amm(
    amount: str = Query(..., description="Input amount in whole tokens"),
    direction: SwapDirection = Query(SwapDirection.A_TO_B),
    slippage_bps: Optional[int] = Query(None, ge=0, le=10_000),
    service: SwapService = Depends(get_swap_service),
) -> QuoteResponse:
    """Quote the AMM pool, with the slippage floor applied."""
    return await _respond(service, await service.quote_amm(direction, amount, slippage_bps))
