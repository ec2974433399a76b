"""Liquidity pool inspection."""

from fastapi import APIRouter, Depends

from tokenswap.api.contracts import PoolResponse, error_exception
from tokenswap.errors import ContractCallError, call_failure
from tokenswap.routing.amm import SwapDirection
from tokenswap.swap.service import SwapService, get_swap_service

router = APIRouter()


@router.get("/pools/{direction}", response_model=PoolResponse)
async def get_pool(
    direction: SwapDirection,
    service: SwapService = Depends(get_swap_service),
) -> PoolResponse:
    """Pair address and reserves, ordered for ``direction``."""
    try:
        status = await service.pool_status(direction)
    except ContractCallError as e:
        raise error_exception(call_failure(e, "Pool lookup"))
    return PoolResponse.from_status(status)
