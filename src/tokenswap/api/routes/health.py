"""Liveness and engine readiness endpoints."""

import logging

from fastapi import APIRouter, Depends

from tokenswap import __version__
from tokenswap.config import get_settings
from tokenswap.errors import ContractCallError
from tokenswap.swap.service import SwapService, get_swap_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "tokenswap"}


@router.get("/health/detailed")
async def detailed_health(service: SwapService = Depends(get_swap_service)):
    """Check both engines with one live read each.

    A failed read marks the service ``degraded``; the endpoint itself still
    answers 200 so it can be scraped while the RPC node is down.
    """
    engines = {}

    try:
        engines["fixed_rate"] = {"ready": True, "rate": str(await service.fixed_rate.conversion_rate())}
    except ContractCallError as e:
        logger.warning(f"Fixed-rate health check failed: {e}")
        engines["fixed_rate"] = {"ready": False, "error": str(e)}

    try:
        pool = await service.pool_status()
        engines["amm"] = {"ready": pool.has_liquidity, "pair": pool.pair}
    except ContractCallError as e:
        logger.warning(f"AMM health check failed: {e}")
        engines["amm"] = {"ready": False, "error": str(e)}

    return {
        "status": "healthy" if all(e["ready"] for e in engines.values()) else "degraded",
        "service": "tokenswap",
        "version": __version__,
        "engines": engines,
        "config": get_settings().get_safe_dict(),
    }
