"""Account balance endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from web3 import Web3

from tokenswap.api.contracts import BalancesResponse, TokenBalance, error_exception
from tokenswap.errors import ContractCallError, call_failure
from tokenswap.swap.service import SwapService, get_swap_service
from tokenswap.units import format_units

logger = logging.getLogger(__name__)

router = APIRouter()

NATIVE_DECIMALS = 18


@router.get("/balances/{account}", response_model=BalancesResponse)
async def get_balances(
    account: str,
    refresh: bool = Query(False, description="Bypass the cached snapshot"),
    service: SwapService = Depends(get_swap_service),
) -> BalancesResponse:
    """Native and token balances of ``account``."""
    if not Web3.is_address(account):
        raise HTTPException(status_code=422, detail=f"Invalid account address: {account}")
    account = Web3.to_checksum_address(account)

    try:
        snapshot = await service.balances(account, refresh=refresh)
        tokens = []
        for address, amount in snapshot.tokens.items():
            descriptor = await service.tokens.describe(address)
            tokens.append(
                TokenBalance(
                    address=address,
                    symbol=descriptor.symbol,
                    decimals=descriptor.decimals,
                    balance=str(amount),
                    formatted=format_units(amount, descriptor.decimals),
                )
            )
    except ContractCallError as e:
        logger.warning(f"Balance lookup for {account} failed: {e}")
        raise error_exception(call_failure(e, "Balance lookup"))

    return BalancesResponse(
        account=account,
        native=str(snapshot.native),
        native_formatted=format_units(snapshot.native, NATIVE_DECIMALS),
        tokens=tokens,
        as_of=snapshot.as_of,
    )
