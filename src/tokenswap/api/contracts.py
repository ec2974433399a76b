"""Request/response models for the HTTP API.

Amounts travel as strings: base-unit integers exceed the JSON number range
and the formatted values must not be rounded by clients.
"""

from typing import Optional

from fastapi import HTTPException
from pydantic import BaseModel, Field

from tokenswap.chain.pair import PoolStatus
from tokenswap.errors import SwapError, SwapErrorKind
from tokenswap.models import SwapQuote, TokenDescriptor
from tokenswap.units import format_units


class ErrorResponse(BaseModel):
    """Structured failure, keyed by error kind."""

    kind: str
    message: str
    details: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_error(cls, error: SwapError) -> "ErrorResponse":
        return cls(**error.to_dict())


class TokenBalance(BaseModel):
    address: str
    symbol: str
    decimals: int
    balance: str = Field(..., description="Balance in base units")
    formatted: str = Field(..., description="Balance in whole tokens")


class BalancesResponse(BaseModel):
    """Native and token balances for one account."""

    account: str
    native: str
    native_formatted: str
    tokens: list[TokenBalance]
    as_of: float


class QuoteResponse(BaseModel):
    """Priced swap; advisory until submitted."""

    engine: str
    path: list[str]
    input_amount: str
    expected_output: str
    minimum_output: str
    expected_output_formatted: str
    minimum_output_formatted: str
    slippage_bps: int
    rate: Optional[str] = None
    reserve_in: Optional[str] = None
    reserve_out: Optional[str] = None

    @classmethod
    def from_quote(cls, quote: SwapQuote, output: TokenDescriptor) -> "QuoteResponse":
        reserves = quote.reserves
        return cls(
            engine=quote.engine,
            path=list(quote.path),
            input_amount=str(quote.input_amount),
            expected_output=str(quote.expected_output),
            minimum_output=str(quote.minimum_output),
            expected_output_formatted=format_units(quote.expected_output, output.decimals),
            minimum_output_formatted=format_units(quote.minimum_output, output.decimals),
            slippage_bps=quote.slippage_bps,
            rate=str(quote.rate) if quote.rate is not None else None,
            reserve_in=str(reserves.reserve_a) if reserves else None,
            reserve_out=str(reserves.reserve_b) if reserves else None,
        )


class PoolResponse(BaseModel):
    token_in: str
    token_out: str
    exists: bool
    has_liquidity: bool
    pair: Optional[str] = None
    reserve_in: Optional[str] = None
    reserve_out: Optional[str] = None

    @classmethod
    def from_status(cls, status: PoolStatus) -> "PoolResponse":
        reserves = status.reserves
        return cls(
            token_in=status.token_a,
            token_out=status.token_b,
            exists=status.exists,
            has_liquidity=status.has_liquidity,
            pair=status.pair,
            reserve_in=str(reserves.reserve_a) if reserves else None,
            reserve_out=str(reserves.reserve_b) if reserves else None,
        )


_STATUS_BY_KIND = {
    SwapErrorKind.INVALID_AMOUNT: 422,
    SwapErrorKind.INSUFFICIENT_BALANCE: 422,
    SwapErrorKind.UNVERIFIED_TOKEN: 422,
    SwapErrorKind.PAIR_NOT_FOUND: 404,
    SwapErrorKind.INSUFFICIENT_ALLOWANCE: 409,
    SwapErrorKind.INSUFFICIENT_LIQUIDITY: 409,
    SwapErrorKind.CONTRACT_REVERT: 409,
    SwapErrorKind.CONTRACT_CALL_ERROR: 502,
}


def error_exception(error: SwapError) -> HTTPException:
    """HTTP error carrying the structured failure as its detail."""
    return HTTPException(
        status_code=_STATUS_BY_KIND.get(error.kind, 400),
        detail=ErrorResponse.from_error(error).model_dump(),
    )
