"""Swap engines: fixed-rate exchange and constant-product AMM."""

from tokenswap.routing.amm import AMMEngine, SwapDirection
from tokenswap.routing.base import SwapEngine
from tokenswap.routing.factory import create_amm_engine, create_fixed_rate_engine, create_pair_oracle
from tokenswap.routing.fixed_rate import FixedRateEngine

__all__ = [
    "AMMEngine",
    "FixedRateEngine",
    "SwapDirection",
    "SwapEngine",
    "create_amm_engine",
    "create_fixed_rate_engine",
    "create_pair_oracle",
]
