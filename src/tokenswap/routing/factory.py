"""Factory for creating swap engines from settings."""

import logging
from typing import Optional

from web3 import Web3

from tokenswap.chain.pair import PairOracle
from tokenswap.config import Settings, get_settings
from tokenswap.errors import ConfigurationError
from tokenswap.routing.amm import AMMEngine
from tokenswap.routing.fixed_rate import FixedRateEngine

logger = logging.getLogger(__name__)


def checksum(address: Optional[str], field: str) -> str:
    """Normalize a configured address, failing loudly on garbage."""
    if not address:
        raise ConfigurationError(f"{field} is not configured")
    try:
        return Web3.to_checksum_address(address)
    except ValueError as e:
        raise ConfigurationError(f"{field} is not a valid address: {address}") from e


def create_fixed_rate_engine(
    provider,
    tokens,
    allowances,
    settings: Optional[Settings] = None,
) -> FixedRateEngine:
    """EURT -> TASK engine against the configured exchange contract."""
    settings = settings or get_settings()
    engine = FixedRateEngine(
        provider,
        tokens,
        allowances,
        swap_address=checksum(settings.fixed_rate_swap_address, "FIXED_RATE_SWAP_ADDRESS"),
        input_token=checksum(settings.eurt_address, "EURT_ADDRESS"),
        output_token=checksum(settings.task_address, "TASK_ADDRESS"),
    )
    logger.debug(f"Created fixed-rate engine at {engine.swap_address}")
    return engine


def create_pair_oracle(provider, settings: Optional[Settings] = None) -> PairOracle:
    settings = settings or get_settings()
    factory = settings.amm_factory_address
    return PairOracle(
        provider,
        factory_address=checksum(factory, "AMM_FACTORY_ADDRESS") if factory else None,
        router_address=checksum(settings.amm_router_address, "AMM_ROUTER_ADDRESS"),
    )


def create_amm_engine(
    provider,
    tokens,
    allowances,
    pairs: Optional[PairOracle] = None,
    settings: Optional[Settings] = None,
) -> AMMEngine:
    """EURT <-> TATA engine over the configured V2 router.

    Token A is EURT, token B is TATA, so ``A_TO_B`` sells EURT.
    """
    settings = settings or get_settings()
    engine = AMMEngine(
        provider,
        tokens,
        allowances,
        pairs=pairs or create_pair_oracle(provider, settings),
        router_address=checksum(settings.amm_router_address, "AMM_ROUTER_ADDRESS"),
        token_a=checksum(settings.eurt_address, "EURT_ADDRESS"),
        token_b=checksum(settings.tata_address, "TATA_ADDRESS"),
        default_slippage_bps=settings.default_slippage_bps,
        deadline_seconds=settings.deadline_seconds,
        router_pricing=settings.amm_router_pricing,
    )
    if not settings.amm_router_pricing:
        logger.warning("AMM router pricing disabled - quotes use the local 997/1000 formula")
    return engine
