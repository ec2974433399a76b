"""Liquidity pair discovery and reserve reads for V2-style AMMs."""

import logging
from dataclasses import dataclass
from typing import Optional

from tokenswap.chain.abi import (
    UNISWAP_V2_FACTORY_ABI,
    UNISWAP_V2_PAIR_ABI,
    UNISWAP_V2_ROUTER_ABI,
)
from tokenswap.errors import ConfigurationError, ContractCallError
from tokenswap.models import PairReserves

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolStatus:
    """Whether a market exists for two tokens and whether it holds liquidity."""

    token_a: str
    token_b: str
    pair: Optional[str] = None
    reserves: Optional[PairReserves] = None

    @property
    def exists(self) -> bool:
        return self.pair is not None

    @property
    def has_liquidity(self) -> bool:
        return self.reserves is not None and not self.reserves.is_empty


class PairOracle:
    """Finds the pair for two tokens and reads its reserves.

    The factory address is taken from settings when known, otherwise it is
    resolved once from ``router.factory()``.
    """

    def __init__(self, provider, factory_address: Optional[str] = None, router_address: Optional[str] = None):
        if not factory_address and not router_address:
            raise ConfigurationError("PairOracle needs a factory or a router address")
        self.provider = provider
        self.factory_address = factory_address
        self.router_address = router_address

    async def _factory(self):
        if self.factory_address is None:
            router = self.provider.contract(self.router_address, UNISWAP_V2_ROUTER_ABI)
            self.factory_address = await self.provider.call(router.functions.factory())
            logger.info(f"Resolved factory {self.factory_address} from router {self.router_address}")
        return self.provider.contract(self.factory_address, UNISWAP_V2_FACTORY_ABI)

    async def find_pair(self, token_a: str, token_b: str) -> Optional[str]:
        """Pair address, or None when the factory returns the zero address."""
        factory = await self._factory()
        pair = await self.provider.call(factory.functions.getPair(token_a, token_b))
        if not pair or int(pair, 16) == 0:
            logger.info(f"No pair for {token_a}/{token_b}")
            return None
        return pair

    async def get_reserves(self, pair: str, token_in: str, token_out: str) -> PairReserves:
        """Reserves ordered as (token_in, token_out).

        The pair stores reserves by ``token0``/``token1`` (sorted addresses),
        which need not match the request order.

        Raises:
            ContractCallError: read failed, or ``token_in`` is not in the pair
        """
        contract = self.provider.contract(pair, UNISWAP_V2_PAIR_ABI)
        reserve0, reserve1, timestamp = await self.provider.call(contract.functions.getReserves())
        token0 = await self.provider.call(contract.functions.token0())

        if token0.lower() == token_in.lower():
            reserve_in, reserve_out = reserve0, reserve1
        elif token0.lower() == token_out.lower():
            reserve_in, reserve_out = reserve1, reserve0
        else:
            raise ContractCallError(
                f"Pair {pair} token0 {token0} matches neither {token_in} nor {token_out}",
                address=pair,
                function="token0()",
                transient=False,
            )

        return PairReserves(
            pair=pair,
            token_a=token_in,
            reserve_a=int(reserve_in),
            token_b=token_out,
            reserve_b=int(reserve_out),
            as_of=int(timestamp),
        )

    async def pool_status(self, token_a: str, token_b: str) -> PoolStatus:
        pair = await self.find_pair(token_a, token_b)
        if pair is None:
            return PoolStatus(token_a=token_a, token_b=token_b)
        reserves = await self.get_reserves(pair, token_a, token_b)
        return PoolStatus(token_a=token_a, token_b=token_b, pair=pair, reserves=reserves)

