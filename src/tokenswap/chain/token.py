"""Read/write access to ERC20-style token contracts."""

import logging
from typing import Dict, Tuple

from tokenswap.chain.abi import ERC20_ABI
from tokenswap.errors import ContractCallError
from tokenswap.models import Allowance, TokenDescriptor

logger = logging.getLogger(__name__)


class TokenClient:
    """Token reads and approvals through a ``WalletProvider``.

    Decimals and symbol are static, so descriptors are cached per address for
    the client's lifetime. Balances and allowances are always re-queried.
    """

    def __init__(self, provider):
        self.provider = provider
        self._descriptors: Dict[str, TokenDescriptor] = {}

    def _contract(self, token: str):
        return self.provider.contract(token, ERC20_ABI)

    async def describe(self, token: str) -> TokenDescriptor:
        """Get (and cache) decimals and symbol.

        Raises:
            ContractCallError: the address did not answer ``decimals()`` or
                ``symbol()``; nothing is cached in that case
        """
        key = token.lower()
        cached = self._descriptors.get(key)
        if cached is not None:
            return cached

        contract = self._contract(token)
        decimals = await self.provider.call(contract.functions.decimals())
        symbol = await self.provider.call(contract.functions.symbol())

        try:
            descriptor = TokenDescriptor(address=token, decimals=int(decimals), symbol=str(symbol))
        except (TypeError, ValueError) as e:
            raise ContractCallError(
                f"Malformed token metadata from {token}: {e}",
                address=token,
                function="decimals()",
                transient=False,
            ) from e

        self._descriptors[key] = descriptor
        logger.debug(f"Token {token}: {descriptor.symbol} ({descriptor.decimals} decimals)")
        return descriptor

    def cached(self, token: str):
        """Descriptor if already known, else None. No network access."""
        return self._descriptors.get(token.lower())

    async def balance_of(self, token: str, account: str) -> int:
        contract = self._contract(token)
        return int(await self.provider.call(contract.functions.balanceOf(account)))

    async def snapshot(self, token: str, account: str) -> Tuple[TokenDescriptor, int]:
        """``{balance, decimals, symbol}`` as of the latest chain state."""
        descriptor = await self.describe(token)
        balance = await self.balance_of(token, account)
        return descriptor, balance

    async def allowance(self, token: str, owner: str, spender: str) -> Allowance:
        contract = self._contract(token)
        amount = await self.provider.call(contract.functions.allowance(owner, spender))
        return Allowance(owner=owner, spender=spender, amount=int(amount))

    async def approve(self, token: str, spender: str, amount: int):
        """Submit ``approve(spender, amount)``. Returns the transaction handle."""
        if amount < 0:
            raise ValueError(f"approval amount must be non-negative: {amount}")
        contract = self._contract(token)
        logger.info(f"Approving {spender} for {amount} base units of {token}")
        return await self.provider.transact(contract.functions.approve(spender, amount))
