"""Wallet/provider capability used by the engine.

Wraps ``web3.AsyncWeb3`` for reads and a ``Signer`` for state-changing calls.
The engine only ever uses this surface:

- ``contract(address, abi)`` to bind a contract
- ``call(fn)`` for view functions
- ``transact(fn)`` for mutating functions, returning a ``TransactionHandle``
- ``get_balance(address)``, ``get_signer()``, ``subscribe_accounts()``, ``now()``
- ``decode_logs(contract, event, receipt)`` to read what a mined call emitted

Read failures become ``ContractCallError``; execution rejections become
``ContractRevertError``.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from eth_account import Account
from web3 import AsyncWeb3, Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError
from web3.logs import DISCARD

from tokenswap.chain.accounts import AccountStream
from tokenswap.config import Settings, get_settings
from tokenswap.errors import ConfigurationError, ContractCallError, ContractRevertError

logger = logging.getLogger(__name__)


def _describe(fn: Any) -> str:
    """Best-effort 'name(args)' label of a bound contract function."""
    name = getattr(fn, "fn_name", None) or getattr(fn, "abi_element_identifier", "call")
    args = getattr(fn, "args", ()) or ()
    return f"{name}({', '.join(str(a) for a in args)})"


class Signer(ABC):
    """Something that can authorize and broadcast a transaction."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Checksummed address of the signing account."""
        pass

    @abstractmethod
    async def send(self, w3: AsyncWeb3, fn: Any) -> str:
        """Build, sign and broadcast ``fn``. Returns the 0x-prefixed tx hash."""
        pass


class LocalSigner(Signer):
    """Signs with an in-process private key via eth_account."""

    def __init__(self, private_key: str, chain_id: int):
        self._account = Account.from_key(private_key)
        self.chain_id = chain_id

    @property
    def address(self) -> str:
        return self._account.address

    async def send(self, w3: AsyncWeb3, fn: Any) -> str:
        nonce = await w3.eth.get_transaction_count(self.address, "pending")
        # build_transaction estimates gas, so a revert surfaces here
        tx = await fn.build_transaction(
            {"from": self.address, "nonce": nonce, "chainId": self.chain_id}
        )
        signed = self._account.sign_transaction(tx)
        tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)


class TransactionHandle:
    """A submitted transaction. ``wait()`` blocks until it is mined."""

    def __init__(self, w3: AsyncWeb3, tx_hash: str, label: str = ""):
        self.w3 = w3
        self.tx_hash = tx_hash
        self.label = label
        self.receipt: Optional[dict] = None

    async def wait(self) -> dict:
        """Await the receipt.

        Raises:
            ContractRevertError: mined with ``status == 0``
        """
        if self.receipt is None:
            receipt = await self.w3.eth.wait_for_transaction_receipt(self.tx_hash)
            self.receipt = dict(receipt)

        if self.receipt.get("status") == 0:
            logger.error(f"Transaction {self.tx_hash} ({self.label}) reverted")
            raise ContractRevertError(
                f"{self.label or 'transaction'} reverted in block {self.receipt.get('blockNumber')}",
                reason="execution reverted",
                tx_hash=self.tx_hash,
            )
        logger.info(f"Transaction {self.tx_hash} ({self.label}) confirmed")
        return self.receipt

    def __repr__(self) -> str:
        return f"TransactionHandle({self.tx_hash!r}, {self.label!r})"


class WalletProvider:
    """Opaque wallet/provider capability."""

    def __init__(
        self,
        w3: AsyncWeb3,
        signer: Optional[Signer] = None,
        accounts: Optional[AccountStream] = None,
    ):
        self.w3 = w3
        self._signer = signer
        self._accounts = accounts or AccountStream()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "WalletProvider":
        settings = settings or get_settings()
        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(settings.rpc_url))
        signer = None
        if settings.private_key:
            signer = LocalSigner(settings.private_key, settings.chain_id)
            logger.info(f"Loaded signer: {signer.address}")
        else:
            logger.warning("PRIVATE_KEY not set - read-only provider")
        return cls(w3, signer=signer)

    @property
    def account(self) -> str:
        return self.get_signer().address

    def get_signer(self) -> Signer:
        if self._signer is None:
            raise ConfigurationError("No signer configured; set PRIVATE_KEY to submit transactions")
        return self._signer

    def subscribe_accounts(self) -> AccountStream:
        return self._accounts

    def now(self) -> int:
        """Wall-clock unix seconds, used for swap deadlines."""
        return int(time.time())

    def contract(self, address: str, abi: list) -> Any:
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def decode_logs(self, contract: Any, event_name: str, receipt: dict) -> list:
        """Decode ``event_name`` logs from a mined receipt.

        Each entry is the event's arguments plus the emitting ``address``;
        logs of other shapes are skipped. Same-signature events from other
        contracts are included, so callers filter on ``address``.
        """
        event = getattr(contract.events, event_name)()
        return [
            {"address": log["address"], **log["args"]}
            for log in event.process_receipt(receipt, errors=DISCARD)
        ]

    async def get_balance(self, address: str) -> int:
        try:
            return int(await self.w3.eth.get_balance(Web3.to_checksum_address(address)))
        except Exception as e:
            raise ContractCallError(
                f"Native balance read failed: {e}", address=address, function="eth_getBalance"
            ) from e

    async def call(self, fn: Any) -> Any:
        """Run a view function.

        Raises:
            ContractCallError: ``transient=False`` when the target did not
                answer like the expected contract, ``True`` otherwise
        """
        label = _describe(fn)
        address = getattr(fn, "address", None)
        try:
            return await fn.call()
        except (BadFunctionCallOutput, ContractLogicError) as e:
            raise ContractCallError(
                f"{label} returned no usable data: {e}",
                address=address,
                function=label,
                transient=False,
            ) from e
        except Exception as e:
            raise ContractCallError(
                f"{label} failed: {type(e).__name__}: {e}",
                address=address,
                function=label,
                transient=True,
            ) from e

    async def transact(self, fn: Any) -> TransactionHandle:
        """Submit a mutating call through the signer.

        Raises:
            ContractRevertError: the call reverts during gas estimation
            ContractCallError: the provider could not accept the transaction
        """
        label = _describe(fn)
        signer = self.get_signer()
        try:
            tx_hash = await signer.send(self.w3, fn)
        except ContractLogicError as e:
            logger.error(f"{label} rejected before broadcast: {e}")
            raise ContractRevertError(f"{label} reverted: {e}", reason=str(e)) from e
        except Exception as e:
            raise ContractCallError(
                f"Submitting {label} failed: {type(e).__name__}: {e}",
                address=getattr(fn, "address", None),
                function=label,
            ) from e

        logger.info(f"Submitted {label}: {tx_hash}")
        return TransactionHandle(self.w3, tx_hash, label)
