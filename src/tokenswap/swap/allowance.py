"""Approve-then-swap sequencing."""

import logging
from typing import Optional

from tokenswap.errors import ContractCallError, ContractRevertError, call_failure, classify_revert
from tokenswap.models import Allowance, Failure, Result, Success

logger = logging.getLogger(__name__)


class AllowanceCoordinator:
    """Makes sure a spender may pull ``required`` tokens before a swap.

    The approval is awaited until confirmed before returning, so the swap
    that follows never races an allowance the chain has not seen yet.
    The current allowance is read on every call unless the caller passes
    one in; a retry after a failed swap finds the earlier approval and
    submits nothing.
    """

    def __init__(self, tokens):
        self.tokens = tokens

    async def ensure_allowance(
        self,
        token: str,
        owner: str,
        spender: str,
        required: int,
        current: Optional[Allowance] = None,
    ) -> Result[Optional[str]]:
        """Returns ``Success(None)`` when no approval was needed, else
        ``Success(tx_hash)`` of the confirmed approval.

        ``current`` is an allowance the caller has just read; when given,
        it is used instead of reading again.
        """
        if current is None:
            try:
                current = await self.tokens.allowance(token, owner, spender)
            except ContractCallError as e:
                logger.warning(f"Allowance read failed for {owner} -> {spender}: {e}")
                return Failure(call_failure(e, "Allowance check"))

        if current.amount >= required:
            logger.debug(f"Allowance {current.amount} covers {required}; no approval needed")
            return Success(None)

        logger.info(f"Allowance {current.amount} < {required}; approving {spender} for {required}")
        try:
            handle = await self.tokens.approve(token, spender, required)
            await handle.wait()
        except ContractRevertError as e:
            return Failure(classify_revert(e, "Approval"))
        except ContractCallError as e:
            return Failure(call_failure(e, "Approval submission"))

        logger.info(f"Approval {handle.tx_hash} confirmed")
        return Success(handle.tx_hash)
