"""Account-change notifications from the wallet as an async event stream.

The wallet collaborator calls ``publish()`` whenever its exposed accounts
change; consumers iterate the stream and react (typically by invalidating
cached balances). ``close()`` cancels the subscription and ends iteration.

Example:
    stream = provider.subscribe_accounts()
    async for event in stream:
        if event.disconnected:
            ...
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

_CLOSED = object()


@dataclass(frozen=True)
class AccountEvent:
    """The wallet's account list changed."""

    accounts: tuple
    timestamp: float = field(default_factory=time.time)

    @property
    def account(self) -> Optional[str]:
        """Active account, or None when the wallet disconnected."""
        return self.accounts[0] if self.accounts else None

    @property
    def disconnected(self) -> bool:
        return not self.accounts


class AccountStream:
    """Cancellable subscription producing ``AccountEvent`` values."""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, accounts: Sequence[str]) -> AccountEvent:
        """Push a new account list. Ignored after ``close()``."""
        event = AccountEvent(accounts=tuple(accounts))
        if self._closed:
            logger.debug(f"Account event after close dropped: {event.accounts}")
            return event
        self._queue.put_nowait(event)
        return event

    def close(self) -> None:
        """Cancel the subscription; pending events are still delivered first."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> AccountEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            # keep the sentinel so every later __anext__ also stops
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.close()
