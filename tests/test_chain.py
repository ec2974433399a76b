"""Tests for the token client, pair oracle and account stream."""

import asyncio

import pytest

from tokenswap.chain.accounts import AccountStream
from tokenswap.chain.pair import PairOracle
from tokenswap.errors import ConfigurationError, ContractCallError

from conftest import ALICE, EURT, FACTORY, FIXED_SWAP, NOT_A_TOKEN, PAIR, ROUTER, TASK, TATA


class TestTokenClient:
    """Tests for ERC20 reads and approvals."""

    @pytest.mark.asyncio
    async def test_describe_is_cached(self, tokens, chain):
        descriptor = await tokens.describe(EURT)
        assert descriptor.symbol == "EURT"
        assert descriptor.decimals == 6

        reads = chain.reads
        assert await tokens.describe(EURT.upper().replace("0X", "0x")) is descriptor
        assert chain.reads == reads

    @pytest.mark.asyncio
    async def test_describe_non_token(self, tokens):
        with pytest.raises(ContractCallError) as exc_info:
            await tokens.describe(NOT_A_TOKEN)
        assert exc_info.value.transient is False
        assert tokens.cached(NOT_A_TOKEN) is None

    @pytest.mark.asyncio
    async def test_describe_unreachable_is_transient(self, tokens, chain):
        chain.offline = True
        with pytest.raises(ContractCallError) as exc_info:
            await tokens.describe(EURT)
        assert exc_info.value.transient is True

    @pytest.mark.asyncio
    async def test_balances_are_never_cached(self, tokens, chain):
        assert await tokens.balance_of(EURT, ALICE) == 1000 * 10**6
        chain.contracts[EURT.lower()].mint(ALICE, 1)
        assert await tokens.balance_of(EURT, ALICE) == 1000 * 10**6 + 1

    @pytest.mark.asyncio
    async def test_snapshot(self, tokens):
        descriptor, balance = await tokens.snapshot(EURT, ALICE)
        assert (descriptor.symbol, descriptor.decimals, balance) == ("EURT", 6, 1000 * 10**6)

    @pytest.mark.asyncio
    async def test_approve_then_read_allowance(self, tokens):
        before = await tokens.allowance(EURT, ALICE, FIXED_SWAP)
        assert before.amount == 0

        handle = await tokens.approve(EURT, FIXED_SWAP, 250)
        await handle.wait()

        after = await tokens.allowance(EURT, ALICE, FIXED_SWAP)
        assert after.amount == 250
        assert (after.owner, after.spender) == (ALICE, FIXED_SWAP)

    @pytest.mark.asyncio
    async def test_negative_approval_rejected(self, tokens, chain):
        with pytest.raises(ValueError):
            await tokens.approve(EURT, FIXED_SWAP, -1)
        assert chain.submitted() == []


class TestPairOracle:
    """Tests for pair discovery and reserve ordering."""

    def test_needs_factory_or_router(self, provider):
        with pytest.raises(ConfigurationError):
            PairOracle(provider)

    @pytest.mark.asyncio
    async def test_factory_resolved_from_router(self, pairs):
        assert pairs.factory_address is None
        assert await pairs.find_pair(EURT, TATA) == PAIR
        assert pairs.factory_address == FACTORY

    @pytest.mark.asyncio
    async def test_missing_pair_is_none(self, provider):
        oracle = PairOracle(provider, factory_address=FACTORY)
        assert await oracle.find_pair(EURT, TASK) is None

    @pytest.mark.asyncio
    async def test_reserves_follow_request_order(self, pairs):
        # TATA sorts first, so the pair's token0 is TATA
        forward = await pairs.get_reserves(PAIR, EURT, TATA)
        assert (forward.token_a, forward.reserve_a, forward.reserve_b) == (EURT, 10_000, 20_000)

        backward = await pairs.get_reserves(PAIR, TATA, EURT)
        assert (backward.token_a, backward.reserve_a, backward.reserve_b) == (TATA, 20_000, 10_000)

    @pytest.mark.asyncio
    async def test_reserves_reject_foreign_token(self, pairs):
        with pytest.raises(ContractCallError) as exc_info:
            await pairs.get_reserves(PAIR, TASK, NOT_A_TOKEN)
        assert exc_info.value.transient is False

    @pytest.mark.asyncio
    async def test_pool_status(self, pairs, chain):
        status = await pairs.pool_status(EURT, TATA)
        assert status.exists and status.has_liquidity

        missing = await pairs.pool_status(EURT, TASK)
        assert not missing.exists and not missing.has_liquidity

        chain.contracts[PAIR.lower()].set_reserves(EURT, 0, TATA, 0)
        empty = await pairs.pool_status(EURT, TATA)
        assert empty.exists and not empty.has_liquidity


class TestAccountStream:
    """Tests for wallet account-change events."""

    @pytest.mark.asyncio
    async def test_events_then_close(self):
        stream = AccountStream()
        stream.publish([ALICE])
        stream.publish([])
        stream.close()

        events = [event async for event in stream]
        assert [e.account for e in events] == [ALICE, None]
        assert events[1].disconnected

        # stays closed for later consumers
        assert [event async for event in stream] == []

    @pytest.mark.asyncio
    async def test_publish_after_close_dropped(self):
        async with AccountStream() as stream:
            pass
        assert stream.closed
        stream.publish([ALICE])
        assert [event async for event in stream] == []

    @pytest.mark.asyncio
    async def test_consumer_waits_for_events(self):
        stream = AccountStream()
        received = []

        async def consume():
            async for event in stream:
                received.append(event.account)

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        stream.publish([ROUTER])
        stream.close()
        await asyncio.wait_for(task, timeout=1)
        assert received == [ROUTER]

    @pytest.mark.asyncio
    async def test_burst_without_consumer_keeps_close(self):
        stream = AccountStream()
        for i in range(1000):
            stream.publish([ALICE] if i % 2 else [])
        stream.close()

        events = [event async for event in stream]
        assert len(events) == 1000
        assert events[-1].account == ALICE

    @pytest.mark.asyncio
    async def test_dropped_event_is_logged(self, caplog):
        stream = AccountStream()
        stream.close()
        with caplog.at_level("DEBUG", logger="tokenswap.chain.accounts"):
            stream.publish([ALICE])
        assert f"Account event after close dropped: ('{ALICE}',)" in caplog.text
