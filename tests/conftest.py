"""Pytest configuration and fixtures.

The engine only talks to the chain through the provider surface
(``contract``/``call``/``transact``/``decode_logs``/``get_balance``/``now``),
so the fixtures below stand up an in-memory chain with the same surface:
ERC20 tokens, the fixed-rate exchange and a V2 factory/pair/router with the
router's deadline and minimum-output guards. Events emitted while a
transaction executes land in its receipt.
"""

import os

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["RPC_URL"] = "http://127.0.0.1:8545"
os.environ.pop("PRIVATE_KEY", None)

from tokenswap.chain.abi import ZERO_ADDRESS
from tokenswap.chain.accounts import AccountStream
from tokenswap.chain.pair import PairOracle
from tokenswap.chain.token import TokenClient
from tokenswap.errors import ContractCallError, ContractRevertError
from tokenswap.routing.amm import AMMEngine, constant_product_amount_out
from tokenswap.routing.fixed_rate import FixedRateEngine
from tokenswap.swap.allowance import AllowanceCoordinator
from tokenswap.swap.service import SwapService

ALICE = "0x" + "11" * 20
BOB = "0x" + "22" * 20
EURT = "0x" + "e1" * 20
TASK = "0x" + "7a" * 20
TATA = "0x" + "7b" * 20
FIXED_SWAP = "0x" + "5f" * 20
ROUTER = "0x" + "40" * 20
FACTORY = "0x" + "fa" * 20
PAIR = "0x" + "9a" * 20
NOT_A_TOKEN = "0x" + "de" * 20

START_TIME = 1_700_000_000


class Revert(Exception):
    """Raised inside fake contracts; surfaces like an on-chain revert."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class FakeCall:
    """Bound contract function, the shape web3 hands to the provider."""

    def __init__(self, contract, fn_name, args):
        self.contract = contract
        self.fn_name = fn_name
        self.args = args
        self.address = contract.address


class _Functions:
    def __init__(self, contract):
        self._contract = contract

    def __getattr__(self, name):
        def bind(*args):
            return FakeCall(self._contract, name, args)

        return bind


class FakeContract:
    MUTATING: tuple = ()

    def __init__(self, chain, address):
        self.chain = chain
        self.address = address
        chain.contracts[address.lower()] = self

    @property
    def functions(self):
        return _Functions(self)


class NoCode(FakeContract):
    """An address with no contract behind it."""

    def __init__(self, chain, address):
        self.chain = chain
        self.address = address


class FakeERC20(FakeContract):
    MUTATING = ("approve",)

    def __init__(self, chain, address, symbol, decimals):
        super().__init__(chain, address)
        self._symbol = symbol
        self._decimals = decimals
        self.balances = {}
        self.allowances = {}

    def symbol(self):
        return self._symbol

    def decimals(self):
        return self._decimals

    def balanceOf(self, account):
        return self.balances.get(account.lower(), 0)

    def allowance(self, owner, spender):
        return self.allowances.get((owner.lower(), spender.lower()), 0)

    def approve(self, sender, spender, amount):
        self.allowances[(sender.lower(), spender.lower())] = amount
        return True

    def mint(self, account, amount):
        self.balances[account.lower()] = self.balanceOf(account) + amount
        self.chain.emit(self.address, "Transfer", {"from": ZERO_ADDRESS, "to": account, "value": amount})

    def burn_from(self, spender, owner, amount):
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise Revert(f"ERC20InsufficientAllowance({spender}, {allowed}, {amount})")
        balance = self.balanceOf(owner)
        if balance < amount:
            raise Revert(f"ERC20InsufficientBalance({owner}, {balance}, {amount})")
        self.allowances[(owner.lower(), spender.lower())] = allowed - amount
        self.balances[owner.lower()] = balance - amount
        self.chain.emit(self.address, "Transfer", {"from": owner, "to": ZERO_ADDRESS, "value": amount})


class FakeFixedRateSwap(FakeContract):
    MUTATING = ("swapEURTtoTASK", "setConversionRate")

    def __init__(self, chain, address, eurt, task, rate):
        super().__init__(chain, address)
        self._eurt = eurt
        self._task = task
        self.rate = rate

    def conversionRate(self):
        return self.rate

    def swapEURTtoTASK(self, sender, amount):
        if amount <= 0:
            raise Revert("Amount must be greater than 0")
        out = amount * 10**12 // self.rate
        self._eurt.burn_from(self.address, sender, amount)
        self._task.mint(sender, out)
        self.chain.emit(self.address, "SwapExecuted", {"user": sender, "eurtAmount": amount, "taskAmount": out})

    def setConversionRate(self, sender, rate):
        if rate <= 0:
            raise Revert("Rate must be greater than 0")
        self.rate = rate


class FakePair(FakeContract):
    def __init__(self, chain, address, token_x, token_y):
        super().__init__(chain, address)
        self._token0, self._token1 = sorted([token_x, token_y], key=str.lower)
        self.reserves = {token_x.lower(): 0, token_y.lower(): 0}

    def token0(self):
        return self._token0

    def token1(self):
        return self._token1

    def getReserves(self):
        return (
            self.reserves[self._token0.lower()],
            self.reserves[self._token1.lower()],
            self.chain.now,
        )

    def set_reserves(self, token, reserve, other, other_reserve):
        self.reserves[token.lower()] = reserve
        self.reserves[other.lower()] = other_reserve


class FakeFactory(FakeContract):
    def __init__(self, chain, address):
        super().__init__(chain, address)
        self.pairs = {}

    def register(self, pair):
        self.pairs[frozenset((pair.token0().lower(), pair.token1().lower()))] = pair

    def getPair(self, token_a, token_b):
        pair = self.pairs.get(frozenset((token_a.lower(), token_b.lower())))
        return pair.address if pair else ZERO_ADDRESS


class FakeRouter(FakeContract):
    MUTATING = ("swapExactTokensForTokens",)

    def __init__(self, chain, address, factory):
        super().__init__(chain, address)
        self._factory = factory

    def factory(self):
        return self._factory.address

    def getAmountsOut(self, amount_in, path):
        pair = self._factory.pairs.get(frozenset(a.lower() for a in path))
        if pair is None:
            raise Revert("UniswapV2Library: PAIR_NOT_FOUND")
        reserve_in = pair.reserves[path[0].lower()]
        reserve_out = pair.reserves[path[1].lower()]
        if reserve_in == 0 or reserve_out == 0:
            raise Revert("UniswapV2Library: INSUFFICIENT_LIQUIDITY")
        return [amount_in, constant_product_amount_out(amount_in, reserve_in, reserve_out)]

    def swapExactTokensForTokens(self, sender, amount_in, amount_out_min, path, to, deadline):
        if deadline < self.chain.now:
            raise Revert("UniswapV2Router: EXPIRED")
        amounts = self.getAmountsOut(amount_in, path)
        if amounts[-1] < amount_out_min:
            raise Revert("UniswapV2Router: INSUFFICIENT_OUTPUT_AMOUNT")

        token_in = self.chain.contracts[path[0].lower()]
        token_out = self.chain.contracts[path[1].lower()]
        try:
            token_in.burn_from(self.address, sender, amount_in)
        except Revert:
            raise Revert("TransferHelper: TRANSFER_FROM_FAILED")
        token_out.mint(to, amounts[-1])

        pair = self._factory.pairs[frozenset(a.lower() for a in path)]
        pair.reserves[path[0].lower()] += amount_in
        pair.reserves[path[1].lower()] -= amounts[-1]
        return amounts


class FakeHandle:
    """Submitted transaction; executes when awaited, like being mined."""

    def __init__(self, chain, call, sender, tx_hash):
        self.chain = chain
        self.call = call
        self.sender = sender
        self.tx_hash = tx_hash
        self.receipt = None

    async def wait(self):
        if self.receipt is not None:
            return self.receipt
        name = self.call.fn_name
        self.chain.pending_logs = []
        try:
            getattr(self.call.contract, name)(self.sender, *self.call.args)
        except Revert as e:
            self.chain.log("reverted", name)
            self.receipt = {"status": 0, "transactionHash": self.tx_hash, "logs": []}
            raise ContractRevertError(f"{name} reverted: {e.reason}", reason=e.reason, tx_hash=self.tx_hash)
        finally:
            logs, self.chain.pending_logs = self.chain.pending_logs, None
        self.chain.log("confirmed", name)
        self.receipt = {"status": 1, "transactionHash": self.tx_hash, "logs": logs}
        return self.receipt


class FakeChain:
    """World state plus an ordered log of submissions and confirmations."""

    def __init__(self):
        self.contracts = {}
        self.native = {}
        self.now = START_TIME
        self.events = []
        self.offline = False
        self.failing_reads = set()
        self.reads = 0
        self._tx_count = 0
        self.pending_logs = None

    def log(self, kind, name):
        self.events.append((kind, name))

    def emit(self, address, event, args):
        # only state changes inside a mined transaction land in a receipt
        if self.pending_logs is not None:
            self.pending_logs.append({"address": address, "event": event, "args": args})

    def submitted(self, name=None):
        return [n for kind, n in self.events if kind == "submitted" and (name is None or n == name)]

    def next_tx_hash(self):
        self._tx_count += 1
        return "0x" + format(self._tx_count, "064x")


class FakeProvider:
    """Provider surface backed by a ``FakeChain``."""

    def __init__(self, chain, account=ALICE):
        self.chain = chain
        self._account = account
        self.accounts = AccountStream()

    @property
    def account(self):
        return self._account

    def subscribe_accounts(self):
        return self.accounts

    def now(self):
        return self.chain.now

    def contract(self, address, abi):
        return self.chain.contracts.get(address.lower()) or NoCode(self.chain, address)

    async def get_balance(self, address):
        if self.chain.offline:
            raise ContractCallError("provider unreachable", address=address, function="eth_getBalance")
        return self.chain.native.get(address.lower(), 0)

    async def call(self, fn):
        self.chain.reads += 1
        label = f"{fn.fn_name}()"
        if self.chain.offline or fn.fn_name in self.chain.failing_reads:
            raise ContractCallError(f"{label} timed out", address=fn.address, function=label)
        if isinstance(fn.contract, NoCode) or not hasattr(fn.contract, fn.fn_name):
            raise ContractCallError(
                f"{label} returned no usable data", address=fn.address, function=label, transient=False
            )
        try:
            return getattr(fn.contract, fn.fn_name)(*fn.args)
        except Revert as e:
            raise ContractCallError(
                f"{label} reverted: {e.reason}", address=fn.address, function=label, transient=False
            ) from e

    def decode_logs(self, contract, event_name, receipt):
        return [
            {"address": log["address"], **log["args"]}
            for log in receipt.get("logs", [])
            if log["event"] == event_name
        ]

    async def transact(self, fn):
        if self.chain.offline:
            raise ContractCallError("provider unreachable", address=fn.address, function=fn.fn_name)
        self.chain.log("submitted", fn.fn_name)
        return FakeHandle(self.chain, fn, self._account, self.chain.next_tx_hash())


@pytest.fixture
def chain():
    """Chain with EURT (6), TASK (18), TATA (18), the exchange at rate 2
    and an EURT/TATA pair holding 10_000/20_000."""
    chain = FakeChain()
    eurt = FakeERC20(chain, EURT, "EURT", 6)
    task = FakeERC20(chain, TASK, "TASK", 18)
    tata = FakeERC20(chain, TATA, "TATA", 18)
    FakeFixedRateSwap(chain, FIXED_SWAP, eurt, task, rate=2)

    factory = FakeFactory(chain, FACTORY)
    pair = FakePair(chain, PAIR, EURT, TATA)
    pair.set_reserves(EURT, 10_000, TATA, 20_000)
    factory.register(pair)
    FakeRouter(chain, ROUTER, factory)

    eurt.mint(ALICE, 1000 * 10**6)
    chain.native[ALICE.lower()] = 2 * 10**18
    return chain


@pytest.fixture
def provider(chain):
    return FakeProvider(chain)


@pytest.fixture
def tokens(provider):
    return TokenClient(provider)


@pytest.fixture
def allowances(tokens):
    return AllowanceCoordinator(tokens)


@pytest.fixture
def pairs(provider):
    return PairOracle(provider, router_address=ROUTER)


@pytest.fixture
def fixed_engine(provider, tokens, allowances):
    return FixedRateEngine(
        provider, tokens, allowances, swap_address=FIXED_SWAP, input_token=EURT, output_token=TASK
    )


@pytest.fixture
def amm_engine(provider, tokens, allowances, pairs):
    return AMMEngine(
        provider,
        tokens,
        allowances,
        pairs=pairs,
        router_address=ROUTER,
        token_a=EURT,
        token_b=TATA,
    )


@pytest.fixture
def service(provider, tokens, fixed_engine, amm_engine):
    return SwapService(provider, tokens, fixed_rate=fixed_engine, amm=amm_engine)
