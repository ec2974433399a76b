"""Minimal ABIs for the contracts the engine talks to."""

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _fn(name, inputs, outputs, mutability="view"):
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


ERC20_ABI = [
    _fn("balanceOf", [("owner", "address")], [("", "uint256")]),
    _fn("decimals", [], [("", "uint8")]),
    _fn("symbol", [], [("", "string")]),
    _fn("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")]),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")], "nonpayable"),
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "value", "type": "uint256", "indexed": False},
        ],
    },
]

# EURT -> TASK exchange with an owner-set integer rate
FIXED_RATE_SWAP_ABI = [
    _fn("conversionRate", [], [("", "uint256")]),
    _fn("eurt", [], [("", "address")]),
    _fn("task", [], [("", "address")]),
    _fn("swapEURTtoTASK", [("_eurtAmount", "uint256")], [], "nonpayable"),
    _fn("setConversionRate", [("_newRate", "uint256")], [], "nonpayable"),
    {
        "type": "event",
        "name": "SwapExecuted",
        "anonymous": False,
        "inputs": [
            {"name": "user", "type": "address", "indexed": True},
            {"name": "eurtAmount", "type": "uint256", "indexed": False},
            {"name": "taskAmount", "type": "uint256", "indexed": False},
        ],
    },
]

UNISWAP_V2_FACTORY_ABI = [
    _fn("getPair", [("tokenA", "address"), ("tokenB", "address")], [("pair", "address")]),
]

UNISWAP_V2_PAIR_ABI = [
    _fn(
        "getReserves",
        [],
        [("reserve0", "uint112"), ("reserve1", "uint112"), ("blockTimestampLast", "uint32")],
    ),
    _fn("token0", [], [("", "address")]),
    _fn("token1", [], [("", "address")]),
]

UNISWAP_V2_ROUTER_ABI = [
    _fn("factory", [], [("", "address")], "pure"),
    _fn(
        "getAmountsOut",
        [("amountIn", "uint256"), ("path", "address[]")],
        [("amounts", "uint256[]")],
    ),
    _fn(
        "swapExactTokensForTokens",
        [
            ("amountIn", "uint256"),
            ("amountOutMin", "uint256"),
            ("path", "address[]"),
            ("to", "address"),
            ("deadline", "uint256"),
        ],
        [("amounts", "uint256[]")],
        "nonpayable",
    ),
]
