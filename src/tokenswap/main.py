"""Command-line entry point.

    tokenswap balances [ACCOUNT]
    tokenswap quote fixed 100
    tokenswap quote amm 100 --direction b_to_a --slippage-bps 100
    tokenswap swap fixed 100
    tokenswap swap amm 100 --direction a_to_b
    tokenswap pool --direction a_to_b
    tokenswap serve
"""

import argparse
import asyncio
import logging
import signal
import sys

import uvicorn
from dotenv import load_dotenv

from tokenswap.config import get_settings
from tokenswap.errors import ConfigurationError, ContractCallError
from tokenswap.models import Failure
from tokenswap.routing.amm import SwapDirection
from tokenswap.swap.service import SwapService, get_swap_service
from tokenswap.units import format_units

logger = logging.getLogger(__name__)


def _print_failure(failure: Failure) -> int:
    error = failure.error
    print(f"FAILED [{error.kind.value}] {error.message}")
    for key, value in error.details.items():
        print(f"  {key}: {value}")
    if error.retryable:
        print("  (transient: retry may succeed)")
    elif error.requires_requote:
        print("  (re-quote before trying again)")
    return 1


async def show_balances(service: SwapService, account: str) -> int:
    snapshot = await service.balances(account, refresh=True)
    print(f"Account: {snapshot.account}")
    print(f"  ETH: {format_units(snapshot.native, 18)}")
    for token, amount in snapshot.tokens.items():
        descriptor = await service.tokens.describe(token)
        print(f"  {descriptor.symbol}: {format_units(amount, descriptor.decimals)}")
    return 0


async def show_quote(service: SwapService, args) -> int:
    if args.engine == "fixed":
        result = await service.quote_fixed(args.amount)
    else:
        result = await service.quote_amm(args.direction, args.amount, args.slippage_bps)
    if isinstance(result, Failure):
        return _print_failure(result)

    quote = result.value
    token_in = await service.tokens.describe(quote.token_in)
    token_out = await service.tokens.describe(quote.token_out)
    print(f"{quote.engine} quote")
    print(f"  in:       {format_units(quote.input_amount, token_in.decimals)} {token_in.symbol}")
    print(f"  expected: {format_units(quote.expected_output, token_out.decimals)} {token_out.symbol}")
    print(f"  minimum:  {format_units(quote.minimum_output, token_out.decimals)} {token_out.symbol}")
    if quote.rate is not None:
        print(f"  rate:     {quote.rate}")
    if quote.reserves is not None:
        print(f"  reserves: {quote.reserves.reserve_a} / {quote.reserves.reserve_b}")
    return 0


async def run_swap(service: SwapService, args) -> int:
    account = service.provider.account
    if args.engine == "fixed":
        result = await service.swap_fixed(account, args.amount)
    else:
        result = await service.swap_amm(account, args.direction, args.amount, args.slippage_bps)
    if isinstance(result, Failure):
        return _print_failure(result)

    receipt = result.value
    if receipt.approval_tx_hash:
        print(f"Approval: {receipt.approval_tx_hash}")
    print(f"Swap:     {receipt.tx_hash}")
    token_out = await service.tokens.describe(receipt.path[-1])
    if receipt.amount_out is None:
        print("Received: unknown (no output transfer in receipt)")
    else:
        print(f"Received: {format_units(receipt.amount_out, token_out.decimals)} {token_out.symbol}")
    return 0


async def show_pool(service: SwapService, direction: SwapDirection) -> int:
    status = await service.pool_status(direction)
    token_in = await service.tokens.describe(status.token_a)
    token_out = await service.tokens.describe(status.token_b)
    print(f"Pool {token_in.symbol}/{token_out.symbol}")
    if not status.exists:
        print("  no pair deployed")
        return 1
    print(f"  pair: {status.pair}")
    print(f"  {token_in.symbol} reserve:  {format_units(status.reserves.reserve_a, token_in.decimals)}")
    print(f"  {token_out.symbol} reserve: {format_units(status.reserves.reserve_b, token_out.decimals)}")
    if not status.has_liquidity:
        print("  pool holds no liquidity")
    return 0


class Application:
    """Runs the read-only API alongside the account watcher."""

    def __init__(self):
        self.settings = get_settings()
        self.service = get_swap_service()
        self._shutdown_event = asyncio.Event()

    async def start(self):
        """Start all services."""
        logger.info("Starting tokenswap API...")
        logger.info(f"Environment: {self.settings.environment}")

        stream = self.service.provider.subscribe_accounts()
        tasks = [
            asyncio.create_task(self._run_api()),
            asyncio.create_task(self.service.watch_accounts(stream)),
        ]

        await self._shutdown_event.wait()

        stream.close()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Shutdown complete")

    async def _run_api(self):
        """Run the FastAPI server."""
        from tokenswap.api.app import create_app

        try:
            config = uvicorn.Config(
                create_app(),
                host=self.settings.api_host,
                port=self.settings.api_port,
                log_level="debug" if self.settings.debug else "info",
            )
            server = uvicorn.Server(config)
            logger.info(f"Starting API server on {self.settings.api_host}:{self.settings.api_port}")
            await server.serve()
        except asyncio.CancelledError:
            logger.info("API server cancelled")
        except Exception as e:
            logger.error(f"API error: {e}")
            raise

    def shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()


def serve() -> int:
    app = Application()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tokenswap", description="Fixed-rate and AMM token swaps")
    commands = parser.add_subparsers(dest="command", required=True)

    balances = commands.add_parser("balances", help="Show native and token balances")
    balances.add_argument("account", nargs="?", help="Account address (default: signer)")

    for name, help_text in (("quote", "Price a swap"), ("swap", "Approve if needed, then swap")):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("engine", choices=["fixed", "amm"])
        sub.add_argument("amount", help="Input amount in whole tokens, e.g. 100.5")
        sub.add_argument(
            "--direction",
            type=SwapDirection,
            choices=list(SwapDirection),
            default=SwapDirection.A_TO_B,
            help="AMM direction (a_to_b sells EURT)",
        )
        sub.add_argument("--slippage-bps", type=int, default=None, help="AMM slippage tolerance")

    pool = commands.add_parser("pool", help="Show AMM pair and reserves")
    pool.add_argument("--direction", type=SwapDirection, choices=list(SwapDirection), default=SwapDirection.A_TO_B)

    commands.add_parser("serve", help="Run the read-only HTTP API")
    return parser


async def dispatch(args) -> int:
    service = get_swap_service()
    if args.command == "balances":
        return await show_balances(service, args.account or service.provider.account)
    if args.command == "quote":
        return await show_quote(service, args)
    if args.command == "swap":
        return await run_swap(service, args)
    if args.command == "pool":
        return await show_pool(service, args.direction)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None) -> int:
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "serve":
        return serve()

    try:
        return asyncio.run(dispatch(args))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except ContractCallError as e:
        logger.error(f"Chain read failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
