"""Command-line interface for the crypto portfolio tracker."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import AppConfig, load_config
from .errors import CryptofolioError
from .logging_setup import configure_logging
from .market import CoinGeckoClient
from .services import ControllerState, PortfolioController, build_portfolio_report
from .services.report import SORT_KEYS
from .storage import JsonHoldingsStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="cryptofolio",
        description="Track crypto holdings against live market data",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    sub = parser.add_subparsers(dest="command")

    show_parser = sub.add_parser("show", help="Refresh market data and print the portfolio")
    show_parser.add_argument("--search", default="", help="Filter by coin name or symbol")
    show_parser.add_argument(
        "--sort", default="price", choices=SORT_KEYS, help="Sort key (default: price)"
    )
    show_parser.add_argument(
        "--descending", action="store_true", help="Sort in descending order"
    )

    set_parser = sub.add_parser("set", help="Set the held quantity of a coin")
    set_parser.add_argument("coin_id", help="CoinGecko coin id, e.g. bitcoin")
    set_parser.add_argument("quantity", help="Quantity held")

    delete_parser = sub.add_parser("delete", help="Remove a coin from the portfolio")
    delete_parser.add_argument("coin_id", help="CoinGecko coin id")

    watch_parser = sub.add_parser("watch", help="Refresh continuously and print the portfolio")
    watch_parser.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Refresh interval in minutes (overrides config)",
    )

    return parser


def build_controller(config: AppConfig) -> PortfolioController:
    return PortfolioController(
        CoinGeckoClient(config.market_data),
        JsonHoldingsStore(config.storage),
        config.controller,
    )


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command and return the exit code."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    controller = build_controller(config)

    await controller.start()

    try:
        if args.command == "show":
            print(
                build_portfolio_report(
                    controller,
                    query=args.search,
                    sort_key=args.sort,
                    ascending=not args.descending,
                )
            )
        elif args.command == "set":
            try:
                controller.set_holding(args.coin_id, args.quantity)
            except CryptofolioError as e:
                print(f"Not applied: {e.message}", file=sys.stderr)
                return 1
            print(build_portfolio_report(controller))
        elif args.command == "delete":
            controller.delete_holding(args.coin_id)
            print(build_portfolio_report(controller))
        elif args.command == "watch":
            controller.subscribe(_print_when_ready)
            _print_when_ready(controller)
            await controller.run_continuous(args.interval)
        else:
            build_parser().print_help()
            return 1
    finally:
        await controller.close()

    return 0


def _print_when_ready(controller: PortfolioController) -> None:
    if controller.state is ControllerState.READY:
        print(build_portfolio_report(controller), flush=True)
        print("", flush=True)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        sys.exit(asyncio.run(_run(args)))
    except KeyboardInterrupt:
        logger.info("Interrupted")
