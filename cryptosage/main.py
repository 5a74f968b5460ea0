"""
Main entry point for local execution.

Usage:
    python -m cryptosage.main [OPTIONS]

Options:
    --mode              snapshot (load once and print) or watch (auto-refresh) (default: snapshot)
    --segment           all, trending, gainers, losers, favorites (default: all)
    --search            Filter by name or symbol
    --sort              name, price, daily_change, volume, market_cap (default: market_cap)
    --direction         asc or desc (default: desc)
    --limit             Rows to print (default: 20)
    --toggle-favorite   Coin id to add to or remove from favorites before loading
    --price             Coin id whose spot price to print
    --clear-cache       Delete cached market data before loading
    --duration          Seconds to watch before exiting (default: until Ctrl+C)
    --log-level         Logging level: DEBUG, INFO, WARNING, ERROR (default: INFO)
    --json-logs         Output logs as JSON

Examples:
    # Default view: pinned majors first, then by market cap
    python -m cryptosage.main

    # Top gainers
    python -m cryptosage.main --segment gainers

    # Watch favorites, refreshing on the configured intervals
    python -m cryptosage.main --mode watch --segment favorites
"""

import argparse
import asyncio
import sys
from typing import NoReturn, Optional

from cryptosage.application.services.refresh_scheduler import AutoRefreshScheduler
from cryptosage.application.use_cases.market_engine import MarketEngine
from cryptosage.domain.entities.coin import CoinRecord
from cryptosage.domain.entities.global_market import GlobalSnapshot
from cryptosage.domain.entities.market_view import (
    ChangeTopic,
    MarketSegment,
    SortDirection,
    SortField,
    StateChanged,
)
from cryptosage.domain.exceptions import MarketDataError
from cryptosage.infrastructure.config import get_settings
from cryptosage.infrastructure.container import cleanup_container, create_container
from cryptosage.infrastructure.logging import get_logger, setup_logging


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="CryptoSage Markets - Multi-source crypto market data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--mode",
        choices=["snapshot", "watch"],
        default="snapshot",
        help="Execution mode (default: snapshot)",
    )

    parser.add_argument(
        "--segment",
        choices=[s.value for s in MarketSegment],
        default=MarketSegment.ALL.value,
        help="Market segment (default: all)",
    )

    parser.add_argument("--search", default="", help="Filter by name or symbol")

    parser.add_argument(
        "--sort",
        choices=[f.value for f in SortField],
        default=SortField.MARKET_CAP.value,
        help="Sort field (default: market_cap)",
    )

    parser.add_argument(
        "--direction",
        choices=[d.value for d in SortDirection],
        default=SortDirection.DESC.value,
        help="Sort direction (default: desc)",
    )

    parser.add_argument("--limit", type=int, default=20, help="Rows to print (default: 20)")

    parser.add_argument(
        "--toggle-favorite",
        metavar="COIN_ID",
        help="Add or remove a coin id from favorites",
    )

    parser.add_argument("--price", metavar="COIN_ID", help="Print one coin's spot price")

    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Delete cached market data before loading",
    )

    parser.add_argument(
        "--duration",
        type=float,
        help="Seconds to watch before exiting (default: until interrupted)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs as JSON",
    )

    return parser.parse_args(argv)


def format_usd(value: Optional[float]) -> str:
    """Compact USD amount: $1.23T, $45.6B, $7.8M, or plain with cents."""
    if value is None:
        return "-"
    for threshold, suffix in ((1e12, "T"), (1e9, "B"), (1e6, "M")):
        if abs(value) >= threshold:
            return f"${value / threshold:.2f}{suffix}"
    if abs(value) >= 1:
        return f"${value:,.2f}"
    return f"${value:.6f}"


def format_change(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"{value:+.2f}%"


def print_global(snapshot: Optional[GlobalSnapshot], error: Optional[str]) -> None:
    """Print global market figures."""
    print("\n" + "=" * 60)
    print("GLOBAL MARKET")
    print("=" * 60)
    if snapshot is None:
        print(f"Unavailable{f': {error}' if error else ''}")
        return
    print(f"Market Cap: {format_usd(snapshot.market_cap_usd)}")
    print(f"24h Volume: {format_usd(snapshot.volume_24h_usd)}")
    print(f"BTC Dominance: {snapshot.btc_dominance:.1f}%")
    print(f"ETH Dominance: {snapshot.eth_dominance:.1f}%")
    if error:
        print(f"(stale: {error})")


def print_coins(title: str, coins: list[CoinRecord], favorites: frozenset[str], limit: int) -> None:
    """Print a coin table."""
    print("\n" + "=" * 60)
    print(f"{title} ({len(coins)} coins)")
    print("=" * 60)
    for coin in coins[:limit]:
        star = "*" if coin.id in favorites else " "
        print(
            f"{star} {coin.symbol:<8} {coin.name[:18]:<18} "
            f"{format_usd(coin.current_price):>14} "
            f"{format_change(coin.price_change_percentage_24h):>9} "
            f"{format_usd(coin.market_cap):>10}"
        )
    if len(coins) > limit:
        print(f"  ... {len(coins) - limit} more")


def print_engine(engine: MarketEngine, limit: int) -> None:
    """Print the engine's current view."""
    state = engine.filter_state
    title = f"{state.segment.value.upper()} by {state.sort_field.value} {state.sort_direction.value}"
    if state.query:
        title += f" matching '{state.search_text}'"

    if engine.state.is_failure:
        print(f"\nError: {engine.state.message}")
        return

    favorite_ids = engine.favorites.get_all()
    print_coins(title, engine.filtered_coins, favorite_ids, limit)
    if engine.last_error:
        print(f"(showing previous data: {engine.last_error})")
    if engine.watchlist:
        print_coins("WATCHLIST", engine.watchlist, favorite_ids, limit)


async def run_async(args: argparse.Namespace) -> int:
    """Load market data and print it."""
    logger = get_logger(__name__)

    settings = get_settings()

    problems = settings.validate_required()
    if problems:
        logger.error("Invalid settings", problems=problems)
        print(f"Error: Invalid settings: {', '.join(problems)}")
        print("Please check your .env file or environment variables.")
        return 1

    logger.info("Initializing application...")
    container = create_container(settings)
    engine = container.engine

    try:
        if args.clear_cache:
            removed = container.cache.clear()
            print(f"Cleared {removed} cache file(s)")

        if args.toggle_favorite:
            now_favorite = container.favorites.toggle(args.toggle_favorite)
            print(f"{args.toggle_favorite}: {'added to' if now_favorite else 'removed from'} favorites")

        engine.set_segment(MarketSegment(args.segment))
        engine.set_sort(SortField(args.sort), SortDirection(args.direction))
        if args.search:
            engine.set_search_text(args.search)

        await engine.start()
        await engine.wait_pending()

        if args.price:
            try:
                price = await container.market_data.fetch_spot_price(args.price)
                print(f"\n{args.price}: {format_usd(price)}")
            except MarketDataError as e:
                print(f"\n{args.price}: price unavailable ({e.message})")

        print_global(engine.global_snapshot, engine.global_error)
        print_engine(engine, args.limit)

        if args.mode == "watch":
            await watch(engine, container.scheduler, args)

        return 1 if engine.state.is_failure else 0

    except Exception as e:
        logger.exception("Market run failed", error=str(e))
        print(f"\nError: {e}")
        return 1

    finally:
        await cleanup_container(container)


async def watch(
    engine: MarketEngine,
    scheduler: AutoRefreshScheduler,
    args: argparse.Namespace,
) -> None:
    """Print updates as the scheduler refreshes data."""

    def on_change(event: StateChanged) -> None:
        if event.topic is ChangeTopic.VIEWS:
            print_engine(engine, args.limit)
        elif event.topic is ChangeTopic.GLOBAL:
            print_global(engine.global_snapshot, engine.global_error)

    unsubscribe = engine.events.subscribe(on_change)
    scheduler.start()
    try:
        if args.duration:
            await asyncio.sleep(args.duration)
        else:
            await asyncio.Event().wait()
    finally:
        unsubscribe()
        await scheduler.stop()


def main() -> NoReturn:
    """Main entry point."""
    args = parse_args()

    setup_logging(
        log_level=args.log_level,
        json_format=args.json_logs,
    )

    try:
        exit_code = asyncio.run(run_async(args))
    except KeyboardInterrupt:
        print("\nInterrupted.")
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
