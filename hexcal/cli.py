"""
Command line report for HEX stakes.

Usage:
    hexcal 0xOwnerA 0xOwnerB [--rpc URL] [--watch] [--plot out.png]
"""

import argparse
import asyncio
import logging
import sys

from web3 import AsyncWeb3

from .constants import load_config
from .data import daily_frame, format_stats_report, get_summary_stats, stakes_frame
from .ledger import LedgerGateway
from .snapshot import RefreshScheduler, Snapshot, fetch_snapshot

logger = logging.getLogger("hexcal")


def print_snapshot(snapshot: Snapshot):
    stats = get_summary_stats(
        snapshot.result,
        annualized_yield=snapshot.annualized_yield,
        pool_share=snapshot.pool_share,
        usd_rate=snapshot.usd_rate,
    )
    print(format_stats_report(stats))
    df = stakes_frame(snapshot.stakes, snapshot.result, current_day=snapshot.last_day)
    if len(df) > 0:
        print(df.to_string())


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="HEX stake unlock and interest report")
    parser.add_argument("owners", nargs="+", help="Owner addresses to track")
    parser.add_argument("--rpc", dest="rpc_url", default=None, help="Ethereum JSON-RPC URL")
    parser.add_argument("--price-path", choices=["chained", "direct"], default=None,
                        help="On-chain price source (default: chained)")
    parser.add_argument("--no-price", action="store_true", help="Skip price lookups")
    parser.add_argument("--no-price-fallback", action="store_true",
                        help="Only use on-chain prices, never the HTTP price API")
    parser.add_argument("--watch", action="store_true", help="Keep refreshing on an interval")
    parser.add_argument("--interval", type=float, default=None, help="Refresh interval in seconds")
    parser.add_argument("--plot", default=None, help="Save an unlock/payout chart to this path")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


async def _run(args, config) -> int:
    gateway = LedgerGateway.from_rpc_url(config["rpc_url"], config["hex_address"])
    with_price = not args.no_price

    if args.watch:
        scheduler = RefreshScheduler(
            gateway, args.owners, interval=config["refresh_interval"],
            on_commit=print_snapshot, config=config, with_price=with_price,
        )
        await scheduler.run()
        return 0

    snapshot = await fetch_snapshot(gateway, args.owners, config, with_price=with_price)
    if snapshot is None:
        logger.error("Ledger returned no data")
        return 1

    print_snapshot(snapshot)

    if args.plot:
        from .visualizations import plot_stake_dashboard

        plot_stake_dashboard(
            stakes_frame(snapshot.stakes),
            daily_frame(snapshot.records),
            current_day=snapshot.last_day,
            save_path=args.plot,
        )
        logger.info("Chart saved to %s", args.plot)
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)-10s] %(levelname)-5s %(message)s",
        datefmt="%H:%M:%S",
    )

    invalid = [a for a in args.owners if not AsyncWeb3.is_address(a)]
    if invalid:
        logger.error("Invalid address: %s", ", ".join(invalid))
        return 2

    config = load_config(
        rpc_url=args.rpc_url,
        price_path=args.price_path,
        price_fallback=False if args.no_price_fallback else None,
        refresh_interval=args.interval,
    )
    try:
        return asyncio.run(_run(args, config))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
