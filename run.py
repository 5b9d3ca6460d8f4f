#!/usr/bin/env python3
"""
CL Pricing -- Slipstream Price, APR & Quote CLI
================================================

On-chain price discovery, gauge APRs and multi-tier swap quotes for the
WindSwap concentrated-liquidity DEX on Sei EVM.

Usage:
  python run.py price                                   WIND / SEI USD prices
  python run.py price --watch                           Refresh every 60 s
  python run.py quote WIND USDC 100                     Best quote across all tiers
  python run.py quote WIND USDC 100 --tick-spacing 200  Quote one tier
  python run.py quote WIND USDT 100 --via WSEI          Multi-hop quote
  python run.py quote WIND USDT 100 --all-routes        Direct + multi-hop
  python run.py apr                                     APR for top pools
  python run.py apr --pool <0x…> --range -600 600       Range-adjusted APR
  python run.py info                                    Configuration overview

Sources:
  Uniswap V3 Whitepaper : https://uniswap.org/whitepaper-v3.pdf
  Slipstream            : https://github.com/velodrome-finance/slipstream
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# ── Imports ───────────────────────────────────────────────────────────────

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from cl_pricing.central_config import PROJECT_NAME, PROJECT_VERSION, config
from cl_pricing.commands import cmd_apr, cmd_info, cmd_price, cmd_quote


# ── CLI Parser ────────────────────────────────────────────────────────────


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cl-pricing",
        description=f"{PROJECT_NAME} v{PROJECT_VERSION} — Slipstream price, APR & quote tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py price --watch --interval 30       Poll prices every 30 s
  python run.py quote SEI USDC 25                 Native SEI is routed as WSEI
  python run.py apr --limit 5                     Five largest pools by TVL

Supported tick spacings (fee):
  1 (0.005%)  50 (0.02%)  100 (0.045%)  200 (0.25%)  2000 (1%)
""",
    )
    parser.add_argument(
        "--version", action="version", version=f"{PROJECT_NAME} v{PROJECT_VERSION}"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging (RPC failover, tiers)"
    )

    sub = parser.add_subparsers(dest="command", help="Available commands")

    price_p = sub.add_parser("price", help="WIND and SEI prices in USD")
    price_p.add_argument("--watch", action="store_true", help="Keep refreshing")
    price_p.add_argument(
        "--interval",
        type=float,
        default=config.prices.REFRESH_SECONDS,
        help=f"Refresh interval in seconds (default: {config.prices.REFRESH_SECONDS:g})",
    )
    price_p.add_argument(
        "--iterations", type=int, default=None, help="Stop after N refreshes (with --watch)"
    )
    price_p.add_argument(
        "--wind-max", type=float, default=None, help="Upper acceptance bound for WIND (default: 1000)"
    )
    price_p.add_argument(
        "--sei-max", type=float, default=None, help="Upper acceptance bound for SEI (default: 100)"
    )

    quote_p = sub.add_parser("quote", help="Best swap quote across tick spacings")
    quote_p.add_argument("token_in", help="Input token symbol or address, e.g. WIND")
    quote_p.add_argument("token_out", help="Output token symbol or address, e.g. USDC")
    quote_p.add_argument("amount", help="Input amount in token units, e.g. 100")
    quote_p.add_argument(
        "--tick-spacing", type=int, default=None, help="Quote only this tier"
    )
    quote_p.add_argument(
        "--via", type=str, default=None, help="Intermediate token for a multi-hop quote"
    )
    quote_p.add_argument(
        "--all-routes", action="store_true", help="Compare direct and multi-hop routes"
    )

    apr_p = sub.add_parser("apr", help="Gauge emission APR per pool")
    apr_p.add_argument("--pool", type=str, default=None, help="Pool address (0x…)")
    apr_p.add_argument("--limit", type=int, default=10, help="Max pools (default: 10)")
    apr_p.add_argument(
        "--range",
        type=int,
        nargs=2,
        metavar=("TICK_LOWER", "TICK_UPPER"),
        default=None,
        help="Position tick range for a range-adjusted APR (requires --pool)",
    )

    sub.add_parser("info", help="Configuration overview")

    return parser


# ── Main ──────────────────────────────────────────────────────────────────


def main() -> int:
    parser = create_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "info":
        cmd_info()
        return 0

    if args.command == "price":
        ok = asyncio.run(
            cmd_price(
                watch=args.watch,
                interval=args.interval,
                iterations=args.iterations,
                wind_max=args.wind_max,
                native_max=args.sei_max,
            )
        )
        return 0 if ok else 1

    if args.command == "quote":
        ok = asyncio.run(
            cmd_quote(
                token_in=args.token_in,
                token_out=args.token_out,
                amount=args.amount,
                tick_spacing=args.tick_spacing,
                via=args.via,
                all_routes=args.all_routes,
            )
        )
        return 0 if ok else 1

    if args.command == "apr":
        tick_lower, tick_upper = args.range if args.range else (None, None)
        if args.range and not args.pool:
            print("❌ --range requires --pool")
            return 1
        ok = asyncio.run(
            cmd_apr(
                pool=args.pool,
                limit=args.limit,
                tick_lower=tick_lower,
                tick_upper=tick_upper,
            )
        )
        return 0 if ok else 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n❌ Cancelled.")
        sys.exit(130)
