"""
CL Pricing — Command Implementations
=====================================

All CLI command handlers live here, keeping run.py as a thin
argparse dispatcher. Each public function corresponds to a
subcommand (info, price, quote, apr).

Remote failures are caught at this boundary and reported in one line;
handlers return False so run.py can exit non-zero.
"""

from __future__ import annotations

import httpx

from cl_pricing.central_config import PROJECT_NAME, PROJECT_VERSION, PriceBounds, config
from cl_pricing.registry import TICK_SPACINGS, fee_label, get_token
from cl_pricing.rpc_client import RpcError


def _status(stale: bool) -> str:
    return "⚠️  stale" if stale else "✅ live"


# ── Commands ─────────────────────────────────────────────────────────────


def cmd_info() -> None:
    """Display configuration and supported tiers."""
    print(f"\n📊 {PROJECT_NAME} v{PROJECT_VERSION}")
    print("=" * 55)
    print("🔗 Protocol   : Slipstream concentrated liquidity (WindSwap, Sei EVM)")
    print(f"🌐 RPC        : primary   {config.rpc.PRIMARY.split('?')[0]}")
    print(f"               secondary {config.rpc.SECONDARY}")
    print(f"📡 Subgraph   : {config.subgraph.URL}")
    print("⚙️  Tiers      : " + ", ".join(f"{ts} ({fee_label(ts)})" for ts in TICK_SPACINGS))
    print()
    print("📁 Files:")
    print("   run.py               — CLI entry point")
    print("   price_resolver.py    — WIND / SEI USD prices from reference pools")
    print("   reward_apr_math.py   — gauge APR + concentration math")
    print("   quote_router.py      — best quote across tick spacings")
    print("   gauge_rewards.py     — Voter → gauge → rewardRate reader")
    print("   subgraph_client.py   — pool TVL via GraphQL")
    print("   cl_pricing/          — RPC client, ABI helpers, registry, config")


async def cmd_price(
    watch: bool = False,
    interval: float = config.prices.REFRESH_SECONDS,
    iterations: int | None = None,
    wind_max: float | None = None,
    native_max: float | None = None,
) -> bool:
    """Print WIND and SEI USD prices (once, or every ``interval`` seconds)."""
    from price_resolver import PriceResolver

    defaults = config.prices.bounds
    bounds = PriceBounds(
        wind_max=wind_max if wind_max is not None else defaults.wind_max,
        native_max=native_max if native_max is not None else defaults.native_max,
    )
    resolver = PriceResolver(bounds=bounds)

    def _show(snap) -> None:
        when = snap.last_updated.strftime("%H:%M:%S UTC") if snap.last_updated else "never"
        print(f"\n💱 Prices ({_status(snap.is_stale)}, updated {when})")
        print(f"  🌬️  WIND : ${snap.wind_price_usd:,.6f}")
        print(f"  🔴 SEI  : ${snap.native_price_usd:,.4f}")

    if watch:
        await resolver.poll(interval_seconds=interval, iterations=iterations, on_update=_show)
    else:
        _show(await resolver.refresh())
    return True


async def cmd_quote(
    token_in: str,
    token_out: str,
    amount: str,
    tick_spacing: int | None = None,
    via: str | None = None,
    all_routes: bool = False,
) -> bool:
    """Quote a swap (best tier, one tier, a fixed intermediate, or all routes)."""
    from quote_router import MultiHopQuote, NoRouteError, QuoteRouter, to_raw_amount

    try:
        t_in, t_out = get_token(token_in), get_token(token_out)
        amount_in = to_raw_amount(amount, t_in.decimals)
    except ValueError as exc:
        print(f"❌ {exc}")
        return False

    router = QuoteRouter()
    print(f"\n🔎 Quoting {amount} {t_in.symbol} → {t_out.symbol}...")

    try:
        if via:
            route = await router.multi_hop_quote(t_in, get_token(via), t_out, amount_in)
        elif all_routes:
            route = await router.best_route(t_in, t_out, amount_in)
        else:
            route = await router.best_quote(t_in, t_out, amount_in, tick_spacing)
    except NoRouteError as exc:
        print(f"❌ {exc}")
        return False
    except ValueError as exc:
        print(f"❌ {exc}")
        return False

    if route is None:
        print("❌ No route found")
        return False

    out = route.formatted_amount_out(t_out.decimals)
    print(f"  💰 Out   : {out:,.6f} {t_out.symbol}")
    if isinstance(route, MultiHopQuote):
        s1, s2 = route.tick_spacings
        print(f"  🔀 Route : {' → '.join(route.path)} (tick spacings {s1}, {s2})")
    else:
        print(f"  🎯 Tier  : tick spacing {route.tick_spacing} ({fee_label(route.tick_spacing)})")
        if route.gas_estimate:
            print(f"  ⛽ Gas   : {route.gas_estimate:,}")
    return True


async def cmd_apr(
    pool: str | None = None,
    limit: int = 10,
    tick_lower: int | None = None,
    tick_upper: int | None = None,
) -> bool:
    """Gauge APR per pool; with --pool and a tick range, the range-adjusted APR."""
    from gauge_rewards import GaugeRewardReader
    from price_resolver import PriceResolver
    from reward_apr_math import AprCalculator, format_apr
    from subgraph_client import SubgraphClient, SubgraphError

    from cl_pricing.rpc_client import RpcClient
    from cl_pricing.rpc_helpers import SELECTORS, decode_tick_from_slot0

    client = RpcClient()
    snap = await PriceResolver(client=client).refresh()

    try:
        if pool:
            found = await SubgraphClient().get_pool(pool)
            if found is None:
                print(f"❌ Pool {pool} not found in subgraph")
                return False
            pools = [found]
        else:
            pools = (await SubgraphClient().fetch_pools())[:limit]
        rates = await GaugeRewardReader(client).reward_rates(p.address for p in pools)
    except (httpx.HTTPError, RpcError, SubgraphError, ValueError) as exc:
        # ValueError covers undecodable JSON bodies
        print(f"❌ Data fetch failed: {exc}")
        return False

    print(f"\n📈 Gauge APR (WIND ${snap.wind_price_usd:,.6f}, {_status(snap.is_stale)})")
    print("=" * 62)
    for p in pools:
        rate = rates.get(p.address, 0)
        apr = AprCalculator.pool_apr(rate, snap.wind_price_usd, p.tvl_usd, p.tick_spacing)
        print(f"  {p.pair:<14} ts={p.tick_spacing:<5} TVL ${p.tvl_usd:>14,.2f}  APR {format_apr(apr)}")

    if pool and tick_lower is not None and tick_upper is not None:
        p = pools[0]
        base = AprCalculator.base_apr(rates.get(p.address, 0), snap.wind_price_usd, p.tvl_usd)
        try:
            current = decode_tick_from_slot0(await client.eth_call(p.address, SELECTORS["slot0"]))
        except (httpx.HTTPError, RpcError) as exc:
            print(f"❌ slot0 read failed: {exc}")
            return False
        if current is None:
            print("❌ slot0 returned no data")
            return False
        adjusted = AprCalculator.range_adjusted_apr(base, tick_lower, tick_upper, current)
        in_range = tick_lower <= current < tick_upper
        print(f"\n🎯 Range [{tick_lower}, {tick_upper}) — current tick {current} "
              f"({'in range' if in_range else 'out of range'})")
        print(f"  APR : {format_apr(adjusted) if adjusted is not None else '—'}")
    return True
