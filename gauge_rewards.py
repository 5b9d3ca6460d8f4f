#!/usr/bin/env python3
"""
Gauge Reward Reader — Voter.gauges(pool) → CLGauge.rewardRate()
================================================================

Flow (two batched requests for any number of pools):
  1. Voter.gauges(pool)   → gauge address (zero address = no gauge)
  2. CLGauge.rewardRate() → WIND wei emitted per second

Reward rates are read fresh on every call. If a read fails, the last
successfully read rate for that gauge is reported instead.
"""

import logging
from typing import Dict, Iterable, Optional

from cl_pricing.registry import VOTER_ADDRESS, ZERO_ADDRESS
from cl_pricing.rpc_client import RpcClient
from cl_pricing.rpc_helpers import (
    SELECTORS,
    build_gauges_call,
    decode_address,
    decode_uint,
    is_empty_result,
    strip_0x,
)

logger = logging.getLogger(__name__)


class GaugeRewardReader:
    """Reads per-pool gauge emission rates."""

    def __init__(self, client: Optional[RpcClient] = None, voter: str = VOTER_ADDRESS):
        self.client = client or RpcClient()
        self.voter = voter
        self._last_rates: Dict[str, int] = {}

    async def gauges_for_pools(self, pools: Iterable[str]) -> Dict[str, Optional[str]]:
        """Map each pool (lower-cased) to its gauge address, or None."""
        pools = [p.lower() for p in pools]
        raws = await self.client.eth_call_batch(
            [(self.voter, build_gauges_call(p)) for p in pools]
        )
        gauges: Dict[str, Optional[str]] = {}
        for pool, raw in zip(pools, raws):
            gauge = None
            if not is_empty_result(raw):
                addr = decode_address(strip_0x(raw))
                if addr != ZERO_ADDRESS:
                    gauge = addr
            gauges[pool] = gauge
        return gauges

    async def reward_rates(self, pools: Iterable[str]) -> Dict[str, int]:
        """
        Reward rate (wei/s) per pool. Pools without a gauge are omitted.

        Raises:
            RpcError / httpx.HTTPError: The gauge lookup batch failed on
                every endpoint.
        """
        gauges = await self.gauges_for_pools(pools)
        with_gauge = [(pool, gauge) for pool, gauge in gauges.items() if gauge]
        if not with_gauge:
            return {}

        try:
            raws = await self.client.eth_call_batch(
                [(gauge, SELECTORS["rewardRate"]) for _, gauge in with_gauge]
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("rewardRate batch failed, using last known rates: %s", exc)
            raws = ["0x"] * len(with_gauge)

        rates: Dict[str, int] = {}
        for (pool, gauge), raw in zip(with_gauge, raws):
            if not is_empty_result(raw):
                self._last_rates[gauge] = decode_uint(strip_0x(raw))
            if gauge in self._last_rates:
                rates[pool] = self._last_rates[gauge]
        return rates

    async def reward_rate(self, pool: str) -> Optional[int]:
        """Reward rate for one pool, or None if it has no gauge."""
        return (await self.reward_rates([pool])).get(pool.lower())
