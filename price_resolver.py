#!/usr/bin/env python3
"""
On-Chain Price Resolver — WIND and SEI in USD
==============================================

Derives USD prices from two fixed Slipstream pools with one batched
JSON-RPC request (two ``slot0()`` eth_calls):

  1. WIND/USDC  (token0 = WIND, 18 dec; token1 = USDC, 6 dec)
       price_WIND = 1.0001^tick × 10^(18 − 6)

  2. USDC/WSEI  (token0 = USDC, 6 dec; token1 = WSEI, 18 dec)
       wsei_per_usdc = 1.0001^tick × 10^(6 − 18)
       price_SEI     = 1 / wsei_per_usdc

A resolved price is accepted only inside its configured window
(default WIND ∈ (0, 1000), SEI ∈ (0, 100)); otherwise the previous value
is kept. Network and decoding failures never raise: the resolver degrades
to the last known (or seed) prices and flags the snapshot as stale.

Refresh policy: once on start, then every 60 seconds (``poll``).
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from cl_pricing.central_config import PriceBounds, config
from cl_pricing.registry import USDC_WSEI_POOL, WIND_USDC_POOL, PoolReference
from cl_pricing.rpc_client import RpcClient
from cl_pricing.rpc_helpers import SELECTORS, decode_tick_from_slot0
from cl_pricing.sequencing import RequestSequencer
from reward_apr_math import TickMath

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceSnapshot:
    """USD prices with freshness metadata."""

    wind_price_usd: float
    native_price_usd: float
    last_updated: Optional[datetime] = None
    is_stale: bool = True
    sequence: int = 0


class PriceResolver:
    """
    Resolves WIND and native SEI prices from reference pools.

    Usage:
        resolver = PriceResolver()
        snap = await resolver.refresh()          # never raises
        await resolver.poll(on_update=print)     # refresh every 60 s
    """

    def __init__(
        self,
        client: Optional[RpcClient] = None,
        bounds: Optional[PriceBounds] = None,
        wind_pool: PoolReference = WIND_USDC_POOL,
        native_pool: PoolReference = USDC_WSEI_POOL,
        max_age_seconds: float = config.prices.MAX_AGE_SECONDS,
    ):
        self.client = client or RpcClient()
        self.bounds = bounds or config.prices.bounds
        self.wind_pool = wind_pool
        self.native_pool = native_pool
        self.max_age_seconds = max_age_seconds

        self.wind_price_usd = config.prices.WIND_PRICE_USD
        self.native_price_usd = config.prices.NATIVE_PRICE_USD
        self.last_updated: Optional[datetime] = None
        self._last_refresh_ok = False
        self.sequencer = RequestSequencer()
        self._sequence_applied = 0

    # ── Tick → USD ───────────────────────────────────────────────────────

    @staticmethod
    def wind_price_from_tick(tick: int, pool: PoolReference = WIND_USDC_POOL) -> float:
        """USD per WIND: token0 (WIND) priced in token1 (USDC)."""
        return TickMath.tick_to_price(tick, pool.decimals0, pool.decimals1)

    @staticmethod
    def native_price_from_tick(tick: int, pool: PoolReference = USDC_WSEI_POOL) -> float:
        """USD per SEI: inverse of WSEI-per-USDC."""
        return TickMath.tick_to_price(
            tick, pool.decimals0, pool.decimals1, token0_is_base=False
        )

    # ── Refresh ──────────────────────────────────────────────────────────

    async def _read_ticks(self) -> tuple[Optional[int], Optional[int]]:
        raws = await self.client.eth_call_batch(
            [
                (self.wind_pool.address, SELECTORS["slot0"]),
                (self.native_pool.address, SELECTORS["slot0"]),
            ]
        )
        raws = list(raws) + ["0x"] * (2 - len(raws))
        return decode_tick_from_slot0(raws[0]), decode_tick_from_slot0(raws[1])

    async def refresh(self) -> PriceSnapshot:
        """
        Re-read both reference pools and update accepted prices.

        Returns:
            The current snapshot. Prices that could not be read, or that
            fall outside their acceptance window, keep their previous value.
        """
        ticket = self.sequencer.issue()
        try:
            wind_tick, native_tick = await self._read_ticks()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Price refresh failed, keeping last known prices: %s", exc)
            wind_tick = native_tick = None

        if not self.sequencer.is_current(ticket):
            logger.debug("Discarding price refresh #%d (superseded)", ticket)
            return self.snapshot()

        wind_ok = native_ok = False

        if wind_tick is not None:
            price = self.wind_price_from_tick(wind_tick, self.wind_pool)
            if self.bounds.accepts_wind(price):
                self.wind_price_usd = price
                wind_ok = True
            else:
                logger.warning("Rejected WIND price %.6g (tick %d)", price, wind_tick)

        if native_tick is not None:
            price = self.native_price_from_tick(native_tick, self.native_pool)
            if self.bounds.accepts_native(price):
                self.native_price_usd = price
                native_ok = True
            else:
                logger.warning("Rejected SEI price %.6g (tick %d)", price, native_tick)

        self._last_refresh_ok = wind_ok and native_ok
        if self._last_refresh_ok:
            self.last_updated = datetime.now(timezone.utc)
        self._sequence_applied = ticket
        return self.snapshot()

    def snapshot(self) -> PriceSnapshot:
        """Current prices; stale if the last refresh was incomplete or too old."""
        stale = not self._last_refresh_ok or self.last_updated is None
        if not stale:
            age = (datetime.now(timezone.utc) - self.last_updated).total_seconds()
            stale = age > self.max_age_seconds
        return PriceSnapshot(
            wind_price_usd=self.wind_price_usd,
            native_price_usd=self.native_price_usd,
            last_updated=self.last_updated,
            is_stale=stale,
            sequence=self._sequence_applied,
        )

    async def poll(
        self,
        interval_seconds: float = config.prices.REFRESH_SECONDS,
        iterations: Optional[int] = None,
        on_update: Optional[Callable[[PriceSnapshot], Optional[Awaitable[None]]]] = None,
    ) -> PriceSnapshot:
        """
        Refresh immediately, then every ``interval_seconds``.

        Args:
            iterations: Stop after this many refreshes (None = forever).
            on_update: Called with each snapshot (sync or async).
        """
        count = 0
        snap = self.snapshot()
        while iterations is None or count < iterations:
            snap = await self.refresh()
            count += 1
            if on_update is not None:
                maybe = on_update(snap)
                if asyncio.iscoroutine(maybe):
                    await maybe
            if iterations is not None and count >= iterations:
                break
            await asyncio.sleep(interval_seconds)
        return snap
