#!/usr/bin/env python3
"""
Reward APR Math Engine
======================

Converts gauge emissions into annualized percentage rates for
concentrated-liquidity (Slipstream) pools, and converts between ticks and
human-readable prices.

FORMULA SOURCES:
────────────────
1. Uniswap V3 Core Whitepaper §6.1 — Tick-Indexed Prices
   https://uniswap.org/whitepaper-v3.pdf
   p(i) = 1.0001^i

2. TickMath.sol — valid tick range [-887272, +887272]
   https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/TickMath.sol

3. Gauge emissions — CLGauge.rewardRate() is reward-token wei per second.
   APR = rewardRate / 1e18 × 31,536,000 × price / TVL × 100

4. Concentration multiplier (display heuristic):
   m = √(full_range_ticks / position_width_ticks), clamped.
   The square root dampens the raw density ratio so narrow ranges do not
   produce unbounded APRs.

All functions are pure. Invalid numeric input yields 0 or None, never an
exception (the tick ↔ price helpers are the exception: they validate).
"""

import math
from typing import Optional

# ── Named Constants ──────────────────────────────────────────────────────

MIN_TICK = -887272
MAX_TICK = 887272
FULL_RANGE_TICKS = MAX_TICK - MIN_TICK  # 1,774,544

WEI_PER_TOKEN = 10 ** 18
SECONDS_PER_YEAR = 60 * 60 * 24 * 365  # 31,536,000

POOL_MULTIPLIER_CAP = 500.0
RANGE_MULTIPLIER_CAP = 1000.0
# Out-of-range positions keep this share of the range boost
OUT_OF_RANGE_FACTOR = 0.5


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


# ── Tick ↔ Price ─────────────────────────────────────────────────────────


class TickMath:
    """Tick/price conversions with token-decimal adjustment."""

    @staticmethod
    def tick_to_price(
        tick: int, decimals0: int, decimals1: int, token0_is_base: bool = True
    ) -> float:
        """
        Human price of token0 in token1 at ``tick``.

        Formula (Whitepaper §6.1):
            raw   = 1.0001^tick                 (token1 wei per token0 wei)
            price = raw × 10^(decimals0 − decimals1)

        If ``token0_is_base`` is False the inverse (token0 per token1) is
        returned.
        """
        tick = max(MIN_TICK, min(MAX_TICK, tick))
        price = 1.0001 ** tick * 10 ** (decimals0 - decimals1)
        return price if token0_is_base else 1 / price

    @staticmethod
    def price_to_tick(
        price: float,
        decimals0: int,
        decimals1: int,
        tick_spacing: int = 1,
        token0_is_base: bool = True,
    ) -> int:
        """
        Nearest tick aligned to ``tick_spacing`` for a human price.

            raw  = price × 10^(decimals1 − decimals0)
            tick = round(log(raw) / log(1.0001) / spacing) × spacing

        Raises:
            ValueError: If price or tick_spacing is not positive.
        """
        if price <= 0:
            raise ValueError("Price must be positive")
        if tick_spacing <= 0:
            raise ValueError("Tick spacing must be positive")
        pool_price = price if token0_is_base else 1 / price
        raw = pool_price * 10 ** (decimals1 - decimals0)
        raw_tick = math.log(raw) / math.log(1.0001)
        raw_tick = _clamp(raw_tick, MIN_TICK, MAX_TICK)
        return int(round(raw_tick / tick_spacing)) * tick_spacing


# ── Reward APR ───────────────────────────────────────────────────────────


class AprCalculator:
    """
    Gauge-emission APR for CL pools.

    Percentages are returned on a 0–100 scale (100.0 = 100%).
    """

    @staticmethod
    def base_apr(reward_rate_per_second: int, token_price_usd: float, tvl_usd: float) -> float:
        """
        Full-range-equivalent APR from a gauge reward rate.

            annual_tokens = rewardRate / 1e18 × 31,536,000
            annual_usd    = annual_tokens × price
            APR           = annual_usd / TVL × 100

        Returns 0 if TVL or price is not positive.
        """
        if tvl_usd <= 0 or token_price_usd <= 0:
            return 0.0
        rewards_per_second = reward_rate_per_second / WEI_PER_TOKEN
        annual_rewards_usd = rewards_per_second * SECONDS_PER_YEAR * token_price_usd
        return (annual_rewards_usd / tvl_usd) * 100

    @staticmethod
    def concentration_multiplier(tick_spacing: Optional[int]) -> float:
        """
        Reward density of a one-spacing-wide position vs full range.

            m = √(1,774,544 / tick_spacing), clamped to [1, 500]

        Returns 1 for a missing or non-positive spacing.
        """
        if not tick_spacing or tick_spacing <= 0:
            return 1.0
        raw = math.sqrt(FULL_RANGE_TICKS / tick_spacing)
        return _clamp(raw, 1.0, POOL_MULTIPLIER_CAP)

    @staticmethod
    def pool_apr(
        reward_rate_per_second: int,
        token_price_usd: float,
        tvl_usd: float,
        tick_spacing: Optional[int] = None,
    ) -> float:
        """Pool-page APR: base APR × concentration multiplier (CL pools only)."""
        apr = AprCalculator.base_apr(reward_rate_per_second, token_price_usd, tvl_usd)
        if tick_spacing and tick_spacing > 0:
            return apr * AprCalculator.concentration_multiplier(tick_spacing)
        return apr

    @staticmethod
    def range_adjusted_apr(
        base_apr: float,
        tick_lower: int,
        tick_upper: int,
        current_tick: int,
        out_of_range_factor: float = OUT_OF_RANGE_FACTOR,
    ) -> Optional[float]:
        """
        Estimated APR for a specific position range.

            width = tick_upper − tick_lower
            m     = √(1,774,544 / width), clamped to [1, 1000]
            in range  (lower ≤ current < upper): APR = base × m
            out of range:                        APR = base × m × factor

        Returns None for a non-positive base APR or an empty/inverted range.
        """
        if base_apr <= 0 or tick_lower >= tick_upper:
            return None
        width = tick_upper - tick_lower
        multiplier = _clamp(math.sqrt(FULL_RANGE_TICKS / width), 1.0, RANGE_MULTIPLIER_CAP)
        in_range = tick_lower <= current_tick < tick_upper
        if not in_range:
            multiplier *= out_of_range_factor
        return base_apr * multiplier


def format_apr(apr: float) -> str:
    """
    Compact APR label.

    >>> format_apr(12345)
    '12K%'
    >>> format_apr(1234)
    '1.2K%'
    >>> format_apr(0.5)
    '0.50%'
    """
    if apr <= 0:
        return "—"
    if apr >= 10_000:
        return f"{apr / 1000:.0f}K%"
    if apr >= 1000:
        return f"{apr / 1000:.1f}K%"
    if apr >= 100:
        return f"{apr:.0f}%"
    if apr >= 1:
        return f"{apr:.1f}%"
    return f"{apr:.2f}%"
