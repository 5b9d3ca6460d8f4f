#!/usr/bin/env python3
"""
Multi-Tier Quote Router — Best Swap Quote Across Tick Spacings
===============================================================

Simulates swaps against the Slipstream QuoterV2 via eth_call (no
transaction is sent):

  Direct (single pool):
    QuoterV2.quoteExactInputSingle((tokenIn, tokenOut, amountIn,
                                    tickSpacing, sqrtPriceLimitX96))
    → (amountOut, sqrtPriceX96After, initializedTicksCrossed, gasEstimate)

    One quote per supported tick spacing (1, 50, 100, 200, 2000) is fired
    concurrently; all are awaited, then the largest amountOut wins.
    A reverted, empty, truncated or zero quote means "no pool at this
    tier" — no separate existence check is made.

  Multi-hop (tokenIn → intermediate → tokenOut):
    For each leg, the lowest tick spacing with CLFactory.getPool(a, b, ts)
    ≠ 0x0 is used; then QuoterV2.quoteExactInput(path, amountIn).

  All routes (best_route):
    The direct best quote, plus MixedRouteQuoterV1.quoteExactInput for
    every spacing pair through every intermediate in one batch request.

Native SEI is always routed as WSEI.
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence, Tuple, Union

import httpx

from cl_pricing.registry import (
    CL_CONTRACTS,
    INTERMEDIATE_TOKENS,
    TICK_SPACINGS,
    ZERO_ADDRESS,
    Token,
    wrapped,
)
from cl_pricing.rpc_client import RpcClient, RpcError
from cl_pricing.rpc_helpers import (
    build_get_pool_call,
    build_quote_exact_input,
    build_quote_exact_input_single,
    decode_address,
    decode_quoter_result,
    encode_path,
    is_empty_result,
    strip_0x,
)
from cl_pricing.sequencing import RequestSequencer

logger = logging.getLogger(__name__)


class NoRouteError(RuntimeError):
    """No multi-hop route could be resolved."""


@dataclass
class Quote:
    """Simulated single-pool swap result (amounts in raw token units)."""

    amount_out: int
    tick_spacing: int
    pool_exists: bool = True
    gas_estimate: int = 0
    sqrt_price_x96_after: int = 0

    def formatted_amount_out(self, decimals: int) -> Decimal:
        return Decimal(self.amount_out) / (Decimal(10) ** decimals)


@dataclass
class MultiHopQuote:
    """Simulated two-pool swap result."""

    amount_out: int
    path: Tuple[str, str, str]
    tick_spacings: Tuple[int, int]
    intermediate: Token

    def formatted_amount_out(self, decimals: int) -> Decimal:
        return Decimal(self.amount_out) / (Decimal(10) ** decimals)


def to_raw_amount(amount: Union[str, int, float, Decimal], decimals: int) -> int:
    """
    Human amount → raw integer units (truncating extra precision).

    Raises:
        ValueError: If the amount is not a positive number.
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}") from None
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be positive, got {amount!r}")
    return int(value * (Decimal(10) ** decimals))


class QuoteRouter:
    """
    Finds the best quote for a token pair.

    Usage:
        router = QuoteRouter()
        q = await router.best_quote(WIND, USDC, 10**18)          # all tiers
        q = await router.best_quote(WIND, USDC, 10**18, 200)     # one tier
        mh = await router.multi_hop_quote(WIND, WSEI, USDT, 10**18)
    """

    def __init__(
        self,
        client: Optional[RpcClient] = None,
        quoter: str = CL_CONTRACTS["QuoterV2"],
        factory: str = CL_CONTRACTS["CLFactory"],
        tick_spacings: Sequence[int] = TICK_SPACINGS,
        mixed_quoter: str = CL_CONTRACTS["MixedRouteQuoterV1"],
    ):
        self.client = client or RpcClient()
        self.quoter = quoter
        self.factory = factory
        self.mixed_quoter = mixed_quoter
        self.tick_spacings = tuple(tick_spacings)

    # ── Direct ───────────────────────────────────────────────────────────

    async def quote_tier(
        self, token_in: Token, token_out: Token, amount_in: int, tick_spacing: int
    ) -> Optional[Quote]:
        """Quote one tick spacing; None if that pool does not answer."""
        data = build_quote_exact_input_single(
            wrapped(token_in).address, wrapped(token_out).address, amount_in, tick_spacing
        )
        try:
            raw = await self.client.eth_call(self.quoter, data)
        except (httpx.HTTPError, RpcError, ValueError) as exc:
            logger.debug("Tier %d: no quote (%s)", tick_spacing, exc)
            return None

        decoded = decode_quoter_result(raw)
        if decoded is None or decoded["amount_out"] <= 0:
            logger.debug("Tier %d: empty or zero quote", tick_spacing)
            return None
        return Quote(
            amount_out=decoded["amount_out"],
            tick_spacing=tick_spacing,
            pool_exists=True,
            gas_estimate=decoded["gas_estimate"],
            sqrt_price_x96_after=decoded["sqrt_price_x96_after"],
        )

    async def best_quote(
        self,
        token_in: Token,
        token_out: Token,
        amount_in: int,
        tick_spacing: Optional[int] = None,
    ) -> Optional[Quote]:
        """
        Best direct quote.

        Args:
            amount_in: Raw input amount (token units × 10^decimals).
            tick_spacing: Quote only this tier when given.

        Returns:
            The quote with the strictly largest amountOut (the first such
            tier in spacing order on ties), or None when no tier answers.
        """
        if amount_in <= 0:
            return None
        if tick_spacing is not None:
            return await self.quote_tier(token_in, token_out, amount_in, tick_spacing)

        quotes = await asyncio.gather(
            *(self.quote_tier(token_in, token_out, amount_in, ts) for ts in self.tick_spacings)
        )
        best: Optional[Quote] = None
        for quote in quotes:
            if quote is not None and (best is None or quote.amount_out > best.amount_out):
                best = quote
        return best

    # ── Multi-hop ────────────────────────────────────────────────────────

    async def pool_exists(self, token_a: str, token_b: str, tick_spacing: int) -> bool:
        """CLFactory.getPool(a, b, spacing) returns a non-zero address."""
        try:
            raw = await self.client.eth_call(
                self.factory, build_get_pool_call(token_a, token_b, tick_spacing)
            )
        except (httpx.HTTPError, RpcError, ValueError) as exc:
            logger.debug("getPool(%d) failed: %s", tick_spacing, exc)
            return False
        if is_empty_result(raw):
            return False
        return decode_address(strip_0x(raw)) != ZERO_ADDRESS

    async def first_pool_spacing(self, token_a: str, token_b: str) -> Optional[int]:
        """Lowest tick spacing with a deployed pool for (a, b), or None."""
        for spacing in sorted(self.tick_spacings):
            if await self.pool_exists(token_a, token_b, spacing):
                return spacing
        return None

    async def multi_hop_quote(
        self, token_in: Token, intermediate: Token, token_out: Token, amount_in: int
    ) -> MultiHopQuote:
        """
        Quote tokenIn → intermediate → tokenOut.

        Raises:
            NoRouteError: Either leg has no pool, or the quoter returns
                nothing usable.
        """
        a, b, c = (wrapped(t).address for t in (token_in, intermediate, token_out))
        spacing1 = await self.first_pool_spacing(a, b)
        spacing2 = await self.first_pool_spacing(b, c)
        if spacing1 is None or spacing2 is None:
            raise NoRouteError("No multi-hop route available")

        path = encode_path([a, b, c], [spacing1, spacing2])
        try:
            raw = await self.client.eth_call(self.quoter, build_quote_exact_input(path, amount_in))
        except (httpx.HTTPError, RpcError, ValueError) as exc:
            raise NoRouteError(f"No multi-hop route available: {exc}") from exc

        decoded = decode_quoter_result(raw)
        if decoded is None or decoded["amount_out"] <= 0:
            raise NoRouteError("No multi-hop route available")
        return MultiHopQuote(
            amount_out=decoded["amount_out"],
            path=(token_in.symbol, intermediate.symbol, token_out.symbol),
            tick_spacings=(spacing1, spacing2),
            intermediate=intermediate,
        )

    # ── Direct + Multi-hop ───────────────────────────────────────────────

    async def multi_hop_paths(
        self,
        token_in: Token,
        token_out: Token,
        amount_in: int,
        intermediates: Sequence[Token] = INTERMEDIATE_TOKENS,
    ) -> List[MultiHopQuote]:
        """
        Quote every (spacing1, spacing2) path through each intermediate.

        All paths go to the MixedRouteQuoter as one batched request, so an
        illiquid low-spacing pool does not hide a better higher-spacing
        path. Intermediates equal to either end of the swap are skipped.

        Returns:
            One quote per path with a positive amountOut (possibly empty).
        """
        a, c = wrapped(token_in).address, wrapped(token_out).address
        ends = {a.lower(), c.lower()}
        routes = [
            (mid, s1, s2)
            for mid in intermediates
            if wrapped(mid).address.lower() not in ends
            for s1 in self.tick_spacings
            for s2 in self.tick_spacings
        ]
        if not routes:
            return []

        calls = [
            (
                self.mixed_quoter,
                build_quote_exact_input(
                    encode_path([a, wrapped(mid).address, c], [s1, s2]), amount_in
                ),
            )
            for mid, s1, s2 in routes
        ]
        try:
            raws = await self.client.eth_call_batch(calls)
        except (httpx.HTTPError, RpcError, ValueError) as exc:
            logger.debug("Multi-hop batch of %d paths failed: %s", len(calls), exc)
            return []

        quotes: List[MultiHopQuote] = []
        for (mid, s1, s2), raw in zip(routes, raws):
            decoded = decode_quoter_result(raw)
            if decoded is None or decoded["amount_out"] <= 0:
                continue
            quotes.append(
                MultiHopQuote(
                    amount_out=decoded["amount_out"],
                    path=(token_in.symbol, mid.symbol, token_out.symbol),
                    tick_spacings=(s1, s2),
                    intermediate=mid,
                )
            )
        return quotes

    async def best_route(
        self,
        token_in: Token,
        token_out: Token,
        amount_in: int,
        intermediates: Sequence[Token] = INTERMEDIATE_TOKENS,
    ) -> Optional[Union[Quote, MultiHopQuote]]:
        """
        Best of the direct quote and every multi-hop path.

        The direct quote wins ties. Returns None when nothing routes.
        """
        if amount_in <= 0:
            return None
        direct, hops = await asyncio.gather(
            self.best_quote(token_in, token_out, amount_in),
            self.multi_hop_paths(token_in, token_out, amount_in, intermediates),
        )
        best: Optional[Union[Quote, MultiHopQuote]] = direct
        for route in hops:
            if best is None or route.amount_out > best.amount_out:
                best = route
        return best


class QuoteSession:
    """
    Consumer-side fencing for overlapping quote requests.

    Each ``request`` takes a ticket; its result is published to ``latest``
    only if no newer request was issued meanwhile. Superseded results are
    dropped and ``request`` returns None for them.
    """

    def __init__(self, router: Optional[QuoteRouter] = None):
        self.router = router or QuoteRouter()
        self.sequencer = RequestSequencer()
        self.latest: Optional[Quote] = None
        self.latest_ticket = 0

    async def request(
        self,
        token_in: Token,
        token_out: Token,
        amount_in: int,
        tick_spacing: Optional[int] = None,
    ) -> Optional[Quote]:
        ticket = self.sequencer.issue()
        quote = await self.router.best_quote(token_in, token_out, amount_in, tick_spacing)
        if not self.sequencer.is_current(ticket):
            logger.debug("Dropping superseded quote #%d", ticket)
            return None
        self.latest = quote
        self.latest_ticket = ticket
        return quote
