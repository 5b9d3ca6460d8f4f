#!/usr/bin/env python3
"""
Subgraph Client — Pool TVL and Volume via GraphQL
=================================================

Read-only client for the WindSwap CL subgraph hosted on Goldsky.
One POST returns every pool with TVL, volume, fees and tick spacing.

Data Source:
  Endpoint : config.subgraph.URL (HTTPS POST, body = {query, variables})
  Schema   : pools { id token0 token1 tickSpacing totalValueLockedUSD … }
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from cl_pricing.central_config import config


class SubgraphError(RuntimeError):
    """GraphQL ``errors`` member, or a malformed response."""


POOLS_QUERY = """
    query GetPools($first: Int!, $skip: Int!, $orderBy: String!, $orderDirection: String!) {
        pools(first: $first, skip: $skip, orderBy: $orderBy, orderDirection: $orderDirection) {
            id
            token0 { id symbol decimals }
            token1 { id symbol decimals }
            tickSpacing
            totalValueLockedUSD
            volumeUSD
            feesUSD
            txCount
        }
    }
"""


@dataclass
class SubgraphPool:
    """One CL pool as reported by the subgraph."""

    address: str
    token0_symbol: str
    token1_symbol: str
    tick_spacing: int
    tvl_usd: float
    volume_usd: float = 0.0
    fees_usd: float = 0.0
    tx_count: int = 0

    @property
    def pair(self) -> str:
        return f"{self.token0_symbol}/{self.token1_symbol}"

    @classmethod
    def from_graphql(cls, raw: Dict[str, Any]) -> "SubgraphPool":
        """Build from a ``pools`` entry; numeric strings are parsed."""
        return cls(
            address=raw.get("id", "").lower(),
            token0_symbol=(raw.get("token0") or {}).get("symbol", "?"),
            token1_symbol=(raw.get("token1") or {}).get("symbol", "?"),
            tick_spacing=int(raw.get("tickSpacing") or 0),
            tvl_usd=float(raw.get("totalValueLockedUSD") or 0),
            volume_usd=float(raw.get("volumeUSD") or 0),
            fees_usd=float(raw.get("feesUSD") or 0),
            tx_count=int(raw.get("txCount") or 0),
        )


class SubgraphClient:
    """GraphQL client with a short in-memory cache."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or config.subgraph.URL
        self.timeout = config.subgraph.TIMEOUT_SECONDS
        self._cache: Optional[List[SubgraphPool]] = None
        self._cache_time: Optional[datetime] = None
        self._cache_first: Optional[int] = None
        self._cache_ttl_seconds = config.subgraph.CACHE_TTL_SECONDS

    async def query(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a GraphQL query and return its ``data`` member.

        Raises:
            SubgraphError: The response carries ``errors`` or no ``data``.
            httpx.HTTPError: Transport or HTTP status failure.
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(self.url, json={"query": query, "variables": variables})
            resp.raise_for_status()
            body = resp.json()

        if not isinstance(body, dict):
            raise SubgraphError(f"Unexpected response type: {type(body).__name__}")
        if body.get("errors"):
            first = body["errors"][0] or {}
            raise SubgraphError(f"GraphQL error: {first.get('message', 'unknown')}")
        if "data" not in body or body["data"] is None:
            raise SubgraphError("GraphQL response has no data")
        return body["data"]

    async def fetch_pools(self, first: int = 100) -> List[SubgraphPool]:
        """Top ``first`` pools ordered by TVL (cached per size for a couple of minutes)."""
        now = datetime.now()
        if (
            self._cache is not None
            and self._cache_first == first
            and self._cache_time is not None
            and (now - self._cache_time).total_seconds() < self._cache_ttl_seconds
        ):
            return self._cache

        data = await self.query(
            POOLS_QUERY,
            {
                "first": first,
                "skip": 0,
                "orderBy": "totalValueLockedUSD",
                "orderDirection": "desc",
            },
        )
        self._cache = [SubgraphPool.from_graphql(p) for p in data.get("pools") or []]
        self._cache_first = first
        self._cache_time = now
        return self._cache

    async def get_pool(self, address: str) -> Optional[SubgraphPool]:
        """Pool by address (case-insensitive), or None."""
        address = address.lower()
        for pool in await self.fetch_pools():
            if pool.address == address:
                return pool
        return None
