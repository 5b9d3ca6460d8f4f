"""
Project Configuration — RPC endpoints, subgraph, price bounds, version
=======================================================================

Contains Sei EVM JSON-RPC endpoints, the Goldsky subgraph URL and the
tunables of the price resolver.

Environment overrides (optional):
  CL_PRICING_RPC_PRIMARY     replaces the primary JSON-RPC endpoint
  CL_PRICING_RPC_SECONDARY   replaces the secondary (batch) endpoint
  CL_PRICING_SUBGRAPH_URL    replaces the subgraph GraphQL endpoint
"""

import os
import re
from dataclasses import dataclass, field
from importlib.metadata import version, PackageNotFoundError
from pathlib import Path

# Version: single source of truth is pyproject.toml
try:
    PROJECT_VERSION = version("cl-pricing")
except PackageNotFoundError:
    # Dev / CI: package not installed, read pyproject.toml directly
    _toml = Path(__file__).resolve().parent.parent / "pyproject.toml"
    _m = (
        re.search(r'version\s*=\s*"([^"]+)"', _toml.read_text())
        if _toml.exists()
        else None
    )
    PROJECT_VERSION = _m.group(1) if _m else "0.0.0-dev"
PROJECT_NAME = "CL Pricing"


@dataclass(frozen=True)
class RpcEndpoints:
    """Sei EVM JSON-RPC endpoints."""

    # Keyed endpoint, high rate limit
    PRIMARY: str = os.environ.get(
        "CL_PRICING_RPC_PRIMARY", "https://evm-rpc.sei-apis.com/?x-apikey=f9e3e8c8"
    )
    # No rate limit, preferred for batch reads
    SECONDARY: str = os.environ.get(
        "CL_PRICING_RPC_SECONDARY", "https://sei-evm-rpc.stakeme.pro"
    )
    TIMEOUT_SECONDS: int = 20

    @property
    def rotation(self) -> list[str]:
        """Endpoints taking part in round-robin, in order."""
        return [self.PRIMARY, self.SECONDARY]


@dataclass(frozen=True)
class SubgraphAPI:
    """Goldsky-hosted CL subgraph (read-only GraphQL)."""

    URL: str = os.environ.get(
        "CL_PRICING_SUBGRAPH_URL",
        "https://api.goldsky.com/api/public/project_cmjlh2t5mylhg01tm7t545rgk"
        "/subgraphs/windswap-cl/2.0.0/gn",
    )
    TIMEOUT_SECONDS: int = 15
    CACHE_TTL_SECONDS: int = 120


@dataclass(frozen=True)
class PriceBounds:
    """Acceptance windows (exclusive) for resolved USD prices.

    A resolved price outside its window is rejected and the previous
    value is kept.
    """

    wind_min: float = 0.0
    wind_max: float = 1000.0
    native_min: float = 0.0
    native_max: float = 100.0

    def accepts_wind(self, price: float) -> bool:
        return self.wind_min < price < self.wind_max

    def accepts_native(self, price: float) -> bool:
        return self.native_min < price < self.native_max


@dataclass(frozen=True)
class PriceDefaults:
    """Seed prices and refresh cadence for the price resolver."""

    WIND_PRICE_USD: float = 0.005
    NATIVE_PRICE_USD: float = 0.35
    REFRESH_SECONDS: float = 60.0
    # Snapshot is reported stale once this old
    MAX_AGE_SECONDS: float = 180.0
    bounds: PriceBounds = field(default_factory=PriceBounds)


# Unified configuration
class CLPricingConfig:
    """Unified configuration for RPC, subgraph and pricing."""

    rpc = RpcEndpoints()
    subgraph = SubgraphAPI()
    prices = PriceDefaults()


# Global instance
config = CLPricingConfig()
