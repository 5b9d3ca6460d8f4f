#!/usr/bin/env python3
"""
Registry — Sei EVM Tokens, Slipstream Contracts, Reference Pools
=================================================================

Static addresses for the WindSwap concentrated-liquidity (Slipstream)
deployment on Sei EVM (chain id 1329).

Contents:
  • TOKENS           — ERC-20 metadata keyed by upper-case symbol
  • CL_CONTRACTS     — CLFactory, QuoterV2, MixedRouteQuoterV1
  • *_POOL           — reference pools used to bootstrap USD price discovery
  • TICK_SPACINGS    — the CLFactory's enabled tick spacings (fee tiers)

Tick spacing ↔ fee (CLFactory.tickSpacingToFee):
  1 → 0.005%   50 → 0.02%   100 → 0.045%   200 → 0.25%   2000 → 1%
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# ── Tokens ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Token:
    """ERC-20 token metadata (native SEI uses the 0xEeee… sentinel)."""

    address: str
    symbol: str
    decimals: int
    name: str = ""
    is_native: bool = False


SEI = Token(
    address="0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE",
    symbol="SEI",
    decimals=18,
    name="Sei",
    is_native=True,
)
WSEI = Token("0xE30feDd158A2e3b13e9badaeABaFc5516e95e8C7", "WSEI", 18, "Wrapped SEI")
WIND = Token("0x80B56cF09c18e642DC04d94b8AD25Bb5605c1421", "WIND", 18, "Wind Swap")
USDC = Token("0xe15fC38F6D8c56aF07bbCBe3BAf5708A2Bf42392", "USDC", 6, "USD Coin")
USDT = Token("0xB75D0B03c06A926e488e2659DF1A861F860bD3d1", "USDT", 6, "Tether USD")
WBTC = Token("0x0555E30da8f98308EdB960aa94C0Db47230d2B9c", "WBTC", 8, "Wrapped BTC")

TOKENS = MappingProxyType({t.symbol: t for t in (SEI, WSEI, WIND, USDC, USDT, WBTC)})

# Tokens tried as the middle hop when no direct pool exists
INTERMEDIATE_TOKENS = (WSEI, USDC)


def get_token(symbol_or_address: str) -> Token:
    """Look up a token by symbol (case-insensitive) or by address.

    Raises:
        ValueError: If the token is not in the registry.
    """
    key = symbol_or_address.strip()
    if key.upper() in TOKENS:
        return TOKENS[key.upper()]
    for token in TOKENS.values():
        if token.address.lower() == key.lower():
            return token
    raise ValueError(
        f"Unknown token: {symbol_or_address}. Available: {list(TOKENS.keys())}"
    )


def wrapped(token: Token) -> Token:
    """CL pools hold WSEI, never native SEI."""
    return WSEI if token.is_native else token


# ── Contracts ───────────────────────────────────────────────────────────

CL_CONTRACTS = MappingProxyType(
    {
        "CLFactory": "0x0aeEAf8d3bb4a9466e6AC8985F5173ddB42Ec081",
        "QuoterV2": "0xEC98E8bFaA9375E2D588042F045aD028BaDC43CB",
        "MixedRouteQuoterV1": "0x476faE73abA86E6e300234235BD56Bd94913ce07",
    }
)

# Voter maps pools → gauges (gauges(address))
VOTER_ADDRESS = "0xe0Ec2B044fCFABF673df4c21C15Ac90fEa2A1d99"


# ── Tick Spacings ───────────────────────────────────────────────────────

TICK_SPACINGS: tuple[int, ...] = (1, 50, 100, 200, 2000)

FEE_LABELS = MappingProxyType(
    {1: "0.005%", 50: "0.02%", 100: "0.045%", 200: "0.25%", 2000: "1%"}
)


def fee_label(tick_spacing: Optional[int]) -> str:
    """Display label for a tick spacing ('' when unknown)."""
    if tick_spacing is None:
        return ""
    return FEE_LABELS.get(tick_spacing, "")


# ── Reference Pools ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class PoolReference:
    """A fixed pool used for USD price discovery."""

    address: str
    token0: Token
    token1: Token

    @property
    def decimals0(self) -> int:
        return self.token0.decimals

    @property
    def decimals1(self) -> int:
        return self.token1.decimals


# WIND (token0, 18 dec) priced in USDC (token1, 6 dec)
WIND_USDC_POOL = PoolReference("0x576fc1F102c6Bb3F0A2bc87fF01fB652b883dFe0", WIND, USDC)
# USDC (token0, 6 dec) / WSEI (token1, 18 dec); native price is the inverse
USDC_WSEI_POOL = PoolReference("0x587b82b8ed109D8587a58f9476a8d4268Ae945B1", USDC, WSEI)
