#!/usr/bin/env python3
"""
RPC Helpers — ABI Encoding/Decoding for Slipstream CL Contracts
================================================================

Low-level EVM hex primitives shared by the price resolver, the gauge
reader and the quote router:

  • ABI encoding (uint256, address, int24) and packed path encoding
  • ABI decoding (uint256 slots, address, slot0 tick)
  • Calldata builders for slot0, rewardRate, gauges, getPool, QuoterV2

All constants reference the Ethereum ABI specification:
  https://docs.soliditylang.org/en/latest/abi-spec.html

Terminology:
  • Word:  32 bytes = 256 bits = 64 hex characters
  • Slot:  Position of a 32-byte word in an ABI response
  • Path:  tokenIn(20) ‖ tickSpacing(3) ‖ tokenOut(20) [‖ tickSpacing(3) ‖ token(20) …]
"""

from typing import Dict, Optional, Sequence

# ── ABI Word Constants ──────────────────────────────────────────────────

ABI_WORD_BYTES = 32          # 1 ABI word = 32 bytes
ABI_WORD_HEX = 64            # 32 bytes × 2 hex chars = 64 hex characters
ADDRESS_HEX = 40             # 20 bytes × 2 = 40 hex characters
ADDRESS_PAD_HEX = 24         # Left padding in a 32-byte slot = 64 - 40
Q256 = 2 ** 256              # int256 two's complement wrap

# ── int24 (tick / tick spacing) ─────────────────────────────────────────

INT24_HEX = 6                # 3 bytes × 2 = 6 hex characters
INT24_MAX = 0x7FFFFF         # 8,388,607
INT24_MODULUS = 0x1000000    # 16,777,216

# slot0() response: word 0 = sqrtPriceX96, word 1 = tick.
# "0x" + 2 words = 2 + 128 = 130 characters minimum.
SLOT0_MIN_HEX_LEN = 2 + 2 * ABI_WORD_HEX
# A single uint256 return value: "0x" + 64
UINT_RESULT_MIN_LEN = 2 + ABI_WORD_HEX


# ── ABI Function Selectors ──────────────────────────────────────────────
# First 4 bytes of keccak256(function_signature).

SELECTORS: Dict[str, str] = {
    # CLPool
    "slot0":                  "0x3850c7bd",  # slot0()
    # CLGauge
    "rewardRate":             "0x7b0a47ee",  # rewardRate()
    # Voter
    "gauges":                 "0xb9a09fd5",  # gauges(address)
    # CLFactory
    "getPool":                "0x28af8d0b",  # getPool(address,address,int24)
    # QuoterV2
    "quoteExactInputSingle":  "0xc6a5026a",  # quoteExactInputSingle((address,address,uint256,int24,uint160))
    "quoteExactInput":        "0xcdca1753",  # quoteExactInput(bytes,uint256)
}


def strip_0x(hex_data: str) -> str:
    return hex_data[2:] if hex_data.startswith("0x") else hex_data


def is_empty_result(raw: Optional[str], min_length: int = UINT_RESULT_MIN_LEN) -> bool:
    """True for a missing, ``0x`` or truncated eth_call result."""
    return not raw or raw == "0x" or len(raw) < min_length


# ── ABI Encoding ────────────────────────────────────────────────────────

def encode_uint256(value: int) -> str:
    """ABI-encode a uint256 as 32-byte hex (no 0x prefix).

    >>> encode_uint256(1)
    '0000000000000000000000000000000000000000000000000000000000000001'
    """
    return format(value, f'0{ABI_WORD_HEX}x')


def encode_address(addr: str) -> str:
    """ABI-encode an address as 32 bytes (left-padded, no 0x prefix)."""
    return strip_0x(addr.lower()).zfill(ABI_WORD_HEX)


def encode_int24(value: int) -> str:
    """ABI-encode an int24 sign-extended to a 32-byte word.

    >>> encode_int24(-1)[-6:]
    'ffffff'
    """
    if value < 0:
        value = Q256 + value
    return format(value, f'0{ABI_WORD_HEX}x')


def encode_int24_packed(value: int) -> str:
    """Packed 3-byte two's complement int24 (path encoding, 6 hex chars).

    >>> encode_int24_packed(50)
    '000032'
    >>> encode_int24_packed(-1)
    'ffffff'
    """
    if value < 0:
        value = INT24_MODULUS + value
    return format(value, f'0{INT24_HEX}x')


def encode_path(tokens: Sequence[str], tick_spacings: Sequence[int]) -> str:
    """Packed swap path (no 0x prefix): token ‖ spacing ‖ token …

    Raises:
        ValueError: If len(tokens) != len(tick_spacings) + 1.
    """
    if len(tokens) != len(tick_spacings) + 1:
        raise ValueError(
            f"Path needs one more token than tick spacings "
            f"({len(tokens)} tokens, {len(tick_spacings)} spacings)"
        )
    path = strip_0x(tokens[0].lower())
    for spacing, token in zip(tick_spacings, tokens[1:]):
        path += encode_int24_packed(spacing) + strip_0x(token.lower())
    return path


# ── ABI Decoding ────────────────────────────────────────────────────────

def decode_uint(hex_data: str, slot: int = 0) -> int:
    """Decode uint256 from ABI response at 32-byte slot offset.

    Args:
        hex_data: Hex string (without 0x prefix).
        slot: Which 32-byte word to read (0-indexed).
    """
    start = slot * ABI_WORD_HEX
    return int(hex_data[start:start + ABI_WORD_HEX], 16)


def decode_address(hex_data: str, slot: int = 0) -> str:
    """Decode address (last 20 bytes of 32-byte slot)."""
    start = slot * ABI_WORD_HEX
    return "0x" + hex_data[start + ADDRESS_PAD_HEX:start + ABI_WORD_HEX]


def decode_tick_from_slot0(raw: Optional[str]) -> Optional[int]:
    """
    Extract the signed 24-bit tick from a raw ``slot0()`` eth_call result.

    Layout: ``0x`` + word0 (sqrtPriceX96) + word1 (tick, int24 sign-extended).
    Only the low 3 bytes of word1 are read; values above 0x7FFFFF are
    negative in two's complement.

    Returns:
        The tick, or None for a missing / ``0x`` / truncated response.
    """
    if is_empty_result(raw, SLOT0_MIN_HEX_LEN):
        return None
    tick_word = raw[2 + ABI_WORD_HEX:SLOT0_MIN_HEX_LEN]
    try:
        tick = int(tick_word[-INT24_HEX:], 16)
    except ValueError:
        return None
    if tick > INT24_MAX:
        tick -= INT24_MODULUS
    return tick


def decode_quoter_result(raw: Optional[str]) -> Optional[Dict[str, int]]:
    """
    Decode a QuoterV2 ``quoteExactInputSingle`` return value.

    Returns (amountOut, sqrtPriceX96After, initializedTicksCrossed,
    gasEstimate) as a dict. Fields beyond the data actually returned are 0.
    None for an empty/truncated response.
    """
    if is_empty_result(raw):
        return None
    hex_data = strip_0x(raw)
    words = len(hex_data) // ABI_WORD_HEX
    try:
        return {
            "amount_out": decode_uint(hex_data, 0),
            "sqrt_price_x96_after": decode_uint(hex_data, 1) if words > 1 else 0,
            "ticks_crossed": decode_uint(hex_data, 2) if words > 2 else 0,
            "gas_estimate": decode_uint(hex_data, 3) if words > 3 else 0,
        }
    except ValueError:
        return None


# ── Calldata Builders ───────────────────────────────────────────────────

def build_gauges_call(pool_address: str) -> str:
    """Voter.gauges(pool) calldata."""
    return SELECTORS["gauges"] + encode_address(pool_address)


def build_get_pool_call(token_a: str, token_b: str, tick_spacing: int) -> str:
    """CLFactory.getPool(tokenA, tokenB, tickSpacing) calldata."""
    return (
        SELECTORS["getPool"]
        + encode_address(token_a)
        + encode_address(token_b)
        + encode_int24(tick_spacing)
    )


def build_quote_exact_input_single(
    token_in: str, token_out: str, amount_in: int, tick_spacing: int,
    sqrt_price_limit_x96: int = 0,
) -> str:
    """QuoterV2.quoteExactInputSingle calldata.

    The params struct is all-static, so it is encoded inline (no offset word).
    """
    return (
        SELECTORS["quoteExactInputSingle"]
        + encode_address(token_in)
        + encode_address(token_out)
        + encode_uint256(amount_in)
        + encode_int24(tick_spacing)
        + encode_uint256(sqrt_price_limit_x96)
    )


def build_quote_exact_input(path: str, amount_in: int) -> str:
    """QuoterV2.quoteExactInput(bytes path, uint256 amountIn) calldata."""
    path_hex = strip_0x(path)
    n_bytes = len(path_hex) // 2
    padded_len = -(-len(path_hex) // ABI_WORD_HEX) * ABI_WORD_HEX
    return (
        SELECTORS["quoteExactInput"]
        + encode_uint256(2 * ABI_WORD_BYTES)   # offset of `path` = 0x40
        + encode_uint256(amount_in)
        + encode_uint256(n_bytes)
        + path_hex.ljust(padded_len, "0")
    )
