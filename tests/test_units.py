"""
Unit Tests for CL Pricing Modules
=================================

Unit tests covering the building blocks:
  - rpc_helpers.py     (ABI encoding/decoding, slot0 tick decoder, calldata)
  - registry.py        (tokens, tick spacings, reference pools)
  - central_config.py  (endpoints, price bounds)
  - sequencing.py      (request tickets)
  - rpc_client.py      (round-robin, failover, batch retry)
  - commands.py        (argument validation, output)
  - run.py             (argparse parser structure)

All tests are offline — no network calls. Mock-based where needed.
"""

import asyncio
from contextlib import contextmanager
from unittest.mock import patch, MagicMock, AsyncMock

import httpx
import pytest

# ═══════════════════════════════════════════════════════════════════════════
# 1. rpc_helpers.py
# ═══════════════════════════════════════════════════════════════════════════

from cl_pricing.rpc_helpers import (
    SELECTORS,
    SLOT0_MIN_HEX_LEN,
    build_gauges_call,
    build_get_pool_call,
    build_quote_exact_input,
    build_quote_exact_input_single,
    decode_address,
    decode_quoter_result,
    decode_tick_from_slot0,
    decode_uint,
    encode_address,
    encode_int24,
    encode_int24_packed,
    encode_path,
    encode_uint256,
    is_empty_result,
    strip_0x,
)


def slot0_raw(tick: int, sqrt_price: int = 1 << 96) -> str:
    """A slot0() response: sqrtPriceX96, tick, then five trailing words."""
    return "0x" + encode_uint256(sqrt_price) + encode_int24(tick) + "0" * 64 * 5


class TestEncoding:
    def test_uint256(self):
        assert encode_uint256(0) == "0" * 64
        assert encode_uint256(255) == "0" * 62 + "ff"
        assert len(encode_uint256(2 ** 256 - 1)) == 64

    def test_address_lowercased_and_padded(self):
        enc = encode_address("0xABCDEF0000000000000000000000000000000001")
        assert enc == "0" * 24 + "abcdef0000000000000000000000000000000001"

    def test_int24_negative_sign_extended(self):
        assert encode_int24(-1) == "f" * 64
        assert encode_int24(-50).endswith("ffffce")

    def test_int24_positive(self):
        assert encode_int24(200) == "0" * 61 + "0c8"

    @pytest.mark.parametrize("value,expected", [
        (0, "000000"), (1, "000001"), (50, "000032"), (2000, "0007d0"),
        (-1, "ffffff"), (-8388608, "800000"), (8388607, "7fffff"),
    ])
    def test_int24_packed(self, value, expected):
        assert encode_int24_packed(value) == expected

    def test_strip_0x(self):
        assert strip_0x("0xabc") == "abc"
        assert strip_0x("abc") == "abc"


class TestIsEmptyResult:
    @pytest.mark.parametrize("raw", [None, "", "0x", "0x" + "0" * 63])
    def test_empty(self, raw):
        assert is_empty_result(raw) is True

    def test_one_word(self):
        assert is_empty_result("0x" + "0" * 64) is False

    def test_custom_min_length(self):
        assert is_empty_result("0x" + "0" * 64, SLOT0_MIN_HEX_LEN) is True


class TestDecoding:
    def test_decode_uint_slots(self):
        data = encode_uint256(7) + encode_uint256(42)
        assert decode_uint(data, 0) == 7
        assert decode_uint(data, 1) == 42

    def test_decode_address(self):
        addr = "0x576fc1f102c6bb3f0a2bc87ff01fb652b883dfe0"
        assert decode_address(encode_address(addr)) == addr


# ── slot0 tick decoder ────────────────────────────────────────────────────


class TestDecodeTickFromSlot0:
    @pytest.mark.parametrize("tick", [
        -8388608, -887272, -322378, -200, -1, 0, 1, 50, 286820, 887272, 8388607,
    ])
    def test_roundtrip(self, tick):
        assert decode_tick_from_slot0(slot0_raw(tick)) == tick

    @pytest.mark.parametrize("low24", [0x800000, 0x800001, 0xABCDEF, 0xFFFFFF])
    def test_high_bit_is_negative(self, low24):
        raw = "0x" + "0" * 64 + "0" * 58 + format(low24, "06x")
        assert decode_tick_from_slot0(raw) == low24 - 0x1000000
        assert decode_tick_from_slot0(raw) < 0

    @pytest.mark.parametrize("low24", [0, 1, 0x7FFFFF])
    def test_below_high_bit_is_non_negative(self, low24):
        raw = "0x" + "0" * 64 + "0" * 58 + format(low24, "06x")
        assert decode_tick_from_slot0(raw) == low24

    def test_only_low_three_bytes_read(self):
        # Garbage above the int24 in word 1 is ignored
        raw = "0x" + "0" * 64 + "1" * 58 + "000064"
        assert decode_tick_from_slot0(raw) == 100

    def test_exactly_two_words(self):
        raw = "0x" + encode_uint256(1) + encode_int24(-42)
        assert len(raw) == 130
        assert decode_tick_from_slot0(raw) == -42

    @pytest.mark.parametrize("raw", [None, "", "0x", "0x" + "0" * 127])
    def test_malformed_is_none(self, raw):
        assert decode_tick_from_slot0(raw) is None

    def test_non_hex_tick_is_none(self):
        raw = "0x" + "0" * 64 + "0" * 58 + "zzzzzz"
        assert decode_tick_from_slot0(raw) is None

    def test_result_in_int24_range(self):
        for low24 in range(0, 0x1000000, 0x10101):
            raw = "0x" + "0" * 64 + "0" * 58 + format(low24, "06x")
            tick = decode_tick_from_slot0(raw)
            assert -8388608 <= tick <= 8388607


# ── Path encoding ─────────────────────────────────────────────────────────


class TestEncodePath:
    A = "0x" + "a" * 40
    B = "0x" + "b" * 40
    C = "0x" + "c" * 40

    def test_single_hop(self):
        assert encode_path([self.A, self.B], [50]) == "a" * 40 + "000032" + "b" * 40

    def test_two_hops_length(self):
        path = encode_path([self.A, self.B, self.C], [1, 2000])
        assert len(path) == 2 * (20 * 3 + 3 * 2)
        assert path[40:46] == "000001"
        assert path[86:92] == "0007d0"

    def test_mixed_case_addresses_lowered(self):
        path = encode_path(["0x" + "A" * 40, self.B], [100])
        assert path.startswith("a" * 40)

    @pytest.mark.parametrize("tokens,spacings", [
        (["0x" + "a" * 40], [50]),
        (["0x" + "a" * 40, "0x" + "b" * 40], []),
        (["0x" + "a" * 40, "0x" + "b" * 40], [1, 50]),
    ])
    def test_count_mismatch_raises(self, tokens, spacings):
        with pytest.raises(ValueError):
            encode_path(tokens, spacings)


# ── Calldata builders ─────────────────────────────────────────────────────


class TestCalldata:
    def test_selectors(self):
        assert SELECTORS["slot0"] == "0x3850c7bd"
        assert SELECTORS["rewardRate"] == "0x7b0a47ee"
        assert SELECTORS["gauges"] == "0xb9a09fd5"
        assert SELECTORS["getPool"] == "0x28af8d0b"
        assert SELECTORS["quoteExactInputSingle"] == "0xc6a5026a"
        assert SELECTORS["quoteExactInput"] == "0xcdca1753"

    def test_gauges_call(self):
        data = build_gauges_call("0x" + "1" * 40)
        assert data == "0xb9a09fd5" + "0" * 24 + "1" * 40

    def test_get_pool_call(self):
        data = build_get_pool_call("0x" + "a" * 40, "0x" + "b" * 40, 200)
        assert data.startswith("0x28af8d0b")
        assert len(data) == 10 + 64 * 3
        assert int(data[-64:], 16) == 200

    def test_quote_exact_input_single_layout(self):
        data = build_quote_exact_input_single("0x" + "a" * 40, "0x" + "b" * 40, 10 ** 18, 50)
        body = strip_0x(data)[8:]
        assert data.startswith("0xc6a5026a")
        assert len(body) == 64 * 5
        assert decode_address(body, 0) == "0x" + "a" * 40
        assert decode_address(body, 1) == "0x" + "b" * 40
        assert decode_uint(body, 2) == 10 ** 18
        assert decode_uint(body, 3) == 50
        assert decode_uint(body, 4) == 0

    def test_quote_exact_input_layout(self):
        path = encode_path(["0x" + "a" * 40, "0x" + "b" * 40, "0x" + "c" * 40], [1, 50])
        data = build_quote_exact_input(path, 5000)
        body = strip_0x(data)[8:]
        assert data.startswith("0xcdca1753")
        assert decode_uint(body, 0) == 0x40
        assert decode_uint(body, 1) == 5000
        assert decode_uint(body, 2) == 66
        assert body[64 * 3:64 * 3 + len(path)] == path
        assert len(body) % 64 == 0


class TestDecodeQuoterResult:
    def test_full_result(self):
        raw = "0x" + "".join(encode_uint256(v) for v in (999, 123, 2, 80_000))
        assert decode_quoter_result(raw) == {
            "amount_out": 999,
            "sqrt_price_x96_after": 123,
            "ticks_crossed": 2,
            "gas_estimate": 80_000,
        }

    def test_single_word_defaults_zero(self):
        result = decode_quoter_result("0x" + encode_uint256(5))
        assert result["amount_out"] == 5
        assert result["gas_estimate"] == 0

    @pytest.mark.parametrize("raw", [None, "0x", "0x1234"])
    def test_empty(self, raw):
        assert decode_quoter_result(raw) is None


# ═══════════════════════════════════════════════════════════════════════════
# 2. registry.py
# ═══════════════════════════════════════════════════════════════════════════

from cl_pricing.registry import (
    CL_CONTRACTS,
    INTERMEDIATE_TOKENS,
    SEI,
    TICK_SPACINGS,
    TOKENS,
    USDC,
    USDC_WSEI_POOL,
    WIND,
    WIND_USDC_POOL,
    WSEI,
    fee_label,
    get_token,
    wrapped,
)


class TestRegistry:
    def test_tick_spacings(self):
        assert TICK_SPACINGS == (1, 50, 100, 200, 2000)

    @pytest.mark.parametrize("ts,label", [
        (1, "0.005%"), (50, "0.02%"), (100, "0.045%"), (200, "0.25%"), (2000, "1%"),
        (7, ""), (None, ""),
    ])
    def test_fee_labels(self, ts, label):
        assert fee_label(ts) == label

    def test_get_token_by_symbol_case_insensitive(self):
        assert get_token("wind") is WIND
        assert get_token(" USDC ") is USDC

    def test_get_token_by_address(self):
        assert get_token(WSEI.address.lower()) is WSEI

    def test_unknown_token_raises(self):
        with pytest.raises(ValueError, match="Unknown token"):
            get_token("DOGE")

    def test_native_wrapped(self):
        assert wrapped(SEI) is WSEI
        assert wrapped(WIND) is WIND

    def test_reference_pool_decimals(self):
        assert (WIND_USDC_POOL.decimals0, WIND_USDC_POOL.decimals1) == (18, 6)
        assert (USDC_WSEI_POOL.decimals0, USDC_WSEI_POOL.decimals1) == (6, 18)

    def test_all_addresses_well_formed(self):
        for token in TOKENS.values():
            assert token.address.startswith("0x") and len(token.address) == 42
        for addr in CL_CONTRACTS.values():
            assert addr.startswith("0x") and len(addr) == 42

    def test_contracts_are_the_ones_read(self):
        assert set(CL_CONTRACTS) == {"CLFactory", "QuoterV2", "MixedRouteQuoterV1"}

    def test_intermediates(self):
        assert INTERMEDIATE_TOKENS == (WSEI, USDC)

    def test_tokens_read_only(self):
        with pytest.raises(TypeError):
            TOKENS["FAKE"] = WIND


# ═══════════════════════════════════════════════════════════════════════════
# 3. central_config.py
# ═══════════════════════════════════════════════════════════════════════════

from cl_pricing.central_config import (
    PROJECT_NAME,
    PROJECT_VERSION,
    PriceBounds,
    config,
)


class TestConfig:
    def test_version_string(self):
        assert isinstance(PROJECT_VERSION, str) and PROJECT_VERSION
        assert PROJECT_NAME == "CL Pricing"

    def test_rotation_order(self):
        assert config.rpc.rotation == [config.rpc.PRIMARY, config.rpc.SECONDARY]

    def test_price_defaults(self):
        assert config.prices.WIND_PRICE_USD == 0.005
        assert config.prices.NATIVE_PRICE_USD == 0.35
        assert config.prices.REFRESH_SECONDS == 60

    def test_endpoints_https(self):
        assert config.rpc.PRIMARY.startswith("https://")
        assert config.rpc.SECONDARY.startswith("https://")
        assert config.subgraph.URL.startswith("https://")


class TestPriceBounds:
    @pytest.mark.parametrize("price,ok", [
        (0, False), (-1, False), (1e-9, True), (0.005, True), (999.99, True),
        (1000, False), (1e12, False),
    ])
    def test_wind_window(self, price, ok):
        assert PriceBounds().accepts_wind(price) is ok

    @pytest.mark.parametrize("price,ok", [
        (0, False), (0.35, True), (99.9, True), (100, False),
    ])
    def test_native_window(self, price, ok):
        assert PriceBounds().accepts_native(price) is ok

    def test_custom_window(self):
        bounds = PriceBounds(wind_max=1e13)
        assert bounds.accepts_wind(1e12) is True

    def test_frozen(self):
        with pytest.raises(Exception):
            PriceBounds().wind_max = 5


# ═══════════════════════════════════════════════════════════════════════════
# 4. sequencing.py
# ═══════════════════════════════════════════════════════════════════════════

from cl_pricing.sequencing import RequestSequencer


class TestRequestSequencer:
    def test_tickets_increase(self):
        seq = RequestSequencer()
        assert [seq.issue() for _ in range(3)] == [1, 2, 3]

    def test_only_latest_is_current(self):
        seq = RequestSequencer()
        first = seq.issue()
        second = seq.issue()
        assert seq.is_current(second) is True
        assert seq.is_current(first) is False

    def test_independent_instances(self):
        a, b = RequestSequencer(), RequestSequencer()
        a.issue()
        a.issue()
        assert b.issue() == 1


# ═══════════════════════════════════════════════════════════════════════════
# 5. rpc_client.py
# ═══════════════════════════════════════════════════════════════════════════

from cl_pricing.rpc_client import RoundRobin, RpcClient, RpcError

PRIMARY = "https://primary.example"
SECONDARY = "https://secondary.example"
OK_WORD = "0x" + "0" * 63 + "1"


@contextmanager
def mocked_endpoints(responder):
    """
    Patch httpx.AsyncClient; ``responder(url, payload)`` returns the JSON
    body for that endpoint or an exception to raise. Yields the list of
    URLs posted to, in order.
    """
    seen = []

    def _post(url, json=None):
        seen.append(url)
        body = responder(url, json)
        if isinstance(body, Exception):
            raise body
        mock_response = MagicMock()
        mock_response.json.return_value = body
        return mock_response

    with patch("cl_pricing.rpc_client.httpx.AsyncClient") as MockClient:
        mock_client = AsyncMock()
        mock_client.post.side_effect = _post
        MockClient.return_value.__aenter__ = AsyncMock(return_value=mock_client)
        MockClient.return_value.__aexit__ = AsyncMock(return_value=False)
        yield seen


def make_client() -> RpcClient:
    return RpcClient(PRIMARY, SECONDARY, timeout=1)


class TestRoundRobin:
    def test_cycles(self):
        rr = RoundRobin(["a", "b"])
        assert [rr.next() for _ in range(5)] == ["a", "b", "a", "b", "a"]

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            RoundRobin([])

    def test_clients_do_not_share_rotation(self):
        a, b = make_client(), make_client()
        a.rotation.next()
        assert b.rotation.next() == PRIMARY


class TestRpcCall:
    def test_failover_to_secondary_on_error_envelope(self):
        def responder(url, payload):
            if url == PRIMARY:
                return {"jsonrpc": "2.0", "id": 1, "error": {"message": "rate limited"}}
            return {"jsonrpc": "2.0", "id": 1, "result": OK_WORD}

        with mocked_endpoints(responder) as seen:
            result = asyncio.run(make_client().rpc_call("eth_call", []))
        assert result == OK_WORD
        assert seen[0] == PRIMARY
        assert seen[-1] == SECONDARY

    def test_failover_on_transport_error(self):
        def responder(url, payload):
            if url == PRIMARY:
                return httpx.ConnectError("connection refused")
            return {"jsonrpc": "2.0", "id": 1, "result": OK_WORD}

        with mocked_endpoints(responder):
            assert asyncio.run(make_client().rpc_call("eth_call", [])) == OK_WORD

    def test_round_robin_start(self):
        def responder(url, payload):
            return {"jsonrpc": "2.0", "id": 1, "result": url}

        client = make_client()
        with mocked_endpoints(responder) as seen:
            asyncio.run(client.rpc_call("eth_blockNumber", []))
            asyncio.run(client.rpc_call("eth_blockNumber", []))
        assert seen == [PRIMARY, SECONDARY]

    def test_preferred_tried_first_without_repeat(self):
        def responder(url, payload):
            return httpx.ConnectError("down")

        with mocked_endpoints(responder) as seen:
            with pytest.raises(httpx.ConnectError):
                asyncio.run(make_client().rpc_call("eth_call", [], preferred=SECONDARY))
        assert seen == [SECONDARY, PRIMARY]

    def test_all_fail_raises_last_error(self):
        def responder(url, payload):
            if url == PRIMARY:
                return httpx.ConnectError("down")
            return {"jsonrpc": "2.0", "id": 1, "error": {"message": "execution reverted"}}

        with mocked_endpoints(responder):
            with pytest.raises(RpcError, match="RPC error: execution reverted"):
                asyncio.run(make_client().rpc_call("eth_call", []))

    def test_non_object_body_fails_over(self):
        def responder(url, payload):
            if url == PRIMARY:
                return ["unexpected"]
            return {"jsonrpc": "2.0", "id": 1, "result": "0x2"}

        with mocked_endpoints(responder):
            assert asyncio.run(make_client().rpc_call("eth_chainId", [])) == "0x2"

    def test_payload_shape(self):
        captured = []

        def responder(url, payload):
            captured.append(payload)
            return {"jsonrpc": "2.0", "id": 1, "result": "0x"}

        with mocked_endpoints(responder):
            asyncio.run(make_client().eth_call("0xPool", "0x3850c7bd"))
        assert captured[0]["method"] == "eth_call"
        assert captured[0]["params"] == [{"to": "0xPool", "data": "0x3850c7bd"}, "latest"]

    def test_eth_call_null_result_is_0x(self):
        with mocked_endpoints(lambda url, p: {"jsonrpc": "2.0", "id": 1, "result": None}):
            assert asyncio.run(make_client().eth_call("0xA", "0xD")) == "0x"


class TestBatchRpcCall:
    def test_defaults_to_secondary_and_matches_by_id(self):
        def responder(url, payload):
            return [
                {"jsonrpc": "2.0", "id": 2, "result": "0x02"},
                {"jsonrpc": "2.0", "id": 1, "result": "0x01"},
            ]

        with mocked_endpoints(responder) as seen:
            results = asyncio.run(make_client().batch_rpc_call([("a", []), ("b", [])]))
        assert seen == [SECONDARY]
        assert results == ["0x01", "0x02"]

    def test_ids_assigned_in_order(self):
        captured = []

        def responder(url, payload):
            captured.extend(payload)
            return [{"id": p["id"], "result": "0x"} for p in payload]

        with mocked_endpoints(responder):
            asyncio.run(make_client().batch_rpc_call([("a", []), ("b", []), ("c", [])]))
        assert [p["id"] for p in captured] == [1, 2, 3]

    def test_retries_once_on_primary(self):
        def responder(url, payload):
            if url == SECONDARY:
                return httpx.ConnectError("down")
            return [{"jsonrpc": "2.0", "id": 1, "result": "0xok"}]

        with mocked_endpoints(responder) as seen:
            results = asyncio.run(make_client().batch_rpc_call([("a", [])]))
        assert seen == [SECONDARY, PRIMARY]
        assert results == ["0xok"]

    def test_no_retry_when_primary_was_chosen(self):
        with mocked_endpoints(lambda url, p: httpx.ConnectError("down")) as seen:
            with pytest.raises(httpx.ConnectError):
                asyncio.run(make_client().batch_rpc_call([("a", [])], preferred=PRIMARY))
        assert seen == [PRIMARY]

    def test_both_fail_raises(self):
        def responder(url, payload):
            return {"jsonrpc": "2.0", "id": None, "error": {"message": "batch too large"}}

        with mocked_endpoints(responder) as seen:
            with pytest.raises(RpcError, match="Batch rejected"):
                asyncio.run(make_client().batch_rpc_call([("a", [])]))
        assert seen == [SECONDARY, PRIMARY]

    def test_null_id_error_entry_does_not_break_matching(self):
        def responder(url, payload):
            return [
                {"jsonrpc": "2.0", "id": 1, "result": OK_WORD},
                {"jsonrpc": "2.0", "id": None, "error": {"code": -32600, "message": "invalid"}},
            ]

        with mocked_endpoints(responder) as seen:
            results = asyncio.run(make_client().batch_rpc_call([("a", []), ("b", [])]))
        assert seen == [SECONDARY]
        assert results == [OK_WORD, None]

    def test_dropped_entry_is_none_in_place(self):
        def responder(url, payload):
            return [{"jsonrpc": "2.0", "id": 2, "result": "0x02"}, "garbage"]

        with mocked_endpoints(responder):
            results = asyncio.run(make_client().batch_rpc_call([("a", []), ("b", [])]))
        assert results == [None, "0x02"]

    def test_bare_object_answer(self):
        with mocked_endpoints(lambda url, p: {"jsonrpc": "2.0", "id": 1, "result": "0xa"}):
            assert asyncio.run(make_client().batch_rpc_call([("a", [])])) == ["0xa"]

    def test_empty_batch_sends_nothing(self):
        with mocked_endpoints(lambda url, p: []) as seen:
            assert asyncio.run(make_client().batch_rpc_call([])) == []
        assert seen == []

    def test_eth_call_batch_failed_subcall_is_0x(self):
        def responder(url, payload):
            return [
                {"jsonrpc": "2.0", "id": 1, "result": OK_WORD},
                {"jsonrpc": "2.0", "id": 2, "error": {"message": "execution reverted"}},
            ]

        with mocked_endpoints(responder):
            results = asyncio.run(make_client().eth_call_batch([("0xA", "0xD1"), ("0xB", "0xD2")]))
        assert results == [OK_WORD, "0x"]


# ═══════════════════════════════════════════════════════════════════════════
# 6. commands.py
# ═══════════════════════════════════════════════════════════════════════════

from cl_pricing.commands import cmd_info, cmd_quote
from quote_router import MultiHopQuote, Quote


class TestCmdInfo:
    def test_does_not_raise(self, capsys):
        cmd_info()
        output = capsys.readouterr().out
        assert PROJECT_NAME in output
        assert "2000 (1%)" in output

    def test_api_key_not_printed(self, capsys):
        cmd_info()
        assert "x-apikey" not in capsys.readouterr().out


class TestCmdQuote:
    def test_unknown_token(self, capsys):
        assert asyncio.run(cmd_quote("DOGE", "USDC", "1")) is False
        assert "Unknown token" in capsys.readouterr().out

    @pytest.mark.parametrize("amount", ["abc", "0", "-5"])
    def test_invalid_amount(self, amount, capsys):
        assert asyncio.run(cmd_quote("WIND", "USDC", amount)) is False
        assert "❌" in capsys.readouterr().out

    def test_best_quote_printed(self, capsys):
        quote = Quote(amount_out=1_500_000, tick_spacing=200, gas_estimate=90_000)
        with patch("quote_router.QuoteRouter.best_quote", new=AsyncMock(return_value=quote)) as m:
            assert asyncio.run(cmd_quote("WIND", "USDC", "100")) is True
        _, _, amount_in, tick_spacing = m.await_args.args
        assert amount_in == 100 * 10 ** 18
        assert tick_spacing is None
        output = capsys.readouterr().out
        assert "1.500000 USDC" in output
        assert "0.25%" in output

    def test_no_route(self, capsys):
        with patch("quote_router.QuoteRouter.best_quote", new=AsyncMock(return_value=None)):
            assert asyncio.run(cmd_quote("WIND", "USDC", "1")) is False
        assert "No route found" in capsys.readouterr().out

    def test_via_prints_path(self, capsys):
        hop = MultiHopQuote(
            amount_out=2 * 10 ** 6, path=("WIND", "WSEI", "USDT"),
            tick_spacings=(200, 50), intermediate=WSEI,
        )
        with patch("quote_router.QuoteRouter.multi_hop_quote", new=AsyncMock(return_value=hop)):
            assert asyncio.run(cmd_quote("WIND", "USDT", "10", via="WSEI")) is True
        assert "WIND → WSEI → USDT" in capsys.readouterr().out


from cl_pricing.commands import cmd_apr, cmd_price
from price_resolver import PriceSnapshot
from subgraph_client import SubgraphError, SubgraphPool

APR_POOL = SubgraphPool("0x" + "a" * 40, "WIND", "USDC", 200, 1_000_000.0)
LIVE_SNAP = PriceSnapshot(0.01, 0.35, None, False, 1)


class TestCmdPrice:
    def test_once(self, capsys):
        with patch("price_resolver.PriceResolver.refresh", new=AsyncMock(return_value=LIVE_SNAP)):
            assert asyncio.run(cmd_price()) is True
        output = capsys.readouterr().out
        assert "$0.010000" in output
        assert "live" in output

    def test_watch_uses_poll(self):
        with patch("price_resolver.PriceResolver.poll", new=AsyncMock(return_value=LIVE_SNAP)) as poll:
            assert asyncio.run(cmd_price(watch=True, interval=5, iterations=3)) is True
        assert poll.await_args.kwargs["interval_seconds"] == 5
        assert poll.await_args.kwargs["iterations"] == 3


class TestCmdApr:
    def run_apr(self, rates, **kwargs):
        with patch("price_resolver.PriceResolver.refresh", new=AsyncMock(return_value=LIVE_SNAP)), \
             patch("subgraph_client.SubgraphClient.fetch_pools", new=AsyncMock(return_value=[APR_POOL])), \
             patch("gauge_rewards.GaugeRewardReader.reward_rates", new=AsyncMock(return_value=rates)), \
             patch("cl_pricing.rpc_client.RpcClient.eth_call", new=AsyncMock(return_value=slot0_raw(0))):
            return asyncio.run(cmd_apr(**kwargs))

    def test_pool_table(self, capsys):
        assert self.run_apr({APR_POOL.address: 10 ** 18}, limit=5) is True
        output = capsys.readouterr().out
        assert "WIND/USDC" in output
        # 31.536% × √(1,774,544 / 200) ≈ 2970%
        assert "3.0K%" in output

    def test_pool_without_gauge(self, capsys):
        assert self.run_apr({}) is True
        assert "APR —" in capsys.readouterr().out

    def test_range_adjusted(self, capsys):
        ok = self.run_apr(
            {APR_POOL.address: 10 ** 18}, pool=APR_POOL.address, tick_lower=-600, tick_upper=600,
        )
        assert ok is True
        output = capsys.readouterr().out
        assert "(in range)" in output
        # 31.536% × √(1,774,544 / 1200) ≈ 1213%
        assert "1.2K%" in output

    def test_unknown_pool(self, capsys):
        assert self.run_apr({}, pool="0x" + "f" * 40) is False
        assert "not found" in capsys.readouterr().out

    def test_subgraph_failure(self, capsys):
        failing = AsyncMock(side_effect=SubgraphError("GraphQL error: down"))
        with patch("price_resolver.PriceResolver.refresh", new=AsyncMock(return_value=LIVE_SNAP)), \
             patch("subgraph_client.SubgraphClient.fetch_pools", new=failing):
            assert asyncio.run(cmd_apr()) is False
        assert "Data fetch failed" in capsys.readouterr().out

    def test_undecodable_subgraph_body(self, capsys):
        failing = AsyncMock(side_effect=ValueError("Expecting value: line 1 column 1"))
        with patch("price_resolver.PriceResolver.refresh", new=AsyncMock(return_value=LIVE_SNAP)), \
             patch("subgraph_client.SubgraphClient.fetch_pools", new=failing):
            assert asyncio.run(cmd_apr()) is False
        assert "Data fetch failed" in capsys.readouterr().out


# ═══════════════════════════════════════════════════════════════════════════
# 7. run.py (CLI parser)
# ═══════════════════════════════════════════════════════════════════════════

from run import create_parser, main


class TestCreateParser:
    @pytest.mark.parametrize("argv", [
        ["info"],
        ["price"],
        ["price", "--watch", "--interval", "5", "--iterations", "2"],
        ["quote", "WIND", "USDC", "100"],
        ["quote", "WIND", "USDT", "1", "--via", "WSEI"],
        ["apr"],
        ["apr", "--pool", "0x" + "a" * 40, "--range", "-600", "600"],
    ])
    def test_subcommands_parse(self, argv):
        args = create_parser().parse_args(argv)
        assert args.command == argv[0]

    def test_price_defaults(self):
        args = create_parser().parse_args(["price"])
        assert args.watch is False
        assert args.interval == 60
        assert args.iterations is None
        assert args.wind_max is None
        assert args.sei_max is None

    def test_quote_defaults(self):
        args = create_parser().parse_args(["quote", "WIND", "USDC", "1"])
        assert args.tick_spacing is None
        assert args.via is None
        assert args.all_routes is False

    def test_apr_range_ints(self):
        args = create_parser().parse_args(["apr", "--pool", "0xP", "--range", "-600", "600"])
        assert args.range == [-600, 600]
        assert args.limit == 10

    def test_version_flag(self):
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_no_command_returns_none(self):
        assert create_parser().parse_args([]).command is None


class TestMain:
    def test_range_without_pool_fails(self, capsys):
        with patch("sys.argv", ["run.py", "apr", "--range", "-10", "10"]):
            assert main() == 1
        assert "--range requires --pool" in capsys.readouterr().out

    def test_info(self, capsys):
        with patch("sys.argv", ["run.py", "info"]):
            assert main() == 0

    def test_quote_failure_exit_code(self):
        with patch("sys.argv", ["run.py", "quote", "NOPE", "USDC", "1"]):
            assert main() == 1
