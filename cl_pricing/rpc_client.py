#!/usr/bin/env python3
"""
JSON-RPC Client — Round-Robin and Failover Across Sei EVM Endpoints
====================================================================

Two configured endpoints take part in rotation:

  • primary   — keyed endpoint, high rate limit, reliable
  • secondary — unmetered endpoint, preferred for batch reads

Single calls (``rpc_call``) rotate between them and fail over to the
remaining endpoints in order. Batch calls (``batch_rpc_call``) go to the
secondary endpoint and retry once against the primary. No backoff is
applied between attempts.

The rotation counter belongs to the client instance (``RoundRobin``), not
to the module, so independent clients never share state.
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

import httpx

from cl_pricing.central_config import config

logger = logging.getLogger(__name__)


class RpcError(RuntimeError):
    """A JSON-RPC error envelope, or an unusable response body."""


class RoundRobin:
    """Fair rotation over a fixed, ordered list of endpoints."""

    def __init__(self, endpoints: Sequence[str]):
        if not endpoints:
            raise ValueError("RoundRobin needs at least one endpoint")
        self.endpoints: List[str] = list(endpoints)
        self.index = 0

    def next(self) -> str:
        endpoint = self.endpoints[self.index % len(self.endpoints)]
        self.index += 1
        return endpoint


class RpcClient:
    """
    Resilient JSON-RPC client.

    Usage:
        client = RpcClient()                                  # configured endpoints
        client = RpcClient("https://a.example", "https://b.example")
        raw = await client.eth_call(pool, SELECTORS["slot0"])
        raws = await client.eth_call_batch([(pool_a, data), (pool_b, data)])
    """

    def __init__(
        self,
        primary: Optional[str] = None,
        secondary: Optional[str] = None,
        timeout: Optional[float] = None,
        rotation: Optional[RoundRobin] = None,
    ):
        self.primary = primary or config.rpc.PRIMARY
        self.secondary = secondary or config.rpc.SECONDARY
        self.timeout = timeout if timeout is not None else config.rpc.TIMEOUT_SECONDS
        self.rotation = rotation or RoundRobin([self.primary, self.secondary])

    # ── Transport ────────────────────────────────────────────────────────

    async def _post(self, endpoint: str, payload: Any) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(endpoint, json=payload)
            resp.raise_for_status()
            return resp.json()

    # ── Single Call ──────────────────────────────────────────────────────

    def _candidates(self, preferred: Optional[str]) -> List[str]:
        if preferred:
            return [preferred] + [e for e in self.rotation.endpoints if e != preferred]
        return [self.rotation.next()] + list(self.rotation.endpoints)

    async def rpc_call(
        self, method: str, params: list, preferred: Optional[str] = None
    ) -> Any:
        """
        Execute one JSON-RPC call with ordered failover.

        Args:
            method: JSON-RPC method, e.g. "eth_call".
            params: Method params.
            preferred: Endpoint to try first (optional).

        Returns:
            The ``result`` member of the first successful response.

        Raises:
            RpcError: Every endpoint answered with an error envelope
                (the last one is raised).
            httpx.HTTPError: Every endpoint failed and the last failure
                was a transport error.
        """
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": 1}
        last_error: Optional[Exception] = None

        for endpoint in self._candidates(preferred):
            try:
                body = await self._post(endpoint, payload)
                if not isinstance(body, dict):
                    raise RpcError(f"Unexpected response type: {type(body).__name__}")
                if "error" in body:
                    err = body["error"]
                    message = err.get("message", err) if isinstance(err, dict) else err
                    raise RpcError(f"RPC error: {message or 'unknown'}")
                return body.get("result")
            except (httpx.HTTPError, RpcError, ValueError) as exc:
                # ValueError covers undecodable JSON bodies
                logger.debug("%s failed on %s: %s", method, endpoint, exc)
                last_error = exc

        raise last_error or RpcError("All RPC endpoints failed")

    # ── Batch Call ───────────────────────────────────────────────────────

    async def _send_batch(
        self, endpoint: str, calls: Sequence[Tuple[str, list]]
    ) -> List[Any]:
        payloads = [
            {"jsonrpc": "2.0", "method": method, "params": params, "id": i + 1}
            for i, (method, params) in enumerate(calls)
        ]
        body = await self._post(endpoint, payloads)

        if isinstance(body, list):
            # Match by id; entries with a null or missing id answer no request
            by_id = {
                r["id"]: r for r in body
                if isinstance(r, dict) and isinstance(r.get("id"), int)
            }
            return [by_id.get(p["id"], {}).get("result") for p in payloads]
        if isinstance(body, dict) and "error" in body:
            raise RpcError(f"Batch rejected: {body['error']}")
        if isinstance(body, dict):
            # Some RPCs answer a one-element batch with a bare object
            return [body.get("result")]
        raise RpcError(f"Unexpected batch response type: {type(body).__name__}")

    async def batch_rpc_call(
        self, calls: Sequence[Tuple[str, list]], preferred: Optional[str] = None
    ) -> List[Any]:
        """
        Send all calls as one JSON array to a single endpoint.

        Args:
            calls: (method, params) pairs.
            preferred: Endpoint to use; defaults to the secondary endpoint.

        Returns:
            One ``result`` per call in request order (None where a
            sub-call failed).

        Raises:
            RpcError / httpx.HTTPError: The chosen endpoint and the primary
                retry both failed.
        """
        if not calls:
            return []
        endpoint = preferred or self.secondary
        try:
            return await self._send_batch(endpoint, calls)
        except (httpx.HTTPError, RpcError, ValueError) as exc:
            if endpoint == self.primary:
                raise
            logger.warning("Batch of %d failed on %s (%s), retrying on primary",
                           len(calls), endpoint, exc)
            return await self._send_batch(self.primary, calls)

    # ── eth_call Helpers ─────────────────────────────────────────────────

    async def eth_call(self, to: str, data: str, preferred: Optional[str] = None) -> str:
        """eth_call at ``latest``; returns the raw 0x-prefixed hex result."""
        result = await self.rpc_call(
            "eth_call", [{"to": to, "data": data}, "latest"], preferred
        )
        return result or "0x"

    async def eth_call_batch(
        self, calls: Sequence[Tuple[str, str]], preferred: Optional[str] = None
    ) -> List[str]:
        """
        Batch several eth_calls into one HTTP request.

        Args:
            calls: (contract_address, calldata) tuples.

        Returns:
            Raw 0x-prefixed results in call order ("0x" where a call failed).
        """
        results = await self.batch_rpc_call(
            [("eth_call", [{"to": to, "data": data}, "latest"]) for to, data in calls],
            preferred,
        )
        return [r or "0x" for r in results]
