"""
HTTP JSON-RPC client for one endpoint under comparison.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Optional

import aiohttp

from getlogs_diff.config import EndpointConfig
from getlogs_diff.errors import FailureKind, FetchError, err
from getlogs_diff.normalizer import normalize, parse_quantity, unwrap_result
from getlogs_diff.query import query_to_params, rpc_request
from getlogs_diff.types import EndpointResponse, QuerySpec

logger = logging.getLogger(__name__)


class RpcClient:
    """Issues JSON-RPC calls against a single endpoint, without retries."""

    def __init__(self, config: EndpointConfig):
        self.config = config
        self.session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> None:
        """Initialize HTTP session."""
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        self.session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        """Close HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

    async def call(self, method: str, params: list[Any]) -> Any:
        """
        Send one JSON-RPC request and decode the body.

        Raises FetchError(TRANSPORT) when no usable HTTP response arrives and
        FetchError(PARSE) when the body is not JSON, including bodies that are
        not valid UTF-8.
        """
        if self.session is None:
            raise RuntimeError(f"[{self.config.name}] client is not connected")

        try:
            async with self.session.post(
                self.config.endpoint,
                json=rpc_request(method, params),
            ) as resp:
                status = resp.status
                raw = await resp.read()
        except asyncio.TimeoutError:
            raise err(
                FailureKind.TRANSPORT,
                f"{method} timed out after {self.config.timeout}s",
            ) from None
        except aiohttp.ClientError as e:
            raise err(FailureKind.TRANSPORT, f"{method} failed: {e}") from e

        # UnicodeDecodeError is a ValueError
        try:
            return json.loads(raw)
        except ValueError:
            if status >= 400:
                raise err(FailureKind.TRANSPORT, f"{method}: HTTP {status}") from None
            raise err(
                FailureKind.PARSE,
                f"{method}: response is not JSON (HTTP {status}): {raw[:120]!r}",
            ) from None

    async def block_number(self) -> int:
        """Fetch the current chain head via eth_blockNumber."""
        body = await self.call("eth_blockNumber", [])
        return parse_quantity(unwrap_result(body), "eth_blockNumber")

    async def get_logs(
        self, query: QuerySpec, preserve_order: bool = False
    ) -> EndpointResponse:
        """
        Fetch and normalize logs for a query.

        Never raises for transport, RPC or parse failures; they come back as a
        failed EndpointResponse carrying the elapsed time.
        """
        start = time.perf_counter()
        try:
            body = await self.call("eth_getLogs", [query_to_params(query)])
        except FetchError as e:
            latency_ms = (time.perf_counter() - start) * 1000
            logger.debug(f"[{self.config.name}] eth_getLogs failed: {e}")
            return EndpointResponse.failed(self.config.name, e, latency_ms)
        latency_ms = (time.perf_counter() - start) * 1000

        try:
            records = normalize(body, preserve_order=preserve_order)
        except FetchError as e:
            logger.debug(f"[{self.config.name}] eth_getLogs rejected: {e}")
            return EndpointResponse.failed(self.config.name, e, latency_ms)

        return EndpointResponse.succeeded(self.config.name, records, latency_ms)
