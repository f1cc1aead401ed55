"""Shared fixtures: JSON-RPC log payloads and normalized responses."""

from __future__ import annotations

from typing import Any, Callable, Optional

import pytest

from getlogs_diff.errors import FailureKind, err
from getlogs_diff.normalizer import normalize
from getlogs_diff.types import EndpointResponse

USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


def make_log(
    block: int,
    tx: int = 0,
    log: int = 0,
    data: str = "0x",
    address: str = USDC,
    **extra: Any,
) -> dict[str, Any]:
    entry = {
        "address": address,
        "topics": [TRANSFER_TOPIC],
        "data": data,
        "blockNumber": hex(block),
        "transactionIndex": hex(tx),
        "logIndex": hex(log),
        "blockHash": "0x" + f"{block:064x}",
        "transactionHash": "0x" + f"{block * 1000 + tx:064x}",
        "removed": False,
    }
    entry.update(extra)
    return entry


def rpc_body(result: Any, request_id: int = 1) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


@pytest.fixture
def log_entry() -> Callable[..., dict[str, Any]]:
    return make_log


@pytest.fixture
def ok_response() -> Callable[..., EndpointResponse]:
    """Build a successful EndpointResponse from raw log entries."""

    def _ok(
        entries: list[dict[str, Any]],
        endpoint: str = "reference",
        latency_ms: float = 12.0,
        preserve_order: bool = False,
    ) -> EndpointResponse:
        records = normalize(rpc_body(entries), preserve_order=preserve_order)
        return EndpointResponse.succeeded(endpoint, records, latency_ms)

    return _ok


@pytest.fixture
def failed_response() -> Callable[..., EndpointResponse]:
    def _failed(
        kind: FailureKind = FailureKind.TRANSPORT,
        endpoint: str = "candidate",
        message: Optional[str] = None,
        latency_ms: float = 30000.0,
    ) -> EndpointResponse:
        failure = err(kind, message or f"{kind.value} failure")
        return EndpointResponse.failed(endpoint, failure, latency_ms)

    return _failed
