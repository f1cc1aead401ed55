"""eth_getLogs request construction."""

from __future__ import annotations

from typing import Any

from getlogs_diff.types import QuerySpec, ScenarioTemplate


def build_query(template: ScenarioTemplate, latest_block: int) -> QuerySpec:
    """Resolve a scenario template against a freshly fetched chain head.

    Windows reaching below genesis are clamped at block 0.
    """
    if latest_block < 0:
        raise ValueError(f"latest block must be non-negative, got {latest_block}")
    return QuerySpec(
        from_block=max(latest_block - template.from_offset, 0),
        to_block=max(latest_block - template.to_offset, 0),
        address=template.address,
        topics=template.topics,
    )


def _topic_to_json(entry: Any) -> Any:
    if isinstance(entry, tuple):
        return list(entry)
    return entry


def query_to_params(query: QuerySpec) -> dict[str, Any]:
    params: dict[str, Any] = {
        "fromBlock": hex(query.from_block),
        "toBlock": hex(query.to_block),
    }
    if query.address is not None:
        params["address"] = (
            list(query.address) if isinstance(query.address, tuple) else query.address
        )
    if query.topics is not None:
        params["topics"] = [_topic_to_json(t) for t in query.topics]
    return params


def rpc_request(method: str, params: list[Any], request_id: int = 1) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "method": method,
        "params": params,
        "id": request_id,
    }
