"""Parse eth_getLogs responses into canonically ordered log records.

Everything here is pure: the same body always yields the same records, and
no network or filesystem access happens. Failures are raised as
``FetchError`` with ``FailureKind.PARSE`` (or ``RPC`` for a JSON-RPC error
object) so callers can fold them into an ``EndpointResponse``.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

from getlogs_diff.errors import FailureKind, err
from getlogs_diff.types import LogRecord

_COORDINATE_FIELDS = ("blockNumber", "transactionIndex", "logIndex")
_KNOWN_FIELDS = frozenset(_COORDINATE_FIELDS + ("address", "topics", "data"))


def parse_quantity(value: Any, name: str) -> int:
    """Parse a JSON-RPC hex quantity (``"0x1b4"``)."""
    if isinstance(value, bool):
        raise err(FailureKind.PARSE, f"{name}: expected hex quantity, got {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise err(FailureKind.PARSE, f"{name}: negative quantity {value}")
        return value
    if not isinstance(value, str) or not value.startswith(("0x", "0X")):
        raise err(FailureKind.PARSE, f"{name}: expected hex quantity, got {value!r}")
    try:
        return int(value[2:], 16)
    except ValueError:
        raise err(FailureKind.PARSE, f"{name}: invalid hex quantity {value!r}") from None


def unwrap_result(body: Any) -> Any:
    """Return the ``result`` member of a JSON-RPC response envelope."""
    if not isinstance(body, dict):
        raise err(FailureKind.PARSE, f"response is not a JSON object: {type(body).__name__}")
    error = body.get("error")
    if error is not None:
        if isinstance(error, dict):
            code = error.get("code")
            message = error.get("message", "")
            raise err(FailureKind.RPC, f"code {code}: {message}")
        raise err(FailureKind.RPC, str(error))
    if "result" not in body:
        raise err(FailureKind.PARSE, "response has neither result nor error")
    return body["result"]


def parse_log(entry: Any) -> LogRecord:
    if not isinstance(entry, dict):
        raise err(FailureKind.PARSE, f"log entry is not an object: {entry!r}")
    for name in _COORDINATE_FIELDS:
        if entry.get(name) is None:
            raise err(FailureKind.PARSE, f"log entry missing {name}")

    address = entry.get("address")
    if not isinstance(address, str):
        raise err(FailureKind.PARSE, f"address: expected string, got {address!r}")
    data = entry.get("data", "0x")
    if not isinstance(data, str):
        raise err(FailureKind.PARSE, f"data: expected string, got {data!r}")
    topics = entry.get("topics", [])
    if not isinstance(topics, list) or not all(isinstance(t, str) for t in topics):
        raise err(FailureKind.PARSE, f"topics: expected list of strings, got {topics!r}")

    extra = tuple(
        sorted(
            (key, json.dumps(value, sort_keys=True, separators=(",", ":")))
            for key, value in entry.items()
            if key not in _KNOWN_FIELDS
        )
    )
    return LogRecord(
        block_number=parse_quantity(entry["blockNumber"], "blockNumber"),
        transaction_index=parse_quantity(entry["transactionIndex"], "transactionIndex"),
        log_index=parse_quantity(entry["logIndex"], "logIndex"),
        address=address,
        topics=tuple(topics),
        data=data,
        extra=extra,
    )


def canonical_sort(records: Iterable[LogRecord]) -> tuple[LogRecord, ...]:
    # sorted() is stable: equal coordinates keep arrival order
    return tuple(sorted(records, key=LogRecord.sort_key))


def normalize(body: Any, preserve_order: bool = False) -> tuple[LogRecord, ...]:
    """Turn a decoded eth_getLogs response into log records.

    Records come back in canonical (block, tx index, log index) order unless
    ``preserve_order`` is set, in which case arrival order is kept.
    """
    result = unwrap_result(body)
    if not isinstance(result, list):
        raise err(FailureKind.PARSE, f"result is not a list: {type(result).__name__}")
    records = [parse_log(entry) for entry in result]
    if preserve_order:
        return tuple(records)
    return canonical_sort(records)
