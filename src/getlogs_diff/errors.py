"""Failure kinds and exceptions for eth_getLogs comparison campaigns."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FailureKind(Enum):
    # Connection refused, timeout, HTTP failure without a JSON-RPC body
    TRANSPORT = "transport"
    # Endpoint answered with a JSON-RPC error object
    RPC = "rpc"
    # Body is not JSON or does not have the eth_getLogs shape
    PARSE = "parse"
    # Unexpected exception while handling a scenario
    INTERNAL = "internal"


@dataclass(frozen=True)
class FetchError(Exception):
    kind: FailureKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.name}: {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__"))
_frozen_setattr = FetchError.__setattr__


def _fetch_error_setattr(self: FetchError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


FetchError.__setattr__ = _fetch_error_setattr  # type: ignore[method-assign]


class ConfigError(ValueError):
    """Raised for invalid campaign configuration or scenario files."""


def err(kind: FailureKind, message: str) -> FetchError:
    return FetchError(kind=kind, message=message)
