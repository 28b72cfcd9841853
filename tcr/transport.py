from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from .db import log_event
from .nodes import NodeName

ListNodes = Callable[[], Iterable[NodeName]]
# connect/disconnect collaborators: (topology, list_nodes, nodes) -> TransportResult
Transport = Callable[[str, ListNodes, list[NodeName]], "TransportResult"]
# per-node operation: True ok, False failed, None ignored
NodeOp = Callable[[NodeName], Optional[bool]]


@dataclass(frozen=True)
class TransportResult:
    """Outcome of a connect/disconnect request.

    Empty `failures` means every requested node succeeded; otherwise it lists
    (node, reason) for each node that did not.
    """

    failures: tuple[tuple[NodeName, str], ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures

    def failed_nodes(self) -> frozenset[NodeName]:
        return frozenset(n for n, _ in self.failures)

    @classmethod
    def error(cls, failures: Iterable[tuple[NodeName, Any]]) -> TransportResult:
        return cls(tuple((n, str(reason)) for n, reason in failures))


OK = TransportResult()


def as_result(value: Any) -> TransportResult:
    """Accept the shapes a collaborator may return: a TransportResult,
    None/True for success, or an iterable of (node, reason) failures."""
    if isinstance(value, TransportResult):
        return value
    if value is None or value is True:
        return OK
    if value is False:
        raise TypeError("Transport returned False; return failures as (node, reason) pairs.")
    return TransportResult.error(value)


def connect_nodes(topology: str, connect_one: NodeOp, list_nodes: ListNodes, nodes: Iterable[NodeName]) -> TransportResult:
    """Connect each node not already connected, collecting per-node failures."""
    connected = set(list_nodes())
    failures: list[tuple[NodeName, str]] = []
    for n in nodes:
        if n in connected:
            continue
        try:
            res = connect_one(n)
        except Exception as e:
            res = e
        if res is True:
            log_event("INFO", f"connected to {n}", topology=topology)
        elif res is False:
            log_event("WARN", f"unable to connect to {n}", topology=topology)
            failures.append((n, "unreachable"))
        elif res is None:
            log_event("WARN", f"unable to connect to {n}: not part of network", topology=topology)
            failures.append((n, "ignored"))
        else:
            log_event("WARN", f"connect to {n} failed: {res}", topology=topology)
            failures.append((n, f"{type(res).__name__}: {res}"))
    return TransportResult(tuple(failures)) if failures else OK


def disconnect_nodes(topology: str, disconnect_one: NodeOp, list_nodes: ListNodes, nodes: Iterable[NodeName]) -> TransportResult:
    """Disconnect each node that is currently connected, collecting per-node failures."""
    connected = set(list_nodes())
    failures: list[tuple[NodeName, str]] = []
    for n in nodes:
        if n not in connected:
            continue
        try:
            res = disconnect_one(n)
        except Exception as e:
            res = e
        if res is True:
            log_event("INFO", f"disconnected from {n}", topology=topology)
        elif res is False:
            log_event("WARN", f"disconnect from {n} failed", topology=topology)
            failures.append((n, "failed"))
        elif res is None:
            log_event("WARN", f"disconnect from {n} failed: not part of network", topology=topology)
            failures.append((n, "ignored"))
        else:
            log_event("WARN", f"disconnect from {n} failed: {res}", topology=topology)
            failures.append((n, f"{type(res).__name__}: {res}"))
    return TransportResult(tuple(failures)) if failures else OK


def bind_transport(connect_one: NodeOp, disconnect_one: NodeOp) -> tuple[Transport, Transport]:
    """Turn per-node operations into the (connect, disconnect) collaborator pair."""

    def connect(topology: str, list_nodes: ListNodes, nodes: list[NodeName]) -> TransportResult:
        return connect_nodes(topology, connect_one, list_nodes, nodes)

    def disconnect(topology: str, list_nodes: ListNodes, nodes: list[NodeName]) -> TransportResult:
        return disconnect_nodes(topology, disconnect_one, list_nodes, nodes)

    return connect, disconnect
