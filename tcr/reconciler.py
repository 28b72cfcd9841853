from __future__ import annotations

from dataclasses import dataclass

from .config import StrategyConfig
from .db import log_event
from .diff import Diff, diff
from .errors import ConfigurationError, FetchError
from .inventory import InventoryFetcher
from .nodes import NodeName, format_nodes
from .tags import resolve_tag_value
from .transport import OK, ListNodes, Transport, TransportResult, as_result


@dataclass(frozen=True)
class CycleReport:
    outcome: str  # ok|skipped|fetch_failed
    known: frozenset[NodeName]
    diff: Diff | None = None
    fetched: frozenset[NodeName] | None = None
    disconnect_failures: tuple[tuple[NodeName, str], ...] = ()
    connect_failures: tuple[tuple[NodeName, str], ...] = ()
    error: str | None = None


class Reconciler:
    """Runs one fetch -> diff -> disconnect -> connect cycle for a topology.

    Holds no membership state of its own: `run_cycle` takes the last known
    membership and returns the corrected next one inside a CycleReport.
    """

    def __init__(
        self,
        topology: str,
        connect: Transport,
        disconnect: Transport,
        list_nodes: ListNodes,
        config: StrategyConfig,
        fetcher: InventoryFetcher,
    ):
        self.topology = topology
        self.connect = connect
        self.disconnect = disconnect
        self.list_nodes = list_nodes
        self.config = config
        self.fetcher = fetcher

    def run_cycle(self, known: frozenset[NodeName]) -> CycleReport:
        cfg = self.config
        try:
            tag_value = resolve_tag_value(cfg.tag_name, cfg.resolved_tag_value)
        except ConfigurationError as e:
            log_event("WARN", str(e), topology=self.topology)
            return CycleReport(outcome="skipped", known=known, error=str(e))
        except FetchError as e:
            # A tag value provider that reads remote state (instance metadata).
            log_event("ERROR", str(e), topology=self.topology)
            return CycleReport(outcome="fetch_failed", known=known, error=str(e))

        try:
            fetched = frozenset(self.fetcher.fetch(cfg.tag_name, tag_value, cfg.ip_type, cfg.app_prefix))
        except FetchError as e:
            # No information this cycle; keep the current peers.
            log_event("ERROR", str(e), topology=self.topology)
            return CycleReport(outcome="fetch_failed", known=known, error=str(e))

        d = diff(known, fetched)
        if not d.empty:
            log_event(
                "DEBUG",
                f"current={format_nodes(known)} fetched={format_nodes(fetched)} "
                f"added={format_nodes(d.added)} removed={format_nodes(d.removed)}",
                topology=self.topology,
            )

        working = set(fetched)

        disconnect_res = self._request(self.disconnect, d.removed)
        # Still connected, so still a member.
        working |= disconnect_res.failed_nodes()
        self._report(disconnect_res, "disconnect")

        connect_res = self._request(self.connect, d.added)
        # Never became a peer.
        working -= connect_res.failed_nodes()
        self._report(connect_res, "connect")

        new_known = frozenset(working)
        if not d.empty or new_known != known:
            log_event("INFO", f"members: {format_nodes(new_known)}", topology=self.topology)

        return CycleReport(
            outcome="ok",
            known=new_known,
            diff=d,
            fetched=fetched,
            disconnect_failures=disconnect_res.failures,
            connect_failures=connect_res.failures,
        )

    def _request(self, op: Transport, nodes: frozenset[NodeName]) -> TransportResult:
        if not nodes:
            return OK
        return as_result(op(self.topology, self.list_nodes, sorted(nodes)))

    def _report(self, res: TransportResult, action: str) -> None:
        for node, reason in res.failures:
            log_event("WARN", f"{action} {node} failed: {reason}", topology=self.topology)
