from __future__ import annotations

from queue import Queue
from threading import Lock, Thread, Timer
from typing import Any

from .config import StrategyConfig
from .db import log_event
from .inventory import Ec2InventoryFetcher, InventoryFetcher
from .nodes import NodeName
from .reconciler import CycleReport, Reconciler
from .transport import ListNodes, Transport

LOAD = "load"
STOP = "stop"


class Poller:
    """Owns the membership of one topology and drives its cycles.

    A single worker thread drains a message queue; it is the only code that
    reads or replaces `_known`, so cycles never overlap. After every cycle,
    whatever its outcome, the next LOAD is posted by a timer `interval`
    after completion.
    """

    def __init__(self, reconciler: Reconciler, polling_interval_ms: int | None = None):
        self.reconciler = reconciler
        self.topology = reconciler.topology
        if polling_interval_ms is None:
            polling_interval_ms = reconciler.config.polling_interval_ms
        self.interval_s = max(0, int(polling_interval_ms)) / 1000.0

        self._known: frozenset[NodeName] = frozenset()
        self._queue: Queue[Any] = Queue()
        self._timer: Timer | None = None
        self._timer_lock = Lock()
        self._stopped = False
        self._thr: Thread | None = None

        self.ticks = 0  # LOAD messages handled
        self.cycles = 0  # cycles finished, including failed ones
        self.last_report: CycleReport | None = None
        self.last_error: str | None = None

    @property
    def known(self) -> frozenset[NodeName]:
        return self._known

    @property
    def running(self) -> bool:
        return self._thr is not None and self._thr.is_alive()

    def start(self) -> Poller:
        """Start the worker. A no-op while a previous worker is still alive."""
        if self.running:
            return self
        with self._timer_lock:
            self._stopped = False
        # Each worker drains its own queue, so a STOP left behind by an
        # earlier stop() can never reach it.
        self._queue = Queue()
        self._thr = Thread(
            target=self._loop, args=(self._queue,), name=f"tcr-poller-{self.topology}", daemon=True
        )
        self._thr.start()
        # First cycle runs right away.
        self.send(LOAD)
        return self

    def send(self, message: Any) -> None:
        self._queue.put(message)

    def poll_now(self) -> None:
        self._cancel_timer()
        self.send(LOAD)

    def stop(self, timeout: float | None = 5.0) -> None:
        with self._timer_lock:
            self._stopped = True
        self._cancel_timer()
        if self._thr is not None:
            self._queue.put(STOP)
            self._thr.join(timeout)
            # A cycle stuck in a transport call outlives the timeout; the
            # worker stays the owner until it reads its STOP.
            if not self._thr.is_alive():
                self._thr = None

    def _loop(self, queue: Queue[Any]) -> None:
        log_event("INFO", f"poller started (interval {self.interval_s:g}s)", topology=self.topology)
        while True:
            message = queue.get()
            if message == STOP:
                break
            self.handle(message)
        log_event("INFO", "poller stopped", topology=self.topology)

    def handle(self, message: Any) -> None:
        """Process one message on the owning thread."""
        if message != LOAD:
            log_event("INFO", f"ignoring message {message!r}", topology=self.topology)
            return

        self.ticks += 1
        try:
            report = self.reconciler.run_cycle(self._known)
        except Exception as e:
            self.last_error = f"{type(e).__name__}: {e}"
            log_event("ERROR", f"cycle failed: {self.last_error}", topology=self.topology)
        else:
            self._known = report.known
            self.last_report = report
            self.last_error = report.error
        finally:
            self.cycles += 1
            self._schedule()

    def _schedule(self) -> None:
        with self._timer_lock:
            if self._stopped:
                return
            if self._timer is not None:
                self._timer.cancel()
            t = Timer(self.interval_s, self.send, args=(LOAD,))
            t.daemon = True
            t.start()
            self._timer = t

    def _cancel_timer(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


def start(
    topology: str,
    connect: Transport,
    disconnect: Transport,
    list_nodes: ListNodes,
    config: StrategyConfig,
    fetcher: InventoryFetcher | None = None,
) -> Poller:
    """Build and start the poller of one topology; returns its handle."""
    reconciler = Reconciler(
        topology=topology,
        connect=connect,
        disconnect=disconnect,
        list_nodes=list_nodes,
        config=config,
        fetcher=fetcher if fetcher is not None else Ec2InventoryFetcher(),
    )
    return Poller(reconciler).start()


class Topologies:
    """Independent pollers by topology name. They share no state."""

    def __init__(self) -> None:
        self.lock = Lock()
        self.pollers: dict[str, Poller] = {}

    def add(self, poller: Poller) -> Poller:
        with self.lock:
            if poller.topology in self.pollers:
                raise ValueError(f"Topology {poller.topology!r} already registered.")
            self.pollers[poller.topology] = poller
        return poller

    def get(self, name: str) -> Poller | None:
        with self.lock:
            return self.pollers.get(name)

    def values(self) -> list[Poller]:
        with self.lock:
            return list(self.pollers.values())

    def start_all(self) -> None:
        for p in self.values():
            p.start()

    def stop_all(self) -> None:
        for p in self.values():
            p.stop()
