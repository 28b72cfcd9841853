import threading
import time

import pytest

from tcr import db
from tcr.poller import LOAD, Poller, Topologies, start
from tcr.reconciler import CycleReport

from conftest import A, B, C, FakeFetcher, FakeTransport


def _wait_for(cond, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if cond():
            return True
        time.sleep(0.01)
    return cond()


@pytest.fixture
def pollers():
    created = []
    yield created
    for p in created:
        p.stop()


def test_handle_load_commits_corrected_snapshot(make_reconciler, pollers):
    r = make_reconciler(FakeFetcher({A, B}, {B, C}), connect=FakeTransport(fail={C: "unreachable"}))
    p = Poller(r, polling_interval_ms=60_000)
    pollers.append(p)

    assert p.known == frozenset()
    p.handle(LOAD)
    assert p.known == {A, B}
    p.handle(LOAD)
    assert p.known == {B}
    assert p.ticks == p.cycles == 2


def test_unrecognized_message_is_ignored(make_reconciler, pollers):
    fetcher = FakeFetcher({A})
    p = Poller(make_reconciler(fetcher), polling_interval_ms=60_000)
    pollers.append(p)

    p.handle({"unexpected": True})

    assert p.known == frozenset()
    assert p.ticks == 0
    assert fetcher.calls == []
    assert "ignoring message" in db.latest_events(topology="test")[0]["message"]


def test_cycle_exception_keeps_state_and_reschedules(make_reconciler, pollers):
    def broken_connect(topology, list_nodes, nodes):
        raise RuntimeError("link layer exploded")

    p = Poller(make_reconciler(FakeFetcher({A}), connect=broken_connect), polling_interval_ms=60_000)
    pollers.append(p)

    p.handle(LOAD)

    assert p.known == frozenset()
    assert p.cycles == 1
    assert p.last_error == "RuntimeError: link layer exploded"
    assert p._timer is not None
    assert db.latest_events(topology="test")[0]["message"].startswith("cycle failed")


def test_fetch_error_cycle_keeps_membership(make_reconciler, fetch_error, pollers):
    disconnect = FakeTransport()
    r = make_reconciler(FakeFetcher({A, B}, fetch_error), disconnect=disconnect)
    p = Poller(r, polling_interval_ms=60_000)
    pollers.append(p)

    p.handle(LOAD)
    p.handle(LOAD)

    assert p.known == {A, B}
    assert p.last_report.outcome == "fetch_failed"
    assert disconnect.calls == []


def test_first_cycle_runs_without_initial_delay(make_reconciler, pollers):
    p = Poller(make_reconciler(FakeFetcher({A})), polling_interval_ms=60_000)
    pollers.append(p)

    p.start()

    assert _wait_for(lambda: p.cycles == 1, timeout=2.0)
    assert p.known == {A}
    time.sleep(0.1)
    assert p.cycles == 1


class FlakyReconciler:
    """Raises on every other cycle."""

    topology = "flaky"

    def __init__(self, config):
        self.config = config
        self.calls = 0

    def run_cycle(self, known):
        self.calls += 1
        if self.calls % 2:
            raise ValueError(f"failure {self.calls}")
        return CycleReport(outcome="ok", known=known | {A})


def test_scheduler_keeps_ticking_through_failures(make_reconciler, pollers):
    flaky = FlakyReconciler(make_reconciler(FakeFetcher(set())).config)
    p = Poller(flaky, polling_interval_ms=0)
    pollers.append(p)

    p.start()

    assert _wait_for(lambda: p.cycles >= 6)
    p.stop()
    assert p.ticks >= 6
    assert flaky.calls == p.ticks
    assert p.known == {A}
    assert not p.running


def test_poll_now_runs_an_extra_cycle(make_reconciler, pollers):
    p = Poller(make_reconciler(FakeFetcher({A}, {A, B})), polling_interval_ms=60_000)
    pollers.append(p)
    p.start()
    assert _wait_for(lambda: p.cycles == 1)

    p.poll_now()

    assert _wait_for(lambda: p.cycles == 2)
    assert p.known == {A, B}


def test_start_returns_running_handle(pollers):
    from tcr.config import StrategyConfig

    connect = FakeTransport()
    p = start(
        "edge",
        connect,
        FakeTransport(),
        lambda: [],
        StrategyConfig(tag_name="cluster", tag_value="edge", polling_interval_ms=60_000),
        fetcher=FakeFetcher({A}),
    )
    pollers.append(p)

    assert p.running
    assert _wait_for(lambda: p.known == {A})
    assert connect.calls == [[A]]


def test_topologies_are_independent(make_reconciler, pollers):
    one = Poller(make_reconciler(FakeFetcher({A})), polling_interval_ms=60_000)
    two_r = make_reconciler(FakeFetcher({B}))
    two_r.topology = "other"
    two = Poller(two_r, polling_interval_ms=60_000)
    pollers.extend([one, two])

    t = Topologies()
    t.add(one)
    t.add(two)
    with pytest.raises(ValueError):
        t.add(one)

    t.start_all()
    assert _wait_for(lambda: one.known == {A} and two.known == {B})
    t.stop_all()
    assert not one.running and not two.running
    assert t.get("other") is two


class BlockingReconciler:
    """Holds its first cycle until `release` is set."""

    topology = "blocking"

    def __init__(self, config):
        self.config = config
        self.calls = 0
        self.entered = threading.Event()
        self.release = threading.Event()

    def run_cycle(self, known):
        self.calls += 1
        self.entered.set()
        self.release.wait(5.0)
        return CycleReport(outcome="ok", known=known | {A})


def test_stop_timeout_keeps_single_worker(make_reconciler, pollers):
    blocking = BlockingReconciler(make_reconciler(FakeFetcher(set())).config)
    p = Poller(blocking, polling_interval_ms=0)
    pollers.append(p)
    p.start()
    assert blocking.entered.wait(2.0)
    worker = p._thr

    p.stop(timeout=0.1)
    # The stuck cycle still owns the membership.
    assert p.running
    p.start()
    assert p._thr is worker

    blocking.release.set()
    assert _wait_for(lambda: not p.running)
    time.sleep(0.1)
    assert blocking.calls == 1
    assert p.cycles == 1
    assert p.known == {A}

    # Once the old worker is gone a restart works normally.
    p.start()
    assert p._thr is not worker
    assert _wait_for(lambda: blocking.calls >= 3)
    p.stop()
    assert not p.running
