import dataclasses
import sys

import pytest

# Ensure project root is importable (so `import tcr` / `import main` work without installing)
import os as _os
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from tcr import db, metadata  # noqa: E402
from tcr.config import StrategyConfig  # noqa: E402
from tcr.errors import FetchError  # noqa: E402
from tcr.nodes import NodeName  # noqa: E402
from tcr.reconciler import Reconciler  # noqa: E402
from tcr.transport import OK, TransportResult  # noqa: E402

A = NodeName("app", "10.0.0.1")
B = NodeName("app", "10.0.0.2")
C = NodeName("app", "10.0.0.3")


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Give every test its own event log, no ambient AWS region and an empty metadata cache."""
    s = dataclasses.replace(db.settings, db_path=str(tmp_path / "events.db"), aws_region=None)
    monkeypatch.setattr(db, "settings", s)
    monkeypatch.setattr(metadata, "settings", s)
    metadata.clear_cache()
    return s


class FakeFetcher:
    """Returns queued results in order; a FetchError instance is raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def fetch(self, tag_name, tag_value, ip_type, app_prefix):
        self.calls.append((tag_name, tag_value, ip_type, app_prefix))
        res = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(res, Exception):
            raise res
        return frozenset(res)


class FakeTransport:
    """Records requested nodes; nodes listed in `fail` come back as failures."""

    def __init__(self, fail=None):
        self.fail = dict(fail or {})
        self.calls = []

    def __call__(self, topology, list_nodes, nodes):
        self.calls.append(list(nodes))
        failures = [(n, self.fail[n]) for n in nodes if n in self.fail]
        return TransportResult.error(failures) if failures else OK


@pytest.fixture
def make_reconciler():
    def _make(fetcher, connect=None, disconnect=None, **config):
        config.setdefault("tag_name", "cluster")
        config.setdefault("tag_value", "blue")
        return Reconciler(
            topology="test",
            connect=connect if connect is not None else FakeTransport(),
            disconnect=disconnect if disconnect is not None else FakeTransport(),
            list_nodes=lambda: [],
            config=StrategyConfig(**config),
            fetcher=fetcher,
        )

    return _make


@pytest.fixture
def fetch_error():
    return FetchError("Error fetching ec2 nodes: boom")
