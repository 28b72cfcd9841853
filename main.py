"""HTTP entry point.

    TCR_TAG_NAME=cluster TCR_PEER_PORT=4000 uvicorn main:app --port 8000

Runs one topology (TCR_TOPOLOGY) against EC2 and exposes its membership,
cycle outcomes and event log over HTTP. For a local run without AWS, list
the peers directly:

    TCR_TAG_NAME=cluster TCR_TAG_VALUE=dev TCR_STATIC_ADDRESSES=127.0.0.1 uvicorn main:app
"""
from __future__ import annotations

from tcr import db
from tcr.api import create_app
from tcr.inventory import Ec2InventoryFetcher, InventoryFetcher, StaticInventoryFetcher
from tcr.peers import HttpPeerTransport
from tcr.poller import Poller, Topologies
from tcr.reconciler import Reconciler
from tcr.settings import Settings, settings


def build_fetcher(s: Settings = settings) -> InventoryFetcher:
    addresses = s.static_address_list()
    if addresses:
        return StaticInventoryFetcher(addresses)
    return Ec2InventoryFetcher(region=s.aws_region)


def build_topologies(s: Settings = settings) -> Topologies:
    transport = HttpPeerTransport(
        port=s.peer_port,
        health_path=s.peer_health_path,
        timeout_s=s.peer_timeout_s,
        topology=s.topology,
    )
    connect, disconnect, list_nodes = transport.collaborators()
    reconciler = Reconciler(
        topology=s.topology,
        connect=connect,
        disconnect=disconnect,
        list_nodes=list_nodes,
        config=s.strategy_config(),
        fetcher=build_fetcher(s),
    )
    topologies = Topologies()
    topologies.add(Poller(reconciler))
    return topologies


db.configure_logging()
app = create_app(build_topologies(), autostart=settings.autostart)
