from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock

from .db import log_event, utc_now
from .health import probe_peer
from .nodes import NodeName
from .transport import ListNodes, Transport, bind_transport


@dataclass
class PeerInfo:
    node: NodeName
    latency_ms: float | None = None
    connected_at: str = field(default_factory=utc_now)


class HttpPeerTransport:
    """Peer registry where "connected" means the peer answered its health check.

    Peers are probed at http://<address>:<port><health_path>.
    """

    def __init__(self, port: int, health_path: str = "/health", timeout_s: float = 2.0, topology: str | None = None):
        if not health_path.startswith("/"):
            raise ValueError("health_path must start with '/'.")
        self.port = int(port)
        self.health_path = health_path
        self.timeout_s = timeout_s
        self.topology = topology
        self.lock = Lock()
        self.peers: dict[NodeName, PeerInfo] = {}

    def url_for(self, node: NodeName) -> str:
        return f"http://{node.address}:{self.port}{self.health_path}"

    def connect_one(self, node: NodeName) -> bool:
        res = probe_peer(self.url_for(node), timeout_s=self.timeout_s)
        if not res.healthy:
            log_event("WARN", f"peer {node} failed health check: {res.message}", topology=self.topology)
            return False
        with self.lock:
            self.peers[node] = PeerInfo(node=node, latency_ms=res.latency_ms)
        return True

    def disconnect_one(self, node: NodeName) -> bool:
        with self.lock:
            return self.peers.pop(node, None) is not None

    def list_nodes(self) -> list[NodeName]:
        with self.lock:
            return list(self.peers)

    def get(self, node: NodeName) -> PeerInfo | None:
        with self.lock:
            return self.peers.get(node)

    def collaborators(self) -> tuple[Transport, Transport, ListNodes]:
        connect, disconnect = bind_transport(self.connect_one, self.disconnect_one)
        return connect, disconnect, self.list_nodes
