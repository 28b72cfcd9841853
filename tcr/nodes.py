from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class AddressKind(str, Enum):
    """Which instance address a node name is built from."""

    PRIVATE = "private"
    PUBLIC = "public"

    @property
    def instance_field(self) -> str:
        # Field names in an EC2 DescribeInstances instance record.
        if self is AddressKind.PUBLIC:
            return "PublicIpAddress"
        return "PrivateDnsName"


@dataclass(frozen=True, order=True)
class NodeName:
    prefix: str
    address: str

    def __str__(self) -> str:
        return f"{self.prefix}@{self.address}"

    @classmethod
    def parse(cls, raw: str) -> NodeName:
        prefix, sep, address = raw.partition("@")
        if not sep or not prefix or not address:
            raise ValueError(f"Invalid node name {raw!r}; expected 'prefix@address'.")
        return cls(prefix=prefix, address=address)


def node_names(addresses: Iterable[str | None], prefix: str) -> frozenset[NodeName]:
    """Compose node names from instance addresses, skipping blanks."""
    return frozenset(NodeName(prefix, a.strip()) for a in addresses if a and a.strip())


def format_nodes(nodes: Iterable[NodeName]) -> str:
    return "[" + ", ".join(str(n) for n in sorted(nodes)) + "]"
