from __future__ import annotations

from typing import Any, Iterable, Protocol, runtime_checkable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import FetchError
from .metadata import instance_region
from .nodes import AddressKind, NodeName, node_names

__all__ = ["Ec2InventoryFetcher", "FetchError", "InventoryFetcher", "StaticInventoryFetcher"]


@runtime_checkable
class InventoryFetcher(Protocol):
    """Returns the peers the inventory currently lists.

    Implementations raise FetchError on any failure; an empty result must
    only ever mean "the inventory has no matching instances".
    """

    def fetch(self, tag_name: str, tag_value: str, ip_type: AddressKind, app_prefix: str) -> frozenset[NodeName]:
        ...


class Ec2InventoryFetcher:
    """Lists EC2 instances carrying `tag:<tag_name> = <tag_value>`."""

    def __init__(self, region: str | None = None, client: Any = None):
        self.region = region
        self._client = client

    def _ec2(self) -> Any:
        if self._client is None:
            self._client = boto3.client("ec2", region_name=self.region or instance_region())
        return self._client

    def describe(self, tag_name: str, tag_value: str) -> list[dict[str, Any]]:
        """All instance records matching the tag filter, across pages."""
        try:
            paginator = self._ec2().get_paginator("describe_instances")
            pages = paginator.paginate(Filters=[{"Name": f"tag:{tag_name}", "Values": [tag_value]}])
            instances: list[dict[str, Any]] = []
            for page in pages:
                for reservation in page.get("Reservations", []):
                    instances.extend(reservation.get("Instances", []))
            return instances
        except (BotoCoreError, ClientError) as e:
            raise FetchError(f"Error fetching ec2 nodes: {type(e).__name__}: {e}") from e

    def fetch(self, tag_name: str, tag_value: str, ip_type: AddressKind, app_prefix: str) -> frozenset[NodeName]:
        field = AddressKind(ip_type).instance_field
        return node_names((i.get(field) for i in self.describe(tag_name, tag_value)), app_prefix)


class StaticInventoryFetcher:
    """A fixed list of addresses, whatever the filter (TCR_STATIC_ADDRESSES)."""

    def __init__(self, addresses: Iterable[str] = ()):
        self.addresses = list(addresses)

    def fetch(self, tag_name: str, tag_value: str, ip_type: AddressKind, app_prefix: str) -> frozenset[NodeName]:
        return node_names(self.addresses, app_prefix)
