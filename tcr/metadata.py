from __future__ import annotations

from typing import Any

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from .errors import ConfigurationError, FetchError
from .settings import settings

TOKEN_TTL_S = 60

# Successful lookups only. Instance identity is fixed for the process lifetime.
_cache: dict[str, str] = {}
_ec2_clients: dict[str, Any] = {}


def clear_cache() -> None:
    _cache.clear()
    _ec2_clients.clear()


def _cached(path: str, client: httpx.Client | None) -> str:
    value = _cache.get(path)
    if value is None:
        value = _get(path, client)
        _cache[path] = value
    return value


def _get(path: str, client: httpx.Client | None = None) -> str:
    """Read one instance metadata path (IMDSv2: token first, then GET)."""
    base = settings.metadata_url.rstrip("/")
    own = client is None
    if client is None:
        client = httpx.Client(timeout=settings.metadata_timeout_s, follow_redirects=False)
    try:
        tok = client.put(
            f"{base}/latest/api/token",
            headers={"X-aws-ec2-metadata-token-ttl-seconds": str(TOKEN_TTL_S)},
        )
        tok.raise_for_status()
        resp = client.get(f"{base}/latest/meta-data/{path}", headers={"X-aws-ec2-metadata-token": tok.text})
        resp.raise_for_status()
        return resp.text.strip()
    except httpx.HTTPError as e:
        raise FetchError(f"Instance metadata {path!r} unavailable: {type(e).__name__}: {e}") from e
    finally:
        if own:
            client.close()


def instance_id(client: httpx.Client | None = None) -> str:
    return _cached("instance-id", client)


def instance_region(client: httpx.Client | None = None) -> str:
    if settings.aws_region:
        return settings.aws_region
    return _cached("placement/region", client)


def _ec2_client(region: str) -> Any:
    ec2 = _ec2_clients.get(region)
    if ec2 is None:
        ec2 = _ec2_clients[region] = boto3.client("ec2", region_name=region)
    return ec2


def local_instance_tag_value(tag_name: str, ec2: Any = None, client: httpx.Client | None = None) -> str:
    """Value of `tag_name` on the instance this process runs on.

    Used as the default tag value, so that every instance carrying the same
    tag value as this one becomes a peer.
    """
    iid = instance_id(client)
    if ec2 is None:
        ec2 = _ec2_client(instance_region(client))
    try:
        resp = ec2.describe_tags(
            Filters=[
                {"Name": "resource-id", "Values": [iid]},
                {"Name": "key", "Values": [tag_name]},
            ]
        )
    except (BotoCoreError, ClientError) as e:
        raise FetchError(f"Could not read tags of {iid}: {e}") from e

    for tag in resp.get("Tags", []):
        if tag.get("Key") == tag_name:
            return tag.get("Value", "")
    raise ConfigurationError(f"Instance {iid} has no tag {tag_name!r}.")
