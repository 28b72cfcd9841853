from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .metadata import local_instance_tag_value
from .nodes import AddressKind
from .tags import TagValue, Unary, as_tag_value

DEFAULT_APP_PREFIX = "app"
DEFAULT_POLLING_INTERVAL_MS = 5_000


def default_tag_value() -> TagValue:
    return Unary(local_instance_tag_value)


@dataclass(frozen=True)
class StrategyConfig:
    """Options of one topology. Immutable for the life of the process.

    `tag_value` may be a string, a 0-argument callable, a 1-argument callable
    (given the tag name) or an explicit TagValue. Left as None it defaults to
    the tag value of the local instance.
    """

    tag_name: str | None = None
    tag_value: Any = None
    app_prefix: str = DEFAULT_APP_PREFIX
    ip_type: AddressKind = AddressKind.PRIVATE
    polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS
    resolved_tag_value: TagValue = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        tv = default_tag_value() if self.tag_value is None else as_tag_value(self.tag_value)
        object.__setattr__(self, "resolved_tag_value", tv)

        try:
            kind = AddressKind(self.ip_type)
        except ValueError:
            raise ValueError(f"ip_type must be one of {[k.value for k in AddressKind]}, got {self.ip_type!r}.") from None
        object.__setattr__(self, "ip_type", kind)

        if not self.app_prefix or "@" in self.app_prefix:
            raise ValueError("app_prefix must be non-empty and must not contain '@'.")

        interval = int(self.polling_interval_ms)
        if interval < 0:
            raise ValueError("polling_interval_ms must be >= 0")
        object.__setattr__(self, "polling_interval_ms", interval)

    @property
    def polling_interval_s(self) -> float:
        return self.polling_interval_ms / 1000.0
