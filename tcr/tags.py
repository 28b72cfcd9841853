from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Union

from .errors import ConfigurationError


@dataclass(frozen=True)
class Static:
    value: str


@dataclass(frozen=True)
class Nullary:
    fn: Callable[[], Any]


@dataclass(frozen=True)
class Unary:
    fn: Callable[[str], Any]


TagValue = Union[Static, Nullary, Unary]


def _required_positional(fn: Callable[..., Any]) -> int:
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Cannot inspect tag value provider {fn!r}: {e}") from e
    kinds = {inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD}
    return sum(1 for p in sig.parameters.values() if p.kind in kinds and p.default is inspect.Parameter.empty)


def as_tag_value(raw: Any) -> TagValue:
    """Normalize a configured tag value into one of the three variants.

    Strings become Static. Callables are classified by how many positional
    arguments they require: none -> Nullary, one -> Unary (called with the
    tag name).
    """
    if isinstance(raw, (Static, Nullary, Unary)):
        return raw
    if isinstance(raw, str):
        return Static(raw)
    if callable(raw):
        n = _required_positional(raw)
        if n == 0:
            return Nullary(raw)
        if n == 1:
            return Unary(raw)
        raise ConfigurationError(f"Tag value provider must take 0 or 1 arguments, {raw!r} requires {n}.")
    raise ConfigurationError(f"Unsupported tag value {raw!r}; use a string or a 0/1-argument callable.")


def resolve_tag_value(tag_name: str | None, tag_value: TagValue | None) -> str:
    """Return the concrete value to filter the inventory by."""
    if not tag_name or not str(tag_name).strip():
        raise ConfigurationError("ec2 tags strategy is selected, but the tag name is not configured!")
    if tag_value is None:
        raise ConfigurationError("ec2 tags strategy is selected, but the tag value is not configured!")

    if isinstance(tag_value, Static):
        value = tag_value.value
    elif isinstance(tag_value, Nullary):
        value = tag_value.fn()
    elif isinstance(tag_value, Unary):
        value = tag_value.fn(tag_name)
    else:
        value = as_tag_value(tag_value)
        return resolve_tag_value(tag_name, value)
    return str(value)
