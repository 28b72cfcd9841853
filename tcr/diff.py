from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .nodes import NodeName


@dataclass(frozen=True)
class Diff:
    added: frozenset[NodeName]
    removed: frozenset[NodeName]

    @property
    def empty(self) -> bool:
        return not self.added and not self.removed


def diff(previous: Iterable[NodeName], current: Iterable[NodeName]) -> Diff:
    """Split the change from `previous` to `current` into added and removed peers."""
    prev = frozenset(previous)
    cur = frozenset(current)
    return Diff(added=cur - prev, removed=prev - cur)
