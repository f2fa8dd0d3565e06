"""Cached node datatypes for the secret tree."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from ..errors import VaultwalkerError
from .path import SecretPath


class NodeKind(enum.Enum):
    UNKNOWN = "unknown"
    FOLDER = "folder"
    LEAF = "leaf"


class FetchState(enum.Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    FAILED = "failed"


@dataclass(frozen=True)
class ChildEntry:
    """One listed child of a folder; folders come back from the store with a trailing ``/``."""

    name: str
    is_folder: bool

    @classmethod
    def decode(cls, raw: str) -> ChildEntry:
        if raw.endswith("/"):
            return cls(name=raw[:-1], is_folder=True)
        return cls(name=raw, is_folder=False)

    @property
    def label(self) -> str:
        return self.name + "/" if self.is_folder else self.name


def decode_listing(raw_names: list[str]) -> tuple[ChildEntry, ...]:
    """Decode listing names in store order.

    A name present both as a leaf and as a folder is kept once, as the folder,
    at the position of its first occurrence.
    """
    order: list[str] = []
    by_name: dict[str, ChildEntry] = {}
    for raw in raw_names:
        entry = ChildEntry.decode(raw)
        if not entry.name:
            continue
        existing = by_name.get(entry.name)
        if existing is None:
            order.append(entry.name)
            by_name[entry.name] = entry
        elif entry.is_folder and not existing.is_folder:
            by_name[entry.name] = entry
    return tuple(by_name[name] for name in order)


@dataclass
class Node:
    """Cached view of one path: kind, content, and fetch bookkeeping."""

    path: SecretPath
    generation: int
    kind: NodeKind = NodeKind.UNKNOWN
    children: tuple[ChildEntry, ...] | None = None
    secret: dict[str, str] | None = None
    fetched_at: float | None = None
    fetch_state: FetchState = FetchState.IDLE
    failure: VaultwalkerError | None = None
    kind_hint: bool | None = None
    pending_refetch: bool = False

    @property
    def is_resolved(self) -> bool:
        return self.kind is not NodeKind.UNKNOWN

    @property
    def in_flight(self) -> bool:
        return self.fetch_state is FetchState.IN_FLIGHT

    @property
    def failed(self) -> bool:
        return self.fetch_state is FetchState.FAILED

    def child_entry(self, name: str) -> ChildEntry | None:
        for entry in self.children or ():
            if entry.name == name:
                return entry
        return None

    def entry_names(self) -> list[str]:
        """Names the cursor can select: folder children or leaf keys."""
        if self.kind is NodeKind.FOLDER:
            return [entry.name for entry in self.children or ()]
        if self.kind is NodeKind.LEAF:
            return list(self.secret or {})
        return []
