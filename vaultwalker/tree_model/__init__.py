"""Secret-tree model: normalized paths, cached nodes, and the ``TreeModel`` mediator.

``TreeModel`` owns the ``PathCache`` and is the only caller of the remote
store. It reports fetch and mutation outcomes as events for the UI layer.
"""

from __future__ import annotations

from .cache import PathCache
from .events import (
    FetchCancelled,
    FetchFailed,
    FetchSucceeded,
    ModelEvent,
    MutationFailed,
    MutationKind,
    MutationSucceeded,
    PendingMutation,
)
from .model import TreeModel
from .path import ROOT, SecretPath
from .types import ChildEntry, FetchState, Node, NodeKind, decode_listing

__all__ = [
    "ROOT",
    "ChildEntry",
    "FetchCancelled",
    "FetchFailed",
    "FetchState",
    "FetchSucceeded",
    "ModelEvent",
    "MutationFailed",
    "MutationKind",
    "MutationSucceeded",
    "Node",
    "NodeKind",
    "PathCache",
    "PendingMutation",
    "SecretPath",
    "TreeModel",
    "decode_listing",
]
