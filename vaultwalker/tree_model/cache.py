"""Path-keyed node cache owned by ``TreeModel``.

Holds at most one ``Node`` per path. Every node gets a fresh generation number
when created so completions addressed to a dropped node can be recognized.
"""

from __future__ import annotations

import itertools
import logging
import time

from .path import ROOT, SecretPath
from .types import FetchState, Node

logger = logging.getLogger(__name__)


class PathCache:
    """Mapping from ``SecretPath`` to its single cached ``Node``."""

    def __init__(self, clock=time.monotonic) -> None:
        self._nodes: dict[SecretPath, Node] = {}
        self._generations = itertools.count(1)
        self._clock = clock
        self.get(ROOT)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, path: SecretPath) -> bool:
        return path in self._nodes

    def get(self, path: SecretPath) -> Node:
        """Return the node for ``path``, creating an unknown placeholder if absent."""
        node = self._nodes.get(path)
        if node is None:
            node = Node(path=path, generation=next(self._generations))
            self._nodes[path] = node
        return node

    def peek(self, path: SecretPath) -> Node | None:
        return self._nodes.get(path)

    def paths(self) -> list[SecretPath]:
        return list(self._nodes)

    def invalidate(self, path: SecretPath, recursive: bool = False) -> int:
        """Drop ``path`` (and its subtree when ``recursive``); return dropped count."""
        if recursive:
            doomed = [cached for cached in self._nodes if cached.is_within(path)]
        else:
            doomed = [path] if path in self._nodes else []
        for cached in doomed:
            del self._nodes[cached]
        if doomed:
            logger.debug("invalidated %d cached node(s) at %r (recursive=%s)", len(doomed), path.join(), recursive)
        return len(doomed)

    def store(self, path: SecretPath, node: Node) -> Node:
        """Install fetch results for ``path``, replacing any placeholder or stale node."""
        node.fetch_state = FetchState.IDLE
        node.failure = None
        node.fetched_at = self._clock()
        self._nodes[path] = node
        return node

    def clear(self) -> None:
        """Drop every node, keeping a fresh root placeholder."""
        self._nodes.clear()
        self.get(ROOT)
