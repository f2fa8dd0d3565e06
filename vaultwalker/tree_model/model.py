"""Cache-backed view of one remote secret subtree.

``TreeModel`` is the only component that talks to the remote store. Reads
are single-flight per path and answered from ``PathCache`` when possible.
Mutations validate locally, run as one remote job, and invalidate exactly the
cached nodes whose content they change.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from functools import partial

from ..errors import AlreadyExists, Cancelled, InvalidInput, MutationInFlight, NotFound
from ..runtime.remote_calls import RemoteCallQueue, RemoteCompletion
from ..store.base import RemoteStore
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
from .path import ROOT, SecretPath
from .types import FetchState, Node, NodeKind, decode_listing

logger = logging.getLogger(__name__)

FETCH_OPS = frozenset({"list", "read"})


class TreeModel:
    """Mediates every read and write between the UI and the remote store."""

    def __init__(
        self,
        store: RemoteStore,
        root_prefix: SecretPath = ROOT,
        *,
        calls: RemoteCallQueue | None = None,
        cache: PathCache | None = None,
    ) -> None:
        self.store = store
        self.root_prefix = root_prefix
        self.calls = calls if calls is not None else RemoteCallQueue()
        self.cache = cache if cache is not None else PathCache()
        self.pending_mutation: PendingMutation | None = None
        self._outstanding: dict[SecretPath, int] = {}
        self._cancel_requested: set[int] = set()

    # ------------------------------------------------------------------
    # Paths and lookups
    # ------------------------------------------------------------------

    def store_path(self, path: SecretPath, *, folder: bool = False) -> str:
        """Full store path for a root-relative ``path``."""
        return self.root_prefix.joinpath(path).join(trailing_slash=folder)

    def node(self, path: SecretPath) -> Node:
        return self.cache.get(path)

    def peek(self, path: SecretPath) -> Node | None:
        return self.cache.peek(path)

    def is_folder(self, path: SecretPath) -> bool:
        """Best current belief about whether ``path`` is a folder."""
        node = self.cache.peek(path)
        if node is not None and node.kind is NodeKind.FOLDER:
            return True
        if node is not None and node.kind is NodeKind.LEAF:
            return False
        if node is not None and node.kind_hint is not None:
            return node.kind_hint
        if path.is_root:
            return True
        parent = self.cache.peek(path.parent)
        entry = parent.child_entry(path.name) if parent is not None else None
        return entry.is_folder if entry is not None else True

    def fetch_outstanding(self, path: SecretPath) -> bool:
        return path in self._outstanding

    @property
    def mutation_in_flight(self) -> bool:
        return self.pending_mutation is not None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def enter(
        self,
        path: SecretPath,
        *,
        refresh: bool = False,
        expect_folder: bool | None = None,
    ) -> Node:
        """Make sure ``path`` is loaded or loading; return its node.

        A resolved idle node is a cache hit. A node already in flight is
        coalesced onto the outstanding request. Refreshed and failed nodes are
        fetched again but keep their previous content until a new result
        arrives, so a failed refresh degrades to stale data rather than none.
        """
        if refresh:
            previous = self.cache.peek(path)
            self.cache.invalidate(path, recursive=False)
            node = self.cache.get(path)
            if previous is not None and previous.is_resolved:
                node.kind = previous.kind
                node.children = previous.children
                node.secret = previous.secret
                node.fetched_at = previous.fetched_at
        node = self.cache.get(path)
        if expect_folder is not None and not node.is_resolved:
            node.kind_hint = expect_folder

        if node.in_flight:
            self._revive_if_cancelled(node)
            return node
        if not refresh and node.is_resolved and node.fetch_state is FetchState.IDLE:
            return node

        node.fetch_state = FetchState.IN_FLIGHT
        if path in self._outstanding:
            # An older call for this path is still queued or running; fetch after it lands.
            node.pending_refetch = True
            return node
        self._issue_fetch(node, as_folder=self.is_folder(path))
        return node

    def refresh(self, path: SecretPath) -> Node:
        """Drop the cached node for ``path`` and fetch it again."""
        return self.enter(path, refresh=True)

    def clear_cache(self) -> None:
        logger.info("clearing path cache (%d nodes)", len(self.cache))
        self.cache.clear()

    def cancel(self, path: SecretPath) -> bool:
        """Drop a queued fetch for ``path`` the user no longer needs.

        Calls already running are left alone; their results are merged.
        """
        request_id = self._outstanding.get(path)
        if request_id is None or request_id in self._cancel_requested:
            return False
        if self.calls.cancel(request_id):
            self._cancel_requested.add(request_id)
            return True
        return False

    def _revive_if_cancelled(self, node: Node) -> None:
        request_id = self._outstanding.get(node.path)
        if request_id is None or request_id not in self._cancel_requested:
            return
        self._cancel_requested.discard(request_id)
        if not self.calls.uncancel(request_id):
            node.pending_refetch = True

    def _issue_fetch(self, node: Node, *, as_folder: bool) -> None:
        path = node.path
        if as_folder:
            op = "list"
            run = partial(self.store.list, self.store_path(path, folder=True))
        else:
            op = "read"
            run = partial(self.store.read, self.store_path(path))
        logger.debug("fetch %s %r (generation %d)", op, self.store_path(path), node.generation)
        request_id = self.calls.submit(op, path, run, generation=node.generation)
        self._outstanding[path] = request_id

    # ------------------------------------------------------------------
    # Completions
    # ------------------------------------------------------------------

    def process_completions(self) -> list[ModelEvent]:
        """Apply finished remote calls to the cache and report what changed."""
        events: list[ModelEvent] = []
        for completion in self.calls.drain_completions():
            if completion.call.op in FETCH_OPS:
                events.extend(self._apply_fetch(completion))
            else:
                events.extend(self._apply_mutation(completion))
        return events

    def _apply_fetch(self, completion: RemoteCompletion) -> list[ModelEvent]:
        call = completion.call
        path = call.path
        if self._outstanding.get(path) == call.request_id:
            del self._outstanding[path]
        self._cancel_requested.discard(call.request_id)

        node = self.cache.peek(path)
        if node is None or node.generation != call.generation:
            logger.debug("dropping stale %s result for %r", call.op, self.store_path(path))
            if node is not None and node.pending_refetch:
                node.pending_refetch = False
                self._issue_fetch(node, as_folder=self.is_folder(path))
            return []

        if node.pending_refetch:
            node.pending_refetch = False
            if isinstance(completion.error, Cancelled):
                self._issue_fetch(node, as_folder=self.is_folder(path))
                return []

        if isinstance(completion.error, Cancelled):
            node.fetch_state = FetchState.IDLE
            return [FetchCancelled(path)]

        if completion.error is not None:
            if call.op == "list" and isinstance(completion.error, NotFound) and node.kind is NodeKind.UNKNOWN:
                # A listing miss on an unresolved path may still be a leaf.
                self._issue_fetch(node, as_folder=False)
                return []
            logger.warning("fetch %s %r failed: %s", call.op, self.store_path(path), completion.error)
            node.fetch_state = FetchState.FAILED
            node.failure = completion.error
            return [FetchFailed(path, completion.error)]

        if call.op == "list":
            node.kind = NodeKind.FOLDER
            node.children = decode_listing(list(completion.value))
            node.secret = None
        else:
            node.kind = NodeKind.LEAF
            node.secret = dict(completion.value)
            node.children = None
        node.kind_hint = None
        self.cache.store(path, node)
        return [FetchSucceeded(path, node.kind)]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _require_no_mutation(self) -> None:
        if self.pending_mutation is not None:
            raise MutationInFlight()

    def _loaded(self, path: SecretPath) -> Node:
        node = self.cache.peek(path)
        if node is None or not node.is_resolved:
            raise NotFound("not loaded yet", path=self.store_path(path))
        return node

    def _loaded_leaf(self, path: SecretPath) -> Node:
        node = self._loaded(path)
        if node.kind is not NodeKind.LEAF or node.secret is None:
            raise NotFound("not a secret", path=self.store_path(path))
        return node

    def _submit_mutation(self, mutation: PendingMutation, run) -> PendingMutation:
        request_id = self.calls.submit(mutation.kind.value, mutation.target, run)
        mutation = replace(mutation, request_id=request_id)
        self.pending_mutation = mutation
        logger.info("%s %r submitted", mutation.kind.value, self.store_path(mutation.target))
        return mutation

    def create_secret(self, parent: SecretPath, key: str, value: str) -> PendingMutation:
        """Add ``key`` under ``parent``.

        Inside a folder this creates the leaf ``parent/key`` holding
        ``{key: value}``; inside a leaf it merges ``key`` into the mapping.
        """
        self._require_no_mutation()
        if not key or not key.strip():
            raise InvalidInput("key name must not be empty")
        node = self._loaded(parent)
        if node.kind is NodeKind.FOLDER:
            if "/" in key:
                raise InvalidInput("key name must not contain '/'")
            if node.child_entry(key) is not None:
                raise AlreadyExists(key, path=self.store_path(parent))
            target = parent.child(key)
            mapping = {key: value}
        else:
            if key in (node.secret or {}):
                raise AlreadyExists(key, path=self.store_path(parent))
            target = parent
            mapping = dict(node.secret or {})
            mapping[key] = value
        mutation = PendingMutation(kind=MutationKind.CREATE, target=target, parent=parent, key=key)
        return self._submit_mutation(mutation, partial(self.store.write, self.store_path(target), mapping))

    def edit_value(self, leaf: SecretPath, key: str, value: str) -> PendingMutation:
        """Replace one value, writing the whole mapping back."""
        self._require_no_mutation()
        node = self._loaded_leaf(leaf)
        if key not in node.secret:
            raise NotFound(key, path=self.store_path(leaf))
        mapping = dict(node.secret)
        mapping[key] = value
        mutation = PendingMutation(kind=MutationKind.EDIT, target=leaf, parent=leaf.parent, key=key)
        return self._submit_mutation(mutation, partial(self.store.write, self.store_path(leaf), mapping))

    def rename_key(self, leaf: SecretPath, old_key: str, new_key: str) -> PendingMutation:
        """Rename a key with one combined write.

        The store applies the write as a whole, but nothing here can make it
        transactional: this is best effort, not atomic.
        """
        self._require_no_mutation()
        node = self._loaded_leaf(leaf)
        if old_key not in node.secret:
            raise NotFound(old_key, path=self.store_path(leaf))
        if not new_key or not new_key.strip():
            raise InvalidInput("key name must not be empty")
        if new_key in node.secret:
            raise AlreadyExists(new_key, path=self.store_path(leaf))
        mapping = {(new_key if key == old_key else key): value for key, value in node.secret.items()}
        mutation = PendingMutation(
            kind=MutationKind.RENAME,
            target=leaf,
            parent=leaf.parent,
            key=old_key,
            new_key=new_key,
        )
        return self._submit_mutation(mutation, partial(self.store.write, self.store_path(leaf), mapping))

    def delete_entry(self, path: SecretPath) -> PendingMutation:
        """Delete a leaf, or every leaf below a folder."""
        self._require_no_mutation()
        if path.is_root:
            raise InvalidInput("refusing to delete the tree root")
        parent = self._loaded(path.parent)
        entry = parent.child_entry(path.name)
        if entry is None:
            raise NotFound(path=self.store_path(path))
        mutation = PendingMutation(
            kind=MutationKind.DELETE,
            target=path,
            parent=path.parent,
            target_was_folder=entry.is_folder,
        )
        if entry.is_folder:
            run = partial(self._delete_subtree, path)
        else:
            run = partial(self.store.delete, self.store_path(path))
        return self._submit_mutation(mutation, run)

    def delete_key(self, leaf: SecretPath, key: str) -> PendingMutation:
        """Remove one key; removing the last key deletes the leaf itself."""
        self._require_no_mutation()
        node = self._loaded_leaf(leaf)
        if key not in node.secret:
            raise NotFound(key, path=self.store_path(leaf))
        mapping = {name: value for name, value in node.secret.items() if name != key}
        mutation = PendingMutation(
            kind=MutationKind.DELETE_KEY,
            target=leaf,
            parent=leaf.parent,
            key=key,
            removes_leaf=not mapping,
        )
        if mapping:
            run = partial(self.store.write, self.store_path(leaf), mapping)
        else:
            run = partial(self.store.delete, self.store_path(leaf))
        return self._submit_mutation(mutation, run)

    def _delete_subtree(self, path: SecretPath) -> int:
        """Runs on the worker thread; touches only the store, never the cache."""
        deleted = 0
        for entry in decode_listing(self.store.list(self.store_path(path, folder=True))):
            child = path.child(entry.name)
            if entry.is_folder:
                deleted += self._delete_subtree(child)
            else:
                self.store.delete(self.store_path(child))
                deleted += 1
        return deleted

    def _apply_mutation(self, completion: RemoteCompletion) -> list[ModelEvent]:
        mutation = self.pending_mutation
        if mutation is None or mutation.request_id != completion.call.request_id:
            logger.warning("ignoring completion for unknown mutation request %d", completion.call.request_id)
            return []
        self.pending_mutation = None

        if completion.error is not None:
            logger.warning("%s %r failed: %s", mutation.kind.value, self.store_path(mutation.target), completion.error)
            if mutation.kind is MutationKind.DELETE and mutation.target_was_folder:
                # A recursive delete may have stopped halfway.
                self._invalidate_after(mutation)
            return [MutationFailed(mutation, completion.error)]

        logger.info("%s %r done", mutation.kind.value, self.store_path(mutation.target))
        self._invalidate_after(mutation)
        return [MutationSucceeded(mutation)]

    def _invalidate_after(self, mutation: PendingMutation) -> None:
        kind = mutation.kind
        if kind is MutationKind.CREATE:
            if mutation.target != mutation.parent:
                self.cache.invalidate(mutation.parent, recursive=False)
            self.cache.invalidate(mutation.target, recursive=False)
        elif kind in (MutationKind.EDIT, MutationKind.RENAME):
            self.cache.invalidate(mutation.target, recursive=False)
        elif kind is MutationKind.DELETE:
            self.cache.invalidate(mutation.target, recursive=True)
            self.cache.invalidate(mutation.parent, recursive=False)
        elif kind is MutationKind.DELETE_KEY:
            self.cache.invalidate(mutation.target, recursive=False)
            if mutation.removes_leaf:
                self.cache.invalidate(mutation.parent, recursive=False)


__all__ = ["TreeModel"]
