"""Interaction state machine for the secret browser.

Decides which actions are legal in each UI mode, turns them into
``TreeModel`` calls or clipboard copies, and folds model events back into
cursor position and status messages. Rendering reads ``snapshot()`` only.
"""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..clipboard import ClipboardSink
from ..errors import ErrorKind, NotFound, VaultwalkerError
from ..tree_model import (
    ROOT,
    FetchFailed,
    FetchSucceeded,
    ModelEvent,
    MutationFailed,
    MutationKind,
    MutationSucceeded,
    Node,
    NodeKind,
    PendingMutation,
    SecretPath,
    TreeModel,
)

logger = logging.getLogger(__name__)

CONFIRMATION_TEXT = "yes"
STATUS_SECONDS = 3.0
ERROR_STATUS_SECONDS = 6.0


class Mode(enum.Enum):
    BROWSING = "browsing"
    SEARCHING = "searching"
    ENTERING_NEW_KEY_NAME = "new-key-name"
    ENTERING_NEW_KEY_VALUE = "new-key-value"
    ENTERING_RENAME_TARGET = "rename-target"
    ENTERING_EDITED_VALUE = "edited-value"
    CONFIRMING_DELETE = "confirm-delete"
    SHOWING_HELP = "help"


TEXT_ENTRY_MODES = frozenset(
    {
        Mode.SEARCHING,
        Mode.ENTERING_NEW_KEY_NAME,
        Mode.ENTERING_NEW_KEY_VALUE,
        Mode.ENTERING_RENAME_TARGET,
        Mode.ENTERING_EDITED_VALUE,
        Mode.CONFIRMING_DELETE,
    }
)


@dataclass(frozen=True)
class ViewEntry:
    """One selectable row: a folder child, or a key inside a leaf."""

    name: str
    is_folder: bool = False
    is_key: bool = False

    @property
    def label(self) -> str:
        return self.name + "/" if self.is_folder else self.name


@dataclass
class _Draft:
    """Input collected by a modal state before it is committed."""

    target: SecretPath
    key: str | None = None
    deletes_key: bool = False


@dataclass(frozen=True)
class ViewSnapshot:
    """Everything the renderer needs for one frame."""

    mode: Mode
    path: str
    kind: NodeKind
    entries: tuple[ViewEntry, ...]
    cursor: int | None
    loading: bool
    failed: bool
    status: str
    status_is_error: bool
    prompt: str
    buffer: str
    search_query: str
    preview_title: str
    preview: dict[str, str] | None
    preview_loading: bool
    preview_error: str
    mutation_in_flight: bool


class InteractionStateMachine:
    """One browsing session over a ``TreeModel``."""

    def __init__(
        self,
        model: TreeModel,
        clipboard: ClipboardSink,
        *,
        start_path: SecretPath = ROOT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.model = model
        self.clipboard = clipboard
        self._clock = clock
        self.mode = Mode.BROWSING
        self.path = start_path
        self.cursor_name: str | None = None
        self.buffer = ""
        self.search_query = ""
        self.status_message = ""
        self.status_is_error = False
        self.status_until = 0.0
        self.dirty = True
        self._cursor_index = 0
        self._cursor_memory: dict[SecretPath, tuple[str, int]] = {}
        self._entries: list[ViewEntry] = []
        self._draft: _Draft | None = None
        self._search_saved_cursor: tuple[str | None, int] = (None, 0)
        self._preview_path: SecretPath | None = None
        self._copy_target: tuple[SecretPath, str | None] | None = None
        self._focus_after_reload: str | None = None

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Enter the start path; call once before the first frame."""
        self.model.enter(self.path)
        self._sync_entries()

    @property
    def displayed_node(self) -> Node | None:
        return self.model.peek(self.path)

    @property
    def displayed_kind(self) -> NodeKind:
        node = self.displayed_node
        return node.kind if node is not None else NodeKind.UNKNOWN

    def visible_entries(self) -> list[ViewEntry]:
        if self.mode is not Mode.SEARCHING or not self.search_query:
            return list(self._entries)
        query = self.search_query.casefold()
        return [entry for entry in self._entries if query in entry.name.casefold()]

    def cursor_entry(self) -> ViewEntry | None:
        for entry in self.visible_entries():
            if entry.name == self.cursor_name:
                return entry
        return None

    def cursor_index(self) -> int | None:
        names = [entry.name for entry in self.visible_entries()]
        if self.cursor_name in names:
            return names.index(self.cursor_name)
        return None

    def _selected_key(self) -> tuple[SecretPath, str] | str:
        """Resolve the key a value action applies to, or a reason why there is none."""
        entry = self.cursor_entry()
        if entry is None:
            return "nothing selected"
        if entry.is_folder:
            return "select a secret, not a folder"
        leaf = self.model.peek(self.path if entry.is_key else self.path.child(entry.name))
        # Rows stay on screen while a node reloads; its content does not.
        if leaf is None or leaf.kind is not NodeKind.LEAF or leaf.secret is None or leaf.in_flight:
            return "secret not loaded yet"
        if entry.is_key:
            if entry.name not in leaf.secret:
                return f"key {entry.name} no longer exists"
            return leaf.path, entry.name
        if len(leaf.secret) != 1:
            return "secret has several keys; open it (→) to pick one"
        return leaf.path, next(iter(leaf.secret))

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def set_status(self, message: str, *, error: bool = False) -> None:
        self.status_message = message
        self.status_is_error = error
        self.status_until = self._clock() + (ERROR_STATUS_SECONDS if error else STATUS_SECONDS)
        self.dirty = True

    def _report(self, exc: VaultwalkerError) -> None:
        self.set_status(exc.status_text(), error=exc.kind is not ErrorKind.MUTATION_IN_FLIGHT)

    def dismiss_status(self) -> None:
        if self.status_message:
            self.status_message = ""
            self.status_is_error = False
            self.status_until = 0.0
            self.dirty = True

    def tick(self) -> None:
        """Expire transient status messages."""
        if self.status_message and self._clock() >= self.status_until:
            self.dismiss_status()

    # ------------------------------------------------------------------
    # Entries and cursor
    # ------------------------------------------------------------------

    def _sync_entries(self) -> None:
        """Rebuild rows from the displayed node; keep the last rows while it reloads."""
        node = self.displayed_node
        if node is not None and node.kind is NodeKind.FOLDER:
            self._entries = [ViewEntry(entry.name, is_folder=entry.is_folder) for entry in node.children or ()]
        elif node is not None and node.kind is NodeKind.LEAF:
            self._entries = [ViewEntry(key, is_key=True) for key in node.secret or {}]
        if self._focus_after_reload is not None and node is not None and node.is_resolved and not node.in_flight:
            if any(entry.name == self._focus_after_reload for entry in self._entries):
                self.cursor_name = self._focus_after_reload
            self._focus_after_reload = None
        self._fix_cursor()
        self.dirty = True

    def _fix_cursor(self) -> None:
        names = [entry.name for entry in self.visible_entries()]
        if not names:
            self.cursor_name = None
        elif self.cursor_name not in names:
            self.cursor_name = names[max(0, min(self._cursor_index, len(names) - 1))]
        if self.cursor_name is not None:
            self._cursor_index = names.index(self.cursor_name)
        self._update_preview()

    def _update_preview(self) -> None:
        """Prefetch the leaf under the cursor so the preview pane can show it."""
        desired: SecretPath | None = None
        entry = self.cursor_entry()
        if self.displayed_kind is NodeKind.FOLDER and entry is not None and not entry.is_folder:
            desired = self.path.child(entry.name)
        if desired == self._preview_path:
            if desired is not None and self.model.peek(desired) is None:
                self.model.enter(desired, expect_folder=False)
            return
        previous = self._preview_path
        self._preview_path = desired
        still_needed = {self.path, self._copy_target[0] if self._copy_target else None}
        if previous is not None and previous not in still_needed:
            self.model.cancel(previous)
        if desired is not None:
            self.model.enter(desired, expect_folder=False)

    def move_cursor(self, delta: int) -> None:
        names = [entry.name for entry in self.visible_entries()]
        if not names:
            return
        current = self.cursor_index()
        index = 0 if current is None else current + delta
        index = max(0, min(index, len(names) - 1))
        if names[index] == self.cursor_name:
            return
        self.cursor_name = names[index]
        self._cursor_index = index
        self._update_preview()
        self.dirty = True

    def move_to_edge(self, last: bool) -> None:
        names = [entry.name for entry in self.visible_entries()]
        if names:
            self.move_cursor(len(names) if last else -len(names))

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _go_to(self, path: SecretPath, *, expect_folder: bool | None = None) -> None:
        previous = self.path
        previous_node = self.model.peek(previous)
        if previous != path and previous_node is not None and previous_node.in_flight:
            self.model.cancel(previous)
        self.path = path
        self._entries = []
        remembered = self._cursor_memory.get(path)
        self.cursor_name, self._cursor_index = remembered if remembered is not None else (None, 0)
        self.model.enter(path, expect_folder=expect_folder)
        self._sync_entries()

    def descend(self) -> None:
        """Step into the folder or secret under the cursor."""
        entry = self.cursor_entry()
        if entry is None or entry.is_key:
            return
        self._cursor_memory[self.path] = (entry.name, self._cursor_index)
        self._go_to(self.path.child(entry.name), expect_folder=entry.is_folder)

    def ascend(self) -> None:
        """Return to the parent folder, restoring its cursor."""
        if self.path.is_root:
            return
        child = self.path
        parent = child.parent
        if parent not in self._cursor_memory:
            self._cursor_memory[parent] = (child.name, 0)
        self._go_to(parent)

    def refresh(self) -> None:
        self.model.refresh(self.path)
        self._sync_entries()
        self.set_status(f"refreshing {self.display_path()}")

    def clear_cache(self) -> None:
        self.model.clear_cache()
        self._preview_path = None
        self.model.enter(self.path)
        self._sync_entries()
        self.set_status("cache cleared")

    # ------------------------------------------------------------------
    # Modal entry points
    # ------------------------------------------------------------------

    def _mutation_allowed(self) -> bool:
        if self.model.mutation_in_flight:
            self.set_status("another change is still being saved")
            return False
        return True

    def _open_modal(self, mode: Mode, draft: _Draft, buffer: str = "") -> None:
        self.mode = mode
        self._draft = draft
        self.buffer = buffer
        self.dirty = True

    def begin_add(self) -> None:
        if self.mode is not Mode.BROWSING or not self._mutation_allowed():
            return
        node = self.displayed_node
        if node is None or not node.is_resolved:
            self.set_status("still loading")
            return
        self._open_modal(Mode.ENTERING_NEW_KEY_NAME, _Draft(target=self.path))

    def begin_edit(self) -> None:
        if self.mode is not Mode.BROWSING or not self._mutation_allowed():
            return
        selected = self._selected_key()
        if isinstance(selected, str):
            self.set_status(selected)
            return
        leaf, key = selected
        current = self.model.peek(leaf).secret[key]
        self._open_modal(Mode.ENTERING_EDITED_VALUE, _Draft(target=leaf, key=key), buffer=current)

    def begin_rename(self) -> None:
        if self.mode is not Mode.BROWSING or not self._mutation_allowed():
            return
        selected = self._selected_key()
        if isinstance(selected, str):
            self.set_status(selected)
            return
        leaf, key = selected
        self._open_modal(Mode.ENTERING_RENAME_TARGET, _Draft(target=leaf, key=key), buffer=key)

    def begin_delete(self) -> None:
        if self.mode is not Mode.BROWSING or not self._mutation_allowed():
            return
        entry = self.cursor_entry()
        if entry is None:
            self.set_status("nothing selected")
            return
        if entry.is_key:
            draft = _Draft(target=self.path, key=entry.name, deletes_key=True)
        else:
            draft = _Draft(target=self.path.child(entry.name))
        self._open_modal(Mode.CONFIRMING_DELETE, draft)

    def begin_search(self) -> None:
        if self.mode is not Mode.BROWSING:
            return
        self._search_saved_cursor = (self.cursor_name, self._cursor_index)
        self.search_query = ""
        self.mode = Mode.SEARCHING
        self.dirty = True

    def show_help(self) -> None:
        if self.mode is Mode.BROWSING:
            self.mode = Mode.SHOWING_HELP
            self.dirty = True

    def dismiss_help(self) -> None:
        if self.mode is Mode.SHOWING_HELP:
            self.mode = Mode.BROWSING
            self.dirty = True

    # ------------------------------------------------------------------
    # Text entry
    # ------------------------------------------------------------------

    def type_text(self, text: str) -> None:
        if self.mode is Mode.SEARCHING:
            self.search_query += text
            self._fix_cursor()
        elif self.mode in TEXT_ENTRY_MODES:
            self.buffer += text
        else:
            return
        self.dirty = True

    def backspace(self) -> None:
        if self.mode is Mode.SEARCHING:
            self.search_query = self.search_query[:-1]
            self._fix_cursor()
        elif self.mode in TEXT_ENTRY_MODES:
            self.buffer = self.buffer[:-1]
        else:
            return
        self.dirty = True

    def clear_buffer(self) -> None:
        if self.mode is Mode.SEARCHING:
            self.search_query = ""
            self._fix_cursor()
        elif self.mode in TEXT_ENTRY_MODES:
            self.buffer = ""
        else:
            return
        self.dirty = True

    def _back_to_browsing(self) -> None:
        self.mode = Mode.BROWSING
        self.buffer = ""
        self._draft = None
        self.dirty = True

    def cancel(self) -> None:
        """Escape: leave any modal state without touching the store."""
        if self.mode is Mode.SEARCHING:
            self.cursor_name, self._cursor_index = self._search_saved_cursor
            self.search_query = ""
            self.mode = Mode.BROWSING
            self._fix_cursor()
            self.dirty = True
        elif self.mode in TEXT_ENTRY_MODES:
            self._back_to_browsing()
        elif self.mode is Mode.SHOWING_HELP:
            self.dismiss_help()
        else:
            self.dismiss_status()

    def confirm(self) -> None:
        """Enter: advance or commit the current modal state."""
        mode = self.mode
        draft = self._draft
        if mode is Mode.SEARCHING:
            self.search_query = ""
            self.mode = Mode.BROWSING
            self._fix_cursor()
            self.dirty = True
            return
        if draft is None:
            return

        if mode is Mode.ENTERING_NEW_KEY_NAME:
            if not self.buffer:
                self._back_to_browsing()
                return
            draft.key = self.buffer
            self.buffer = ""
            self.mode = Mode.ENTERING_NEW_KEY_VALUE
            self.dirty = True
        elif mode is Mode.ENTERING_NEW_KEY_VALUE:
            key, value = draft.key, self.buffer
            self._commit(lambda: self.model.create_secret(draft.target, key, value), focus=key)
        elif mode is Mode.ENTERING_EDITED_VALUE:
            key, value = draft.key, self.buffer
            self._commit(lambda: self.model.edit_value(draft.target, key, value))
        elif mode is Mode.ENTERING_RENAME_TARGET:
            old_key, new_key = draft.key, self.buffer
            if new_key == old_key:
                self._back_to_browsing()
                return
            self._commit(lambda: self.model.rename_key(draft.target, old_key, new_key), focus=new_key)
        elif mode is Mode.CONFIRMING_DELETE:
            if self.buffer != CONFIRMATION_TEXT:
                self._back_to_browsing()
                self.set_status("delete cancelled")
                return
            if draft.deletes_key:
                self._commit(lambda: self.model.delete_key(draft.target, draft.key))
            else:
                self._commit(lambda: self.model.delete_entry(draft.target))

    def _commit(self, submit: Callable[[], PendingMutation], *, focus: str | None = None) -> None:
        if self.model.mutation_in_flight:
            self.set_status("another change is still being saved")
            return
        try:
            mutation = submit()
        except VaultwalkerError as exc:
            self._back_to_browsing()
            self._report(exc)
            return
        self._back_to_browsing()
        if focus is not None:
            self._focus_after_reload = focus
        self.set_status(f"saving: {mutation.describe()}")

    # ------------------------------------------------------------------
    # Clipboard
    # ------------------------------------------------------------------

    def _copy(self, text: str, what: str) -> None:
        try:
            self.clipboard.copy(text)
        except VaultwalkerError as exc:
            self._report(exc)
            return
        self.set_status(f"copied {what}")

    def copy_path(self) -> None:
        if self.mode is not Mode.BROWSING:
            return
        entry = self.cursor_entry()
        if entry is None:
            self.set_status("nothing selected")
            return
        if entry.is_key:
            text = self.model.store_path(self.path)
        else:
            text = self.model.store_path(self.path.child(entry.name), folder=entry.is_folder)
        self._copy(text, f"path {text}")

    def copy_secret(self) -> None:
        if self.mode is not Mode.BROWSING:
            return
        entry = self.cursor_entry()
        if entry is None or entry.is_folder:
            self.set_status("select a secret, not a folder" if entry else "nothing selected")
            return
        if entry.is_key:
            target = (self.path, entry.name)
        else:
            target = (self.path.child(entry.name), None)
        leaf = self.model.peek(target[0])
        if leaf is None or leaf.kind is not NodeKind.LEAF or leaf.in_flight or leaf.failed:
            # Copy once the fetch lands; never from stale or missing content.
            self._copy_target = target
            self.model.enter(target[0], expect_folder=False)
            self.set_status("loading secret before copying")
            return
        self._copy_target = target
        self._finish_copy()

    def _finish_copy(self) -> None:
        if self._copy_target is None:
            return
        leaf_path, key = self._copy_target
        self._copy_target = None
        leaf = self.model.peek(leaf_path)
        if leaf is None or leaf.kind is not NodeKind.LEAF or leaf.secret is None:
            self.set_status("not a secret", error=True)
            return
        if key is None:
            if len(leaf.secret) != 1:
                self.set_status("secret has several keys; open it (→) to pick one")
                return
            key = next(iter(leaf.secret))
        if key not in leaf.secret:
            self.set_status(f"key {key} no longer exists", error=True)
            return
        self._copy(leaf.secret[key], f"value of {key}")

    # ------------------------------------------------------------------
    # Model events
    # ------------------------------------------------------------------

    def process_events(self) -> bool:
        """Drain finished remote calls; return whether anything arrived."""
        events = self.model.process_completions()
        for event in events:
            self._handle_event(event)
        return bool(events)

    def _handle_event(self, event: ModelEvent) -> None:
        if isinstance(event, FetchSucceeded):
            if event.path == self.path:
                self._sync_entries()
            if self._copy_target is not None and self._copy_target[0] == event.path:
                self._finish_copy()
        elif isinstance(event, FetchFailed):
            self._handle_fetch_failed(event)
        elif isinstance(event, MutationSucceeded):
            self._handle_mutation_done(event.mutation)
            self.set_status(event.mutation.describe())
        elif isinstance(event, MutationFailed):
            self._focus_after_reload = None
            self._reload_displayed()
            self._report(event.error)
        self.dirty = True

    def _handle_fetch_failed(self, event: FetchFailed) -> None:
        if self._copy_target is not None and self._copy_target[0] == event.path:
            self._copy_target = None
            self._report(event.error)
        if event.path != self.path:
            return
        gone = isinstance(event.error, NotFound)
        if gone and not self.path.is_root:
            missing = self.display_path()
            logger.info("%s no longer exists; returning to parent", missing)
            self.ascend()
            self.set_status(f"{missing} no longer exists", error=True)
            return
        self._report(event.error)

    def _reload_displayed(self) -> None:
        self.model.enter(self.path)
        self._sync_entries()

    def _handle_mutation_done(self, mutation: PendingMutation) -> None:
        if mutation.kind in (MutationKind.DELETE, MutationKind.DELETE_KEY):
            self._after_delete(mutation)
            return
        if mutation.target == self._preview_path:
            self._preview_path = None
        self._reload_displayed()

    def _after_delete(self, mutation: PendingMutation) -> None:
        if mutation.kind is MutationKind.DELETE_KEY and not mutation.removes_leaf:
            removed_from, removed = mutation.target, mutation.key
        else:
            removed_from, removed = mutation.parent, mutation.target.name
        if self._preview_path is not None and self._preview_path.is_within(mutation.target):
            self._preview_path = None

        entry_gone = mutation.kind is MutationKind.DELETE or mutation.removes_leaf
        if entry_gone and self.path.is_within(mutation.target):
            # The displayed entry itself is gone; the parent relist places the cursor.
            while self.path.is_within(mutation.target) and not self.path.is_root:
                self.ascend()
            if self.path.is_within(mutation.target):
                # The configured root was the deleted secret; show what the store has now.
                self._entries = []
                self.cursor_name, self._cursor_index = None, 0
                self._reload_displayed()
            return

        if self.path == removed_from:
            self._entries = [entry for entry in self._entries if entry.name != removed]
            if self.cursor_name == removed:
                self.cursor_name = None
            if not self._entries and not self.path.is_root:
                # Folders vanish with their last secret.
                self._cursor_memory.pop(self.path, None)
                self.ascend()
                self.model.refresh(self.path)
                self._sync_entries()
                return
            self._fix_cursor()
        self._reload_displayed()

    # ------------------------------------------------------------------
    # Rendering surface
    # ------------------------------------------------------------------

    def display_path(self) -> str:
        folder = self.displayed_kind is NodeKind.FOLDER or (
            self.displayed_kind is NodeKind.UNKNOWN and self.model.is_folder(self.path)
        )
        return self.model.store_path(self.path, folder=folder) or "/"

    def prompt(self) -> str:
        draft = self._draft
        if self.mode is Mode.SEARCHING:
            return "/"
        if self.mode is Mode.ENTERING_NEW_KEY_NAME:
            return "new key name: "
        if draft is None:
            return ""
        if self.mode is Mode.ENTERING_NEW_KEY_VALUE:
            return f"value for {draft.key}: "
        if self.mode is Mode.ENTERING_EDITED_VALUE:
            return f"new value for {draft.key}: "
        if self.mode is Mode.ENTERING_RENAME_TARGET:
            return f"rename {draft.key} to: "
        if self.mode is Mode.CONFIRMING_DELETE:
            if draft.deletes_key:
                what = f"key {draft.key} of {self.model.store_path(draft.target)}"
            else:
                what = self.model.store_path(draft.target, folder=self.model.is_folder(draft.target))
            return f"delete {what}? type '{CONFIRMATION_TEXT}' to confirm: "
        return ""

    def snapshot(self) -> ViewSnapshot:
        node = self.displayed_node
        preview: dict[str, str] | None = None
        preview_title = ""
        preview_loading = False
        preview_error = ""
        if self.displayed_kind is NodeKind.LEAF and node is not None:
            preview = dict(node.secret or {})
            preview_title = self.display_path()
        elif self._preview_path is not None:
            preview_title = self.model.store_path(self._preview_path)
            leaf = self.model.peek(self._preview_path)
            if leaf is not None and leaf.kind is NodeKind.LEAF:
                preview = dict(leaf.secret or {})
            if leaf is not None and leaf.failed and leaf.failure is not None:
                preview_error = leaf.failure.status_text()
            preview_loading = leaf is not None and leaf.in_flight
        return ViewSnapshot(
            mode=self.mode,
            path=self.display_path(),
            kind=self.displayed_kind,
            entries=tuple(self.visible_entries()),
            cursor=self.cursor_index(),
            loading=node is not None and node.in_flight,
            failed=node is not None and node.failed,
            status=self.status_message,
            status_is_error=self.status_is_error,
            prompt=self.prompt(),
            buffer=self.buffer,
            search_query=self.search_query,
            preview_title=preview_title,
            preview=preview,
            preview_loading=preview_loading,
            preview_error=preview_error,
            mutation_in_flight=self.model.mutation_in_flight,
        )


__all__ = [
    "CONFIRMATION_TEXT",
    "InteractionStateMachine",
    "Mode",
    "TEXT_ENTRY_MODES",
    "ViewEntry",
    "ViewSnapshot",
]
