"""Tests for TreeModel reads: cache hits, single-flight fetches, and failures."""

from __future__ import annotations

import threading
import time
import unittest

from vaultwalker.errors import NotFound, PermissionDenied
from vaultwalker.runtime.remote_calls import RemoteCallQueue
from vaultwalker.store import MemoryStore
from vaultwalker.tree_model import (
    ROOT,
    FetchCancelled,
    FetchFailed,
    FetchSucceeded,
    NodeKind,
    SecretPath,
    TreeModel,
)

SECRETS = {
    "secret/app/db": {"user": "app", "password": "hunter2"},
    "secret/app/api": {"token": "t1"},
    "secret/infra/ci/key": {"value": "k"},
}

APP = SecretPath.parse("app")
DB = SecretPath.parse("app/db")


class FlakyStore(MemoryStore):
    """MemoryStore that raises a queued error for the next call of an op."""

    def __init__(self, secrets) -> None:
        super().__init__(secrets)
        self.failures: dict[str, Exception] = {}

    def list(self, path: str) -> list[str]:
        if "list" in self.failures:
            raise self.failures.pop("list")
        return super().list(path)

    def read(self, path: str) -> dict[str, str]:
        if "read" in self.failures:
            raise self.failures.pop("read")
        return super().read(path)


def make_model(store: MemoryStore | None = None) -> tuple[MemoryStore, TreeModel]:
    store = store if store is not None else MemoryStore(SECRETS)
    model = TreeModel(store, SecretPath.parse("secret"), calls=RemoteCallQueue(run_inline=True))
    return store, model


def settle(model: TreeModel, rounds: int = 5) -> list:
    events: list = []
    for _ in range(rounds):
        events.extend(model.process_completions())
    return events


class TreeModelReadTests(unittest.TestCase):
    def test_enter_root_lists_folder_and_second_enter_is_cache_hit(self) -> None:
        store, model = make_model()

        model.enter(ROOT)
        events = settle(model)

        self.assertEqual(events, [FetchSucceeded(ROOT, NodeKind.FOLDER)])
        node = model.peek(ROOT)
        self.assertIs(node.kind, NodeKind.FOLDER)
        self.assertEqual([entry.label for entry in node.children], ["app/", "infra/"])
        self.assertEqual(store.calls, [("list", "secret")])

        model.enter(ROOT)
        settle(model)
        self.assertEqual(store.calls, [("list", "secret")])

    def test_concurrent_enters_issue_one_remote_call(self) -> None:
        store, model = make_model()

        model.enter(APP, expect_folder=True)
        model.enter(APP, expect_folder=True)
        model.enter(APP)
        events = settle(model)

        self.assertEqual(store.calls_for("list"), ["secret/app"])
        self.assertEqual(events, [FetchSucceeded(APP, NodeKind.FOLDER)])

    def test_leaf_hint_reads_secret(self) -> None:
        store, model = make_model()

        model.enter(DB, expect_folder=False)
        settle(model)

        node = model.peek(DB)
        self.assertIs(node.kind, NodeKind.LEAF)
        self.assertEqual(node.secret, {"user": "app", "password": "hunter2"})
        self.assertEqual(store.calls, [("read", "secret/app/db")])

    def test_unknown_path_falls_back_from_list_to_read(self) -> None:
        store, model = make_model()

        model.enter(DB)
        events = settle(model)

        self.assertEqual(store.calls, [("list", "secret/app/db"), ("read", "secret/app/db")])
        self.assertEqual(events, [FetchSucceeded(DB, NodeKind.LEAF)])

    def test_kind_comes_from_parent_listing(self) -> None:
        store, model = make_model()
        model.enter(APP, expect_folder=True)
        settle(model)

        self.assertFalse(model.is_folder(DB))
        model.enter(DB)
        settle(model)
        self.assertEqual(store.calls_for("read"), ["secret/app/db"])
        self.assertEqual(store.calls_for("list"), ["secret/app"])

    def test_missing_path_reports_not_found(self) -> None:
        _store, model = make_model()
        missing = SecretPath.parse("nope")

        model.enter(missing)
        events = settle(model)

        self.assertEqual(len(events), 1)
        self.assertIsInstance(events[0], FetchFailed)
        self.assertIsInstance(events[0].error, NotFound)
        self.assertTrue(model.peek(missing).failed)

    def test_failed_refresh_keeps_previous_content(self) -> None:
        store, model = make_model(FlakyStore(SECRETS))
        model.enter(APP, expect_folder=True)
        settle(model)

        store.failures["list"] = PermissionDenied("denied")
        model.refresh(APP)
        events = settle(model)

        self.assertIsInstance(events[0], FetchFailed)
        node = model.peek(APP)
        self.assertTrue(node.failed)
        self.assertIsInstance(node.failure, PermissionDenied)
        self.assertEqual([entry.name for entry in node.children], ["db", "api"])

    def test_failed_node_is_fetched_again_on_next_enter(self) -> None:
        store, model = make_model(FlakyStore(SECRETS))
        store.failures["read"] = PermissionDenied("denied")
        model.enter(DB, expect_folder=False)
        settle(model)
        self.assertTrue(model.peek(DB).failed)

        model.enter(DB, expect_folder=False)
        events = settle(model)

        self.assertEqual(events, [FetchSucceeded(DB, NodeKind.LEAF)])
        self.assertEqual(store.calls_for("read"), ["secret/app/db"])

    def test_refresh_issues_new_fetch(self) -> None:
        store, model = make_model()
        model.enter(APP, expect_folder=True)
        settle(model)

        model.refresh(APP)
        settle(model)

        self.assertEqual(store.calls_for("list"), ["secret/app", "secret/app"])

    def test_result_for_dropped_node_is_discarded_and_refetched(self) -> None:
        store, model = make_model()
        model.enter(APP, expect_folder=True)
        model.cache.invalidate(APP)
        model.enter(APP, expect_folder=True)

        self.assertTrue(model.peek(APP).pending_refetch)
        events = settle(model)

        self.assertEqual(events, [FetchSucceeded(APP, NodeKind.FOLDER)])
        self.assertEqual(store.calls_for("list"), ["secret/app", "secret/app"])
        self.assertFalse(model.peek(APP).pending_refetch)

    def test_clear_cache_forces_fresh_listing(self) -> None:
        store, model = make_model()
        model.enter(ROOT)
        settle(model)

        model.clear_cache()
        self.assertIs(model.peek(ROOT).kind, NodeKind.UNKNOWN)
        model.enter(ROOT)
        settle(model)
        self.assertEqual(store.calls_for("list"), ["secret", "secret"])

    def test_store_path_prefixes_root(self) -> None:
        _store, model = make_model()
        self.assertEqual(model.store_path(APP, folder=True), "secret/app/")
        self.assertEqual(model.store_path(DB), "secret/app/db")
        self.assertEqual(model.store_path(ROOT, folder=True), "secret/")


class GatedStore(MemoryStore):
    """MemoryStore whose listing of ``secret/app`` blocks until released."""

    def __init__(self, secrets) -> None:
        super().__init__(secrets)
        self.started = threading.Event()
        self.release = threading.Event()

    def list(self, path: str) -> list[str]:
        if path.rstrip("/") == "secret/app":
            self.started.set()
            self.release.wait(timeout=2.0)
        return super().list(path)


def _wait_idle(calls: RemoteCallQueue, timeout_seconds: float = 2.0) -> None:
    deadline = time.monotonic() + timeout_seconds
    while time.monotonic() < deadline and not calls.idle():
        time.sleep(0.01)


class TreeModelCancellationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = GatedStore(SECRETS)
        self.calls = RemoteCallQueue()
        self.model = TreeModel(self.store, SecretPath.parse("secret"), calls=self.calls)
        self.infra = SecretPath.parse("infra")

    def tearDown(self) -> None:
        self.store.release.set()
        _wait_idle(self.calls)

    def test_cancelled_queued_fetch_never_reaches_store(self) -> None:
        self.model.enter(APP, expect_folder=True)
        self.assertTrue(self.store.started.wait(timeout=2.0))
        self.model.enter(self.infra, expect_folder=True)

        self.assertTrue(self.model.cancel(self.infra))
        self.store.release.set()
        _wait_idle(self.calls)
        events = self.model.process_completions()

        self.assertEqual(events, [FetchSucceeded(APP, NodeKind.FOLDER), FetchCancelled(self.infra)])
        self.assertEqual(self.store.calls_for("list"), ["secret/app"])
        node = self.model.peek(self.infra)
        self.assertFalse(node.in_flight)
        self.assertIs(node.kind, NodeKind.UNKNOWN)

    def test_running_fetch_cannot_be_cancelled(self) -> None:
        self.model.enter(APP, expect_folder=True)
        self.assertTrue(self.store.started.wait(timeout=2.0))

        self.assertFalse(self.model.cancel(APP))

    def test_entering_again_revives_cancelled_fetch(self) -> None:
        self.model.enter(APP, expect_folder=True)
        self.assertTrue(self.store.started.wait(timeout=2.0))
        self.model.enter(self.infra, expect_folder=True)
        self.model.cancel(self.infra)

        self.model.enter(self.infra, expect_folder=True)
        self.store.release.set()
        _wait_idle(self.calls)
        events = self.model.process_completions()

        self.assertIn(FetchSucceeded(self.infra, NodeKind.FOLDER), events)
        self.assertEqual(self.store.calls_for("list"), ["secret/app", "secret/infra"])


if __name__ == "__main__":
    unittest.main()
