"""Tests for session composition: store choice, resume position and teardown."""

from __future__ import annotations

import unittest
from unittest import mock

from vaultwalker.runtime.app import DEMO_ADDR, StartupConfig, VaultwalkerApp, build_store, run_app
from vaultwalker.runtime.remote_calls import RemoteCallQueue
from vaultwalker.store import MemoryStore, VaultClient
from vaultwalker.tree_model import SecretPath
from vaultwalker.ui_theme import OCEAN_THEME, PLAIN_THEME


class _ClosingStore(MemoryStore):
    closed = False

    def close(self) -> None:
        self.closed = True


class _NullClipboard:
    def copy(self, text: str) -> None:
        pass


class BuildStoreTests(unittest.TestCase):
    def test_demo_uses_memory_store(self) -> None:
        self.assertIsInstance(build_store(StartupConfig(addr=DEMO_ADDR, demo=True)), MemoryStore)

    def test_missing_token_exits(self) -> None:
        with self.assertRaises(SystemExit):
            build_store(StartupConfig(addr="https://vault:8200"))

    def test_token_builds_vault_client(self) -> None:
        store = build_store(StartupConfig(addr="https://vault:8200", token="t", namespace="ns", timeout=3.0))
        self.assertIsInstance(store, VaultClient)
        store.close()


class VaultwalkerAppTests(unittest.TestCase):
    def make_app(self, **overrides) -> VaultwalkerApp:
        settings = StartupConfig(addr="https://vault:8200", token="t", **overrides)
        self.store = _ClosingStore({"secret/app/db": {"user": "app"}})
        return VaultwalkerApp(
            settings,
            store=self.store,
            clipboard=_NullClipboard(),
            calls=RemoteCallQueue(run_inline=True),
        )

    def test_render_options_follow_theme_and_color_settings(self) -> None:
        self.assertIs(self.make_app(theme="ocean").render_options.theme, OCEAN_THEME)
        self.assertIs(self.make_app(theme="ocean", no_color=True).render_options.theme, PLAIN_THEME)

    def test_remember_position_saves_displayed_path_per_address(self) -> None:
        app = self.make_app(start=SecretPath.parse("app"))
        app.machine.start()
        app.machine.process_events()

        with mock.patch("vaultwalker.runtime.app.config.save_last_path") as save_mock:
            app.remember_position()
        save_mock.assert_called_once_with("https://vault:8200", "secret/app/")

    def test_demo_session_does_not_persist_position(self) -> None:
        app = self.make_app(demo=True)
        with mock.patch("vaultwalker.runtime.app.config.save_last_path") as save_mock:
            app.remember_position()
        save_mock.assert_not_called()

    def test_run_saves_position_and_closes_store_even_on_error(self) -> None:
        app = self.make_app()
        with mock.patch("vaultwalker.runtime.app.sys") as sys_mock, mock.patch(
            "vaultwalker.runtime.terminal.TerminalController"
        ), mock.patch(
            "vaultwalker.runtime.loop.run_main_loop", side_effect=RuntimeError("boom")
        ), mock.patch("vaultwalker.runtime.app.config.save_last_path") as save_mock:
            sys_mock.stdin.fileno.return_value = 0
            sys_mock.stdout.fileno.return_value = 1
            with self.assertRaises(RuntimeError):
                app.run()

        save_mock.assert_called_once_with("https://vault:8200", "secret/")
        self.assertTrue(self.store.closed)

    def test_run_app_requires_terminal(self) -> None:
        with mock.patch("vaultwalker.runtime.app.sys") as sys_mock:
            sys_mock.stdin.isatty.return_value = False
            with self.assertRaises(SystemExit):
                run_app(StartupConfig(addr=DEMO_ADDR, demo=True))


if __name__ == "__main__":
    unittest.main()
