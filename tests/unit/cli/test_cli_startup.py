"""Tests for CLI parsing, settings resolution and ``--print`` output."""

from __future__ import annotations

import io
import logging
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from vaultwalker import cli
from vaultwalker.runtime.app import DEMO_ADDR
from vaultwalker.store import DEFAULT_TIMEOUT, MemoryStore
from vaultwalker.tree_model import ROOT, SecretPath


def resolve(argv: list[str], env: dict[str, str] | None = None, saved: dict | None = None):
    args = cli.build_parser().parse_args(argv)
    return cli.resolve_startup(args, env=env or {}, saved=saved or {})


class ResolveStartupTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        token_file = mock.patch.object(cli, "TOKEN_FILE", Path(self._tmp.name) / "missing-token")
        token_file.start()
        self.addCleanup(token_file.stop)

    def test_flags_override_environment_and_config(self) -> None:
        settings = resolve(
            ["kv/team", "--addr", "https://flag", "--namespace", "ns-flag", "--timeout", "2"],
            env={"VAULT_ADDR": "https://env", "VAULT_TOKEN": "env-token", "VAULT_NAMESPACE": "ns-env"},
            saved={"addr": "https://config", "path": "secret/", "timeout": 9},
        )
        self.assertEqual(settings.addr, "https://flag")
        self.assertEqual(settings.namespace, "ns-flag")
        self.assertEqual(settings.root, SecretPath.parse("kv/team"))
        self.assertEqual(settings.timeout, 2.0)
        self.assertEqual(settings.token, "env-token")

    def test_environment_overrides_config_which_overrides_defaults(self) -> None:
        settings = resolve([], env={"VAULT_ADDR": "https://env"}, saved={"addr": "https://config", "style": "native"})
        self.assertEqual(settings.addr, "https://env")
        self.assertEqual(settings.root, SecretPath.parse(cli.DEFAULT_ROOT))
        self.assertEqual(settings.timeout, DEFAULT_TIMEOUT)
        self.assertEqual(settings.style, "native")

        from_config = resolve([], saved={"addr": "https://config", "path": "kv/", "timeout": 4})
        self.assertEqual(from_config.addr, "https://config")
        self.assertEqual(from_config.root, SecretPath.parse("kv"))
        self.assertEqual(from_config.timeout, 4.0)

    def test_missing_address_exits(self) -> None:
        with self.assertRaises(SystemExit):
            resolve([])

    def test_empty_root_exits(self) -> None:
        with self.assertRaises(SystemExit):
            resolve(["/"], env={"VAULT_ADDR": "https://env"})

    def test_token_file_flag_wins(self) -> None:
        token_path = Path(self._tmp.name) / "token"
        token_path.write_text("file-token\n", encoding="utf-8")
        settings = resolve(
            ["--token-file", str(token_path)],
            env={"VAULT_ADDR": "https://env", "VAULT_TOKEN": "env-token"},
        )
        self.assertEqual(settings.token, "file-token")

    def test_unreadable_token_file_exits(self) -> None:
        with self.assertRaises(SystemExit):
            resolve(["--token-file", str(Path(self._tmp.name) / "nope")], env={"VAULT_ADDR": "https://env"})

    def test_home_token_file_is_the_last_resort(self) -> None:
        home_token = Path(self._tmp.name) / "home-token"
        home_token.write_text("home\n", encoding="utf-8")
        with mock.patch.object(cli, "TOKEN_FILE", home_token):
            self.assertEqual(cli.read_token(None, {}), "home")
        self.assertIsNone(cli.read_token(None, {}))

    def test_resumes_last_path_below_root(self) -> None:
        saved = {"last_paths": {"https://env": "secret/app/db"}}
        settings = resolve([], env={"VAULT_ADDR": "https://env"}, saved=saved)
        self.assertEqual(settings.start, SecretPath.parse("app/db"))

    def test_last_path_outside_root_or_explicit_path_starts_at_root(self) -> None:
        saved = {"last_paths": {"https://env": "other/app"}}
        self.assertEqual(resolve([], env={"VAULT_ADDR": "https://env"}, saved=saved).start, ROOT)

        saved = {"last_paths": {"https://env": "secret/app"}}
        self.assertEqual(resolve(["secret/"], env={"VAULT_ADDR": "https://env"}, saved=saved).start, ROOT)

    def test_demo_needs_no_address_or_token(self) -> None:
        settings = resolve(["--demo", "--no-color", "--theme", "ocean"])
        self.assertTrue(settings.demo)
        self.assertEqual(settings.addr, DEMO_ADDR)
        self.assertIsNone(settings.token)
        self.assertTrue(settings.no_color)
        self.assertEqual(settings.theme, "ocean")

    def test_timeout_must_be_positive(self) -> None:
        with mock.patch("sys.stderr", new_callable=io.StringIO), self.assertRaises(SystemExit):
            cli.build_parser().parse_args(["--timeout", "0"])


class RenderListingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MemoryStore.demo()

    def test_folder_listing_prints_labels(self) -> None:
        settings = resolve(["--demo", "secret/app"])
        self.assertEqual(cli.render_listing(self.store, settings), "db\napi\nfeature-flags\n")

    def test_secret_prints_json(self) -> None:
        settings = resolve(["--demo", "--no-color", "secret/app/api"])
        self.assertEqual(cli.render_listing(self.store, settings), '{\n  "token": "tok_3f9a1c"\n}\n')


class MainTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.log_file = Path(self._tmp.name) / "logs" / "vaultwalker.log"
        load = mock.patch("vaultwalker.cli.config.load_config", return_value={})
        load.start()
        self.addCleanup(load.stop)
        self.addCleanup(self._reset_logger)

    @staticmethod
    def _reset_logger() -> None:
        package_logger = logging.getLogger("vaultwalker")
        for handler in package_logger.handlers:
            handler.close()
        package_logger.handlers = []
        package_logger.propagate = True
        package_logger.setLevel(logging.NOTSET)

    def test_print_mode_writes_listing_and_skips_terminal(self) -> None:
        out = io.StringIO()
        with mock.patch("sys.stdout", out), mock.patch.object(cli, "run_app") as run_mock:
            cli.main(["--demo", "--print", "--log-file", str(self.log_file), "secret/infra"])

        self.assertEqual(out.getvalue(), "ci/\nregistry\n")
        run_mock.assert_not_called()
        self.assertTrue(self.log_file.exists())

    def test_print_mode_turns_store_errors_into_exit(self) -> None:
        with self.assertRaises(SystemExit) as caught:
            cli.main(["--demo", "--print", "--log-file", str(self.log_file), "secret/nope"])
        self.assertEqual(caught.exception.code, "not found: secret/nope")

    def test_interactive_mode_runs_app(self) -> None:
        with mock.patch.object(cli, "run_app") as run_mock:
            cli.main(["--demo", "--debug", "--log-file", str(self.log_file)])

        settings = run_mock.call_args.args[0]
        self.assertTrue(settings.demo)
        self.assertEqual(logging.getLogger("vaultwalker").level, logging.DEBUG)

    def test_configure_logging_defaults_to_warning(self) -> None:
        path = cli.configure_logging(self.log_file)
        package_logger = logging.getLogger("vaultwalker")
        self.assertEqual(path, self.log_file)
        self.assertEqual(package_logger.level, logging.WARNING)
        self.assertFalse(package_logger.propagate)
        self.assertEqual(len(package_logger.handlers), 1)


if __name__ == "__main__":
    unittest.main()
