"""Command-line front door for vaultwalker.

Parses CLI options, resolves connection settings from flags, environment and
the config file, sets up file logging, and launches the interactive browser
(or prints one listing with ``--print``).
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

from .errors import NotFound, VaultwalkerError
from .highlight import DEFAULT_STYLE, colorize_secret
from .runtime import config
from .runtime.app import DEMO_ADDR, StartupConfig, build_store, run_app
from .store import DEFAULT_TIMEOUT, RemoteStore
from .tree_model import ROOT, SecretPath, decode_listing
from .ui_theme import available_theme_names

logger = logging.getLogger(__name__)

DEFAULT_ROOT = "secret/"
TOKEN_FILE = Path.home() / ".vault-token"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _positive_float(value: str) -> float:
    """argparse type for positive numbers of seconds."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vaultwalker",
        description="Browse and edit secrets in a Vault KV engine from the terminal.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help=f"Store path to browse; navigation stays below it. Defaults to the config 'path' or {DEFAULT_ROOT}.",
    )
    parser.add_argument("--addr", default=None, help="Vault address (default: $VAULT_ADDR or config 'addr').")
    parser.add_argument("--token-file", type=Path, default=None, help=f"Read the token from this file (default: $VAULT_TOKEN or {TOKEN_FILE}).")
    parser.add_argument("--namespace", default=None, help="Vault Enterprise namespace (default: $VAULT_NAMESPACE).")
    parser.add_argument("--timeout", type=_positive_float, default=None, help=f"HTTP timeout in seconds (default: {DEFAULT_TIMEOUT:g}).")
    parser.add_argument("--style", default=None, help=f"Pygments style for the secret preview (default: {DEFAULT_STYLE}).")
    parser.add_argument("--theme", default=None, help=f"UI theme name ({', '.join(available_theme_names())}).")
    parser.add_argument("--no-color", action="store_true", help="Disable colors.")
    parser.add_argument("--print", dest="print_only", action="store_true", help="Print the path's listing or secret and exit.")
    parser.add_argument("--demo", action="store_true", help="Browse built-in sample secrets instead of a server.")
    parser.add_argument("--log-file", type=Path, default=None, help=f"Log file (default: {config.DEFAULT_LOG_PATH}).")
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level.")
    return parser


def configure_logging(log_file: Path | None = None, debug: bool = False) -> Path:
    """Send package logs to a file; the terminal belongs to the UI."""
    path = log_file if log_file is not None else config.DEFAULT_LOG_PATH
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        raise SystemExit(f"Cannot open log file {path}: {exc}") from exc
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger = logging.getLogger("vaultwalker")
    package_logger.handlers = [handler]
    package_logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    package_logger.propagate = False
    return path


def read_token(token_file: Path | None, env: Mapping[str, str]) -> str | None:
    """Token from ``--token-file``, else ``$VAULT_TOKEN``, else ``~/.vault-token``."""
    if token_file is not None:
        try:
            return token_file.read_text(encoding="utf-8").strip() or None
        except OSError as exc:
            raise SystemExit(f"Cannot read token file {token_file}: {exc}") from exc
    token = env.get("VAULT_TOKEN", "").strip()
    if token:
        return token
    try:
        return TOKEN_FILE.read_text(encoding="utf-8").strip() or None
    except OSError:
        return None


def _start_below(root: SecretPath, last: str | None) -> SecretPath:
    """Resume at ``last`` when it lies under ``root``."""
    if not last:
        return ROOT
    previous = SecretPath.parse(last)
    if not previous.is_within(root):
        return ROOT
    return SecretPath(previous.segments[len(root.segments):])


def resolve_startup(
    args: argparse.Namespace,
    env: Mapping[str, str] | None = None,
    saved: dict[str, object] | None = None,
) -> StartupConfig:
    """Merge CLI flags over environment over the config file over defaults."""
    env = os.environ if env is None else env
    saved = config.load_config() if saved is None else saved

    if args.demo:
        addr = DEMO_ADDR
    else:
        addr = args.addr or env.get("VAULT_ADDR", "").strip() or config.load_string("addr", saved)
        if not addr:
            raise SystemExit("No Vault address: set VAULT_ADDR or pass --addr.")

    raw_root = args.path or config.load_string("path", saved) or DEFAULT_ROOT
    root = SecretPath.parse(raw_root)
    if root.is_root:
        raise SystemExit(f"Path must name at least the engine mount, e.g. {DEFAULT_ROOT}")
    start = ROOT if args.path else _start_below(root, config.load_last_path(addr, saved))

    return StartupConfig(
        addr=addr,
        token=None if args.demo else read_token(args.token_file, env),
        namespace=args.namespace or env.get("VAULT_NAMESPACE", "").strip() or config.load_string("namespace", saved),
        root=root,
        start=start,
        timeout=args.timeout or config.load_timeout(saved) or DEFAULT_TIMEOUT,
        style=args.style or config.load_string("style", saved) or DEFAULT_STYLE,
        theme=args.theme or config.load_string("theme", saved),
        no_color=bool(args.no_color),
        demo=bool(args.demo),
    )


def render_listing(store: RemoteStore, settings: StartupConfig) -> str:
    """Plain-text view of the root path: folder entries, or a secret as JSON."""
    target = settings.root.joinpath(settings.start)
    try:
        names = store.list(target.join(trailing_slash=True))
    except NotFound:
        secret = store.read(target.join())
        return "\n".join(colorize_secret(secret, settings.style, no_color=settings.no_color)) + "\n"
    return "".join(entry.label + "\n" for entry in decode_listing(names))


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and launch the browser."""
    parser = build_parser()
    args = parser.parse_args(argv)
    log_path = configure_logging(args.log_file, args.debug)
    settings = resolve_startup(args)
    logger.debug("starting with root %r at %s (log %s)", settings.root.join(), settings.addr, log_path)

    if args.print_only:
        store = build_store(settings)
        try:
            sys.stdout.write(render_listing(store, settings))
        except VaultwalkerError as exc:
            raise SystemExit(exc.status_text()) from exc
        finally:
            close = getattr(store, "close", None)
            if callable(close):
                close()
        return

    run_app(settings)


if __name__ == "__main__":
    main()
