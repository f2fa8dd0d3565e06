"""Runtime composition layer for vaultwalker.

Builds the store client, tree model and state machine from the resolved
startup settings, then runs the terminal loop. This is the one place where
networking, terminal I/O and persisted config meet.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

from ..clipboard import ClipboardSink, SystemClipboard
from ..highlight import DEFAULT_STYLE
from ..render import RenderOptions
from ..store import DEFAULT_TIMEOUT, MemoryStore, RemoteStore, VaultClient
from ..tree_model import ROOT, SecretPath, TreeModel
from ..ui_theme import resolve_theme
from . import config
from .machine import InteractionStateMachine
from .remote_calls import RemoteCallQueue

logger = logging.getLogger(__name__)

DEMO_ADDR = "demo"


@dataclass(frozen=True)
class StartupConfig:
    """Fully resolved settings for one session."""

    addr: str
    token: str | None = None
    namespace: str | None = None
    root: SecretPath = SecretPath(("secret",))
    start: SecretPath = ROOT
    timeout: float = DEFAULT_TIMEOUT
    style: str = DEFAULT_STYLE
    theme: str | None = None
    no_color: bool = False
    demo: bool = False


def build_store(settings: StartupConfig) -> RemoteStore:
    if settings.demo:
        return MemoryStore.demo()
    if not settings.token:
        raise SystemExit("No Vault token: set VAULT_TOKEN, pass --token-file, or run `vault login`.")
    return VaultClient(
        settings.addr,
        settings.token,
        namespace=settings.namespace,
        timeout=settings.timeout,
    )


class VaultwalkerApp:
    """One interactive session: model, state machine and terminal."""

    def __init__(
        self,
        settings: StartupConfig,
        *,
        store: RemoteStore | None = None,
        clipboard: ClipboardSink | None = None,
        calls: RemoteCallQueue | None = None,
    ) -> None:
        self.settings = settings
        self.store = store if store is not None else build_store(settings)
        self.model = TreeModel(self.store, settings.root, calls=calls)
        self.machine = InteractionStateMachine(
            self.model,
            clipboard if clipboard is not None else SystemClipboard(),
            start_path=settings.start,
        )
        self.render_options = RenderOptions(
            theme=resolve_theme(settings.theme, no_color=settings.no_color),
            style=settings.style,
            no_color=settings.no_color,
        )

    def remember_position(self) -> None:
        """Persist the displayed path so the next session can resume there."""
        if self.settings.demo:
            return
        config.save_last_path(self.settings.addr, self.machine.display_path())

    def close(self) -> None:
        close = getattr(self.store, "close", None)
        if callable(close):
            close()

    def run(self) -> None:
        from .loop import run_main_loop
        from .terminal import TerminalController

        stdin_fd = sys.stdin.fileno()
        terminal = TerminalController(stdin_fd, sys.stdout.fileno())
        logger.info("session start at %r", self.model.store_path(self.settings.start))
        self.machine.start()
        try:
            run_main_loop(self.machine, terminal, stdin_fd, options=self.render_options)
        finally:
            self.remember_position()
            self.close()
            logger.info("session end")


def run_app(settings: StartupConfig) -> None:
    """Start the interactive browser; requires a terminal on stdin and stdout."""
    if not sys.stdin.isatty() or not sys.stdout.isatty():
        raise SystemExit("vaultwalker needs an interactive terminal (use --print for plain output).")
    VaultwalkerApp(settings).run()


__all__ = ["DEMO_ADDR", "StartupConfig", "VaultwalkerApp", "build_store", "run_app"]
