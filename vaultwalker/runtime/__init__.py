"""Public runtime orchestration entry points.

This package groups the interactive session bootstrap (`run_app`), the
state machine, and the event loop used by tests and composition code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .app import StartupConfig, VaultwalkerApp
    from .machine import InteractionStateMachine, Mode, ViewSnapshot


def run_app(*args, **kwargs):
    """Lazily import the session entrypoint to avoid package-import cycles."""
    from .app import run_app as _run_app

    return _run_app(*args, **kwargs)


def run_main_loop(*args, **kwargs):
    from .loop import run_main_loop as _run_main_loop

    return _run_main_loop(*args, **kwargs)


def __getattr__(name: str):
    if name in {"StartupConfig", "VaultwalkerApp"}:
        from . import app as _app

        return getattr(_app, name)
    if name in {"InteractionStateMachine", "Mode", "ViewSnapshot"}:
        from . import machine as _machine

        return getattr(_machine, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "InteractionStateMachine",
    "Mode",
    "StartupConfig",
    "VaultwalkerApp",
    "ViewSnapshot",
    "run_app",
    "run_main_loop",
]
