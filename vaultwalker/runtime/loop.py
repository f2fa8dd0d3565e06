"""Main interactive event loop for the terminal UI.

Each iteration drains finished remote calls into the state machine, expires
status messages, redraws when something changed and waits briefly for a
key. Feature logic lives in the state machine and key dispatcher.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable

from ..input import KeyDispatcher, read_key
from ..render import RenderOptions, render_screen
from .machine import InteractionStateMachine
from .terminal import TerminalController

logger = logging.getLogger(__name__)

KEY_POLL_MS = 120


def run_main_loop(
    machine: InteractionStateMachine,
    terminal: TerminalController,
    stdin_fd: int,
    *,
    options: RenderOptions | None = None,
    render: Callable[..., None] = render_screen,
    key_reader: Callable[..., str] = read_key,
) -> None:
    """Run the TUI until a quit key is pressed."""
    dispatcher = KeyDispatcher(machine)
    last_size: tuple[int, int] | None = None

    with terminal.raw_mode():
        while True:
            term = shutil.get_terminal_size((80, 24))
            if (term.columns, term.lines) != last_size:
                last_size = (term.columns, term.lines)
                machine.dirty = True

            machine.process_events()
            machine.tick()

            if machine.dirty:
                render(machine.snapshot(), term.columns, term.lines, options)
                machine.dirty = False

            try:
                key = key_reader(stdin_fd, timeout_ms=KEY_POLL_MS)
            except KeyboardInterrupt:
                key = "CTRL_C"
            if not key:
                continue
            if dispatcher.handle_key(key):
                logger.debug("quit requested")
                return
