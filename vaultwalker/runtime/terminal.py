"""Terminal control for the TUI session: raw mode and the alternate screen."""

from __future__ import annotations

import contextlib
import os
import termios
import tty


class TerminalController:
    """Enter and leave the full-screen TUI mode, restoring the saved tty state."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self._saved_tty_state = termios.tcgetattr(stdin_fd)

    def enable_tui_mode(self) -> None:
        tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        # Alternate screen, hidden cursor.
        os.write(self.stdout_fd, b"\x1b[?1049h\x1b[?25l")

    def disable_tui_mode(self) -> None:
        os.write(self.stdout_fd, b"\x1b[?25h\x1b[?1049l")
        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)

    @contextlib.contextmanager
    def raw_mode(self):
        """Bracket the session with TUI enter/exit, also on errors."""
        try:
            self.enable_tui_mode()
            yield
        finally:
            self.disable_tui_mode()
