"""OS clipboard sink backed by the platform's clipboard command."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
from typing import Protocol

from .errors import ClipboardError

logger = logging.getLogger(__name__)


class ClipboardSink(Protocol):
    def copy(self, text: str) -> None: ...


def clipboard_commands() -> list[list[str]]:
    """Candidate clipboard commands for the current platform, in preference order."""
    if sys.platform == "darwin":
        return [["pbcopy"]]
    if os.name == "nt":
        return [["clip"]]
    return [
        ["wl-copy"],
        ["xclip", "-selection", "clipboard"],
        ["xsel", "--clipboard", "--input"],
    ]


class SystemClipboard:
    """Copy text by piping it to the first clipboard tool that succeeds."""

    def __init__(self, commands: list[list[str]] | None = None) -> None:
        self._commands = commands if commands is not None else clipboard_commands()

    def copy(self, text: str) -> None:
        if not text:
            raise ClipboardError("nothing to copy")
        for command in self._commands:
            if shutil.which(command[0]) is None:
                continue
            try:
                proc = subprocess.run(
                    command,
                    input=text,
                    text=True,
                    check=False,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
            except OSError:
                logger.debug("clipboard command %s failed to start", command[0], exc_info=True)
                continue
            if proc.returncode == 0:
                return
        raise ClipboardError("no working clipboard command (tried pbcopy/clip/wl-copy/xclip/xsel)")
