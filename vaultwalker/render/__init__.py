"""Frame composition for the two-pane secret browser.

The left pane lists the displayed folder's children (or a secret's keys),
the right pane previews the secret under the cursor as JSON, and the last
row shows either the active prompt or the status message. Frames are built
as strings from a ``ViewSnapshot`` and written in one ``os.write``.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass

from ..ansi import clip_ansi_line, fit_ansi_line
from ..highlight import DEFAULT_STYLE, colorize_secret, sanitize_terminal_text
from ..runtime.machine import Mode, ViewSnapshot
from ..ui_theme import DEFAULT_THEME, UITheme
from .help import build_help_frame

MIN_LEFT_WIDTH = 20
LEFT_PANE_PERCENT = 40
HINT_TEXT = "? help  a add  e edit  n rename  d delete  y/Y copy  q quit"


@dataclass(frozen=True)
class RenderOptions:
    theme: UITheme = DEFAULT_THEME
    style: str = DEFAULT_STYLE
    no_color: bool = False


def left_pane_width(width: int) -> int:
    """Entry pane width; the preview gets the rest minus the divider."""
    if width <= MIN_LEFT_WIDTH + 2:
        return max(1, width)
    return max(MIN_LEFT_WIDTH, min(width - 2, width * LEFT_PANE_PERCENT // 100))


def list_window_start(cursor: int | None, count: int, rows: int) -> int:
    """First visible entry index so that ``cursor`` stays on screen."""
    if rows <= 0 or cursor is None or count <= rows:
        return 0
    if cursor < rows:
        return 0
    return min(cursor - rows + 1, count - rows)


def _header_line(snapshot: ViewSnapshot, theme: UITheme) -> str:
    flags: list[str] = []
    if snapshot.loading:
        flags.append("loading…")
    if snapshot.failed:
        flags.append("load failed")
    if snapshot.mutation_in_flight:
        flags.append("saving…")
    suffix = f"  {theme.loading}[{', '.join(flags)}]{theme.reset}" if flags else ""
    path = sanitize_terminal_text(snapshot.path)
    return f"{theme.header}vaultwalker{theme.reset}  {path}{suffix}"


def _entry_lines(snapshot: ViewSnapshot, rows: int, width: int, theme: UITheme) -> list[str]:
    entries = snapshot.entries
    if not entries:
        if snapshot.loading:
            placeholder = "loading…"
        elif snapshot.failed:
            placeholder = "(could not load)"
        elif snapshot.mode is Mode.SEARCHING and snapshot.search_query:
            placeholder = "(no matches)"
        else:
            placeholder = "(empty)"
        return [f"{theme.loading}  {placeholder}{theme.reset}"]

    start = list_window_start(snapshot.cursor, len(entries), rows)
    lines: list[str] = []
    for index in range(start, min(len(entries), start + rows)):
        entry = entries[index]
        if entry.is_folder:
            color = theme.folder
        elif entry.is_key:
            color = theme.key
        else:
            color = theme.secret
        label = sanitize_terminal_text(entry.label)
        if index == snapshot.cursor:
            text = fit_ansi_line(f"› {label}", width)
            lines.append(f"{theme.reverse}{color}{text}{theme.reset}")
        else:
            lines.append(f"  {color}{label}{theme.reset}")
    return lines


def _preview_lines(snapshot: ViewSnapshot, options: RenderOptions) -> list[str]:
    theme = options.theme
    lines: list[str] = []
    if snapshot.preview_title:
        lines.append(f"{theme.header}{sanitize_terminal_text(snapshot.preview_title)}{theme.reset}")
    if snapshot.preview_error:
        lines.append(f"{theme.status_error}{sanitize_terminal_text(snapshot.preview_error)}{theme.reset}")
    if snapshot.preview is not None:
        lines.extend(colorize_secret(snapshot.preview, options.style, no_color=options.no_color))
    elif snapshot.preview_loading:
        lines.append(f"{theme.loading}loading…{theme.reset}")
    return lines


def _bottom_line(snapshot: ViewSnapshot, theme: UITheme) -> str:
    if snapshot.mode is Mode.SEARCHING:
        return f"{theme.prompt}/{theme.reset}{theme.search_query}{sanitize_terminal_text(snapshot.search_query)}{theme.reset}"
    if snapshot.prompt:
        return f"{theme.prompt}{snapshot.prompt}{theme.reset}{sanitize_terminal_text(snapshot.buffer)}"
    if snapshot.status:
        color = theme.status_error if snapshot.status_is_error else theme.status
        return f"{color}{sanitize_terminal_text(snapshot.status)}{theme.reset}"
    return f"{theme.help_dim}{HINT_TEXT}{theme.reset}"


def build_frame(snapshot: ViewSnapshot, width: int, height: int, options: RenderOptions | None = None) -> str:
    """Compose one full ANSI frame for ``snapshot``."""
    options = options or RenderOptions()
    theme = options.theme
    if snapshot.mode is Mode.SHOWING_HELP:
        return build_help_frame(width, height, theme)

    width = max(1, width)
    height = max(3, height)
    body_rows = height - 2
    left_w = left_pane_width(width)
    right_w = max(0, width - left_w - 1)

    left = _entry_lines(snapshot, body_rows, left_w, theme)
    right = _preview_lines(snapshot, options) if right_w > 0 else []

    out: list[str] = ["\033[H\033[J"]
    out.append(f"\033[1;1H{clip_ansi_line(_header_line(snapshot, theme), width)}{theme.reset}")
    for row in range(body_rows):
        left_text = fit_ansi_line(left[row], left_w) if row < len(left) else " " * left_w
        out.append(f"\033[{row + 2};1H{left_text}{theme.reset}")
        if right_w > 0:
            right_text = clip_ansi_line(right[row], right_w) if row < len(right) else ""
            out.append(f"{theme.divider}│{theme.reset}{right_text}{theme.reset}")
    bottom = clip_ansi_line(_bottom_line(snapshot, theme), width)
    out.append(f"\033[{height};1H{bottom}{theme.reset}")
    return "".join(out)


def write_frame(frame: str) -> None:
    os.write(sys.stdout.fileno(), frame.encode("utf-8", errors="replace"))


def render_screen(snapshot: ViewSnapshot, width: int, height: int, options: RenderOptions | None = None) -> None:
    """Draw ``snapshot`` to stdout."""
    write_frame(build_frame(snapshot, width, height, options))


__all__ = [
    "RenderOptions",
    "build_frame",
    "build_help_frame",
    "left_pane_width",
    "list_window_start",
    "render_screen",
    "write_frame",
]
