"""ANSI-aware width measurement and clipping for styled terminal rows."""

from __future__ import annotations

import re
import unicodedata

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
TAB_STOP = 8


def char_display_width(ch: str, col: int) -> int:
    """Terminal columns used by ``ch`` when drawn at visual column ``col``."""
    if ch == "\t":
        return TAB_STOP - (col % TAB_STOP)
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in {"W", "F"}:
        return 2
    return 1


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


def display_width(text: str) -> int:
    col = 0
    for ch in strip_ansi(text):
        col += char_display_width(ch, col)
    return col


def clip_ansi_line(text: str, max_cols: int) -> str:
    """Trim a styled line to at most ``max_cols`` display columns.

    Escape sequences are kept and take no width; tabs become spaces.
    """
    if max_cols <= 0 or not text:
        return ""

    out: list[str] = []
    col = 0
    pos = 0
    while pos < len(text) and col < max_cols:
        match = ANSI_ESCAPE_RE.match(text, pos) if text[pos] == "\x1b" else None
        if match:
            out.append(match.group(0))
            pos = match.end()
            continue
        ch = text[pos]
        width = char_display_width(ch, col)
        if col + width > max_cols:
            break
        out.append(" " * width if ch == "\t" else ch)
        col += width
        pos += 1
    return "".join(out)


def fit_ansi_line(text: str, cols: int) -> str:
    """Clip or right-pad ``text`` to exactly ``cols`` display columns."""
    clipped = clip_ansi_line(text, cols)
    return clipped + " " * max(0, cols - display_width(clipped))
