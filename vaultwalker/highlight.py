"""JSON rendering of secret mappings for the preview pane.

Values are rendered through Pygments; terminal control bytes inside secret
values are escaped first so a stored value cannot drive the terminal.
"""

from __future__ import annotations

import json
import re

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexers import JsonLexer
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

DEFAULT_STYLE = "monokai"

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_LEXER = JsonLexer()
_FORMATTERS: dict[str, TerminalFormatter] = {}
_VALID_STYLES: set[str] = set()
_INVALID_STYLES: set[str] = set()


def sanitize_terminal_text(source: str) -> str:
    """Escape C0/C1 control bytes so previews cannot move the cursor or ring the bell."""
    if _CONTROL_RE.search(source) is None:
        return source
    return _CONTROL_RE.sub(lambda match: f"\\x{ord(match.group(0)):02x}", source)


def normalize_style(style: str | None) -> str:
    """Return ``style`` when Pygments knows it, else the default style."""
    if not style:
        return DEFAULT_STYLE
    if style in _VALID_STYLES:
        return style
    if style in _INVALID_STYLES:
        return DEFAULT_STYLE
    try:
        get_style_by_name(style)
    except ClassNotFound:
        _INVALID_STYLES.add(style)
        return DEFAULT_STYLE
    _VALID_STYLES.add(style)
    return style


def _formatter_for_style(style: str) -> TerminalFormatter:
    formatter = _FORMATTERS.get(style)
    if formatter is None:
        formatter = TerminalFormatter(style=style)
        _FORMATTERS[style] = formatter
    return formatter


def format_secret(secret: dict[str, str]) -> str:
    """Pretty JSON for a secret mapping, keys in stored order."""
    return sanitize_terminal_text(json.dumps(secret, indent=2, ensure_ascii=False))


def colorize_secret(secret: dict[str, str], style: str | None = DEFAULT_STYLE, *, no_color: bool = False) -> list[str]:
    """Preview lines for ``secret``, highlighted unless ``no_color``."""
    source = format_secret(secret)
    if no_color:
        return source.splitlines()
    style = normalize_style(style)
    rendered = highlight(source, _LEXER, _formatter_for_style(style))
    return rendered.rstrip("\n").splitlines()


__all__ = [
    "DEFAULT_STYLE",
    "colorize_secret",
    "format_secret",
    "normalize_style",
    "sanitize_terminal_text",
]
