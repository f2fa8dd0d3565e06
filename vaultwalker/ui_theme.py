"""UI color palettes.

Themes color the entry list, status row and help modal. The JSON preview
uses a separate Pygments style.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UITheme:
    """Semantic ANSI palette used by renderers."""

    name: str
    divider: str
    reverse: str
    reset: str
    header: str
    folder: str
    secret: str
    key: str
    loading: str
    search_query: str
    prompt: str
    status: str
    status_error: str
    help_heading: str
    help_key: str
    help_dim: str
    help_modal_border: str


DEFAULT_THEME = UITheme(
    name="default",
    divider="\033[2m",
    reverse="\033[7m",
    reset="\033[0m",
    header="\033[1;38;5;81m",
    folder="\033[1;34m",
    secret="\033[38;5;252m",
    key="\033[38;5;229m",
    loading="\033[2;38;5;250m",
    search_query="\033[1;38;5;81m",
    prompt="\033[1;38;5;214m",
    status="\033[38;5;109m",
    status_error="\033[1;38;5;203m",
    help_heading="\033[1;38;5;81m",
    help_key="\033[38;5;229m",
    help_dim="\033[2;38;5;250m",
    help_modal_border="\033[38;5;45m",
)

OCEAN_THEME = UITheme(
    name="ocean",
    divider="\033[2;38;5;31m",
    reverse="\033[7m",
    reset="\033[0m",
    header="\033[1;38;5;45m",
    folder="\033[1;38;5;45m",
    secret="\033[38;5;252m",
    key="\033[38;5;153m",
    loading="\033[2;38;5;110m",
    search_query="\033[1;38;5;45m",
    prompt="\033[1;38;5;117m",
    status="\033[38;5;73m",
    status_error="\033[1;38;5;210m",
    help_heading="\033[1;38;5;45m",
    help_key="\033[38;5;153m",
    help_dim="\033[2;38;5;110m",
    help_modal_border="\033[38;5;39m",
)

PLAIN_THEME = UITheme(
    name="plain",
    divider="",
    reverse="\033[7m",
    reset="\033[0m",
    header="",
    folder="",
    secret="",
    key="",
    loading="",
    search_query="",
    prompt="",
    status="",
    status_error="",
    help_heading="",
    help_key="",
    help_dim="",
    help_modal_border="",
)

_THEMES: dict[str, UITheme] = {
    DEFAULT_THEME.name: DEFAULT_THEME,
    OCEAN_THEME.name: OCEAN_THEME,
}


def available_theme_names() -> tuple[str, ...]:
    return tuple(sorted(_THEMES))


def normalize_theme_name(name: str | None) -> str:
    """Return a known theme name, falling back to default."""
    candidate = str(name or "").strip().lower()
    return candidate if candidate in _THEMES else DEFAULT_THEME.name


def resolve_theme(name: str | None, *, no_color: bool = False) -> UITheme:
    if no_color:
        return PLAIN_THEME
    return _THEMES[normalize_theme_name(name)]


__all__ = [
    "DEFAULT_THEME",
    "OCEAN_THEME",
    "PLAIN_THEME",
    "UITheme",
    "available_theme_names",
    "normalize_theme_name",
    "resolve_theme",
]
