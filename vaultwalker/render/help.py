"""Key-binding help modal."""

from __future__ import annotations

from ..ansi import clip_ansi_line
from ..ui_theme import UITheme

HELP_TITLE = "vaultwalker help"

HELP_SECTIONS: tuple[tuple[str, tuple[tuple[str, str], ...]], ...] = (
    (
        "Browsing",
        (
            ("j/k Up/Down", "move cursor"),
            ("g/G Home/End", "first / last entry"),
            ("l Right Enter", "open folder or secret"),
            ("h Left", "back to parent folder"),
            ("/", "search entries (Enter keeps match, Esc restores)"),
            ("r", "refresh this folder"),
            ("R", "clear the whole cache"),
        ),
    ),
    (
        "Changes",
        (
            ("a", "add a key (new secret in a folder)"),
            ("e", "edit the selected value"),
            ("n", "rename the selected key"),
            ("d", "delete entry or key (type 'yes' to confirm)"),
        ),
    ),
    (
        "Clipboard",
        (
            ("y", "copy full path"),
            ("Y", "copy secret value (loads it first)"),
        ),
    ),
    (
        "Prompts",
        (
            ("Enter", "confirm"),
            ("Esc", "cancel"),
            ("Backspace / Ctrl+U", "delete char / clear line"),
        ),
    ),
)


def help_lines(theme: UITheme) -> list[str]:
    """Styled body lines of the help modal."""
    key_width = max(len(keys) for _, rows in HELP_SECTIONS for keys, _ in rows)
    lines: list[str] = []
    for heading, rows in HELP_SECTIONS:
        lines.append("")
        lines.append(f"{theme.help_heading}{heading}{theme.reset}")
        for keys, description in rows:
            lines.append(f"  {theme.help_key}{keys.ljust(key_width)}{theme.reset}  {description}")
    lines.append("")
    lines.append(f"{theme.help_dim}Press any key to close; q quits from the browser{theme.reset}")
    return lines


def build_help_frame(width: int, height: int, theme: UITheme) -> str:
    """Full-screen help modal as one ANSI frame."""
    out: list[str] = ["\033[H\033[J"]

    modal_w = min(72, max(40, width - 6))
    modal_h = min(30, max(10, height - 2))
    x = max(0, (width - modal_w) // 2)
    y = max(0, (height - modal_h) // 2)
    inner_w = max(1, modal_w - 2)
    inner_h = max(1, modal_h - 2)
    border = theme.help_modal_border

    out.append(f"\033[{y + 1};{x + 1}H{border}╭{'─' * inner_w}╮{theme.reset}")
    for i in range(inner_h):
        out.append(f"\033[{y + 2 + i};{x + 1}H{border}│{theme.reset}{' ' * inner_w}{border}│{theme.reset}")
    out.append(f"\033[{y + modal_h};{x + 1}H{border}╰{'─' * inner_w}╯{theme.reset}")

    title_x = x + max(2, (modal_w - len(HELP_TITLE)) // 2)
    out.append(f"\033[{y + 1};{title_x + 1}H{theme.help_heading}{HELP_TITLE}{theme.reset}")

    lines = help_lines(theme)
    for i, line in enumerate(lines[: max(0, inner_h - 1)]):
        out.append(f"\033[{y + 2 + i};{x + 3}H{clip_ansi_line(line, inner_w - 2)}{theme.reset}")
    return "".join(out)
