"""Frame composition tests for the two-pane browser."""

from __future__ import annotations

import re
import unittest
from dataclasses import replace
from unittest import mock

from vaultwalker.ansi import display_width, strip_ansi
from vaultwalker.render import RenderOptions, build_frame, left_pane_width, list_window_start, render_screen
from vaultwalker.runtime.machine import Mode, ViewEntry, ViewSnapshot
from vaultwalker.tree_model import NodeKind
from vaultwalker.ui_theme import DEFAULT_THEME, PLAIN_THEME

PLAIN = RenderOptions(theme=PLAIN_THEME, no_color=True)


def make_snapshot(**overrides) -> ViewSnapshot:
    base = ViewSnapshot(
        mode=Mode.BROWSING,
        path="secret/app/",
        kind=NodeKind.FOLDER,
        entries=(ViewEntry("db"), ViewEntry("api"), ViewEntry("nested", is_folder=True)),
        cursor=0,
        loading=False,
        failed=False,
        status="",
        status_is_error=False,
        prompt="",
        buffer="",
        search_query="",
        preview_title="secret/app/db",
        preview={"user": "app"},
        preview_loading=False,
        preview_error="",
        mutation_in_flight=False,
    )
    return replace(base, **overrides)


class LayoutHelperTests(unittest.TestCase):
    def test_left_pane_width(self) -> None:
        self.assertEqual(left_pane_width(100), 40)
        self.assertEqual(left_pane_width(30), 20)
        self.assertEqual(left_pane_width(10), 10)

    def test_list_window_keeps_cursor_visible(self) -> None:
        self.assertEqual(list_window_start(0, 50, 10), 0)
        self.assertEqual(list_window_start(9, 50, 10), 0)
        self.assertEqual(list_window_start(15, 50, 10), 6)
        self.assertEqual(list_window_start(49, 50, 10), 40)
        self.assertEqual(list_window_start(None, 50, 10), 0)
        self.assertEqual(list_window_start(3, 5, 10), 0)


class BuildFrameTests(unittest.TestCase):
    def test_frame_shows_header_entries_preview_and_hint(self) -> None:
        text = strip_ansi(build_frame(make_snapshot(), 80, 12, PLAIN))

        self.assertIn("vaultwalker  secret/app/", text)
        self.assertIn("› db", text)
        self.assertIn("  api", text)
        self.assertIn("nested/", text)
        self.assertIn('"user": "app"', text)
        self.assertIn("? help", text)

    def test_cursor_row_is_reverse_video(self) -> None:
        frame = build_frame(make_snapshot(cursor=1), 80, 12, RenderOptions(theme=DEFAULT_THEME))
        self.assertIn(f"{DEFAULT_THEME.reverse}{DEFAULT_THEME.secret}› api", frame)

    def test_header_flags(self) -> None:
        text = strip_ansi(build_frame(make_snapshot(loading=True, mutation_in_flight=True), 80, 12, PLAIN))
        self.assertIn("[loading…, saving…]", text)

    def test_placeholders_for_empty_lists(self) -> None:
        loading = strip_ansi(build_frame(make_snapshot(entries=(), cursor=None, loading=True), 80, 12, PLAIN))
        self.assertIn("  loading…", loading)

        failed = strip_ansi(build_frame(make_snapshot(entries=(), cursor=None, failed=True), 80, 12, PLAIN))
        self.assertIn("(could not load)", failed)

        no_match = make_snapshot(entries=(), cursor=None, mode=Mode.SEARCHING, search_query="zz")
        self.assertIn("(no matches)", strip_ansi(build_frame(no_match, 80, 12, PLAIN)))

    def test_prompt_replaces_status_row(self) -> None:
        snapshot = make_snapshot(
            mode=Mode.CONFIRMING_DELETE,
            prompt="delete secret/app/db? type 'yes' to confirm: ",
            buffer="ye",
            status="ignored while prompting",
        )
        text = strip_ansi(build_frame(snapshot, 120, 12, PLAIN))
        self.assertIn("delete secret/app/db? type 'yes' to confirm: ye", text)
        self.assertNotIn("ignored while prompting", text)

    def test_search_row_shows_query(self) -> None:
        snapshot = make_snapshot(mode=Mode.SEARCHING, search_query="pi", entries=(ViewEntry("api"),))
        text = strip_ansi(build_frame(snapshot, 80, 12, PLAIN))
        self.assertIn("/pi", text)

    def test_error_status_uses_error_color(self) -> None:
        snapshot = make_snapshot(status="permission denied: secret/app/db", status_is_error=True)
        frame = build_frame(snapshot, 80, 12, RenderOptions(theme=DEFAULT_THEME))
        self.assertIn(f"{DEFAULT_THEME.status_error}permission denied: secret/app/db", frame)

    def test_control_bytes_in_values_are_escaped(self) -> None:
        snapshot = make_snapshot(preview={"bell": "a\x07b"}, entries=(ViewEntry("evil\x1b[2J"),))
        frame = build_frame(snapshot, 80, 12, PLAIN)
        self.assertNotIn("\x07", frame)
        self.assertNotIn("\x1b[2J", frame.replace("\033[H\033[J", ""))
        self.assertIn("evil\\x1b[2J", frame)

    def test_rows_never_exceed_terminal_width(self) -> None:
        snapshot = make_snapshot(entries=(ViewEntry("x" * 200),), preview={"k": "v" * 300})
        frame = build_frame(snapshot, 60, 8, PLAIN)
        rows = [strip_ansi(row) for row in re.split(r"\x1b\[\d+;\d+H", frame)]
        self.assertEqual(len(rows), 9)
        for row in rows:
            self.assertLessEqual(display_width(row), 60)

    def test_help_mode_draws_modal(self) -> None:
        text = build_frame(make_snapshot(mode=Mode.SHOWING_HELP), 100, 30, PLAIN)
        self.assertIn("vaultwalker help", text)

    def test_render_screen_writes_one_frame(self) -> None:
        writes: list[bytes] = []

        def capture(_fd: int, data: bytes) -> int:
            writes.append(data)
            return len(data)

        with mock.patch("vaultwalker.render.os.write", side_effect=capture), mock.patch(
            "vaultwalker.render.sys.stdout"
        ) as stdout_mock:
            stdout_mock.fileno.return_value = 1
            render_screen(make_snapshot(), 80, 12, PLAIN)

        self.assertEqual(len(writes), 1)
        self.assertIn("› db", writes[0].decode("utf-8"))


if __name__ == "__main__":
    unittest.main()
