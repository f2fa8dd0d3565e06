"""Keyboard dispatch from key tokens to state-machine actions."""

from __future__ import annotations

from ..runtime.machine import InteractionStateMachine, Mode
from .key_registry import KeyComboBinding, KeyComboRegistry

PAGE_STEP = 10
ENTER_KEYS = ("ENTER_CR", "ENTER_LF")


def is_text_key(key: str) -> bool:
    """True for tokens that insert text (printable characters, not named keys)."""
    return len(key) == 1 and key.isprintable()


class KeyDispatcher:
    """Per-mode key tables for one ``InteractionStateMachine``."""

    def __init__(self, machine: InteractionStateMachine) -> None:
        self.machine = machine
        self._browsing = self._browsing_registry()
        self._text_entry = self._text_entry_registry(searching=False)
        self._searching = self._text_entry_registry(searching=True)
        self._help = KeyComboRegistry(fallback=self._dismiss_help)

    def _browsing_registry(self) -> KeyComboRegistry:
        m = self.machine

        def quit_app() -> bool:
            return True

        return KeyComboRegistry().register_bindings(
            KeyComboBinding(("j", "DOWN"), lambda: m.move_cursor(1)),
            KeyComboBinding(("k", "UP"), lambda: m.move_cursor(-1)),
            KeyComboBinding(("PAGE_DOWN",), lambda: m.move_cursor(PAGE_STEP)),
            KeyComboBinding(("PAGE_UP",), lambda: m.move_cursor(-PAGE_STEP)),
            KeyComboBinding(("g", "HOME"), lambda: m.move_to_edge(last=False)),
            KeyComboBinding(("G", "END"), lambda: m.move_to_edge(last=True)),
            KeyComboBinding(("l", "RIGHT", *ENTER_KEYS), m.descend),
            KeyComboBinding(("h", "LEFT", "BACKSPACE"), m.ascend),
            KeyComboBinding(("a",), m.begin_add),
            KeyComboBinding(("e",), m.begin_edit),
            KeyComboBinding(("n",), m.begin_rename),
            KeyComboBinding(("d", "DELETE"), m.begin_delete),
            KeyComboBinding(("y",), m.copy_path),
            KeyComboBinding(("Y",), m.copy_secret),
            KeyComboBinding(("r",), m.refresh),
            KeyComboBinding(("R",), m.clear_cache),
            KeyComboBinding(("/",), m.begin_search),
            KeyComboBinding(("?",), m.show_help),
            KeyComboBinding(("ESC",), m.cancel),
            KeyComboBinding(("q", "CTRL_C"), quit_app),
        )

    def _text_entry_registry(self, *, searching: bool) -> KeyComboRegistry:
        m = self.machine

        def insert(key: str) -> None:
            if is_text_key(key):
                m.type_text(key)

        registry = KeyComboRegistry(fallback=insert).register_bindings(
            KeyComboBinding(ENTER_KEYS, m.confirm),
            KeyComboBinding(("ESC", "CTRL_C"), m.cancel),
            KeyComboBinding(("BACKSPACE",), m.backspace),
            KeyComboBinding(("CTRL_U",), m.clear_buffer),
        )
        if searching:
            registry.register_bindings(
                KeyComboBinding(("DOWN",), lambda: m.move_cursor(1)),
                KeyComboBinding(("UP",), lambda: m.move_cursor(-1)),
            )
        return registry

    def _dismiss_help(self, _key: str) -> None:
        self.machine.dismiss_help()

    def registry_for(self, mode: Mode) -> KeyComboRegistry:
        if mode is Mode.BROWSING:
            return self._browsing
        if mode is Mode.SEARCHING:
            return self._searching
        if mode is Mode.SHOWING_HELP:
            return self._help
        return self._text_entry

    def handle_key(self, key: str) -> bool:
        """Apply one key token; return True when the session should end."""
        if not key:
            return False
        result = self.registry_for(self.machine.mode).dispatch(key)
        self.machine.dirty = True
        return result is True


__all__ = ["ENTER_KEYS", "KeyDispatcher", "is_text_key"]
