"""Reusable key-combo registry primitives."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class KeyComboBinding:
    """One or more key tokens bound to a single action callback."""

    combos: tuple[str, ...]
    handler: Callable[[], bool | None]


class KeyComboRegistry:
    """Key-dispatch table for one UI mode."""

    def __init__(self, fallback: Callable[[str], bool | None] | None = None) -> None:
        self._fallback = fallback
        self._handlers: dict[str, Callable[[], bool | None]] = {}

    def register_binding(self, binding: KeyComboBinding) -> KeyComboRegistry:
        """Register one binding, overwriting existing handlers for the same combos."""
        for combo in binding.combos:
            self._handlers[combo] = binding.handler
        return self

    def register_bindings(self, *bindings: KeyComboBinding) -> KeyComboRegistry:
        for binding in bindings:
            self.register_binding(binding)
        return self

    def handles(self, key: str) -> bool:
        return key in self._handlers

    def dispatch(self, key: str) -> bool | None:
        """Invoke the handler bound to ``key``; unbound keys go to the fallback."""
        handler = self._handlers.get(key)
        if handler is not None:
            return handler()
        if self._fallback is not None:
            return self._fallback(key)
        return None
