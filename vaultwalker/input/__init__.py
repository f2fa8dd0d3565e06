"""Input-layer public API: raw key decoding and per-mode key dispatch."""

from .key_registry import KeyComboBinding, KeyComboRegistry
from .keys import KeyDispatcher, is_text_key
from .reader import ESC_SEQUENCE_TIMEOUT_MS, UNKNOWN_KEY, _PENDING_BYTES, read_key

__all__ = [
    "read_key",
    "_PENDING_BYTES",
    "ESC_SEQUENCE_TIMEOUT_MS",
    "UNKNOWN_KEY",
    "KeyComboBinding",
    "KeyComboRegistry",
    "KeyDispatcher",
    "is_text_key",
]
