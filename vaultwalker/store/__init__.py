"""Remote secret store backends: the Vault HTTP client and an in-memory store."""

from __future__ import annotations

from .base import RemoteStore
from .memory import MemoryStore
from .vault import DEFAULT_TIMEOUT, VaultClient

__all__ = [
    "DEFAULT_TIMEOUT",
    "MemoryStore",
    "RemoteStore",
    "VaultClient",
]
