"""In-memory secret store used by ``--demo`` and the test-suite."""

from __future__ import annotations

import threading

from ..errors import NotFound

DEMO_SECRETS: dict[str, dict[str, str]] = {
    "secret/app/db": {"username": "app", "password": "hunter2", "host": "db.internal:5432"},
    "secret/app/api": {"token": "tok_3f9a1c"},
    "secret/app/feature-flags": {"beta": "true"},
    "secret/infra/ci/deploy-key": {"value": "ssh-ed25519 AAAAC3Nz demo@ci"},
    "secret/infra/registry": {"user": "robot", "password": "changeme"},
}


def _clean(path: str) -> str:
    return "/".join(part for part in path.split("/") if part)


class MemoryStore:
    """Flat ``path -> mapping`` dict exposing the ``RemoteStore`` protocol.

    Folders are implicit, as in the Vault KV engine: a folder exists while at
    least one leaf lives below it. Every call is appended to ``calls``.
    """

    def __init__(self, secrets: dict[str, dict[str, str]] | None = None) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, dict[str, str]] = {
            _clean(path): dict(mapping) for path, mapping in (secrets or {}).items()
        }
        self.calls: list[tuple[str, str]] = []

    @classmethod
    def demo(cls) -> MemoryStore:
        return cls(DEMO_SECRETS)

    def calls_for(self, op: str) -> list[str]:
        return [path for call_op, path in self.calls if call_op == op]

    def list(self, path: str) -> list[str]:
        prefix = _clean(path)
        with self._lock:
            self.calls.append(("list", prefix))
            names: list[str] = []
            for stored in self._data:
                if prefix and not stored.startswith(prefix + "/"):
                    continue
                rest = stored[len(prefix) + 1:] if prefix else stored
                head, sep, _tail = rest.partition("/")
                name = head + "/" if sep else head
                if name not in names:
                    names.append(name)
        if not names:
            raise NotFound(path=prefix)
        return names

    def read(self, path: str) -> dict[str, str]:
        key = _clean(path)
        with self._lock:
            self.calls.append(("read", key))
            mapping = self._data.get(key)
            if mapping is None:
                raise NotFound(path=key)
            return dict(mapping)

    def write(self, path: str, mapping: dict[str, str]) -> None:
        key = _clean(path)
        with self._lock:
            self.calls.append(("write", key))
            self._data[key] = dict(mapping)

    def delete(self, path: str) -> None:
        key = _clean(path)
        with self._lock:
            self.calls.append(("delete", key))
            self._data.pop(key, None)

    def snapshot(self) -> dict[str, dict[str, str]]:
        with self._lock:
            return {path: dict(mapping) for path, mapping in self._data.items()}
