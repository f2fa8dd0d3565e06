"""Remote secret store protocol consumed by the tree model."""

from __future__ import annotations

from typing import Protocol


class RemoteStore(Protocol):
    """Protocol every secret backend must satisfy.

    Paths are full store paths such as ``secret/app/db``. Folder listings
    return child names in store order, folders suffixed with ``/``. Failures
    raise ``vaultwalker.errors.RemoteError`` subclasses.
    """

    def list(self, path: str) -> list[str]: ...

    def read(self, path: str) -> dict[str, str]: ...

    def write(self, path: str, mapping: dict[str, str]) -> None:
        """Replace the whole mapping stored at ``path``."""
        ...

    def delete(self, path: str) -> None: ...
