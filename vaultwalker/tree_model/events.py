"""Pending-mutation record and the events ``TreeModel`` reports back to the UI."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from ..errors import VaultwalkerError
from .path import SecretPath
from .types import NodeKind


class MutationKind(enum.Enum):
    CREATE = "create"
    EDIT = "edit"
    RENAME = "rename"
    DELETE = "delete"
    DELETE_KEY = "delete-key"


@dataclass(frozen=True)
class PendingMutation:
    """The single in-flight user write.

    ``target`` is the path written or deleted. For ``CREATE`` into a folder,
    ``parent`` is that folder and ``target`` the new leaf.
    """

    kind: MutationKind
    target: SecretPath
    parent: SecretPath
    key: str | None = None
    new_key: str | None = None
    request_id: int = 0
    target_was_folder: bool = False
    removes_leaf: bool = False

    def describe(self) -> str:
        path = self.target.join() or "/"
        if self.kind is MutationKind.CREATE:
            return f"created {self.key} in {self.parent.join() or '/'}"
        if self.kind is MutationKind.EDIT:
            return f"updated {self.key} in {path}"
        if self.kind is MutationKind.RENAME:
            return f"renamed {self.key} to {self.new_key} in {path}"
        if self.kind is MutationKind.DELETE_KEY:
            return f"deleted {self.key} from {path}"
        return f"deleted {path}"


@dataclass(frozen=True)
class FetchSucceeded:
    path: SecretPath
    kind: NodeKind


@dataclass(frozen=True)
class FetchFailed:
    path: SecretPath
    error: VaultwalkerError


@dataclass(frozen=True)
class FetchCancelled:
    path: SecretPath


@dataclass(frozen=True)
class MutationSucceeded:
    mutation: PendingMutation


@dataclass(frozen=True)
class MutationFailed:
    mutation: PendingMutation
    error: VaultwalkerError


ModelEvent = FetchSucceeded | FetchFailed | FetchCancelled | MutationSucceeded | MutationFailed
