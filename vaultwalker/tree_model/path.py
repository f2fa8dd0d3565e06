"""Normalized secret paths relative to the configured tree root."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SecretPath:
    """Immutable segment tuple; the empty tuple denotes the configured root."""

    segments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for segment in self.segments:
            if not segment or "/" in segment:
                raise ValueError(f"invalid path segment: {segment!r}")

    @classmethod
    def parse(cls, raw: str) -> SecretPath:
        """Build a path from ``a/b/c`` text, dropping empty segments."""
        return cls(tuple(part for part in raw.split("/") if part))

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def name(self) -> str:
        return self.segments[-1] if self.segments else ""

    @property
    def parent(self) -> SecretPath:
        if not self.segments:
            return self
        return SecretPath(self.segments[:-1])

    def child(self, name: str) -> SecretPath:
        return SecretPath(self.segments + (name,))

    def joinpath(self, other: SecretPath) -> SecretPath:
        return SecretPath(self.segments + other.segments)

    def is_within(self, other: SecretPath) -> bool:
        """Return whether this path equals ``other`` or lies below it."""
        depth = len(other.segments)
        return self.segments[:depth] == other.segments

    def is_descendant_of(self, other: SecretPath) -> bool:
        return len(self.segments) > len(other.segments) and self.is_within(other)

    def join(self, *, trailing_slash: bool = False) -> str:
        text = "/".join(self.segments)
        if trailing_slash and text:
            return text + "/"
        return text

    def __str__(self) -> str:
        return self.join()


ROOT = SecretPath()
