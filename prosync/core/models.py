"""
Value types shared by the comparator, the transfer operations and the engine
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class SyncDirection(Enum):
    """Which way files may travel between the remote and the local tree."""

    DOWN = "down"  # remote → local only
    BOTH = "both"
    UP = "up"  # local → remote only

    @property
    def allows_down(self) -> bool:
        return self in (SyncDirection.DOWN, SyncDirection.BOTH)

    @property
    def allows_up(self) -> bool:
        return self in (SyncDirection.UP, SyncDirection.BOTH)

    @classmethod
    def parse(cls, value) -> "SyncDirection":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"unknown sync direction {value!r} (expected down, both or up)"
            ) from None


class Side(Enum):
    REMOTE = "remote"
    LOCAL = "local"


class Category(Enum):
    """Synced content types, in the order a run processes them."""

    LIBRARY = "library"
    TEMPLATES = "templates"
    MEDIA = "media"
    PLAYLISTS = "playlists"

    @property
    def recursive(self) -> bool:
        # playlist data is a flat folder
        return self is not Category.PLAYLISTS


@dataclass(frozen=True)
class DirectoryEntry:
    """A file below a sync root: POSIX relative path + mtime (epoch seconds)."""

    relative_path: str
    mtime: float


@dataclass(frozen=True)
class ConflictEntry:
    """
    A path present on both sides with differing timestamps.

    ``relative_path`` is the spelling found on the remote side;
    ``local_relative_path`` is only set when the local spelling differs
    (case or separators) and is read through ``local_path``.
    """

    relative_path: str
    newer_side: Side
    local_relative_path: Optional[str] = None

    @property
    def local_path(self) -> str:
        return self.local_relative_path or self.relative_path


@dataclass
class ComparisonResult:
    """
    Partition of every relative path seen under remote ∪ local.

    new       – remote only
    missing   – local only
    conflict  – both, timestamps differ
    unchanged – both, timestamps equal
    """

    new: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    conflict: list[ConflictEntry] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return not (self.new or self.missing or self.conflict)

    def counts(self) -> dict[str, int]:
        return {
            "new": len(self.new),
            "missing": len(self.missing),
            "conflict": len(self.conflict),
            "unchanged": len(self.unchanged),
        }


@dataclass
class CategoryReport:
    """What one category pass did (or, on a dry run, would have done)."""

    category: Category
    received: list[str] = field(default_factory=list)
    sent: list[str] = field(default_factory=list)
    skipped_conflicts: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def transferred(self) -> int:
        return len(self.received) + len(self.sent)
