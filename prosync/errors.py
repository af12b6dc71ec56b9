"""
Error taxonomy for a synchronisation run.

Every error is raised immediately and never retried: a run is a single-shot
batch job, and the caller decides whether to abort (the CLI always does).
"""


class SyncError(RuntimeError):
    """Base class for all prosync failures."""


class InaccessibleRootError(SyncError):
    """A sync root cannot be created or listed."""


class MalformedPlaylistError(SyncError):
    """A playlist document could not be parsed or lacks a required node."""


class CopyError(SyncError):
    """Copying a file to its destination failed."""


class TimestampMirrorError(SyncError):
    """The destination timestamp could not be made equal to the source's."""


class PreferencesError(SyncError):
    """Application preference documents are missing or unreadable."""


class PathCollisionError(SyncError):
    """Two files in one tree differ only by letter case or Unicode form."""
