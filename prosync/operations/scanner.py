"""
Directory scanning and remote/local comparison
"""
import os
import unicodedata
from pathlib import Path
from typing import Union

from ..core.models import ComparisonResult, ConflictEntry, DirectoryEntry, Side
from ..errors import InaccessibleRootError, PathCollisionError
from .transfer import TEMP_SUFFIX
from ..utils.logging import vlog

PathLike = Union[str, os.PathLike]


def path_key(rel_path: str) -> str:
    """Key under which two spellings of the same relative path intersect."""
    norm = rel_path.replace("\\", "/").strip("/")
    return unicodedata.normalize("NFC", norm).casefold()


def list_tree(root: PathLike, recursive: bool = True) -> dict[str, DirectoryEntry]:
    """
    Returns {path_key: DirectoryEntry} for every file below *root*.
    A root that does not exist yields an empty listing. Two files whose
    paths share a key raise PathCollisionError instead of one of them
    being dropped.
    """
    root = Path(root)
    result: dict[str, DirectoryEntry] = {}
    if not root.exists():
        return result
    if not root.is_dir():
        raise InaccessibleRootError(f"not a directory: {root}")
    try:
        with os.scandir(root):
            pass
    except OSError as exc:
        raise InaccessibleRootError(f"cannot list {root}: {exc}") from exc

    candidates = root.rglob("*") if recursive else root.iterdir()
    for p in candidates:
        if not p.is_file():
            continue
        # half-written copies from an interrupted run
        if p.name.endswith(TEMP_SUFFIX):
            continue
        rel = p.relative_to(root).as_posix()
        key = path_key(rel)
        seen = result.get(key)
        if seen is not None:
            raise PathCollisionError(
                f"{root}: {seen.relative_path!r} and {rel!r} differ only by case "
                f"or Unicode form; rename one of them"
            )
        result[key] = DirectoryEntry(rel, p.stat().st_mtime)
    return result


def compare_directories(remote_root: PathLike, local_root: PathLike,
                        recursive: bool = True,
                        mtime_tolerance: float = 0.0) -> ComparisonResult:
    """
    Classify every relative path under *remote_root* ∪ *local_root*.

    Only modification times are compared: files whose mtimes differ by no
    more than *mtime_tolerance* seconds are unchanged whatever their content.
    """
    remote = list_tree(remote_root, recursive)
    local = list_tree(local_root, recursive)
    vlog(f"  [scan] remote={len(remote)} local={len(local)}")

    result = ComparisonResult()
    for key in sorted(set(remote) | set(local)):
        r_entry = remote.get(key)
        l_entry = local.get(key)

        if l_entry is None:
            result.new.append(r_entry.relative_path)
            continue
        if r_entry is None:
            result.missing.append(l_entry.relative_path)
            continue

        if abs(r_entry.mtime - l_entry.mtime) <= mtime_tolerance:
            result.unchanged.append(r_entry.relative_path)
            continue

        newer = Side.REMOTE if r_entry.mtime > l_entry.mtime else Side.LOCAL
        local_spelling = (l_entry.relative_path
                          if l_entry.relative_path != r_entry.relative_path else None)
        result.conflict.append(ConflictEntry(r_entry.relative_path, newer, local_spelling))
    return result
