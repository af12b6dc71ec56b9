"""
Main sync engine - transfer policy and orchestration
"""
import os
from pathlib import Path
from typing import Callable, Optional, Union

from .models import Category, CategoryReport, ComparisonResult, Side, SyncDirection
from ..config import SyncSettings
from ..errors import InaccessibleRootError, SyncError
from ..operations.scanner import compare_directories
from ..operations.transfer import copy_clone
from ..operations.conflict import resolve_winner
from ..operations.playlist import localize_playlist
from ..utils.logging import log, vlog

PathLike = Union[str, os.PathLike]
Notify = Callable[[str], None]


def ensure_root(path: Path):
    """Create a sync root if absent; a never-synced tree starts empty."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise InaccessibleRootError(f"cannot create {path}: {exc}") from exc


def _receive(src: Path, dst: Path, overwrite: bool, dry_run: bool) -> bool:
    if dry_run:
        # same answer copy_clone would give
        return overwrite or not dst.exists()
    dst.parent.mkdir(parents=True, exist_ok=True)
    return copy_clone(src, dst, overwrite)


def _receive_playlist(src: Path, dst: Path, library_root: str, dry_run: bool) -> bool:
    if dry_run:
        return True
    dst.parent.mkdir(parents=True, exist_ok=True)
    n = localize_playlist(src, dst, library_root)
    vlog(f"  [LOCALIZE] {dst.name}: {n} reference(s) rewritten")
    return True


def _record(report: CategoryReport, side: Side, rel: str, done: bool, notify: Notify):
    if not done:
        return
    if side is Side.REMOTE:
        report.received.append(rel)
        tag = "RECV"
    else:
        report.sent.append(rel)
        tag = "SEND"
    if report.dry_run:
        tag += "-DRY"
    notify(f"  [{tag}] {rel}")


def synchronize(remote_root: PathLike, local_root: PathLike,
                direction: SyncDirection, replace: bool,
                category: Category = Category.LIBRARY,
                notify: Notify = log,
                library_root: Optional[PathLike] = None,
                mtime_tolerance: float = 0.0,
                dry_run: bool = False) -> CategoryReport:
    """
    Bring *remote_root* and *local_root* together for one category.

    new files travel down unless the direction is up-only, missing files
    travel up unless it is down-only, and conflicts follow the newer side
    when *replace* is set. The playlist category is handed to
    synchronize_playlists.
    I/O errors propagate; the trees may then be only partially converged.
    """
    if category is Category.PLAYLISTS:
        if library_root is None:
            raise SyncError("playlist sync needs the local library folder")
        return synchronize_playlists(remote_root, local_root, direction, replace,
                                     library_root, notify=notify,
                                     mtime_tolerance=mtime_tolerance,
                                     dry_run=dry_run)

    remote_root, local_root = Path(remote_root), Path(local_root)
    if not dry_run:
        ensure_root(remote_root)
        ensure_root(local_root)

    comparison = compare_directories(remote_root, local_root,
                                     category.recursive, mtime_tolerance)
    report = CategoryReport(category, dry_run=dry_run)

    if direction.allows_down:
        for rel in comparison.new:
            done = _receive(remote_root / rel, local_root / rel, replace, dry_run)
            _record(report, Side.REMOTE, rel, done, notify)

    if direction.allows_up:
        for rel in comparison.missing:
            done = _receive(local_root / rel, remote_root / rel, replace, dry_run)
            _record(report, Side.LOCAL, rel, done, notify)

    for entry in comparison.conflict:
        rel = entry.relative_path
        if not replace:
            vlog(f"  [CONFLICT-SKIP] {rel} ({entry.newer_side.value} is newer)")
            report.skipped_conflicts.append(rel)
        elif entry.newer_side is Side.REMOTE and direction.allows_down:
            done = _receive(remote_root / rel, local_root / entry.local_path, True, dry_run)
            _record(report, Side.REMOTE, rel, done, notify)
        elif entry.newer_side is Side.LOCAL and direction.allows_up:
            done = _receive(local_root / entry.local_path, remote_root / rel, True, dry_run)
            _record(report, Side.LOCAL, rel, done, notify)
        else:
            vlog(f"  [CONFLICT-SKIP] {rel} (direction {direction.value})")
            report.skipped_conflicts.append(rel)

    return report


def synchronize_playlists(remote_root: PathLike, local_root: PathLike,
                          direction: SyncDirection, replace: bool,
                          library_root: PathLike,
                          notify: Notify = log,
                          mtime_tolerance: float = 0.0,
                          dry_run: bool = False) -> CategoryReport:
    """
    Playlist variant of synchronize.

    Received playlists are localised to *library_root* instead of copied.
    Conflicts are always resolved, whatever *replace* says, and the winner
    is decided by the documents' embedded modification dates (a tie keeps
    the local copy). Uploads are plain copies.
    """
    remote_root, local_root = Path(remote_root), Path(local_root)
    library_root = str(library_root)
    if not dry_run:
        ensure_root(remote_root)
        ensure_root(local_root)

    comparison = compare_directories(remote_root, local_root,
                                     Category.PLAYLISTS.recursive, mtime_tolerance)
    report = CategoryReport(Category.PLAYLISTS, dry_run=dry_run)

    if direction.allows_down:
        for rel in comparison.new:
            done = _receive_playlist(remote_root / rel, local_root / rel, library_root, dry_run)
            _record(report, Side.REMOTE, rel, done, notify)

    if direction.allows_up:
        for rel in comparison.missing:
            done = _receive(local_root / rel, remote_root / rel, replace, dry_run)
            _record(report, Side.LOCAL, rel, done, notify)

    for entry in comparison.conflict:
        rel = entry.relative_path
        remote_file = remote_root / rel
        local_file = local_root / entry.local_path
        winner = resolve_winner(remote_file, local_file)
        if winner is Side.REMOTE and direction.allows_down:
            done = _receive_playlist(remote_file, local_file, library_root, dry_run)
            _record(report, Side.REMOTE, rel, done, notify)
        elif winner is Side.LOCAL and direction.allows_up:
            done = _receive(local_file, remote_file, True, dry_run)
            _record(report, Side.LOCAL, rel, done, notify)
        else:
            vlog(f"  [CONFLICT-SKIP] {rel} ({winner.value} wins, direction {direction.value})")
            report.skipped_conflicts.append(rel)

    return report


def compare_category(settings: SyncSettings, category: Category) -> ComparisonResult:
    """Classify one category without transferring anything."""
    return compare_directories(settings.remote_root(category),
                               settings.local_root(category),
                               category.recursive, settings.mtime_tolerance)


def check_source(settings: SyncSettings):
    if settings.source is None or not settings.source.is_dir():
        raise InaccessibleRootError(f"Sync source not accessible: {settings.source}")


def run_sync(settings: SyncSettings, notify: Notify = log) -> list[CategoryReport]:
    """
    Synchronise every enabled category, one after another.

    Any failure aborts the whole run; later categories are not attempted.
    """
    check_source(settings)

    log(f"Sync Mode : {settings.direction.value.capitalize()}")
    log(f"Replace   : {'Yes' if settings.replace else 'No'}")
    for category in Category:
        log(f"{category.value.capitalize():<10}: "
            f"{'Yes' if category in settings.categories else 'No'}")
    if settings.dry_run:
        log("*** DRY-RUN: no files will be changed ***")

    reports: list[CategoryReport] = []
    for category in Category:
        if category not in settings.categories:
            continue
        notify(f"Syncing {category.value}")
        library_root = None
        if category is Category.PLAYLISTS:
            if settings.library is None:
                raise SyncError("no local library folder configured")
            # references are built by plain concatenation onto the root
            library_root = os.path.join(str(settings.library), "")
        report = synchronize(
            settings.remote_root(category),
            settings.local_root(category),
            settings.direction,
            settings.replace,
            category,
            notify=notify,
            library_root=library_root,
            mtime_tolerance=settings.mtime_tolerance,
            dry_run=settings.dry_run,
        )
        reports.append(report)

    log("─" * 64)
    log(" SUMMARY")
    for report in reports:
        log(f"  {report.category.value:<10}: received={len(report.received)}  "
            f"sent={len(report.sent)}  "
            f"conflicts left={len(report.skipped_conflicts)}")
    log("─" * 64)
    if any(r.skipped_conflicts for r in reports):
        log("⚠  Conflicting files were left untouched; run with --replace "
            "to let the newer side win.")
    log("Sync complete!")
    return reports
