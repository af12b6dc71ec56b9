"""
File transfer operations (timestamp-preserving copies)
"""
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Union

from ..errors import CopyError, TimestampMirrorError
from ..utils.logging import vlog

PathLike = Union[str, os.PathLike]

# Suffix of the scratch files written next to a destination before the
# atomic rename; the scanner never reports them.
TEMP_SUFFIX = ".prosync-tmp"


def mirror_timestamps(source: PathLike, destination: PathLike):
    """
    Give *destination* the access and modification times of *source*.

    Creation time is left to the filesystem: it cannot be set portably.
    """
    try:
        st = os.stat(source)
        os.utime(destination, ns=(st.st_atime_ns, st.st_mtime_ns))
    except OSError as exc:
        raise TimestampMirrorError(
            f"could not mirror timestamps {source} → {destination}: {exc}"
        ) from exc


def write_then_replace(destination: PathLike, write: Callable[[Path], None],
                       timestamp_source: PathLike):
    """
    Produce *destination* via a scratch file in the same directory.

    *write* fills the scratch file; its permission bits and timestamps are
    then mirrored from *timestamp_source* and only then is it renamed over
    *destination*.
    On any failure the scratch file is removed and *destination* is left as
    it was.
    """
    destination = Path(destination)
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{destination.name}.",
                                        suffix=TEMP_SUFFIX,
                                        dir=destination.parent)
    except OSError as exc:
        raise CopyError(f"cannot write into {destination.parent}: {exc}") from exc
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        write(tmp)
        # mkstemp creates owner-only files
        try:
            shutil.copymode(timestamp_source, tmp)
        except OSError as exc:
            raise CopyError(f"could not copy permissions {timestamp_source} → {destination}: {exc}") from exc
        mirror_timestamps(timestamp_source, tmp)
        os.replace(tmp, destination)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def copy_clone(source: PathLike, destination: PathLike, overwrite: bool) -> bool:
    """
    Copy *source* to *destination* and mirror its timestamps.

    Returns False without touching anything when *destination* exists and
    *overwrite* is false; True once the copy is in place.
    """
    destination = Path(destination)
    if destination.exists() and not overwrite:
        vlog(f"  [KEEP] {destination} already exists")
        return False

    def _copy(tmp: Path):
        try:
            shutil.copyfile(source, tmp)
        except OSError as exc:
            raise CopyError(f"could not copy {source} → {destination}: {exc}") from exc

    write_then_replace(destination, _copy, source)
    return True
