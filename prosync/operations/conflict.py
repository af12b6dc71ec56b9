"""
Conflict resolution for playlist documents

A playlist that was localised on an earlier run carries a mirrored
filesystem timestamp, so the authoritative edit time is the ``modifiedDate``
attribute on the document's playlist node instead.
"""
import os
import re
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Union

from ..core.models import Side
from ..errors import MalformedPlaylistError
from ..utils.logging import vlog

PathLike = Union[str, os.PathLike]

PLAYLIST_NODE_TAG = "RVPlaylistNode"
MODIFIED_ATTR = "modifiedDate"

# Non-ISO spellings seen in documents saved under other locales
_FALLBACK_FORMATS = (
    "%m/%d/%Y %I:%M:%S %p",
    "%d/%m/%Y %H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
)

# .NET writes up to seven fraction digits; fromisoformat before 3.11 takes
# exactly three or six
_FRACTION = re.compile(r"(?<=\d)\.(\d+)")


def parse_document_date(value: str) -> datetime:
    """Parse a ``modifiedDate`` value into an aware datetime."""
    text = value.strip()
    try:
        iso = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        parsed = datetime.fromisoformat(iso.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        else:
            raise ValueError(f"unrecognised date {value!r}")
    if parsed.tzinfo is None:
        # naive dates are in the local zone of whoever saved the document
        parsed = parsed.astimezone()
    return parsed


def read_modified_date(path: PathLike) -> datetime:
    """Return the embedded modification date of the playlist at *path*."""
    try:
        tree = ET.parse(path)
    except ET.ParseError as exc:
        raise MalformedPlaylistError(f"{path}: {exc}") from exc

    node = next(tree.getroot().iter(PLAYLIST_NODE_TAG), None)
    if node is None:
        raise MalformedPlaylistError(f"{path}: no {PLAYLIST_NODE_TAG} element")
    raw = node.get(MODIFIED_ATTR)
    if raw is None:
        raise MalformedPlaylistError(f"{path}: {PLAYLIST_NODE_TAG} has no {MODIFIED_ATTR}")
    try:
        return parse_document_date(raw)
    except ValueError as exc:
        raise MalformedPlaylistError(f"{path}: {exc}") from exc


def resolve_winner(remote_file: PathLike, local_file: PathLike) -> Side:
    """
    Decide which copy of a conflicting playlist is authoritative.

    The remote copy wins only when its embedded date is strictly later;
    an exact tie goes to the local copy.
    """
    remote_date = read_modified_date(remote_file)
    local_date = read_modified_date(local_file)
    winner = Side.REMOTE if remote_date > local_date else Side.LOCAL
    vlog(f"  [RESOLVE] remote={remote_date.isoformat()} "
         f"local={local_date.isoformat()} → {winner.value}")
    return winner
