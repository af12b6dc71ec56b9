"""
Playlist localisation

Playlist documents reference presentations by absolute, percent-escaped
paths from the machine that saved them. Only the file name is portable, so
on receipt every reference is re-rooted at the local library folder.
"""
import os
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Union
from urllib.parse import quote

from ..errors import MalformedPlaylistError
from ..utils.logging import vlog
from .transfer import write_then_replace

PathLike = Union[str, os.PathLike]

CUE_TAG = "RVDocumentCue"
PATH_ATTR = "filePath"
# An escaped backslash: the segment separator inside a stored reference
SEPARATOR_TOKEN = "%5C"


def escape_path(path: str) -> str:
    """Percent-escape *path* leaving only RFC 3986 unreserved characters."""
    return quote(path, safe="")


def localize_reference(reference: str, library_root: str) -> str:
    """Re-root an escaped reference at *library_root*, keeping its last segment."""
    return escape_path(library_root) + reference.split(SEPARATOR_TOKEN)[-1]


# BOM, declaration and comments ahead of the root element, copied verbatim
_PROLOGUE = re.compile(rb"\A(?:\xef\xbb\xbf)?(?:<\?xml[^>]*\?>)?(?:\s|<!--.*?-->)*", re.S)
_ENCODING = re.compile(rb"""encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")


def parse_playlist(data: bytes) -> ET.ElementTree:
    """Parse a playlist keeping the comments and processing instructions in it."""
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True, insert_pis=True))
    parser.feed(data)
    return ET.ElementTree(parser.close())


def localize_playlist(source: PathLike, destination: PathLike,
                      library_root: str) -> int:
    """
    Write a copy of the playlist *source* to *destination* with every cue
    reference pointing into *library_root*.

    Only the reference attributes change: the declaration, comments and
    processing instructions of *source* are kept. The copy gets the
    timestamps of *source*, not of the moment it was written, so the next
    comparison sees the pair as unchanged. Returns the number of references
    rewritten.
    """
    data = Path(source).read_bytes()
    try:
        tree = parse_playlist(data)
    except ET.ParseError as exc:
        raise MalformedPlaylistError(f"{source}: {exc}") from exc

    prologue = _PROLOGUE.match(data).group(0)
    declared = _ENCODING.search(prologue)
    encoding = declared.group(1).decode("ascii") if declared else "utf-8"
    trailer = data[len(data.rstrip()):]

    rewritten = 0
    for cue in tree.getroot().iter(CUE_TAG):
        reference = cue.get(PATH_ATTR)
        if reference is None:
            vlog(f"  [LOCALIZE] {source}: cue without {PATH_ATTR}, left as is")
            continue
        cue.set(PATH_ATTR, localize_reference(reference, library_root))
        rewritten += 1

    def _write(tmp: Path):
        with open(tmp, "wb") as f:
            f.write(prologue)
            tree.write(f, encoding=encoding, xml_declaration=False)
            f.write(trailer)

    write_then_replace(destination, _write, source)
    return rewritten
