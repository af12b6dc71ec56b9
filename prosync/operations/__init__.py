"""Operations (scan, transfer, conflict resolution, playlist localisation)"""
from .scanner import list_tree, compare_directories, path_key
from .transfer import copy_clone, mirror_timestamps
from .conflict import read_modified_date, resolve_winner
from .playlist import localize_playlist, localize_reference

__all__ = [
    "list_tree", "compare_directories", "path_key",
    "copy_clone", "mirror_timestamps",
    "read_modified_date", "resolve_winner",
    "localize_playlist", "localize_reference",
]
