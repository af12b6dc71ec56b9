"""
ProPresenter 6 preference discovery

Reads the application's own synchronisation and general preferences so a
run can default to whatever the user configured inside the application.
"""
import os
import sys
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from .core.models import Category, SyncDirection
from .errors import PreferencesError
from .utils.logging import vlog

REGISTRY_KEY = r"SOFTWARE\Renewed Vision\ProPresenter 6"
APPDATA_SUBDIR = Path("RenewedVision") / "ProPresenter6"

PREFERENCES_DIR = "Preferences"
SYNC_PREFERENCES = "SyncPreferences.pro6pref"
GENERAL_PREFERENCES = "GeneralPreferences.pro6pref"

SYNC_MODES = {
    "UpdateClient": SyncDirection.DOWN,
    "UpdateBoth": SyncDirection.BOTH,
    "UpdateServer": SyncDirection.UP,
}

CATEGORY_FLAGS = {
    Category.LIBRARY: "SyncLibrary",
    Category.TEMPLATES: "SyncTemplates",
    Category.MEDIA: "SyncMedia",
    Category.PLAYLISTS: "SyncPlaylists",
}

_UNREADABLE_HINT = "Please open ProPresenter 6 and save settings at least once"


def string_is_true(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("true", "1", "yes")


def find_appdata_dir() -> Optional[Path]:
    """
    Locate the application data folder from the Windows registry.
    Returns None when not on Windows or the application is not installed.
    """
    if sys.platform != "win32":
        return None
    import winreg

    try:
        key = winreg.OpenKey(winreg.HKEY_CURRENT_USER, REGISTRY_KEY)
    except FileNotFoundError:
        vlog("[prefs] ProPresenter 6 registry key not found")
        return None
    with key:
        try:
            data_type, _ = winreg.QueryValueEx(key, "AppDataType")
        except FileNotFoundError:
            raise PreferencesError("ProPresenter 6 registry value AppDataType is missing")

        if data_type == "OnlyThisUser":
            return Path(os.environ.get("APPDATA", "")) / APPDATA_SUBDIR
        if data_type == "ForAllUsers":
            return Path(os.environ.get("PROGRAMDATA", r"C:\ProgramData")) / APPDATA_SUBDIR
        if data_type == "CustomPath":
            location, _ = winreg.QueryValueEx(key, "AppDataLocation")
            return Path(location)
    raise PreferencesError(f"unknown AppDataType {data_type!r}")


def preferences_present(appdata: Path) -> bool:
    prefs = Path(appdata) / PREFERENCES_DIR
    return (prefs / SYNC_PREFERENCES).is_file() and (prefs / GENERAL_PREFERENCES).is_file()


def _load_root(path: Path, root_tag: str) -> ET.Element:
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as exc:
        raise PreferencesError(f"{path} is inaccessible ({exc}). {_UNREADABLE_HINT}") from exc
    if root.tag == root_tag:
        return root
    node = root.find(root_tag)
    if node is None:
        raise PreferencesError(f"{path}: no {root_tag} element. {_UNREADABLE_HINT}")
    return node


def _text(node: ET.Element, path: str) -> Optional[str]:
    child = node.find(path)
    if child is None or child.text is None:
        return None
    return child.text.strip()


def load_preferences(appdata: Path) -> dict:
    """
    Read both preference documents below *appdata*.

    Returns a settings mapping with the keys source, direction, replace,
    categories, library and media (absent keys were not set in the
    application).
    """
    prefs = Path(appdata) / PREFERENCES_DIR
    sync = _load_root(prefs / SYNC_PREFERENCES, "RVPreferencesSynchronization")
    general = _load_root(prefs / GENERAL_PREFERENCES, "RVPreferencesGeneral")

    result: dict = {}
    source = _text(sync, "Source")
    if source:
        result["source"] = source

    mode = _text(sync, "SyncMode")
    if mode:
        if mode not in SYNC_MODES:
            raise PreferencesError(f"unknown SyncMode {mode!r}")
        result["direction"] = SYNC_MODES[mode]

    replace = _text(sync, "ReplaceFiles")
    if replace is not None:
        result["replace"] = string_is_true(replace)

    categories = {}
    for category, flag in CATEGORY_FLAGS.items():
        value = _text(sync, flag)
        if value is not None:
            categories[category.value] = string_is_true(value)
    if categories:
        result["categories"] = categories

    library = _text(general, "SelectedLibraryFolder/Location")
    if library:
        result["library"] = library
    media = _text(general, "MediaRepositoryPath")
    if media:
        result["media"] = media

    vlog(f"[prefs] loaded {sorted(result)} from {prefs}")
    return result
