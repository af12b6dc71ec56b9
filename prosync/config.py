"""
Configuration for prosync

Settings are layered, lowest precedence first: the application's own
preference documents, the global config.yaml, the project .prosync file,
then command-line overrides. The result is an immutable SyncSettings value
that is passed explicitly to the engine.
"""
import os
from dataclasses import dataclass, field, replace as _dc_replace
from pathlib import Path, PurePosixPath
from typing import Optional

import yaml

from . import preferences
from .core.models import Category, SyncDirection
from .errors import SyncError
from .utils.logging import vlog

PROJECT_FILE = ".prosync"

# Category roots below the shared sync source
REMOTE_SUBDIRS = {
    Category.LIBRARY: PurePosixPath("__Documents/Default"),
    Category.TEMPLATES: PurePosixPath("__Templates"),
    Category.MEDIA: PurePosixPath("__Media"),
    Category.PLAYLISTS: PurePosixPath("__Playlist_Data"),
}

# Category roots below the local application data folder
APPDATA_SUBDIRS = {
    Category.TEMPLATES: "Templates",
    Category.PLAYLISTS: "PlaylistData",
}


# ══════════════════════════════════════════════════════════════════════════════
#  SETTINGS
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SyncSettings:
    source: Optional[Path] = None
    appdata: Optional[Path] = None
    library: Optional[Path] = None
    media: Optional[Path] = None
    direction: SyncDirection = SyncDirection.BOTH
    replace: bool = False
    categories: tuple = field(default_factory=lambda: tuple(Category))
    mtime_tolerance: float = 0.0
    dry_run: bool = False

    def with_changes(self, **changes) -> "SyncSettings":
        return _dc_replace(self, **changes)

    def remote_root(self, category: Category) -> Path:
        if self.source is None:
            raise SyncError("no sync source configured")
        return self.source.joinpath(*REMOTE_SUBDIRS[category].parts)

    def local_root(self, category: Category) -> Path:
        if category is Category.LIBRARY:
            return self._require(self.library, "local library folder")
        if category is Category.MEDIA:
            return self._require(self.media, "local media folder")
        appdata = self._require(self.appdata, "application data folder")
        return appdata / APPDATA_SUBDIRS[category]

    @staticmethod
    def _require(value: Optional[Path], what: str) -> Path:
        if value is None:
            raise SyncError(f"no {what} configured")
        return value


def _as_path(value) -> Optional[Path]:
    if value is None or value == "":
        return None
    return Path(str(value)).expanduser()


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return preferences.string_is_true(str(value))


def _category_flags(value) -> dict:
    """Accept either a list of enabled category names or a {name: bool} map."""
    if value is None:
        return {}
    if isinstance(value, dict):
        flags = {str(k).lower(): _as_bool(v) for k, v in value.items()}
        names = set(flags)
    else:
        names = {str(v).lower() for v in value}
        flags = {c.value: c.value in names for c in Category}
    unknown = names - {c.value for c in Category}
    if unknown:
        raise ValueError(f"unknown categories: {', '.join(sorted(unknown))}")
    return flags


def merge_layers(*layers: dict) -> dict:
    """
    Merge settings mappings left to right; None values never override and
    category flags are merged per category.
    """
    merged: dict = {}
    flags: dict = {}
    for layer in layers:
        for key, value in (layer or {}).items():
            if value is None:
                continue
            if key == "categories":
                flags.update(_category_flags(value))
            else:
                merged[key] = value
    if flags:
        merged["categories"] = flags
    return merged


def settings_from_mapping(data: dict) -> SyncSettings:
    """Build SyncSettings from a merged mapping of profile keys."""
    flags = data.get("categories")
    if flags is None:
        categories = tuple(Category)
    else:
        flags = _category_flags(flags)
        categories = tuple(c for c in Category if flags.get(c.value, True))
    return SyncSettings(
        source=_as_path(data.get("source")),
        appdata=_as_path(data.get("appdata")),
        library=_as_path(data.get("library")),
        media=_as_path(data.get("media")),
        direction=SyncDirection.parse(data.get("direction", SyncDirection.BOTH)),
        replace=_as_bool(data.get("replace", False)),
        categories=categories,
        mtime_tolerance=float(data.get("mtime_tolerance", 0.0)),
        dry_run=_as_bool(data.get("dry_run", False)),
    )


def resolve_settings(profile: Optional[dict] = None,
                     overrides: Optional[dict] = None) -> SyncSettings:
    """
    Layer application preferences, *profile* and *overrides* into settings.

    Preferences are read only when an application data folder is known
    (from the layers or the registry) and both documents exist there.
    """
    profile = profile or {}
    overrides = overrides or {}
    appdata = _as_path(overrides.get("appdata") or profile.get("appdata"))
    if appdata is None:
        appdata = preferences.find_appdata_dir()

    app_prefs: dict = {}
    if appdata is not None and preferences.preferences_present(appdata):
        app_prefs = preferences.load_preferences(appdata)
    elif appdata is not None:
        vlog(f"[config] no preference documents under {appdata}")

    merged = merge_layers(app_prefs, profile, overrides)
    if appdata is not None:
        merged["appdata"] = appdata
    return settings_from_mapping(merged)


# ══════════════════════════════════════════════════════════════════════════════
#  GLOBAL CONFIG FILE  ── $XDG_CONFIG_HOME/prosync/config.yaml
# ══════════════════════════════════════════════════════════════════════════════

def get_global_config_dir() -> Path:
    """Return the global config directory for prosync."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "prosync"
    if os.name == "nt":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "prosync"
    return Path.home() / ".config" / "prosync"


def load_global_config() -> dict:
    """Load global config from the prosync config directory."""
    cfg_path = get_global_config_dir() / "config.yaml"
    if not cfg_path.is_file():
        return {}
    with cfg_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


# ══════════════════════════════════════════════════════════════════════════════
#  PROJECT CONFIG FILE  ── .prosync (searched upward)
# ══════════════════════════════════════════════════════════════════════════════

def find_project_file(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search upward from *start* (default: cwd) for a .prosync YAML file.
    Returns the Path if found, or None if no .prosync exists in any parent.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / PROJECT_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_project_file(path: Path) -> dict:
    """Parse a .prosync YAML file and return its contents as a dict."""
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_profile(data: dict, profile_name: str = "default") -> dict:
    """
    Extract a named profile from a .prosync or config.yaml data dict.
    Falls back to the first profile if the named one is not found.
    Returns a flat profile dict merged with top-level defaults.
    """
    defaults = data.get("defaults", {})
    profiles = data.get("profiles", [])
    if not profiles:
        return defaults.copy()
    profile = next((p for p in profiles if p.get("name") == profile_name), None)
    if profile is None:
        profile = profiles[0]
    merged = defaults.copy()
    merged.update(profile)
    return merged


def load_profile(profile_name: str = "default", start: Optional[Path] = None) -> dict:
    """Global profile overlaid with the nearest project profile."""
    profile = get_profile(load_global_config(), profile_name)
    project = find_project_file(start)
    if project is not None:
        vlog(f"[config] Using {project}")
        profile = merge_layers(profile, get_profile(load_project_file(project), profile_name))
    profile.pop("name", None)
    return profile
