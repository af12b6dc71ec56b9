"""
Integration tests for prosync CLI behaviour and configuration layering.

Tests:
  - .prosync discovery: searching parent directories upward
  - profile selection and layering over ProPresenter's preferences
  - prosync init: creates a valid .prosync YAML, refuses overwrite without --force
  - prosync sync / status run end to end on temporary trees
"""
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from helpers import T0, general_preferences_xml, mtime, sync_preferences_xml, write


# ── Helpers ───────────────────────────────────────────────────────────────────

REPO_ROOT = Path(__file__).parent.parent


def run_prosync(*args, cwd=None, config_home=None):
    """Run the prosync CLI and return (returncode, stdout, stderr)."""
    env = {**os.environ, "PYTHONPATH": str(REPO_ROOT)}
    if config_home is not None:
        env["XDG_CONFIG_HOME"] = str(config_home)
    result = subprocess.run(
        [sys.executable, "-m", "prosync", *args],
        cwd=str(cwd or REPO_ROOT),
        capture_output=True,
        text=True,
        stdin=subprocess.DEVNULL,
        env=env,
    )
    return result.returncode, result.stdout, result.stderr


# ── Tests: .prosync discovery ─────────────────────────────────────────────────

class TestFindProjectFile(unittest.TestCase):
    """Tests for find_project_file(): upward search through parent directories."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_find_in_same_directory(self):
        from prosync.config import find_project_file
        (self.root / ".prosync").write_text("profiles: []\n", encoding="utf-8")
        self.assertEqual(find_project_file(self.root), self.root / ".prosync")

    def test_find_in_parent_directory(self):
        """find_project_file searches upward and finds .prosync in a parent."""
        from prosync.config import find_project_file
        (self.root / ".prosync").write_text("profiles: []\n", encoding="utf-8")
        subdir = self.root / "a" / "b" / "c"
        subdir.mkdir(parents=True)
        self.assertEqual(find_project_file(subdir), self.root / ".prosync")

    def test_finds_nearest(self):
        """find_project_file returns the nearest (deepest) .prosync."""
        from prosync.config import find_project_file
        (self.root / ".prosync").write_text("profiles: []\n", encoding="utf-8")
        sub_a = self.root / "a"
        sub_a.mkdir()
        (sub_a / ".prosync").write_text("profiles: []\n", encoding="utf-8")
        deep = sub_a / "b" / "c"
        deep.mkdir(parents=True)
        self.assertEqual(find_project_file(deep), sub_a / ".prosync")


# ── Tests: config loading ─────────────────────────────────────────────────────

class TestProfiles(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def _write_project(self, content):
        p = self.root / ".prosync"
        p.write_text(content, encoding="utf-8")
        return p

    def test_get_profile_by_name(self):
        import prosync.config as cfg
        p = self._write_project(
            "profiles:\n"
            "  - name: church\n"
            "    source: /mnt/a\n"
            "  - name: hall\n"
            "    source: /mnt/b\n"
            "    direction: up\n"
        )
        profile = cfg.get_profile(cfg.load_project_file(p), "hall")
        self.assertEqual(profile["source"], "/mnt/b")
        self.assertEqual(profile["direction"], "up")

    def test_get_profile_falls_back_to_first_and_merges_defaults(self):
        import prosync.config as cfg
        p = self._write_project(
            "defaults:\n"
            "  replace: true\n"
            "profiles:\n"
            "  - name: only\n"
            "    source: /mnt/only\n"
        )
        profile = cfg.get_profile(cfg.load_project_file(p), "nonexistent")
        self.assertEqual(profile["source"], "/mnt/only")
        self.assertTrue(profile["replace"])

    def test_settings_from_profile(self):
        import prosync.config as cfg
        from prosync.core.models import Category, SyncDirection
        settings = cfg.resolve_settings({
            "source": str(self.root / "share"),
            "library": str(self.root / "lib"),
            "direction": "down",
            "replace": "true",
            "categories": ["library", "playlists"],
            "mtime_tolerance": 2,
        })
        self.assertEqual(settings.source, self.root / "share")
        self.assertIs(settings.direction, SyncDirection.DOWN)
        self.assertTrue(settings.replace)
        self.assertEqual(settings.categories, (Category.LIBRARY, Category.PLAYLISTS))
        self.assertEqual(settings.mtime_tolerance, 2.0)

    def test_category_roots(self):
        import prosync.config as cfg
        from prosync.core.models import Category
        settings = cfg.SyncSettings(source=Path("/share"), appdata=Path("/app"),
                                    library=Path("/lib"), media=Path("/media"))
        self.assertEqual(settings.remote_root(Category.LIBRARY), Path("/share/__Documents/Default"))
        self.assertEqual(settings.remote_root(Category.PLAYLISTS), Path("/share/__Playlist_Data"))
        self.assertEqual(settings.local_root(Category.TEMPLATES), Path("/app/Templates"))
        self.assertEqual(settings.local_root(Category.PLAYLISTS), Path("/app/PlaylistData"))
        self.assertEqual(settings.local_root(Category.MEDIA), Path("/media"))

    def test_unknown_direction(self):
        import prosync.config as cfg
        with self.assertRaises(ValueError):
            cfg.resolve_settings({"direction": "sideways"})

    def test_unknown_category(self):
        import prosync.config as cfg
        with self.assertRaises(ValueError):
            cfg.resolve_settings({"categories": ["library", "slides"]})

    def test_misspelt_category_is_not_silently_disabled(self):
        """A typo such as 'playlist' is reported instead of turning playlists off."""
        import prosync.config as cfg
        with self.assertRaises(ValueError) as ctx:
            cfg.resolve_settings({"categories": ["library", "playlist"]})
        self.assertIn("playlist", str(ctx.exception))
        with self.assertRaises(ValueError):
            cfg.resolve_settings({}, {"categories": {"playlist": False}})

    def test_profile_overrides_preferences(self):
        """Preferences are the lowest layer; profile and flags win over them."""
        import prosync.config as cfg
        from prosync.core.models import Category, SyncDirection
        appdata = self.root / "appdata"
        write(appdata / "Preferences" / "SyncPreferences.pro6pref",
              sync_preferences_xml("/prefs/share", mode="UpdateServer", replace="false"))
        write(appdata / "Preferences" / "GeneralPreferences.pro6pref",
              general_preferences_xml("/prefs/library", "/prefs/media"))

        settings = cfg.resolve_settings(
            {"appdata": str(appdata), "source": "/profile/share"},
            {"replace": True, "categories": {"templates": True}},
        )
        self.assertEqual(settings.source, Path("/profile/share"))
        self.assertEqual(settings.library, Path("/prefs/library"))
        self.assertIs(settings.direction, SyncDirection.UP)
        self.assertTrue(settings.replace)
        # preferences disable templates, the override enables them again
        self.assertEqual(set(settings.categories), set(Category))
        self.assertEqual(settings.appdata, appdata)

    def test_load_profile_layers_global_and_project(self):
        import prosync.config as cfg
        config_home = self.root / "xdg"
        write(config_home / "prosync" / "config.yaml",
              "defaults:\n  source: /global/share\n  replace: true\n")
        self._write_project("profiles:\n  - name: default\n    source: /project/share\n")
        old = os.environ.get("XDG_CONFIG_HOME")
        os.environ["XDG_CONFIG_HOME"] = str(config_home)
        try:
            profile = cfg.load_profile("default", start=self.root)
        finally:
            if old is None:
                del os.environ["XDG_CONFIG_HOME"]
            else:
                os.environ["XDG_CONFIG_HOME"] = old
        self.assertEqual(profile["source"], "/project/share")
        self.assertTrue(profile["replace"])
        self.assertNotIn("name", profile)


# ── Tests: prosync init ───────────────────────────────────────────────────────

class TestInitCommand(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.cwd = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_init_creates_valid_yaml(self):
        rc, out, err = run_prosync(
            "init", "--source", "S:\\ProPresenter", "--library-dir", "/lib",
            "--direction", "down", "--replace",
            cwd=self.cwd,
        )
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        import yaml
        data = yaml.safe_load((self.cwd / ".prosync").read_text(encoding="utf-8"))
        profile = data["profiles"][0]
        self.assertEqual(profile["name"], "default")
        self.assertEqual(profile["source"], "S:/ProPresenter")
        self.assertEqual(profile["library"], "/lib")
        self.assertEqual(profile["direction"], "down")
        self.assertIs(profile["replace"], True)

    def test_init_refuses_overwrite(self):
        (self.cwd / ".prosync").write_text("profiles: []\n", encoding="utf-8")
        rc, out, err = run_prosync("init", "--source", "/x", cwd=self.cwd)
        self.assertNotEqual(rc, 0)
        self.assertIn("already exists", err)

    def test_init_force_overwrites(self):
        (self.cwd / ".prosync").write_text("profiles: []\n", encoding="utf-8")
        rc, out, err = run_prosync("init", "--source", "/new/share", "--force", cwd=self.cwd)
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        self.assertIn("/new/share", (self.cwd / ".prosync").read_text(encoding="utf-8"))

    def test_init_dry_run_does_not_write(self):
        rc, out, err = run_prosync("init", "--source", "/x", "--dry-run", cwd=self.cwd)
        self.assertEqual(rc, 0, msg=f"stderr: {err}")
        self.assertFalse((self.cwd / ".prosync").exists())
        self.assertIn("dry-run", out)


# ── Tests: prosync sync / status ──────────────────────────────────────────────

class TestSyncCommand(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.base = Path(self.tmpdir.name)
        self.cwd = self.base / "work"
        self.cwd.mkdir()
        self.share = self.base / "share"
        self.share.mkdir()
        self.appdata = self.base / "appdata"
        self.library = self.base / "library"
        self.media = self.base / "media"

    def tearDown(self):
        self.tmpdir.cleanup()

    def _args(self, *extra):
        return ("--source", str(self.share), "--appdata", str(self.appdata),
                "--library-dir", str(self.library), "--media-dir", str(self.media),
                *extra)

    def test_sync_end_to_end(self):
        write(self.share / "__Documents" / "Default" / "Song.pro6", "remote", mtime=T0)
        write(self.library / "Mine.pro6", "local", mtime=T0 + 1)

        rc, out, err = run_prosync("sync", *self._args("--both"),
                                   cwd=self.cwd, config_home=self.base / "xdg")
        self.assertEqual(rc, 0, msg=f"stdout: {out}\nstderr: {err}")
        self.assertEqual(mtime(self.library / "Song.pro6"), T0)
        self.assertTrue((self.share / "__Documents" / "Default" / "Mine.pro6").is_file())
        self.assertIn("[RECV] Song.pro6", out)
        self.assertIn("Sync complete!", out)

    def test_sync_respects_category_flags(self):
        write(self.share / "__Templates" / "Theme.pro6")
        rc, out, err = run_prosync("sync", *self._args("--no-templates", "-q"),
                                   cwd=self.cwd, config_home=self.base / "xdg")
        self.assertEqual(rc, 0, msg=err)
        self.assertEqual(out, "")
        self.assertFalse((self.appdata / "Templates" / "Theme.pro6").exists())

    def test_sync_dry_run(self):
        write(self.share / "__Media" / "clip.mp4")
        rc, out, err = run_prosync("sync", *self._args("--down", "-n"),
                                   cwd=self.cwd, config_home=self.base / "xdg")
        self.assertEqual(rc, 0, msg=err)
        self.assertIn("[RECV-DRY] clip.mp4", out)
        self.assertFalse((self.media / "clip.mp4").exists())

    def test_sync_fails_on_missing_source(self):
        rc, out, err = run_prosync("sync", "--source", str(self.base / "gone"),
                                   "--library-dir", str(self.library),
                                   cwd=self.cwd, config_home=self.base / "xdg")
        self.assertEqual(rc, 1)
        self.assertIn("Sync source not accessible", out)

    def test_direction_flags_are_exclusive(self):
        rc, out, err = run_prosync("sync", *self._args("--up", "--down"),
                                   cwd=self.cwd, config_home=self.base / "xdg")
        self.assertEqual(rc, 2)
        self.assertIn("not allowed with", err)

    def test_sync_uses_project_file(self):
        write(self.share / "__Documents" / "Default" / "Song.pro6")
        (self.cwd / ".prosync").write_text(
            "profiles:\n"
            "  - name: default\n"
            f"    source: '{self.share.as_posix()}'\n"
            f"    appdata: '{self.appdata.as_posix()}'\n"
            f"    library: '{self.library.as_posix()}'\n"
            f"    media: '{self.media.as_posix()}'\n"
            "    direction: down\n",
            encoding="utf-8",
        )
        rc, out, err = run_prosync("sync", cwd=self.cwd, config_home=self.base / "xdg")
        self.assertEqual(rc, 0, msg=f"stdout: {out}\nstderr: {err}")
        self.assertTrue((self.library / "Song.pro6").is_file())

    def test_status_reports_pending(self):
        write(self.share / "__Documents" / "Default" / "Song.pro6")
        rc, out, err = run_prosync("status", *self._args(),
                                   cwd=self.cwd, config_home=self.base / "xdg")
        self.assertEqual(rc, 0, msg=err)
        self.assertIn("library   : new=1", out)
        self.assertIn("pending", out)
        self.assertFalse((self.library / "Song.pro6").exists())


if __name__ == "__main__":
    unittest.main()
