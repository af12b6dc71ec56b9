#!/usr/bin/env python3
"""
prosync  -  Two-way ProPresenter 6 library sync over a shared folder
====================================================================

Subcommands:
  init      Create a .prosync config file in the current directory.
  sync      Synchronise library, templates, media and playlists.
  status    Show what a sync would transfer, without transferring anything.

Settings come from ProPresenter's own sync preferences, overlaid by the
global config.yaml, the nearest .prosync file and finally the flags given
here. Run 'prosync <subcommand> --help' for more details.
"""
import sys
import argparse
import traceback
from pathlib import Path


# ── shared ───────────────────────────────────────────────────────────────────

def _overrides(args) -> dict:
    """Settings given on the command line (None = not given)."""
    categories = {
        name: getattr(args, f"cat_{name}", None)
        for name in ("library", "templates", "media", "playlists")
    }
    categories = {k: v for k, v in categories.items() if v is not None}
    return {
        "source": getattr(args, "source", None),
        "appdata": getattr(args, "appdata", None),
        "library": getattr(args, "library_dir", None),
        "media": getattr(args, "media_dir", None),
        "direction": getattr(args, "direction", None),
        "replace": getattr(args, "replace", None),
        "categories": categories or None,
        "mtime_tolerance": getattr(args, "tolerance", None),
        "dry_run": getattr(args, "dry_run", None) or None,
    }


def _resolve(args):
    from prosync import config as _cfg

    profile = _cfg.load_profile(args.profile or "default")
    return _cfg.resolve_settings(profile, _overrides(args))


def _add_settings_args(p: argparse.ArgumentParser):
    p.add_argument("--profile", metavar="NAME", default="default",
                   help="Profile to use (default: default)")
    p.add_argument("--source", metavar="DIR",
                   help="Shared sync folder (overrides ProPresenter's setting)")
    p.add_argument("--appdata", metavar="DIR",
                   help="ProPresenter 6 application data folder")
    p.add_argument("--library-dir", metavar="DIR",
                   help="Local library folder")
    p.add_argument("--media-dir", metavar="DIR",
                   help="Local media folder")

    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--down", dest="direction", action="store_const", const="down",
                      help="Only remote→local")
    mode.add_argument("--both", dest="direction", action="store_const", const="both",
                      help="Both directions")
    mode.add_argument("--up", dest="direction", action="store_const", const="up",
                      help="Only local→remote")

    p.add_argument("--replace", action=argparse.BooleanOptionalAction, default=None,
                   help="Let the newer side overwrite conflicting files")
    for name in ("library", "templates", "media", "playlists"):
        p.add_argument(f"--{name}", dest=f"cat_{name}",
                       action=argparse.BooleanOptionalAction, default=None,
                       help=f"Sync {name}")
    p.add_argument("--tolerance", type=float, metavar="SECONDS",
                   help="Treat mtimes this close as equal (default: 0)")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Show extra output")
    p.add_argument("-q", "--quiet", action="store_true",
                   help="Print nothing")


# ── init ─────────────────────────────────────────────────────────────────────

def cmd_init(args):
    """Create a .prosync profile file in the current directory."""
    from prosync.config import PROJECT_FILE

    target = Path.cwd() / PROJECT_FILE

    if target.exists() and not args.force:
        print(f"error: {PROJECT_FILE} already exists in {Path.cwd()}", file=sys.stderr)
        print("Use --force to overwrite.", file=sys.stderr)
        sys.exit(1)

    source = args.source
    if not source and sys.stdin.isatty():
        source = input("Shared sync folder: ").strip()

    def _yq(value: str) -> str:
        """Wrap a string in YAML single quotes, escaping embedded single quotes."""
        return "'" + value.replace("'", "''") + "'"

    def _path(value) -> str:
        # forward slashes avoid YAML backslash escape issues
        return _yq(str(value).replace("\\", "/"))

    lines = [
        f"# {PROJECT_FILE}: prosync configuration",
        "#",
        "# profiles: list of sync profiles. Keys left out fall back to",
        "# ProPresenter's own sync preferences.",
        "profiles:",
        f"  - name: {args.profile or 'default'}",
    ]
    if source:
        lines.append(f"    source: {_path(source)}")
    if args.appdata:
        lines.append(f"    appdata: {_path(args.appdata)}")
    if args.library_dir:
        lines.append(f"    library: {_path(args.library_dir)}")
    if args.media_dir:
        lines.append(f"    media: {_path(args.media_dir)}")
    lines.append(f"    direction: {args.direction or 'both'}")
    lines.append(f"    replace: {'true' if args.replace else 'false'}")

    content = "\n".join(lines) + "\n"

    if args.dry_run:
        print(f"[dry-run] Would write {target}:")
        print(content)
        return

    target.write_text(content, encoding="utf-8")
    print(f"Created {target}")
    if args.verbose:
        print(content)


# ── sync ─────────────────────────────────────────────────────────────────────

def cmd_sync(args):
    """Run a synchronisation pass over every enabled category."""
    from prosync.core.sync_engine import run_sync
    from prosync.utils.logging import warn, set_verbose, set_quiet

    set_verbose(args.verbose)
    set_quiet(args.quiet)

    try:
        settings = _resolve(args)
        run_sync(settings)
    except KeyboardInterrupt:
        print()
        warn("Interrupted by user. Trees may be partially synced; run again.")
        sys.exit(130)
    except Exception as exc:
        warn(f"Sync failed: {exc}")
        if args.verbose:
            traceback.print_exc()
        sys.exit(1)


# ── status ────────────────────────────────────────────────────────────────────

def cmd_status(args):
    """Show the resolved settings and pending transfers per category."""
    from prosync.core.sync_engine import check_source, compare_category
    from prosync.errors import SyncError
    from prosync.utils.logging import set_verbose

    set_verbose(args.verbose)

    try:
        settings = _resolve(args)
        check_source(settings)
    except SyncError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"\nProfile   : {args.profile or 'default'}")
    print(f"Source    : {settings.source}")
    print(f"Direction : {settings.direction.value}")
    print(f"Replace   : {'yes' if settings.replace else 'no'}")
    print()
    for category in settings.categories:
        try:
            result = compare_category(settings, category)
        except SyncError as exc:
            print(f"  {category.value:<10}: {exc}")
            continue
        counts = result.counts()
        state = "in sync" if result.converged else "pending"
        print(f"  {category.value:<10}: new={counts['new']}  missing={counts['missing']}  "
              f"conflict={counts['conflict']}  unchanged={counts['unchanged']}  ({state})")


# ── main ──────────────────────────────────────────────────────────────────────

def main(argv=None):
    """CLI entry point for prosync"""
    parser = argparse.ArgumentParser(
        prog="prosync",
        description="Two-way ProPresenter 6 library sync over a shared folder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # ── init ──────────────────────────────────────────────────────────────────
    init_p = subparsers.add_parser(
        "init",
        help="Create a .prosync config file in the current directory",
        description="Create a .prosync YAML config file.",
    )
    init_p.add_argument("--profile", metavar="NAME", default="default",
                        help="Profile name to create (default: default)")
    init_p.add_argument("--source", metavar="DIR", help="Shared sync folder")
    init_p.add_argument("--appdata", metavar="DIR",
                        help="ProPresenter 6 application data folder")
    init_p.add_argument("--library-dir", metavar="DIR", help="Local library folder")
    init_p.add_argument("--media-dir", metavar="DIR", help="Local media folder")
    init_p.add_argument("--direction", choices=("down", "both", "up"),
                        help="Sync direction (default: both)")
    init_p.add_argument("--replace", action="store_true",
                        help="Let the newer side overwrite conflicting files")
    init_p.add_argument("--force", action="store_true",
                        help="Overwrite existing .prosync")
    init_p.add_argument("-n", "--dry-run", action="store_true",
                        help="Preview without writing files")
    init_p.add_argument("-v", "--verbose", action="store_true",
                        help="Show extra output")

    # ── sync ──────────────────────────────────────────────────────────────────
    sync_p = subparsers.add_parser(
        "sync",
        help="Synchronise the local installation with the shared folder",
        description="Synchronise library, templates, media and playlists.",
    )
    _add_settings_args(sync_p)
    sync_p.add_argument("-n", "--dry-run", action="store_true",
                        help="Preview without applying changes")

    # ── status ────────────────────────────────────────────────────────────────
    status_p = subparsers.add_parser(
        "status",
        help="Show pending transfers per category",
        description="Compare both trees and report, without transferring.",
    )
    _add_settings_args(status_p)

    args = parser.parse_args(argv)

    if args.command == "init":
        cmd_init(args)
    elif args.command == "sync":
        if args.verbose and args.quiet:
            sync_p.error("--verbose and --quiet are mutually exclusive")
        cmd_sync(args)
    elif args.command == "status":
        cmd_status(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
