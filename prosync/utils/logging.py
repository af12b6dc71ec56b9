"""
Logging utilities for prosync
"""
from datetime import datetime

_verbose = False
_quiet = False


def set_verbose(verbose: bool):
    """Set the verbose flag"""
    global _verbose
    _verbose = verbose


def set_quiet(quiet: bool):
    """Suppress all console output"""
    global _quiet
    _quiet = quiet


def log(msg: str):
    """Log a message with timestamp"""
    if _quiet:
        return
    ts = datetime.now().strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", flush=True)


def vlog(msg: str):
    """Log a verbose message (only if verbose mode is enabled)"""
    if _verbose:
        log(msg)


def warn(msg: str):
    """Log a warning message"""
    log(f"⚠  {msg}")
