"""Utilities (logging)"""
from .logging import log, vlog, warn, set_verbose, set_quiet

__all__ = ["log", "vlog", "warn", "set_verbose", "set_quiet"]
