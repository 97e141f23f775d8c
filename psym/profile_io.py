#!/usr/bin/env python3
"""
profile_io.py

Read and write profiler captures.

The capture is a JSON document. Only "libs" and "threads[].stringTable"
are looked at by psym; every other field is carried through unchanged.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from psym.classifier import load_libraries


LOG = logging.getLogger("profile_io")


class ProfileReadError(RuntimeError):
    pass


class ProfileWriteError(RuntimeError):
    pass


def read_profile(path: Path) -> Dict[str, Any]:
    """
    Load a capture. Raises ProfileReadError if the file cannot be read, is
    not valid JSON, has no "threads" list, or has a malformed "libs" list.
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            profile = json.load(f)
    except OSError as e:
        raise ProfileReadError(f"Cannot read {path}: {e}") from e
    except ValueError as e:
        raise ProfileReadError(f"Cannot parse {path}: {e}") from e

    if not isinstance(profile, dict) or not isinstance(profile.get("threads"), list):
        raise ProfileReadError(f"{path} is not a profile: no 'threads' list")

    libs = profile.get("libs")
    if libs is not None and not isinstance(libs, list):
        raise ProfileReadError(f"{path} is not a profile: 'libs' is not a list")
    try:
        load_libraries(libs or [])
    except ValueError as e:
        raise ProfileReadError(f"Bad 'libs' entry in {path}: {e}") from e

    if not libs:
        LOG.warning("Profile has no 'libs' list; nothing can be symbolicated")

    LOG.info("Loaded profile %s (%d threads)", path, len(profile["threads"]))
    return profile


def output_path_for(path: Path, suffix: str) -> Path:
    """
    "profile.json" + ".sym" -> "profile.json.sym"
    """
    return path.with_name(path.name + suffix)


def write_profile(path: Path, profile: Dict[str, Any]) -> None:
    """
    Write a capture atomically: dump to a temporary file next to `path`
    and rename it into place.
    """
    tmp_name: Optional[str] = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=path.name + ".",
            suffix=".tmp",
            dir=str(path.parent),
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(profile, f)
        os.replace(tmp_name, path)
    except (OSError, TypeError, ValueError) as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise ProfileWriteError(f"Cannot write {path}: {e}") from e

    LOG.info("Wrote profile: %s", path)


__all__ = [
    "ProfileReadError",
    "ProfileWriteError",
    "read_profile",
    "write_profile",
    "output_path_for",
]
