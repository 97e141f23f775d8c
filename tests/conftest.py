"""Pytest configuration to make the project root importable.

This ensures that ``import psym`` works when tests are run from the
repository root without installing the package.
"""

import os
import stat
import sys
from pathlib import Path

import pytest

# Project root = parent directory of this tests/ folder
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture
def make_addr2line(tmp_path):
    """Return a factory that writes an executable /bin/sh stand-in for
    addr2line. The body runs after "-e LIB -f -C" has been shifted off, so
    "$@" holds only the hex offsets; "$LIB" holds the -e argument.
    """
    if sys.platform.startswith("win"):
        pytest.skip("needs a POSIX shell")

    def factory(body: str, name: str = "fake-addr2line") -> Path:
        script = tmp_path / name
        script.write_text(
            "#!/bin/sh\n"
            'LIB="$2"\n'
            "shift 4\n"
            f"{body}\n",
            encoding="utf-8",
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return factory
