#!/usr/bin/env python3
"""
psym_batch.py

Batch runner for psym.

Finds capture files from the given paths (files and/or directories) and
runs "python -m psym" once per file, optionally several at a time.

It does NOT re-implement symbolication; every capture gets its own psym
process, so a broken capture only fails its own run.

Usage examples:

  # All *.json captures under ./captures/, two at a time
  psym-batch --ext .json --jobs 2 ./captures/

  # Pass extra options through to psym after '--'
  psym-batch ./a.json ./b.json -- --cross-prefix arm-linux-androideabi-
"""

from __future__ import annotations

import argparse
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, List


def find_profile_files(paths: Iterable[Path], ext: str) -> List[Path]:
    """
    Collect capture files from the given paths.

    - A file path is included as-is (ext is not applied).
    - A directory is searched recursively; with a non-empty ext only files
      ending in it are included.
    - Already symbolicated outputs ("*.sym") found in directories are skipped.
    """
    results: List[Path] = []

    for path in paths:
        if path.is_file():
            results.append(path)
            continue

        if path.is_dir():
            pattern = f"*{ext}" if ext else "*"
            for p in path.rglob(pattern):
                if p.is_file() and p.suffix != ".sym":
                    results.append(p)
        else:
            print(
                f"[WARN] Input path does not exist or is not a file/dir: {path}",
                file=sys.stderr,
            )

    results.sort()
    return results


def run_psym_on_file(profile_file: Path, extra_args: List[str]) -> int:
    """
    Run psym as a subprocess for a single capture; returns its exit code.
    """
    cmd: List[str] = [sys.executable, "-m", "psym", str(profile_file)]
    cmd.extend(extra_args)

    print(f"[INFO] Running psym for: {profile_file}", file=sys.stderr)
    proc = subprocess.run(cmd)
    return proc.returncode


def build_argparser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="psym-batch",
        description="Batch runner for psym over multiple profiler captures.",
    )
    parser.add_argument(
        "inputs",
        nargs="+",
        help="Capture files or directories containing captures.",
    )
    parser.add_argument(
        "--ext",
        default="",
        help=(
            "When scanning directories, only files with this extension are "
            "processed (e.g. --ext .json). Default: all regular files."
        ),
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Number of captures to process in parallel (default: 1).",
    )
    return parser


def main(argv: List[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)

    # Everything after '--' goes to psym unchanged.
    pass_through: List[str] = []
    if "--" in argv:
        cut = argv.index("--")
        argv, pass_through = argv[:cut], argv[cut + 1:]

    args = build_argparser().parse_args(argv)
    jobs = max(1, args.jobs)

    profile_files = find_profile_files([Path(p) for p in args.inputs], ext=args.ext)
    if not profile_files:
        print("[WARN] No capture files found for the given inputs.", file=sys.stderr)
        sys.exit(0)

    print(
        f"[INFO] Found {len(profile_files)} capture(s) to process. Using jobs={jobs}.",
        file=sys.stderr,
    )

    overall_rc = 0
    with ThreadPoolExecutor(max_workers=jobs) as ex:
        future_map = {
            ex.submit(run_psym_on_file, pf, pass_through): pf
            for pf in profile_files
        }

        for fut in as_completed(future_map):
            pf = future_map[fut]
            try:
                rc = fut.result()
            except OSError as e:
                print(f"[ERROR] Failed to run psym for {pf}: {e}", file=sys.stderr)
                rc = 1
            if rc != 0:
                overall_rc = rc

    sys.exit(overall_rc)


if __name__ == "__main__":
    main()
