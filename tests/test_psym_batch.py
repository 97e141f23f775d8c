"""Tests for psym.psym_batch file discovery and exit status."""
from __future__ import annotations

from pathlib import Path

import pytest

from psym import psym_batch


def test_find_profile_files(tmp_path: Path) -> None:
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "one.json").write_text("{}")
    (tmp_path / "a" / "one.json.sym").write_text("{}")
    (tmp_path / "a" / "notes.txt").write_text("")
    single = tmp_path / "two.dat"
    single.write_text("{}")

    found = psym_batch.find_profile_files([tmp_path / "a", single, tmp_path / "missing"], ext=".json")
    assert found == sorted([tmp_path / "a" / "one.json", single])

    everything = psym_batch.find_profile_files([tmp_path / "a"], ext="")
    assert tmp_path / "a" / "one.json.sym" not in everything
    assert tmp_path / "a" / "notes.txt" in everything


def test_exit_status_and_pass_through(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    good = tmp_path / "good.json"
    bad = tmp_path / "bad.json"
    good.write_text("{}")
    bad.write_text("{}")
    calls = []

    def fake_run(profile_file, extra_args):
        calls.append((profile_file, extra_args))
        return 1 if profile_file == bad else 0

    monkeypatch.setattr(psym_batch, "run_psym_on_file", fake_run)

    with pytest.raises(SystemExit) as exc:
        psym_batch.main([str(good), str(bad), "--jobs", "2", "--", "--workers", "8"])

    assert exc.value.code == 1
    assert sorted(calls) == [(bad, ["--workers", "8"]), (good, ["--workers", "8"])]
