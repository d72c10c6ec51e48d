from datetime import datetime
from pathlib import Path

import pytest

from livegears.segment import LifecycleFile, Segmentable, format_filename


def test_default_never_needs_split():
    seg = Segmentable()
    seg.increase_size(10**12)
    seg.increase_time(10**6)
    assert seg.needed() is False


def test_time_limit():
    seg = Segmentable(expected_time=10)
    seg.increase_time(9)
    assert not seg.needed()
    seg.increase_time(1)
    assert seg.needed()


def test_time_limit_counts_from_start():
    seg = Segmentable(expected_time=10)
    seg.set_start_time(100)
    seg.set_time_position(105)
    assert not seg.needed()
    seg.set_time_position(110)
    assert seg.needed()


def test_size_limit_is_strict():
    seg = Segmentable(expected_size=100)
    seg.set_size_position(13)
    seg.increase_size(87)
    assert not seg.needed()
    seg.increase_size(1)
    assert seg.needed()


def test_time_limit_takes_precedence_over_size():
    seg = Segmentable(expected_time=60, expected_size=10)
    seg.increase_size(1000)
    assert not seg.needed()


def test_reset_clears_progress():
    seg = Segmentable(expected_time=5, expected_size=5)
    seg.increase_time(10)
    seg.increase_size(10)
    seg.reset()
    assert seg.time_current == 0
    assert seg.size_current == 0
    assert not seg.needed()


def test_format_filename_without_directives():
    assert format_filename("recording") == "recording"


def test_format_filename_expands_date():
    before = "live" + datetime.now().date().isoformat()
    result = format_filename("live%Y-%m-%d")
    after = "live" + datetime.now().date().isoformat()
    assert result in {before, after}


@pytest.fixture
def in_tmp(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_create_uses_part_extension(in_tmp):
    file = LifecycleFile("feel/the", "force", None)
    path = file.create()
    assert path == Path("feel/the.force.part")
    assert file.file_name == "feel/the.force"
    assert (in_tmp / "feel").is_dir()


def test_rename_moves_file_and_calls_hook(in_tmp):
    seen = []
    file = LifecycleFile("stream", "flv", seen.append)
    path = file.create()
    path.write_bytes(b"data")
    file.rename()
    assert seen == ["stream.flv"]
    assert (in_tmp / "stream.flv").read_bytes() == b"data"
    assert not path.exists()


def test_rename_of_missing_file_skips_hook(in_tmp):
    seen = []
    file = LifecycleFile("absent", "ts", seen.append)
    file.create()
    file.rename()
    assert seen == []
    assert not (in_tmp / "absent.ts").exists()