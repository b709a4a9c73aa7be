"""Tests for temp file handling and commits."""

import os

import pytest

from smart_press.errors import CommitError
from smart_press.utils import files
from smart_press.utils.files import (
    TEMP_PREFIX,
    cleanup,
    create_temp_path,
    delete,
    move_or_copy,
    write_temp_file,
)


def test_create_temp_path_is_unique(tmp_path):
    paths = {create_temp_path("jpg", tmp_path) for _ in range(20)}

    assert len(paths) == 20
    for path in paths:
        assert os.path.basename(path).startswith(TEMP_PREFIX)
        assert path.endswith(".jpg")
        assert os.path.isfile(path)


def test_write_temp_file_creates_dir(tmp_path):
    path = write_temp_file(b"abc", ".webp", tmp_path / "nested")

    assert path.endswith(".webp")
    with open(path, "rb") as handle:
        assert handle.read() == b"abc"


def test_move_replaces_destination(tmp_path):
    src = write_temp_file(b"new", "jpg", tmp_path)
    dst = tmp_path / "out" / "final.jpg"
    os.makedirs(dst.parent)
    dst.write_bytes(b"old")

    assert move_or_copy(src, str(dst)) is True
    assert dst.read_bytes() == b"new"
    assert not os.path.exists(src)


def test_move_refuses_existing_without_overwrite(tmp_path):
    src = write_temp_file(b"new", "jpg", tmp_path)
    dst = tmp_path / "final.jpg"
    dst.write_bytes(b"old")

    with pytest.raises(CommitError):
        move_or_copy(src, str(dst), overwrite=False)

    assert dst.read_bytes() == b"old"
    assert os.path.exists(src)


def test_move_falls_back_to_copy(tmp_path, monkeypatch):
    src = write_temp_file(b"payload", "png", tmp_path)
    dst = tmp_path / "dest" / "final.png"
    real_replace = os.replace

    def replace(a, b):
        # Simulate a cross-device rename for the source only
        if os.fspath(a) == src:
            raise OSError(18, "Invalid cross-device link")
        return real_replace(a, b)

    monkeypatch.setattr(files.os, "replace", replace)

    assert move_or_copy(src, str(dst)) is True
    assert dst.read_bytes() == b"payload"
    assert not os.path.exists(src)
    assert os.listdir(dst.parent) == ["final.png"]


def test_move_raises_commit_error_when_copy_fails(tmp_path, monkeypatch):
    src = write_temp_file(b"payload", "png", tmp_path)
    dst = tmp_path / "dest" / "final.png"

    def fail(*args, **kwargs):
        raise OSError("read-only")

    monkeypatch.setattr(files.os, "replace", fail)
    monkeypatch.setattr(files.shutil, "copyfile", fail)

    with pytest.raises(CommitError):
        move_or_copy(src, str(dst))

    assert os.listdir(dst.parent) == []
    assert os.path.exists(src)


def test_move_requires_existing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        move_or_copy(str(tmp_path / "missing.jpg"), str(tmp_path / "x.jpg"))


def test_delete_is_idempotent(tmp_path):
    path = write_temp_file(b"x", "gif", tmp_path)

    assert delete(path) is True
    assert delete(path) is False
    assert delete(None) is False


def test_cleanup_keeps_listed_paths(tmp_path):
    paths = [write_temp_file(b"x", "jpg", tmp_path) for _ in range(3)]

    cleanup(paths + [None], keep=[paths[1]])

    assert [os.path.exists(p) for p in paths] == [False, True, False]
