"""Tests for shared file helpers."""

import os
import stat
import threading

import pytest

from picture_shared.files import (
    content_hash,
    hashed_relative_path,
    is_in_dir,
    kind_from_ext,
    kind_from_mime,
    normalize_mime,
    to_posix,
    write_files_atomic,
)


class TestKinds:
    """Tests for image kind detection."""

    @pytest.mark.parametrize("ext,kind", [
        (".jpg", "jpeg"), (".JPEG", "jpeg"), (".png", "png"), (".gif", None), ("", None),
    ])
    def test_kind_from_ext(self, ext, kind):
        assert kind_from_ext(ext) == kind

    @pytest.mark.parametrize("mime,kind", [
        ("image/jpeg", "jpeg"),
        ("image/jpg", "jpeg"),
        ("IMAGE/PNG; charset=binary", "png"),
        ("image/webp", None),
        (None, None),
    ])
    def test_kind_from_mime(self, mime, kind):
        assert kind_from_mime(mime) == kind

    def test_normalize_mime(self):
        assert normalize_mime(" Image/PNG ; q=1") == "image/png"
        assert normalize_mime("") is None


class TestPaths:
    """Tests for path helpers."""

    def test_is_in_dir(self, tmp_path):
        assert is_in_dir(tmp_path, tmp_path / "a" / "b.png")
        assert not is_in_dir(tmp_path, tmp_path / ".." / "b.png")

    def test_to_posix(self):
        assert to_posix("posts\\foo\\cover.png") == "posts/foo/cover.png"

    def test_hashed_relative_path_is_content_addressed(self):
        first = hashed_relative_path(b"same bytes", "jpeg", "remote")
        second = hashed_relative_path(b"same bytes", "jpeg", "remote")

        assert first == second
        assert first == f"remote/{content_hash(b'same bytes')}.jpg"
        assert hashed_relative_path(b"other", "png", "remote").endswith(".png")
        assert len(content_hash(b"x")) == 16


class TestWriteFilesAtomic:
    """Tests for all-or-nothing writes."""

    def test_writes_all_files(self, tmp_path):
        a = tmp_path / "x" / "a.webp"
        b = tmp_path / "x" / "a.jpg"

        write_files_atomic([(a, b"one"), (b, b"two")])

        assert a.read_bytes() == b"one"
        assert b.read_bytes() == b"two"
        assert sorted(p.name for p in (tmp_path / "x").iterdir()) == ["a.jpg", "a.webp"]

    def test_failure_leaves_nothing_behind(self, tmp_path, mocker):
        a = tmp_path / "a.webp"
        b = tmp_path / "a.jpg"
        mocker.patch("picture_shared.files.os.replace", side_effect=OSError("disk full"))

        with pytest.raises(OSError):
            write_files_atomic([(a, b"one"), (b, b"two")])

        assert list(tmp_path.iterdir()) == []

    def test_second_replace_failure_keeps_first_target(self, tmp_path, mocker):
        a = tmp_path / "a.webp"
        b = tmp_path / "a.jpg"
        a.write_bytes(b"previous build")
        real_replace = os.replace
        calls = []

        def flaky_replace(src, dst):
            calls.append(dst)
            if len(calls) == 2:
                raise OSError("disk full")
            real_replace(src, dst)

        mocker.patch("picture_shared.files.os.replace", side_effect=flaky_replace)

        with pytest.raises(OSError):
            write_files_atomic([(a, b"one"), (b, b"two")])

        assert a.exists()
        assert sorted(p.name for p in tmp_path.iterdir()) == ["a.webp"]

    def test_other_errors_remove_temp_files(self, tmp_path, mocker):
        mocker.patch("picture_shared.files.os.replace", side_effect=RuntimeError("interrupted"))

        with pytest.raises(RuntimeError):
            write_files_atomic([(tmp_path / "a.webp", b"one")])

        assert list(tmp_path.iterdir()) == []

    def test_written_files_are_world_readable(self, tmp_path):
        target = tmp_path / "a.webp"

        write_files_atomic([(target, b"one")])

        assert stat.S_IMODE(target.stat().st_mode) == 0o644

    def test_concurrent_writers_of_same_targets(self, tmp_path):
        a = tmp_path / "remote" / "abc.webp"
        b = tmp_path / "remote" / "abc.jpg"
        errors = []
        barrier = threading.Barrier(4)

        def writer():
            barrier.wait()
            for _ in range(50):
                try:
                    write_files_atomic([(a, b"same webp"), (b, b"same jpg")])
                except OSError as e:
                    errors.append(e)

        threads = [threading.Thread(target=writer) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert a.read_bytes() == b"same webp"
        assert b.read_bytes() == b"same jpg"
        assert sorted(p.name for p in a.parent.iterdir()) == ["abc.jpg", "abc.webp"]
