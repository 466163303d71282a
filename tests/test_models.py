"""Tests for models module."""

import os
import pytest
from pathlib import Path

from src.pollwatch.diff import snapshots_equal
from src.pollwatch.exceptions import TransientScanError
from src.pollwatch.models import (
    ChangeType,
    FileRecord,
    DirectorySnapshot,
    ChangeRecord,
    ChangeBatch,
)


class TestChangeType:
    """Tests for ChangeType enum."""

    def test_change_type_values(self):
        assert ChangeType.ADD.value == "add"
        assert ChangeType.MODIFY.value == "modify"
        assert ChangeType.DELETE.value == "delete"

    def test_change_type_from_value(self):
        assert ChangeType("add") == ChangeType.ADD
        assert ChangeType("delete") == ChangeType.DELETE

    def test_no_rename_kind(self):
        assert {t.name for t in ChangeType} == {"ADD", "MODIFY", "DELETE"}


class TestFileRecord:
    """Tests for FileRecord dataclass."""

    def test_equality_by_all_fields(self):
        a = FileRecord("/root/a.txt", True, 10, 1000)
        assert a == FileRecord("/root/a.txt", True, 10, 1000)
        assert a != FileRecord("/root/a.txt", True, 11, 1000)
        assert a != FileRecord("/root/a.txt", True, 10, 1001)
        assert a != FileRecord("/root/a.txt", False, 10, 1000)

    def test_path_spellings_are_distinct(self):
        a = FileRecord("/root/a.txt", True, 10, 1000)
        b = FileRecord("/root/./a.txt", True, 10, 1000)
        assert a != b
        assert len({a, b}) == 2

    def test_immutable(self):
        record = FileRecord("/root/a.txt", True, 10, 1000)
        with pytest.raises(AttributeError):
            record.length = 20

    def test_name(self):
        assert FileRecord("/root/sub/a.txt", True, 0, 0).name == "a.txt"

    def test_from_stat(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("hello")
        st = os.stat(f)

        record = FileRecord.from_stat(str(f), st)

        assert record.path == str(f)
        assert record.exists is True
        assert record.length == 5
        assert record.last_modified == st.st_mtime_ns // 1_000_000


class TestDirectorySnapshot:
    """Tests for DirectorySnapshot."""

    def test_capture_records_regular_files_recursively(self, tmp_path):
        (tmp_path / "a.txt").write_text("a")
        sub = tmp_path / "sub" / "deeper"
        sub.mkdir(parents=True)
        (sub / "b.txt").write_text("bb")

        snapshot = DirectorySnapshot.capture(str(tmp_path))

        paths = {r.path for r in snapshot.files}
        assert paths == {str(tmp_path / "a.txt"), str(sub / "b.txt")}

    def test_capture_excludes_directories(self, tmp_path):
        (tmp_path / "empty_dir").mkdir()
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "f.txt").write_text("x")

        snapshot = DirectorySnapshot.capture(str(tmp_path))

        paths = {r.path for r in snapshot.files}
        assert str(tmp_path / "empty_dir") not in paths
        assert str(tmp_path / "sub") not in paths
        assert str(tmp_path) not in paths

    def test_capture_does_not_follow_symlinks(self, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.txt").write_text("s")
        root = tmp_path / "root"
        root.mkdir()
        (root / "real.txt").write_text("r")
        os.symlink(outside, root / "linked_dir")
        os.symlink(outside / "secret.txt", root / "linked_file.txt")

        snapshot = DirectorySnapshot.capture(str(root))

        assert {r.path for r in snapshot.files} == {str(root / "real.txt")}

    def test_capture_record_metadata(self, tmp_path):
        f = tmp_path / "data.bin"
        f.write_bytes(b"x" * 42)

        snapshot = DirectorySnapshot.capture(str(tmp_path))
        (record,) = snapshot.files

        assert record.exists is True
        assert record.length == 42
        assert record.last_modified == os.stat(f).st_mtime_ns // 1_000_000

    def test_capture_empty_directory(self, tmp_path):
        snapshot = DirectorySnapshot.capture(str(tmp_path))
        assert snapshot.directory == str(tmp_path)
        assert snapshot.files == frozenset()

    def test_capture_missing_directory_raises(self, tmp_path):
        with pytest.raises(TransientScanError):
            DirectorySnapshot.capture(str(tmp_path / "missing"))

    def test_capture_unreadable_subdirectory_raises(self, tmp_path, monkeypatch):
        sub = tmp_path / "sub"
        sub.mkdir()
        (sub / "keep.txt").write_text("x")
        real_scandir = os.scandir

        def scandir(path):
            if os.fspath(path) == str(sub):
                raise PermissionError(13, "Permission denied", str(sub))
            return real_scandir(path)

        monkeypatch.setattr(os, "scandir", scandir)
        with pytest.raises(TransientScanError):
            DirectorySnapshot.capture(str(tmp_path))

    def test_capture_unstattable_file_raises(self, tmp_path, monkeypatch):
        target = tmp_path / "locked.txt"
        target.write_text("x")
        real_lstat = os.lstat

        def lstat(path, *args, **kwargs):
            if os.fspath(path) == str(target):
                raise PermissionError(13, "Permission denied", str(target))
            return real_lstat(path, *args, **kwargs)

        monkeypatch.setattr(os, "lstat", lstat)
        with pytest.raises(TransientScanError):
            DirectorySnapshot.capture(str(tmp_path))

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="permission bits are not enforced for root",
    )
    def test_capture_chmod_000_subdirectory_raises(self, tmp_path):
        sub = tmp_path / "sub"
        sub.mkdir()
        (sub / "keep.txt").write_text("x")
        sub.chmod(0o000)
        try:
            with pytest.raises(TransientScanError):
                DirectorySnapshot.capture(str(tmp_path))
        finally:
            sub.chmod(0o755)

    def test_capture_vanished_file_is_skipped(self, tmp_path, monkeypatch):
        (tmp_path / "kept.txt").write_text("x")
        gone = tmp_path / "gone.txt"
        gone.write_text("x")
        real_lstat = os.lstat

        def lstat(path, *args, **kwargs):
            if os.fspath(path) == str(gone):
                raise FileNotFoundError(2, "No such file or directory", str(gone))
            return real_lstat(path, *args, **kwargs)

        monkeypatch.setattr(os, "lstat", lstat)
        snapshot = DirectorySnapshot.capture(str(tmp_path))
        assert {r.path for r in snapshot.files} == {str(tmp_path / "kept.txt")}

    def test_back_to_back_captures_are_equal(self, tmp_path):
        (tmp_path / "a.txt").write_text("a")
        sub = tmp_path / "sub" / "deeper"
        sub.mkdir(parents=True)
        (sub / "b.log").write_text("bb")
        (tmp_path / "sub" / "c.md").write_text("ccc")

        first = DirectorySnapshot.capture(str(tmp_path))
        second = DirectorySnapshot.capture(str(tmp_path))

        assert len(first.files) == 3
        assert snapshots_equal(first, second)
        assert snapshots_equal(first, second, lambda path: path.endswith(".md"))

    def test_capture_sets_time(self, tmp_path):
        snapshot = DirectorySnapshot.capture(str(tmp_path))
        assert snapshot.captured_at > 0

    def test_empty(self):
        snapshot = DirectorySnapshot.empty("/root")
        assert snapshot.directory == "/root"
        assert snapshot.files == frozenset()

    def test_files_by_path(self):
        a = FileRecord("/root/a", True, 1, 1)
        b = FileRecord("/root/b", True, 2, 2)
        snapshot = DirectorySnapshot("/root", 0.0, frozenset({a, b}))

        assert snapshot.files_by_path() == {"/root/a": a, "/root/b": b}

    def test_filtered(self):
        a = FileRecord("/root/a.txt", True, 1, 1)
        b = FileRecord("/root/b.log", True, 2, 2)
        snapshot = DirectorySnapshot("/root", 0.0, frozenset({a, b}))

        assert snapshot.filtered(lambda p: p.endswith(".txt")) == frozenset({a})
        assert snapshot.filtered(None) == frozenset({a, b})

    def test_str(self):
        snapshot = DirectorySnapshot("/root", 0.0)
        assert str(snapshot).startswith("/root snapshot at ")


class TestChangeRecord:
    """Tests for ChangeRecord."""

    def test_equality_ignores_directory(self):
        a = ChangeRecord("/root", "/root/a.txt", ChangeType.ADD)
        b = ChangeRecord("/other", "/root/a.txt", ChangeType.ADD)
        assert a == b
        assert hash(a) == hash(b)

    def test_equality_by_type(self):
        a = ChangeRecord("/root", "/root/a.txt", ChangeType.ADD)
        b = ChangeRecord("/root", "/root/a.txt", ChangeType.DELETE)
        assert a != b

    def test_relative_name(self):
        change = ChangeRecord("/root", "/root/sub/a.txt", ChangeType.ADD)
        assert change.relative_name == os.path.join("sub", "a.txt")

    def test_relative_name_with_trailing_separator(self):
        change = ChangeRecord("/root/", "/root/a.txt", ChangeType.ADD)
        assert change.relative_name == "a.txt"

    def test_relative_name_outside_directory(self):
        change = ChangeRecord("/root", "/rootother/a.txt", ChangeType.ADD)
        with pytest.raises(ValueError, match="not contained"):
            change.relative_name

    def test_to_dict(self):
        change = ChangeRecord("/root", "/root/a.txt", ChangeType.MODIFY)
        assert change.to_dict() == {
            "directory": "/root",
            "path": "/root/a.txt",
            "change_type": "modify",
        }

    def test_str(self):
        change = ChangeRecord("/root", "/root/a.txt", ChangeType.DELETE)
        assert str(change) == "/root/a.txt (DELETE)"


class TestChangeBatch:
    """Tests for ChangeBatch."""

    def test_iterable_and_sized(self):
        changes = frozenset({
            ChangeRecord("/root", "/root/a", ChangeType.ADD),
            ChangeRecord("/root", "/root/b", ChangeType.DELETE),
        })
        batch = ChangeBatch("/root", changes)

        assert len(batch) == 2
        assert set(batch) == set(changes)

    def test_empty_batch_is_falsy(self):
        assert not ChangeBatch("/root")

    def test_equality(self):
        changes = frozenset({ChangeRecord("/root", "/root/a", ChangeType.ADD)})
        assert ChangeBatch("/root", changes) == ChangeBatch("/root", changes)
        assert ChangeBatch("/root", changes) != ChangeBatch("/other", changes)
        assert ChangeBatch("/root", changes) != ChangeBatch("/root")

    def test_hashable(self):
        changes = frozenset({ChangeRecord("/root", "/root/a", ChangeType.ADD)})
        assert len({ChangeBatch("/root", changes), ChangeBatch("/root", changes)}) == 1

    def test_to_dict_sorted(self):
        batch = ChangeBatch("/root", frozenset({
            ChangeRecord("/root", "/root/b", ChangeType.ADD),
            ChangeRecord("/root", "/root/a", ChangeType.DELETE),
        }))
        data = batch.to_dict()

        assert data["directory"] == "/root"
        assert [c["path"] for c in data["changes"]] == ["/root/a", "/root/b"]
