"""Tests for codec module."""

import struct

import pytest

from src.pollwatch.codec import SERIALIZATION_VERSION, decode_state, encode_state
from src.pollwatch.exceptions import (
    PersistenceWriteError,
    SnapshotCorruptionError,
    SnapshotVersionError,
)
from src.pollwatch.models import DirectorySnapshot, FileRecord


def sample_state():
    return {
        "/data/a": DirectorySnapshot("/data/a", 1700000000.123456, frozenset({
            FileRecord("/data/a/one.txt", True, 12, 1700000000123),
            FileRecord("/data/a/sub/two.bin", True, 0, 1699999999000),
        })),
        "/data/b": DirectorySnapshot("/data/b", 1700000001.5, frozenset()),
    }


class TestEncode:
    """Tests for encode_state."""

    def test_starts_with_version(self):
        data = encode_state(sample_state())
        length = struct.unpack(">H", data[:2])[0]
        assert data[2:2 + length].decode("utf-8") == SERIALIZATION_VERSION

    def test_directory_count(self):
        data = encode_state(sample_state())
        offset = 2 + len(SERIALIZATION_VERSION)
        assert struct.unpack(">i", data[offset:offset + 4])[0] == 2

    def test_exact_layout_single_file(self):
        state = {"/d": DirectorySnapshot("/d", 2.0, frozenset({FileRecord("/d/f", True, 5, 7)}))}
        expected = b"".join([
            struct.pack(">H", 3), b"1.0",
            struct.pack(">i", 1),
            struct.pack(">H", 2), b"/d",
            struct.pack(">d", 2.0),
            struct.pack(">i", 1),
            struct.pack(">H", 4), b"/d/f",
            struct.pack(">?", True),
            struct.pack(">q", 5),
            struct.pack(">q", 7),
        ])
        assert encode_state(state) == expected

    def test_path_too_long(self):
        long_path = "/" + "x" * 70000
        state = {long_path: DirectorySnapshot(long_path, 0.0)}
        with pytest.raises(PersistenceWriteError):
            encode_state(state)


class TestDecode:
    """Tests for decode_state."""

    def test_round_trip(self):
        state = sample_state()
        assert decode_state(encode_state(state)) == state

    def test_round_trip_unicode_paths(self):
        state = {"/données": DirectorySnapshot("/données", 3.25, frozenset({
            FileRecord("/données/résumé.txt", False, 0, 0),
        }))}
        assert decode_state(encode_state(state)) == state

    def test_preserves_directory_order(self):
        state = sample_state()
        assert list(decode_state(encode_state(state))) == ["/data/a", "/data/b"]

    def test_version_mismatch(self):
        data = struct.pack(">H", 3) + b"9.9" + struct.pack(">i", 0)
        with pytest.raises(SnapshotVersionError):
            decode_state(data)

    def test_truncated(self):
        data = encode_state(sample_state())
        for cut in (1, 4, len(data) // 2, len(data) - 1):
            with pytest.raises(SnapshotCorruptionError):
                decode_state(data[:cut])

    def test_negative_count(self):
        data = struct.pack(">H", 3) + b"1.0" + struct.pack(">i", -1)
        with pytest.raises(SnapshotCorruptionError, match="Negative count"):
            decode_state(data)

    def test_invalid_utf8(self):
        data = struct.pack(">H", 3) + b"1.0" + struct.pack(">i", 1) + struct.pack(">H", 2) + b"\xff\xfe"
        with pytest.raises(SnapshotCorruptionError):
            decode_state(data)

    def test_invalid_boolean(self):
        state = {"/d": DirectorySnapshot("/d", 2.0, frozenset({FileRecord("/d/f", True, 5, 7)}))}
        data = bytearray(encode_state(state))
        bool_offset = len(data) - 16 - 1
        data[bool_offset] = 7
        with pytest.raises(SnapshotCorruptionError, match="Invalid boolean"):
            decode_state(bytes(data))
