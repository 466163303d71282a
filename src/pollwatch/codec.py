"""
Binary wire format for persisted watch state.

Layout (big-endian, fields written back to back):

    VERSION          string
    DIR_COUNT        int32
      DIR_PATH         string
      CAPTURE_TIME     float64, epoch seconds
      FILE_COUNT       int32
        FILE_PATH        string
        EXISTS           bool, one byte
        LENGTH           int64
        LAST_MODIFIED    int64, epoch milliseconds

A string is a uint16 byte count followed by that many UTF-8 bytes.
"""

import struct
from typing import List

from .exceptions import PersistenceWriteError, SnapshotCorruptionError, SnapshotVersionError
from .models import DirectorySnapshot, FileRecord, WatchState

SERIALIZATION_VERSION = "1.0"

_U16 = struct.Struct(">H")
_I32 = struct.Struct(">i")
_I64 = struct.Struct(">q")
_F64 = struct.Struct(">d")
_BOOL = struct.Struct(">?")


def _pack_string(out: List[bytes], value: str) -> None:
    data = value.encode("utf-8")
    if len(data) > 0xFFFF:
        raise PersistenceWriteError(f"String too long to serialize ({len(data)} bytes)")
    out.append(_U16.pack(len(data)))
    out.append(data)


def encode_state(state: WatchState) -> bytes:
    """
    Serialize a watch state.

    Raises:
        PersistenceWriteError: If a value cannot be represented
    """
    out: List[bytes] = []
    _pack_string(out, SERIALIZATION_VERSION)
    try:
        out.append(_I32.pack(len(state)))
        for directory, snapshot in state.items():
            _pack_string(out, directory)
            out.append(_F64.pack(snapshot.captured_at))
            out.append(_I32.pack(len(snapshot.files)))
            for record in snapshot.files:
                _pack_string(out, record.path)
                out.append(_BOOL.pack(record.exists))
                out.append(_I64.pack(record.length))
                out.append(_I64.pack(record.last_modified))
    except struct.error as e:
        raise PersistenceWriteError(f"Failed to serialize snapshot state: {e}") from e
    return b"".join(out)


class _Reader:
    """Sequential reader that reports short or malformed input as corruption."""

    def __init__(self, data: bytes):
        self._data = data
        self._offset = 0

    def _take(self, size: int) -> bytes:
        end = self._offset + size
        if end > len(self._data):
            raise SnapshotCorruptionError(
                f"Unexpected end of snapshot data at offset {self._offset}"
            )
        chunk = self._data[self._offset:end]
        self._offset = end
        return chunk

    def _unpack(self, fmt: struct.Struct):
        return fmt.unpack(self._take(fmt.size))[0]

    def string(self) -> str:
        length = self._unpack(_U16)
        try:
            return self._take(length).decode("utf-8")
        except UnicodeDecodeError as e:
            raise SnapshotCorruptionError(f"Invalid string in snapshot data: {e}") from e

    def count(self) -> int:
        value = self._unpack(_I32)
        if value < 0:
            raise SnapshotCorruptionError(f"Negative count in snapshot data: {value}")
        return value

    def boolean(self) -> bool:
        raw = self._take(1)[0]
        if raw not in (0, 1):
            raise SnapshotCorruptionError(f"Invalid boolean in snapshot data: {raw}")
        return raw == 1

    def int64(self) -> int:
        return self._unpack(_I64)

    def float64(self) -> float:
        return self._unpack(_F64)


def decode_state(data: bytes) -> WatchState:
    """
    Deserialize a watch state.

    Raises:
        SnapshotVersionError: If the data was written by another format version
        SnapshotCorruptionError: If the data is truncated or malformed
    """
    reader = _Reader(data)
    version = reader.string()
    if version != SERIALIZATION_VERSION:
        raise SnapshotVersionError(
            f"Unsupported snapshot version {version!r}, expected {SERIALIZATION_VERSION!r}"
        )

    state: WatchState = {}
    for _ in range(reader.count()):
        directory = reader.string()
        captured_at = reader.float64()
        files = []
        for _ in range(reader.count()):
            files.append(FileRecord(
                path=reader.string(),
                exists=reader.boolean(),
                length=reader.int64(),
                last_modified=reader.int64(),
            ))
        state[directory] = DirectorySnapshot(
            directory=directory,
            captured_at=captured_at,
            files=frozenset(files),
        )
    return state
