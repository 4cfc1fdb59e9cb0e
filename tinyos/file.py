"""System-wide table of open file descriptions."""

from __future__ import annotations

import errno
import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

FILE_TABLE_SIZE = 2048
FILE_NAME_SIZE = 32


class FileType(IntEnum):
    UNKNOWN = 0
    TTY = 1
    NORMAL = 2
    DIR = 3


@dataclass(eq=False)
class OpenFile:
    """State of one opened file, shared by every descriptor that refers to it."""

    file_name: str = ""
    type: FileType = FileType.UNKNOWN
    size: int = 0
    ref: int = 0
    dev_id: int = 0
    pos: int = 0
    sblk: int = 0
    cblk: int = 0
    p_index: int = 0
    mode: int = 0
    fs: Any = None


class FileTable:
    """A fixed number of open-file slots, reference counted."""

    def __init__(self, size: int = FILE_TABLE_SIZE) -> None:
        if size < 0:
            raise ValueError("table size must not be negative")
        self._slots = [OpenFile() for _ in range(size)]
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._slots)

    def alloc(self) -> OpenFile:
        """Return a fresh file with one reference; raise OSError when full."""
        with self._lock:
            for position, slot in enumerate(self._slots):
                if slot.ref == 0:
                    file = OpenFile(ref=1)
                    self._slots[position] = file
                    return file
        raise OSError(errno.ENFILE, "file table is full")

    def free(self, file: OpenFile) -> None:
        """Drop one reference to ``file``."""
        with self._lock:
            if file.ref:
                file.ref -= 1

    def inc_ref(self, file: OpenFile) -> None:
        """Add one reference to ``file``."""
        with self._lock:
            file.ref += 1