"""Mount table and per-process file descriptors over the mounted file systems."""

from __future__ import annotations

import errno
import os
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from tinyos.file import FILE_NAME_SIZE, FileTable, FileType, OpenFile
from tinyos.klib import strncmp

FS_TABLE_SIZE = 10
FS_MOUNTP_SIZE = 512
TASK_OFILE_NR = 128


def path_to_num(path: str) -> int:
    """Convert the leading decimal digits of ``path`` (up to a '/') to a number."""
    number = 0
    for ch in path:
        if ch == "/":
            break
        number = number * 10 + ord(ch) - ord("0")
    return number


def path_begin_with(path: str, prefix: str) -> bool:
    """Return True when ``path`` starts with ``prefix``."""
    return path.startswith(prefix)


def path_next_child(path: str) -> str | None:
    """Return the part of ``path`` after its first component, or None if nothing follows."""
    position = 0
    length = len(path)
    while position < length:
        ch = path[position]
        position += 1
        if ch != "/":
            break
    while position < length:
        ch = path[position]
        position += 1
        if ch == "/":
            break
    return path[position:] if position < length else None


class FileSystemType(IntEnum):
    FAT16 = 0
    DEVFS = 1


@dataclass
class _Mount:
    mount_point: str
    type: FileSystemType
    fs: Any


class VirtualFileSystem:
    """Routes file calls to the file system mounted for each path."""

    def __init__(self) -> None:
        self._mounts: list[_Mount] = []
        self.root_fs: Any = None
        self.file_table = FileTable()
        self._fds: list[OpenFile | None] = [None] * TASK_OFILE_NR

    @property
    def mount_points(self) -> list[str]:
        return [entry.mount_point for entry in self._mounts]

    def mount(self, fs_type: FileSystemType, mount_point: str, fs: Any) -> Any:
        """Attach ``fs`` at ``mount_point``; the first FAT16 mount becomes the root."""
        fs_type = FileSystemType(fs_type)
        for entry in self._mounts:
            if strncmp(entry.mount_point, mount_point, FS_MOUNTP_SIZE) == 0:
                raise OSError(errno.EBUSY, "file system already mounted", mount_point)
        if len(self._mounts) >= FS_TABLE_SIZE:
            raise OSError(errno.ENOSPC, "no free file system slot", mount_point)
        self._mounts.append(_Mount(mount_point[:FS_MOUNTP_SIZE], fs_type, fs))
        if fs_type == FileSystemType.FAT16 and self.root_fs is None:
            self.root_fs = fs
        return fs

    def _alloc_fd(self, file: OpenFile) -> int:
        for fd, slot in enumerate(self._fds):
            if slot is None:
                self._fds[fd] = file
                return fd
        raise OSError(errno.EMFILE, "too many open files")

    def _file(self, fd: int) -> OpenFile:
        if 0 <= fd < TASK_OFILE_NR:
            file = self._fds[fd]
            if file is not None:
                return file
        raise OSError(errno.EBADF, f"file descriptor {fd} is not open")

    def _root(self) -> Any:
        if self.root_fs is None:
            raise OSError(errno.ENODEV, "no root file system mounted")
        return self.root_fs

    def open(self, name: str, flags: int = os.O_RDONLY) -> int:
        """Open ``name`` and return a new file descriptor."""
        file = self.file_table.alloc()
        try:
            fd = self._alloc_fd(file)
        except OSError:
            self.file_table.free(file)
            raise
        try:
            fs = None
            for entry in self._mounts:
                if path_begin_with(name, entry.mount_point):
                    fs = entry.fs
                    break
            if fs is not None:
                child = path_next_child(name)
                if child is None:
                    raise FileNotFoundError(errno.ENOENT, "no file named", name)
                name = child
            else:
                fs = self._root()
            file.mode = flags
            file.fs = fs
            file.file_name = name[:FILE_NAME_SIZE - 1]
            fs.open(name, file)
        except BaseException:
            self._fds[fd] = None
            self.file_table.free(file)
            raise
        return fd

    def read(self, fd: int, size: int):
        """Read up to ``size`` bytes from ``fd``."""
        file = self._file(fd)
        if size <= 0:
            return b""
        if file.mode == os.O_WRONLY:
            raise OSError(errno.EBADF, "file is write only", file.file_name)
        return file.fs.read(file, size)

    def write(self, fd: int, data) -> int:
        """Write ``data`` to ``fd`` and return the number of bytes written."""
        file = self._file(fd)
        if not data:
            return 0
        if file.mode == os.O_RDONLY:
            raise OSError(errno.EBADF, "file is read only", file.file_name)
        return file.fs.write(file, data)

    def lseek(self, fd: int, offset: int, whence: int = os.SEEK_SET) -> int:
        file = self._file(fd)
        return file.fs.seek(file, offset, whence)

    def close(self, fd: int) -> None:
        """Release ``fd``; the file itself is closed when its last reference goes."""
        file = self._file(fd)
        if file.ref <= 0:
            raise OSError(errno.EBADF, f"file descriptor {fd} has no references")
        try:
            if file.ref == 1:
                file.fs.close(file)
        finally:
            self.file_table.free(file)
            self._fds[fd] = None

    def isatty(self, fd: int) -> bool:
        """Return True when ``fd`` refers to a terminal."""
        try:
            file = self._file(fd)
        except OSError:
            return False
        return file.type == FileType.TTY

    def fstat(self, fd: int):
        file = self._file(fd)
        return file.fs.stat(file)

    def dup(self, fd: int) -> int:
        """Return a new descriptor that refers to the same open file."""
        file = self._file(fd)
        new_fd = self._alloc_fd(file)
        self.file_table.inc_ref(file)
        return new_fd

    def ioctl(self, fd: int, cmd: int, arg0: int = 0, arg1: int = 0):
        """Send a control command to the device behind ``fd``; 0 for unknown descriptors."""
        try:
            file = self._file(fd)
        except OSError:
            return 0
        handler = getattr(file.fs, "ioctl", None)
        if handler is None:
            raise OSError(errno.ENOTTY, "file does not support control", file.file_name)
        return handler(file, cmd, arg0, arg1)

    def listdir(self, name: str = "") -> list:
        """Return the entries of the root file system's directory."""
        return list(self._root().iterdir())

    def unlink(self, path: str) -> None:
        self._root().unlink(path)