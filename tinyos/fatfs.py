"""File operations on a FAT16 volume that keeps all its files in the root directory."""

from __future__ import annotations

import errno
import os
from dataclasses import dataclass
from typing import Any, Iterator

from tinyos.device import DeviceError
from tinyos.fat16 import (
    FAT_CLUSTER_INVALID,
    DIRITEM_NAME_FREE,
    DirItem,
    Fat16Error,
    Fat16Volume,
    cluster_is_valid,
)
from tinyos.file import FileType, OpenFile

_LISTED_TYPES = (FileType.NORMAL, FileType.DIR)


@dataclass(frozen=True)
class DirEntry:
    """A file or directory found in the root directory."""

    index: int
    name: str
    type: FileType
    size: int


class FatFileSystem:
    """Open, read, write, seek, list and delete files of a mounted FAT16 volume."""

    def __init__(self, device: Any) -> None:
        self.volume = Fat16Volume(device)
        self.device = device
        self.lock = self.volume.lock

    @property
    def _cluster_size(self) -> int:
        return self.volume.cluster_byte_size

    def _cluster_sector(self, cluster: int) -> int:
        return self.volume.data_start + (cluster - 2) * self.volume.sec_per_cluster

    def _chain(self, start: int) -> Iterator[int]:
        seen: set[int] = set()
        cluster = start
        while cluster_is_valid(cluster):
            if cluster in seen:
                raise Fat16Error(f"cluster chain starting at {start} loops")
            seen.add(cluster)
            yield cluster
            cluster = self.volume.cluster_get_next(cluster)

    def _ensure_capacity(self, file: OpenFile, end: int) -> list[int]:
        """Grow the file's cluster chain so that it holds ``end`` bytes."""
        chain = list(self._chain(file.sblk))
        have = len(chain) * self._cluster_size
        if end <= have:
            return chain
        needed = -(-(end - have) // self._cluster_size)
        start = self.volume.alloc_free(needed)
        if chain:
            self.volume.cluster_set_next(chain[-1], start)
        else:
            file.sblk = start
        return chain + list(self._chain(start))

    def _advance(self, file: OpenFile, count: int) -> None:
        if file.pos % self._cluster_size + count >= self._cluster_size:
            file.cblk = self.volume.cluster_get_next(file.cblk)
        file.pos += count

    @staticmethod
    def _load(file: OpenFile, item: DirItem, index: int) -> None:
        file.type = item.file_type()
        file.size = item.file_size
        file.pos = 0
        file.sblk = item.first_cluster
        file.cblk = file.sblk
        file.p_index = index

    def open(self, path: str, file: OpenFile) -> None:
        """Fill ``file`` for the root directory entry ``path``.

        ``file.mode`` decides whether a missing file is created (O_CREAT) and
        whether an existing one is emptied (O_TRUNC).
        """
        with self.lock:
            volume = self.volume
            found: DirItem | None = None
            slot = -1
            for index in range(volume.root_ent_cnt):
                item = volume.read_dir_entry(index)
                if item.is_end:
                    slot = index
                    break
                if item.is_free:
                    slot = index
                    continue
                if item.name_matches(path):
                    found, slot = item, index
                    break

            if found is not None:
                self._load(file, found, slot)
                if file.mode & os.O_TRUNC:
                    volume.free_chain(file.sblk)
                    file.sblk = file.cblk = FAT_CLUSTER_INVALID
                    file.size = 0
                return

            if not file.mode & os.O_CREAT:
                raise FileNotFoundError(errno.ENOENT, "no such file", path)
            if slot < 0:
                raise OSError(errno.ENOSPC, "root directory is full", path)
            item = DirItem.create(path)
            volume.write_dir_entry(item, slot)
            self._load(file, item, slot)

    def read(self, file: OpenFile, size: int) -> bytes:
        """Read up to ``size`` bytes from the current position."""
        with self.lock:
            remaining = min(size, file.size - file.pos)
            chunks: list[bytes] = []
            while remaining > 0 and cluster_is_valid(file.cblk):
                offset = file.pos % self._cluster_size
                count = min(remaining, self._cluster_size - offset)
                try:
                    cluster = self.device.read(
                        self._cluster_sector(file.cblk), self.volume.sec_per_cluster
                    )
                except DeviceError:
                    break
                chunks.append(bytes(cluster[offset:offset + count]))
                remaining -= count
                self._advance(file, count)
            return b"".join(chunks)

    def write(self, file: OpenFile, data: bytes) -> int:
        """Write ``data`` at the current position, growing the file as needed.

        Returns the number of bytes written.
        """
        if not data:
            return 0
        with self.lock:
            chain = self._ensure_capacity(file, file.pos + len(data))
            position = file.pos // self._cluster_size
            file.cblk = chain[position] if position < len(chain) else FAT_CLUSTER_INVALID

            view = memoryview(bytes(data))
            written = 0
            while written < len(view) and cluster_is_valid(file.cblk):
                offset = file.pos % self._cluster_size
                count = min(len(view) - written, self._cluster_size - offset)
                chunk = view[written:written + count]
                sector = self._cluster_sector(file.cblk)
                try:
                    if offset == 0 and count == self._cluster_size:
                        self.device.write(sector, bytes(chunk))
                    else:
                        cluster = bytearray(
                            self.device.read(sector, self.volume.sec_per_cluster)
                        )
                        cluster[offset:offset + count] = chunk
                        self.device.write(sector, bytes(cluster))
                except DeviceError:
                    break
                written += count
                file.size = max(file.size, file.pos + count)
                self._advance(file, count)
            return written

    def close(self, file: OpenFile) -> None:
        """Store the file's size and first cluster unless it was opened read-only."""
        if file.mode == os.O_RDONLY:
            return
        with self.lock:
            item = self.volume.read_dir_entry(file.p_index)
            self.volume.write_dir_entry(
                item.with_cluster(file.sblk, file.size), file.p_index
            )

    def seek(self, file: OpenFile, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move to ``offset`` bytes from the start of the file; returns the new position."""
        if whence != os.SEEK_SET:
            raise OSError(errno.EINVAL, "only seeking from the start is supported")
        if offset < 0:
            raise OSError(errno.EINVAL, "negative seek offset")
        with self.lock:
            cluster = file.sblk
            position = 0
            remaining = offset
            while remaining > 0:
                in_cluster = position % self._cluster_size
                if in_cluster + remaining < self._cluster_size:
                    position += remaining
                    break
                step = self._cluster_size - in_cluster
                position += step
                remaining -= step
                cluster = self.volume.cluster_get_next(cluster)
                if not cluster_is_valid(cluster) and remaining > 0:
                    raise OSError(errno.EINVAL, f"offset {offset} beyond the file's clusters")
            file.pos = position
            file.cblk = cluster
            return position

    def stat(self, file: OpenFile) -> os.stat_result:
        """File status is not kept by this file system; always raises OSError."""
        raise OSError(errno.ENOTSUP, "stat is unsupported on FAT16 volumes", file.file_name)

    def iterdir(self) -> Iterator[DirEntry]:
        """Yield the ordinary files and directories of the root directory."""
        with self.lock:
            entries: list[DirEntry] = []
            for index in range(self.volume.root_ent_cnt):
                item = self.volume.read_dir_entry(index)
                if item.is_end:
                    break
                if item.is_free:
                    continue
                kind = item.file_type()
                if kind in _LISTED_TYPES:
                    entries.append(DirEntry(index, item.display_name(), kind, item.file_size))
        yield from entries

    def unlink(self, path: str) -> None:
        """Delete ``path`` and release its clusters."""
        with self.lock:
            volume = self.volume
            for index in range(volume.root_ent_cnt):
                item = volume.read_dir_entry(index)
                if item.is_end:
                    break
                if item.is_free:
                    continue
                if item.name_matches(path):
                    volume.free_chain(item.first_cluster)
                    blank = DirItem(name=bytes([DIRITEM_NAME_FREE]) + bytes(10))
                    volume.write_dir_entry(blank, index)
                    return
        raise FileNotFoundError(errno.ENOENT, "no such file", path)