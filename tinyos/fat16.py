"""On-disk structures of a FAT16 volume: boot record, FAT chains and root directory."""

from __future__ import annotations

import struct
import threading
from dataclasses import dataclass, replace
from typing import Any

from tinyos.device import DeviceError
from tinyos.file import FileType

SECTOR_SIZE = 512

FAT_CLUSTER_INVALID = 0xFFF8
FAT_CLUSTER_FREE = 0x0000

DIRITEM_NAME_FREE = 0xE5
DIRITEM_NAME_END = 0x00

DIRITEM_ATTR_READ_ONLY = 0x01
DIRITEM_ATTR_HIDDEN = 0x02
DIRITEM_ATTR_SYSTEM = 0x04
DIRITEM_ATTR_VOLUME_ID = 0x08
DIRITEM_ATTR_DIRECTORY = 0x10
DIRITEM_ATTR_ARCHIVE = 0x20
DIRITEM_ATTR_LONG_NAME = 0x0F

SFN_LEN = 11
CLUSTER_ENTRY_SIZE = 2

_DIRITEM = struct.Struct("<11sBBBHHHHHHHI")
_DBR = struct.Struct("<3s8sHBHBHHBHHHIIBBBI11s8s")
_CLUSTER = struct.Struct("<H")


class Fat16Error(Exception):
    """Raised when a FAT16 volume cannot be mounted or updated."""


def cluster_is_valid(cluster: int) -> bool:
    """Return True for a cluster number that can hold data."""
    return 0x2 <= cluster < 0xFFF8


def to_sfn(name: str) -> bytes:
    """Convert a file name such as ``a.txt`` to its 11-byte short form ``A       TXT``."""
    dest = bytearray(b" " * SFN_LEN)
    pos = 0
    for ch in name.encode("latin-1", errors="replace"):
        if pos >= SFN_LEN:
            break
        if ch == ord("."):
            pos = 8
            continue
        if ord("a") <= ch <= ord("z"):
            ch -= ord("a") - ord("A")
        dest[pos] = ch
        pos += 1
    return bytes(dest)


@dataclass(frozen=True)
class DirItem:
    """One 32-byte entry of the root directory."""

    name: bytes = b" " * SFN_LEN
    attr: int = 0
    nt_res: int = 0
    crt_time_tenth: int = 0
    crt_time: int = 0
    crt_date: int = 0
    last_acc_date: int = 0
    fst_clus_hi: int = 0
    wrt_time: int = 0
    wrt_date: int = 0
    fst_clus_lo: int = 0
    file_size: int = 0

    SIZE = _DIRITEM.size

    @classmethod
    def from_bytes(cls, data: bytes) -> "DirItem":
        """Parse an entry from the first 32 bytes of ``data``."""
        if len(data) < _DIRITEM.size:
            raise Fat16Error("directory entry is too short")
        return cls(*_DIRITEM.unpack_from(data, 0))

    def to_bytes(self) -> bytes:
        return _DIRITEM.pack(
            self.name,
            self.attr,
            self.nt_res,
            self.crt_time_tenth,
            self.crt_time,
            self.crt_date,
            self.last_acc_date,
            self.fst_clus_hi,
            self.wrt_time,
            self.wrt_date,
            self.fst_clus_lo,
            self.file_size,
        )

    @classmethod
    def create(cls, name: str, attr: int = 0) -> "DirItem":
        """Return a fresh, empty entry for ``name`` with no clusters assigned."""
        return cls(
            name=to_sfn(name),
            attr=attr,
            fst_clus_hi=(FAT_CLUSTER_INVALID >> 16) & 0xFFFF,
            fst_clus_lo=FAT_CLUSTER_INVALID & 0xFFFF,
        )

    @property
    def first_cluster(self) -> int:
        return (self.fst_clus_hi << 16) | self.fst_clus_lo

    def with_cluster(self, cluster: int, size: int) -> "DirItem":
        """Return a copy that starts at ``cluster`` and holds ``size`` bytes."""
        return replace(
            self,
            fst_clus_hi=(cluster >> 16) & 0xFFFF,
            fst_clus_lo=cluster & 0xFFFF,
            file_size=size,
        )

    @property
    def is_end(self) -> bool:
        return self.name[0] == DIRITEM_NAME_END

    @property
    def is_free(self) -> bool:
        return self.name[0] == DIRITEM_NAME_FREE

    def name_matches(self, path: str) -> bool:
        return to_sfn(path) == self.name[:SFN_LEN]

    def display_name(self) -> str:
        """Return the name in ``NAME.EXT`` form, without a dot when there is no extension."""
        chars: list[str] = []
        for position, byte in enumerate(self.name[:SFN_LEN]):
            if byte != ord(" "):
                chars.append(chr(byte))
            if position == 7:
                chars.append(".")
        text = "".join(chars)
        if text.endswith("."):
            text = text[:-1]
        return text

    def file_type(self) -> FileType:
        if self.attr & (DIRITEM_ATTR_VOLUME_ID | DIRITEM_ATTR_HIDDEN | DIRITEM_ATTR_SYSTEM):
            return FileType.UNKNOWN
        return FileType.DIR if self.attr & DIRITEM_ATTR_DIRECTORY else FileType.NORMAL


class Fat16Volume:
    """A mounted FAT16 volume: boot parameters, FAT access and root entries."""

    def __init__(self, device: Any) -> None:
        self.device = device
        self.lock = threading.RLock()
        try:
            boot = device.read(0, 1)
        except DeviceError as exc:
            raise Fat16Error("cannot read the boot record") from exc
        if len(boot) < _DBR.size:
            raise Fat16Error("boot record is too short")
        (
            _jmp,
            _oem,
            bytes_per_sec,
            sec_per_clus,
            rsvd_sec_cnt,
            num_fats,
            root_ent_cnt,
            _tot_sec16,
            _media,
            fat_sz16,
            _sec_per_trk,
            _num_heads,
            _hidd_sec,
            _tot_sec32,
            _drv_num,
            _reserved1,
            _boot_sig,
            _vol_id,
            _vol_lab,
            fs_type,
        ) = _DBR.unpack_from(boot, 0)

        self.bytes_per_sec = bytes_per_sec
        self.tbl_start = rsvd_sec_cnt
        self.tbl_sectors = fat_sz16
        self.tbl_cnt = num_fats
        self.root_ent_cnt = root_ent_cnt
        self.sec_per_cluster = sec_per_clus
        self.cluster_byte_size = sec_per_clus * bytes_per_sec
        self.root_start = self.tbl_start + self.tbl_sectors * self.tbl_cnt
        self.data_start = self.root_start + self.root_ent_cnt * 32 // SECTOR_SIZE

        if self.tbl_cnt != 2:
            raise Fat16Error(f"expected 2 FAT tables, found {self.tbl_cnt}")
        if fs_type[:5] != b"FAT16":
            raise Fat16Error("not a FAT16 file system")
        if bytes_per_sec == 0 or sec_per_clus == 0:
            raise Fat16Error("boot record has a zero sector or cluster size")

        self._buffer = bytearray(boot)
        self._curr_sector = 0

    def _read_sector(self, sector: int) -> None:
        if sector == self._curr_sector:
            return
        try:
            data = self.device.read(sector, 1)
        except DeviceError as exc:
            raise Fat16Error(f"cannot read sector {sector}") from exc
        self._buffer = bytearray(data)
        self._curr_sector = sector

    def _write_sector(self, sector: int) -> None:
        try:
            self.device.write(sector, bytes(self._buffer))
        except DeviceError as exc:
            raise Fat16Error(f"cannot write sector {sector}") from exc

    def _locate(self, cluster: int) -> tuple[int, int] | None:
        offset = cluster * CLUSTER_ENTRY_SIZE
        sector, off_sector = divmod(offset, self.bytes_per_sec)
        if sector >= self.tbl_sectors:
            return None
        return sector, off_sector

    def cluster_get_next(self, curr: int) -> int:
        """Return the cluster following ``curr``, or FAT_CLUSTER_INVALID."""
        if not cluster_is_valid(curr):
            return FAT_CLUSTER_INVALID
        where = self._locate(curr)
        if where is None:
            return FAT_CLUSTER_INVALID
        sector, off_sector = where
        self._read_sector(self.tbl_start + sector)
        return _CLUSTER.unpack_from(self._buffer, off_sector)[0]

    def cluster_set_next(self, curr: int, nxt: int) -> None:
        """Link ``curr`` to ``nxt`` in every FAT copy."""
        if not cluster_is_valid(curr):
            raise Fat16Error(f"invalid cluster {curr}")
        where = self._locate(curr)
        if where is None:
            raise Fat16Error(f"cluster too big: {curr}")
        sector, off_sector = where
        self._read_sector(self.tbl_start + sector)
        _CLUSTER.pack_into(self._buffer, off_sector, nxt & 0xFFFF)
        for table in range(self.tbl_cnt):
            self._write_sector(self.tbl_start + sector + table * self.tbl_sectors)

    def free_chain(self, start: int) -> None:
        """Mark every cluster of the chain beginning at ``start`` as free."""
        while cluster_is_valid(start):
            following = self.cluster_get_next(start)
            self.cluster_set_next(start, FAT_CLUSTER_FREE)
            start = following

    def alloc_free(self, count: int) -> int:
        """Allocate a chain of ``count`` free clusters and return its first cluster."""
        if count < 1:
            raise ValueError("count must be at least 1")
        total = self.tbl_sectors * self.bytes_per_sec // CLUSTER_ENTRY_SIZE
        start = pre = FAT_CLUSTER_INVALID
        remaining = count
        try:
            for curr in range(2, total):
                if not remaining:
                    break
                if self.cluster_get_next(curr) != FAT_CLUSTER_FREE:
                    continue
                if not cluster_is_valid(start):
                    start = curr
                if cluster_is_valid(pre):
                    self.cluster_set_next(pre, curr)
                pre = curr
                remaining -= 1
            if remaining == 0:
                self.cluster_set_next(pre, FAT_CLUSTER_INVALID)
                return start
        except Fat16Error:
            self.free_chain(start)
            raise
        self.free_chain(start)
        raise Fat16Error(f"not enough free clusters for {count}")

    def _entry_location(self, index: int) -> tuple[int, int]:
        if not 0 <= index < self.root_ent_cnt:
            raise IndexError(f"directory entry {index} out of range")
        offset = index * DirItem.SIZE
        return self.root_start + offset // self.bytes_per_sec, offset % self.bytes_per_sec

    def read_dir_entry(self, index: int) -> DirItem:
        """Return root directory entry ``index``."""
        sector, offset = self._entry_location(index)
        self._read_sector(sector)
        return DirItem.from_bytes(bytes(self._buffer[offset:offset + DirItem.SIZE]))

    def write_dir_entry(self, item: DirItem, index: int) -> None:
        """Store ``item`` as root directory entry ``index``."""
        sector, offset = self._entry_location(index)
        self._read_sector(sector)
        self._buffer[offset:offset + DirItem.SIZE] = item.to_bytes()
        self._write_sector(sector)