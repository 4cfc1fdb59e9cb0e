import os
import struct

import pytest

from tinyos.device import BlockDevice
from tinyos.fat16 import FAT_CLUSTER_FREE, Fat16Error
from tinyos.fatfs import FatFileSystem
from tinyos.file import FileType, OpenFile

_DBR = struct.Struct("<3s8sHBHBHHBHHHIIBBBI11s8s")
TOTAL_SECTORS = 64
SECTOR = 512


def make_image(fs_type=b"FAT16   ", num_fats=2):
    boot = bytearray(SECTOR)
    _DBR.pack_into(
        boot, 0, b"\xeb\x3c\x90", b"TESTOS  ", SECTOR, 1, 1, num_fats, 16,
        TOTAL_SECTORS, 0xF8, 1, 32, 2, 0, 0, 0x80, 0, 0x29, 0,
        b"NO NAME    ", fs_type,
    )
    boot[510:512] = b"\x55\xaa"
    fat = bytearray(SECTOR)
    fat[0:4] = b"\xf8\xff\xff\xff"
    rest = bytes(SECTOR * (TOTAL_SECTORS - 1 - num_fats))
    return bytes(boot) + bytes(fat) * num_fats + rest


@pytest.fixture
def device():
    return BlockDevice(make_image())


@pytest.fixture
def fs(device):
    return FatFileSystem(device)


def open_file(fs, name, flags):
    file = OpenFile(mode=flags)
    fs.open(name, file)
    return file


def create(fs, name, data):
    file = open_file(fs, name, os.O_RDWR | os.O_CREAT)
    fs.write(file, data)
    fs.close(file)


def read_all(fs, name):
    file = open_file(fs, name, os.O_RDONLY)
    return fs.read(file, 1 << 20)


def test_write_then_read_back(fs):
    create(fs, "a.txt", b"hello")
    assert read_all(fs, "a.txt") == b"hello"


def test_listing_shows_short_name_and_size(fs):
    create(fs, "a.txt", b"hello")
    entries = list(fs.iterdir())
    assert [(e.name, e.size, e.type) for e in entries] == [("A.TXT", 5, FileType.NORMAL)]


def test_open_missing_without_create(fs):
    with pytest.raises(FileNotFoundError):
        open_file(fs, "none.txt", os.O_RDONLY)


def test_multi_cluster_round_trip_and_seek(fs):
    data = bytes(range(256)) * 6
    create(fs, "big.bin", data)
    assert read_all(fs, "big.bin") == data
    file = open_file(fs, "big.bin", os.O_RDONLY)
    assert fs.seek(file, 600) == 600
    assert fs.read(file, 100) == data[600:700]


def test_appending_in_one_session(fs):
    file = open_file(fs, "log.txt", os.O_RDWR | os.O_CREAT)
    assert fs.write(file, b"abc") == 3
    assert fs.write(file, b"def") == 3
    fs.seek(file, 0)
    assert fs.read(file, 100) == b"abcdef"
    assert file.size == 6


def test_append_across_cluster_boundary(fs):
    first = b"x" * SECTOR
    file = open_file(fs, "edge.bin", os.O_RDWR | os.O_CREAT)
    fs.write(file, first)
    fs.write(file, b"tail")
    fs.close(file)
    assert read_all(fs, "edge.bin") == first + b"tail"


def test_overwrite_in_middle_keeps_size(fs):
    create(fs, "m.txt", b"0123456789")
    file = open_file(fs, "m.txt", os.O_RDWR)
    fs.seek(file, 3)
    fs.write(file, b"ab")
    fs.close(file)
    assert read_all(fs, "m.txt") == b"012ab56789"


def test_read_is_limited_to_file_size(fs):
    create(fs, "s.txt", b"short")
    file = open_file(fs, "s.txt", os.O_RDONLY)
    assert fs.read(file, 3) == b"sho"
    assert fs.read(file, 100) == b"rt"
    assert fs.read(file, 100) == b""


def test_truncate_frees_clusters(fs):
    create(fs, "t.txt", b"content")
    old = open_file(fs, "t.txt", os.O_RDONLY).sblk
    file = open_file(fs, "t.txt", os.O_RDWR | os.O_TRUNC)
    assert file.size == 0
    assert fs.volume.cluster_get_next(old) == FAT_CLUSTER_FREE
    fs.close(file)
    assert read_all(fs, "t.txt") == b""


def test_unlink_removes_only_that_file(fs):
    create(fs, "a.txt", b"one")
    create(fs, "b.txt", b"two")
    first = open_file(fs, "a.txt", os.O_RDONLY).sblk
    fs.unlink("a.txt")
    assert [e.name for e in fs.iterdir()] == ["B.TXT"]
    assert fs.volume.cluster_get_next(first) == FAT_CLUSTER_FREE
    assert read_all(fs, "b.txt") == b"two"


def test_unlink_missing_raises(fs):
    with pytest.raises(FileNotFoundError):
        fs.unlink("ghost.txt")


def test_seek_rejects_other_whence(fs):
    create(fs, "a.txt", b"data")
    file = open_file(fs, "a.txt", os.O_RDONLY)
    with pytest.raises(OSError):
        fs.seek(file, 0, os.SEEK_CUR)


def test_seek_beyond_chain_raises(fs):
    create(fs, "a.txt", b"data")
    file = open_file(fs, "a.txt", os.O_RDONLY)
    with pytest.raises(OSError):
        fs.seek(file, 4 * SECTOR)


def test_stat_is_unsupported(fs):
    create(fs, "a.txt", b"data")
    file = open_file(fs, "a.txt", os.O_RDONLY)
    with pytest.raises(OSError):
        fs.stat(file)


def test_close_read_only_does_not_update_directory(fs):
    create(fs, "a.txt", b"abc")
    file = open_file(fs, "a.txt", os.O_RDONLY)
    fs.seek(file, 3)
    fs.write(file, b"def")
    fs.close(file)
    assert read_all(fs, "a.txt") == b"abc"


def test_changes_persist_on_device(device, fs):
    create(fs, "keep.txt", b"persisted")
    again = FatFileSystem(BlockDevice(device.data))
    assert read_all(again, "keep.txt") == b"persisted"


def test_mount_rejects_wrong_fs_type():
    with pytest.raises(Fat16Error):
        FatFileSystem(BlockDevice(make_image(fs_type=b"FAT12   ")))


def test_mount_rejects_single_fat():
    with pytest.raises(Fat16Error):
        FatFileSystem(BlockDevice(make_image(num_fats=1)))