import os

import pytest

from tinyos.devfs import TTY_CMD_ECHO, DevFileSystem
from tinyos.device import DeviceError, DeviceTable, DeviceType
from tinyos.file import FileType, OpenFile


class FakeTty:
    def __init__(self, minor):
        self.minor = minor
        self.written = []
        self.controls = []
        self.closed = False
        self.input = b"typed"

    def read(self, addr, size):
        return self.input[:size]

    def write(self, addr, data):
        self.written.append(bytes(data))
        return len(data)

    def control(self, cmd, arg0, arg1):
        self.controls.append((cmd, arg0, arg1))
        return 7

    def close(self):
        self.closed = True


@pytest.fixture
def setup():
    devices = DeviceTable()
    ttys = {}

    def factory(minor):
        ttys[minor] = FakeTty(minor)
        return ttys[minor]

    devices.register(DeviceType.TTY, factory)
    return DevFileSystem(devices), ttys


def test_open_tty_fills_file(setup):
    fs, ttys = setup
    file = OpenFile(ref=1)
    fs.open("tty0", file)
    assert file.type == FileType.TTY
    assert file.fs is fs
    assert file.pos == 0
    assert file.size == 0
    assert 0 in ttys


def test_open_uses_minor_number(setup):
    fs, ttys = setup
    fs.open("tty3", OpenFile(ref=1))
    assert list(ttys) == [3]
    assert ttys[3].minor == 3


def test_open_unknown_device_raises(setup):
    fs, _ = setup
    with pytest.raises(FileNotFoundError):
        fs.open("disk0", OpenFile(ref=1))


def test_open_failing_device_raises_oserror():
    devices = DeviceTable()

    def factory(minor):
        raise DeviceError("broken")

    devices.register(DeviceType.TTY, factory)
    with pytest.raises(OSError):
        DevFileSystem(devices).open("tty1", OpenFile(ref=1))


def test_read_and_write_forward_to_device(setup):
    fs, ttys = setup
    file = OpenFile(ref=1)
    fs.open("tty0", file)
    assert fs.write(file, b"hello") == 5
    assert ttys[0].written == [b"hello"]
    assert fs.read(file, 3) == b"typed"[:3]


def test_ioctl_forwards_command(setup):
    fs, ttys = setup
    file = OpenFile(ref=1)
    fs.open("tty0", file)
    assert fs.ioctl(file, TTY_CMD_ECHO, 0, 0) == 7
    assert ttys[0].controls == [(TTY_CMD_ECHO, 0, 0)]


def test_close_closes_device(setup):
    fs, ttys = setup
    file = OpenFile(ref=1)
    fs.open("tty2", file)
    fs.close(file)
    assert ttys[2].closed is True


def test_seek_and_stat_unsupported(setup):
    fs, _ = setup
    file = OpenFile(ref=1)
    fs.open("tty0", file)
    with pytest.raises(OSError):
        fs.seek(file, 0, os.SEEK_SET)
    with pytest.raises(OSError):
        fs.stat(file)