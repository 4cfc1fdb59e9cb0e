"""Device file system: exposes devices such as ``tty0`` as files."""

from __future__ import annotations

import errno
import os
from dataclasses import dataclass
from typing import Any

from tinyos.device import DeviceError, DeviceType
from tinyos.file import FileType, OpenFile
from tinyos.klib import strncmp
from tinyos.vfs import path_to_num

TTY_NR = 8
TTY_IBUF_SIZE = 512
TTY_OBUF_SIZE = 512
TTY_CMD_ECHO = 0x1
TTY_CMD_IN_COUNT = 0x2

TTY_INLCR = 1 << 0
TTY_IECHO = 1 << 2
TTY_OCRLF = 1 << 0


@dataclass(frozen=True)
class _DevfsType:
    name: str
    dev_type: DeviceType
    file_type: FileType


_DEVFS_TYPES = (_DevfsType("tty", DeviceType.TTY, FileType.TTY),)


class DevFileSystem:
    """Files that stand for devices held in a device table."""

    def __init__(self, devices: Any) -> None:
        self.devices = devices

    def open(self, path: str, file: OpenFile) -> None:
        """Open the device named by ``path`` (a type name followed by a minor number)."""
        for kind in _DEVFS_TYPES:
            name_len = len(kind.name)
            if strncmp(path, kind.name, name_len) != 0:
                continue
            minor = path_to_num(path[name_len:]) if len(path) > name_len else 0
            try:
                dev_id = self.devices.open(kind.dev_type, minor)
            except DeviceError as exc:
                raise OSError(errno.ENODEV, "cannot open device", path) from exc
            file.dev_id = dev_id
            file.fs = self
            file.pos = 0
            file.size = 0
            file.type = kind.file_type
            return
        raise FileNotFoundError(errno.ENOENT, "no such device", path)

    def read(self, file: OpenFile, size: int):
        return self.devices.read(file.dev_id, file.pos, size)

    def write(self, file: OpenFile, data) -> int:
        return self.devices.write(file.dev_id, file.pos, data)

    def close(self, file: OpenFile) -> None:
        self.devices.close(file.dev_id)

    def seek(self, file: OpenFile, offset: int, whence: int = os.SEEK_SET) -> int:
        """Devices cannot be positioned; always raises OSError."""
        raise OSError(errno.ESPIPE, "devices do not support seeking", file.file_name)

    def stat(self, file: OpenFile) -> os.stat_result:
        """Device status is not available; always raises OSError."""
        raise OSError(errno.ENOTSUP, "stat is unsupported on devices", file.file_name)

    def ioctl(self, file: OpenFile, cmd: int, arg0: int = 0, arg1: int = 0):
        return self.devices.control(file.dev_id, cmd, arg0, arg1)