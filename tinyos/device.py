"""Device layer: sector-addressed block devices and the open-device table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any, Callable

SECTOR_SIZE = 512
DEV_NAME_SIZE = 32


class DeviceError(Exception):
    """Raised when a device cannot be opened or accessed."""


class DeviceType(IntEnum):
    UNKNOWN = 0
    TTY = 1
    DISK = 2


class BlockDevice:
    """A disk held in memory and addressed in whole sectors."""

    def __init__(self, data: bytes = b"", sector_size: int = SECTOR_SIZE) -> None:
        if sector_size <= 0:
            raise ValueError("sector size must be positive")
        self._data = bytearray(data)
        self.sector_size = sector_size
        self._path: Path | None = None
        self.closed = False

    @classmethod
    def open(cls, path, sector_size: int = SECTOR_SIZE) -> "BlockDevice":
        """Load a disk image; closing the device writes it back."""
        image_path = Path(path)
        try:
            data = image_path.read_bytes()
        except OSError as exc:
            raise DeviceError(f"cannot open disk image {image_path}") from exc
        device = cls(data, sector_size)
        device._path = image_path
        return device

    @property
    def data(self) -> bytes:
        return bytes(self._data)

    @property
    def sector_count(self) -> int:
        return len(self._data) // self.sector_size

    def _span(self, sector: int, count: int) -> slice:
        if self.closed:
            raise DeviceError("device is closed")
        if sector < 0 or count < 0 or sector + count > self.sector_count:
            raise DeviceError(f"sectors {sector}..{sector + count} out of range")
        return slice(sector * self.sector_size, (sector + count) * self.sector_size)

    def read(self, sector: int, count: int) -> bytes:
        """Return ``count`` sectors starting at ``sector``."""
        return bytes(self._data[self._span(sector, count)])

    def write(self, sector: int, data: bytes) -> int:
        """Write whole sectors at ``sector``; returns the number written."""
        if len(data) % self.sector_size:
            raise DeviceError("data is not a whole number of sectors")
        count = len(data) // self.sector_size
        self._data[self._span(sector, count)] = data
        return count

    def close(self) -> None:
        if self.closed:
            return
        if self._path is not None:
            self._path.write_bytes(self._data)
        self.closed = True

    def __enter__(self) -> "BlockDevice":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


@dataclass
class _OpenDevice:
    major: int
    minor: int
    device: Any
    open_count: int = 1


class DeviceTable:
    """Open devices, shared between users of the same major and minor number."""

    def __init__(self) -> None:
        self._factories: dict[int, Callable[[int], Any]] = {}
        self._slots: list[_OpenDevice | None] = []

    def register(self, major: int, factory: Callable[[int], Any]) -> None:
        """Make devices of type ``major`` available; ``factory(minor)`` opens one."""
        if major in self._factories:
            raise DeviceError(f"device type {major} already registered")
        self._factories[major] = factory

    def open(self, major: int, minor: int) -> int:
        """Open a device and return its id, reusing one already open."""
        for dev_id, slot in enumerate(self._slots):
            if slot is not None and slot.major == major and slot.minor == minor:
                slot.open_count += 1
                return dev_id
        factory = self._factories.get(major)
        if factory is None:
            raise DeviceError(f"unknown device type {major}")
        entry = _OpenDevice(major, minor, factory(minor))
        for dev_id, slot in enumerate(self._slots):
            if slot is None:
                self._slots[dev_id] = entry
                return dev_id
        self._slots.append(entry)
        return len(self._slots) - 1

    def _entry(self, dev_id: int) -> _OpenDevice:
        if 0 <= dev_id < len(self._slots):
            entry = self._slots[dev_id]
            if entry is not None:
                return entry
        raise DeviceError(f"device {dev_id} is not open")

    def read(self, dev_id: int, addr: int, size: int):
        return self._entry(dev_id).device.read(addr, size)

    def write(self, dev_id: int, addr: int, data) -> int:
        return self._entry(dev_id).device.write(addr, data)

    def control(self, dev_id: int, cmd: int, arg0: int = 0, arg1: int = 0):
        device = self._entry(dev_id).device
        handler = getattr(device, "control", None)
        if handler is None:
            raise DeviceError(f"device {dev_id} does not support control")
        return handler(cmd, arg0, arg1)

    def close(self, dev_id: int) -> None:
        """Drop one user of the device, closing it when none remain."""
        entry = self._entry(dev_id)
        entry.open_count -= 1
        if entry.open_count == 0:
            entry.device.close()
            self._slots[dev_id] = None