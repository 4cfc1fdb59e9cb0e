import pytest

from tinyos.device import BlockDevice, DeviceError, DeviceTable, DeviceType


def test_block_device_write_then_read():
    device = BlockDevice(bytes(512 * 4))
    assert device.sector_count == 4
    assert device.write(1, b"x" * 512) == 1
    assert device.read(1, 1) == b"x" * 512
    assert device.read(0, 1) == bytes(512)


def test_block_device_multi_sector_write():
    device = BlockDevice(bytes(512 * 4))
    payload = b"a" * 512 + b"b" * 512
    assert device.write(2, payload) == 2
    assert device.read(2, 2) == payload


def test_block_device_out_of_range():
    device = BlockDevice(bytes(512 * 2))
    with pytest.raises(DeviceError):
        device.read(2, 1)
    with pytest.raises(DeviceError):
        device.write(1, bytes(1024))
    with pytest.raises(DeviceError):
        device.read(-1, 1)


def test_block_device_partial_sector_rejected():
    device = BlockDevice(bytes(512 * 2))
    with pytest.raises(DeviceError):
        device.write(0, b"short")


def test_block_device_file_round_trip(tmp_path):
    image = tmp_path / "disk.img"
    image.write_bytes(bytes(512 * 3))
    with BlockDevice.open(image) as device:
        device.write(2, b"z" * 512)
    assert image.read_bytes()[1024:] == b"z" * 512


def test_block_device_missing_file(tmp_path):
    with pytest.raises(DeviceError):
        BlockDevice.open(tmp_path / "missing.img")


def test_closed_device_rejects_access():
    device = BlockDevice(bytes(512))
    device.close()
    with pytest.raises(DeviceError):
        device.read(0, 1)


def test_table_shares_open_devices():
    table = DeviceTable()
    made = []

    def factory(minor):
        device = BlockDevice(bytes(512 * 2))
        made.append(device)
        return device

    table.register(DeviceType.DISK, factory)
    first = table.open(DeviceType.DISK, 0xB1)
    second = table.open(DeviceType.DISK, 0xB1)
    assert first == second
    assert len(made) == 1
    table.write(first, 1, b"q" * 512)
    assert table.read(second, 1, 1) == b"q" * 512
    table.close(first)
    assert table.read(second, 1, 1) == b"q" * 512
    table.close(second)
    assert made[0].closed
    with pytest.raises(DeviceError):
        table.read(first, 0, 1)


def test_table_different_minors_get_different_ids():
    table = DeviceTable()
    table.register(DeviceType.DISK, lambda minor: BlockDevice(bytes(512)))
    assert table.open(DeviceType.DISK, 1) != table.open(DeviceType.DISK, 2)


def test_table_reuses_freed_slot():
    table = DeviceTable()
    table.register(DeviceType.DISK, lambda minor: BlockDevice(bytes(512)))
    first = table.open(DeviceType.DISK, 1)
    table.open(DeviceType.DISK, 2)
    table.close(first)
    assert table.open(DeviceType.DISK, 3) == first


def test_table_unknown_major():
    with pytest.raises(DeviceError):
        DeviceTable().open(DeviceType.TTY, 0)


def test_table_duplicate_registration():
    table = DeviceTable()
    table.register(DeviceType.DISK, lambda minor: BlockDevice(bytes(512)))
    with pytest.raises(DeviceError):
        table.register(DeviceType.DISK, lambda minor: BlockDevice(bytes(512)))


class _Terminal:
    def __init__(self, minor):
        self.minor = minor
        self.commands = []

    def read(self, addr, size):
        return b""

    def write(self, addr, data):
        return len(data)

    def control(self, cmd, arg0, arg1):
        self.commands.append((cmd, arg0, arg1))
        return arg0 + arg1

    def close(self):
        pass


def test_table_control_reaches_device():
    table = DeviceTable()
    table.register(DeviceType.TTY, _Terminal)
    dev_id = table.open(DeviceType.TTY, 0)
    assert table.control(dev_id, 1, 2, 3) == 5
    assert table.write(dev_id, 0, b"abc") == 3


def test_table_control_unsupported():
    table = DeviceTable()
    table.register(DeviceType.DISK, lambda minor: BlockDevice(bytes(512)))
    dev_id = table.open(DeviceType.DISK, 0)
    with pytest.raises(DeviceError):
        table.control(dev_id, 1, 0, 0)