"""Fixed-size bit map used for page and block allocation."""

from __future__ import annotations


def byte_count(bit_count: int) -> int:
    """Return the number of bytes needed to hold ``bit_count`` bits."""
    return (bit_count + 8 - 1) // 8


class Bitmap:
    """A sequence of bits stored eight to a byte, least significant bit first."""

    def __init__(self, count: int, init_bit: int = 0) -> None:
        if count < 0:
            raise ValueError("bit count must not be negative")
        self.bit_count = count
        fill = 0xFF if init_bit else 0x00
        self.bits = bytearray([fill]) * byte_count(count)

    def __len__(self) -> int:
        return self.bit_count

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.bit_count:
            raise IndexError(f"bit index {index} out of range")

    def get_bit(self, index: int) -> int:
        """Return the bit at ``index`` as 0 or 1."""
        self._check_index(index)
        return (self.bits[index // 8] >> (index % 8)) & 1

    def set_bit(self, index: int, count: int, bit: int) -> None:
        """Set ``count`` bits starting at ``index``; bits past the end are ignored."""
        if index < 0:
            raise IndexError(f"bit index {index} out of range")
        for position in range(index, min(index + count, self.bit_count)):
            mask = 1 << (position % 8)
            if bit:
                self.bits[position // 8] |= mask
            else:
                self.bits[position // 8] &= ~mask & 0xFF

    def is_set(self, index: int) -> bool:
        """Return True when the bit at ``index`` is 1."""
        return self.get_bit(index) == 1

    def alloc_nbits(self, bit: int, count: int) -> int | None:
        """Find ``count`` consecutive bits equal to ``bit`` and invert them.

        Returns the index of the first bit of the run, or None when no such
        run exists.
        """
        if count < 1:
            raise ValueError("count must be at least 1")
        wanted = 1 if bit else 0
        run_start = 0
        run_length = 0
        for position in range(self.bit_count):
            if self.get_bit(position) != wanted:
                run_length = 0
                continue
            if run_length == 0:
                run_start = position
            run_length += 1
            if run_length == count:
                self.set_bit(run_start, count, 1 - wanted)
                return run_start
        return None