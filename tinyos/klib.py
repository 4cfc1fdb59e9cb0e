"""Small string and number helpers shared by the kernel code."""

from __future__ import annotations

_UINT32_MASK = 0xFFFFFFFF
_FORMATS = {2: "b", 8: "o", 10: "d", 16: "X"}


def up2(size: int, bound: int) -> int:
    """Round ``size`` up to a multiple of the power-of-two ``bound``."""
    return (size + bound - 1) & ~(bound - 1) & _UINT32_MASK


def down2(size: int, bound: int) -> int:
    """Round ``size`` down to a multiple of the power-of-two ``bound``."""
    return size & ~(bound - 1) & _UINT32_MASK


def get_file_name(name: str) -> str:
    """Return the part of a path after its last '/' or '\\'."""
    return name[max(name.rfind("/"), name.rfind("\\")) + 1:]


def strncmp(s1: str, s2: str, size: int) -> int:
    """Compare two names over at most ``size`` characters.

    Returns 0 when they agree. A string that ends before a difference is
    found counts as agreeing, so a prefix matches the longer string.
    """
    index = 0
    while (
        index < len(s1)
        and index < len(s2)
        and s1[index] == s2[index]
        and index < size
    ):
        index += 1
    c1 = s1[index] if index < len(s1) else ""
    c2 = s2[index] if index < len(s2) else ""
    return 0 if (not c1 or not c2 or c1 == c2) else 1


def itoa(num: int, base: int) -> str:
    """Format a 32-bit integer in base 2, 8, 10 or 16.

    Only base 10 shows negative numbers with a sign; other bases show the
    unsigned 32-bit value. Unsupported bases give an empty string.
    """
    spec = _FORMATS.get(base)
    if spec is None:
        return ""
    value = num & _UINT32_MASK
    if base == 10 and value >= 1 << 31:
        return "-" + str((1 << 32) - value)
    return format(value, spec)


def sprintf(fmt: str, *args) -> str:
    """Format ``fmt`` supporting %d, %x, %c and %s.

    Any other character after '%' is dropped without consuming an argument.
    """
    values = iter(args)

    def next_value():
        try:
            return next(values)
        except StopIteration:
            raise ValueError("not enough arguments for format string") from None

    parts: list[str] = []
    reading_format = False
    for ch in fmt:
        if not reading_format:
            if ch == "%":
                reading_format = True
            else:
                parts.append(ch)
            continue
        reading_format = False
        if ch == "d":
            parts.append(itoa(next_value(), 10))
        elif ch == "x":
            parts.append(itoa(next_value(), 16))
        elif ch == "c":
            value = next_value()
            parts.append(chr(value & 0xFF) if isinstance(value, int) else str(value)[:1])
        elif ch == "s":
            value = next_value()
            parts.append("" if value is None else str(value))
    return "".join(parts)