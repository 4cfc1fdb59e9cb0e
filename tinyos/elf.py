"""Parsing and loading of 32-bit ELF executables into a memory image."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO

EI_NIDENT = 16
ELF_MAGIC = 0x7F
ET_EXEC = 2
ET_386 = 3
PT_LOAD = 1

SECTOR_SIZE = 512
SYS_KERNEL_LOAD_ADDR = 1024 * 1024
BOOT_RAM_REGION_MAX = 10

_HEADER = struct.Struct("<16sHHIIIIIHHHHHH")
_PROGRAM_HEADER = struct.Struct("<8I")


class ElfError(Exception):
    """Raised when an image is not a loadable ELF file."""


@dataclass(frozen=True)
class ElfHeader:
    ident: bytes
    type: int
    machine: int
    version: int
    entry: int
    phoff: int
    shoff: int
    flags: int
    ehsize: int
    phentsize: int
    phnum: int
    shentsize: int
    shnum: int
    shstrndx: int

    SIZE = _HEADER.size

    @classmethod
    def from_bytes(cls, data: bytes) -> "ElfHeader":
        """Parse the file header, checking the ELF magic."""
        if len(data) < _HEADER.size:
            raise ElfError("image too short for an ELF header")
        header = cls(*_HEADER.unpack_from(data, 0))
        if header.ident[:4] != bytes([ELF_MAGIC]) + b"ELF":
            raise ElfError("bad ELF magic")
        return header


@dataclass(frozen=True)
class ProgramHeader:
    type: int
    offset: int
    vaddr: int
    paddr: int
    filesz: int
    memsz: int
    flags: int
    align: int

    SIZE = _PROGRAM_HEADER.size

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> "ProgramHeader":
        """Parse a program header found at ``offset`` in ``data``."""
        if offset < 0 or offset + _PROGRAM_HEADER.size > len(data):
            raise ElfError("program header lies outside the image")
        return cls(*_PROGRAM_HEADER.unpack_from(data, offset))


def read_sectors(disk: BinaryIO, sector: int, count: int) -> bytes:
    """Read ``count`` sectors starting at ``sector`` from a disk image.

    Fewer bytes come back when the image ends first.
    """
    disk.seek(sector * SECTOR_SIZE)
    return disk.read(count * SECTOR_SIZE)


def load_elf(image: bytes, memory: bytearray) -> int:
    """Copy the loadable segments of ``image`` to their physical addresses.

    The part of each segment beyond its file data is zero filled. Returns the
    entry point.
    """
    header = ElfHeader.from_bytes(image)
    for number in range(header.phnum):
        phdr = ProgramHeader.from_bytes(image, header.phoff + number * ProgramHeader.SIZE)
        if phdr.type != PT_LOAD:
            continue
        if phdr.memsz < phdr.filesz:
            raise ElfError("segment memory size smaller than file size")
        content = image[phdr.offset:phdr.offset + phdr.filesz]
        if len(content) < phdr.filesz:
            raise ElfError("segment data lies outside the image")
        if phdr.paddr + phdr.memsz > len(memory):
            raise ElfError(f"segment at {phdr.paddr:#x} does not fit in memory")
        start = phdr.paddr
        memory[start:start + phdr.filesz] = content
        memory[start + phdr.filesz:start + phdr.memsz] = bytes(phdr.memsz - phdr.filesz)
    return header.entry