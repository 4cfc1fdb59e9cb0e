"""Bitmap allocator, ELF loader, FAT16 and device file systems, shell and snake game."""

__version__ = "0.1.0"