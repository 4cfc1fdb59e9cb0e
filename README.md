# tinyos

The building blocks of a small x86 teaching operating system as a Python
library, together with its user programs.

## Modules

- `tinyos.bitmap`: `Bitmap`, a bit map for allocating runs of pages or
  blocks (`get_bit`, `set_bit`, `is_set`, `alloc_nbits`), and `byte_count`.
- `tinyos.klib`: `up2` and `down2` for power-of-two alignment,
  `get_file_name`, a prefix-tolerant `strncmp`, `itoa` for bases 2, 8, 10
  and 16, and a `sprintf` that understands `%d`, `%x`, `%c` and `%s`.
- `tinyos.elf`: `ElfHeader` and `ProgramHeader` parse 32-bit little-endian
  ELF headers; `load_elf(image, memory)` copies each `PT_LOAD` segment to its
  physical address in a `bytearray`, zero-fills the rest of the segment and
  returns the entry point. `read_sectors` reads 512-byte sectors from a disk
  image file. Bad images raise `ElfError`.
- `tinyos.device`: `BlockDevice`, a sector-addressed disk held in memory
  (`BlockDevice.open(path)` loads an image file and writes it back on
  `close`), and `DeviceTable`, which opens devices by major and minor number
  through registered factories and shares them by reference count. Errors
  raise `DeviceError`.
- `tinyos.file`: `FileTable`, the reference-counted system table of
  `OpenFile` records, and the `FileType` enum.
- `tinyos.fat16`: `Fat16Volume` reads the boot record of a FAT16 volume and
  gives access to cluster chains (`cluster_get_next`, `cluster_set_next`,
  `free_chain`, `alloc_free`) and root directory entries
  (`read_dir_entry`, `write_dir_entry`). `DirItem` is one 32-byte directory
  entry; `to_sfn` turns `a.txt` into the 11-byte short name `A       TXT`.
- `tinyos.fatfs`: `FatFileSystem`, with `open` (honouring `os.O_CREAT` and
  `os.O_TRUNC`), `read`, `write`, `seek` (from the start only), `close`,
  `iterdir` (yielding `DirEntry` records) and `unlink`.
- `tinyos.devfs`: `DevFileSystem`, which opens paths such as `tty0` as the
  TTY device with that minor number from a `DeviceTable`, and forwards
  `read`, `write` and `ioctl` to it.
- `tinyos.vfs`: `VirtualFileSystem`, a mount table plus a descriptor table
  with `open`, `read`, `write`, `lseek`, `close`, `dup`, `isatty`, `fstat`,
  `ioctl`, `listdir` and `unlink`. Paths that begin with a mount point go to
  that file system; other names go to the first mounted FAT16 file system.
  Also `path_to_num`, `path_begin_with` and `path_next_child`.
- `tinyos.echo`, `tinyos.shell`, `tinyos.snake`: the user programs below.

## Install

```
pip install .
```

## Using a FAT16 image

```python
import os

from tinyos.device import BlockDevice
from tinyos.fatfs import FatFileSystem
from tinyos.vfs import FileSystemType, VirtualFileSystem

with BlockDevice.open("disk.img") as device:
    fs = FatFileSystem(device)
    for entry in fs.iterdir():
        print(entry.name, entry.type.name, entry.size)

    vfs = VirtualFileSystem()
    vfs.mount(FileSystemType.FAT16, "/home", fs)
    fd = vfs.open("notes.txt", os.O_RDWR | os.O_CREAT)
    vfs.write(fd, b"hello")
    vfs.close(fd)
```

Closing the descriptor stores the file's size and first cluster in its
directory entry; leaving the `with` block writes the image back to disk.

## Loading an ELF file

```python
from tinyos.elf import load_elf

memory = bytearray(4 * 1024 * 1024)
with open("kernel.elf", "rb") as f:
    entry = load_elf(f.read(), memory)
print(hex(entry))
```

## Commands

Echo a message a given number of times (`-h` prints usage; with no
arguments a line is read from standard input and printed back):

```
tinyos-echo -n 3 hello
```

Start the interactive shell. Its built-in commands are `help`, `clear`,
`echo`, `ls`, `less` (`-l` pages one line per `n`, `q` stops), `cp`, `rm`
and `quit`. Any other name, or that name with `.elf` added, that exists as a
file is started as an external program:

```
tinyos-shell
```

Play snake in the terminal. Use `a`, `w`, `s` and `d` to steer; the game
ends when the snake hits a wall or itself:

```
tinyos-snake
```

## What it does not do

- There is no kernel: no boot, scheduler, tasks, interrupts, paging or
  memory manager. `VirtualFileSystem` keeps a single descriptor table.
- There is no disk or terminal driver. Disks are `BlockDevice` buffers or
  image files; TTY devices for `DevFileSystem` must be supplied through
  `DeviceTable.register`.
- `FatFileSystem` works on the root directory only, cannot format a volume,
  and does not keep file status (`stat` raises `OSError`).
- The shell's `ls`, `less`, `cp` and `rm` act on the host's files, not on a
  FAT16 image; `ls` lists the directory `temp` when no directory is given.

## Tests

```
pip install .[test]
pytest
```