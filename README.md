# otkernel

Small, self-contained building blocks for a toy operating system, usable from
plain Python with no third-party dependencies:

- `otkernel.path`: `normalize` and `resolve` for `/`-separated paths.
- `otkernel.dirtree`: `DirTree`, an in-memory directory tree with a working
  directory.
- `otkernel.otfs`: the OTFS block image format. `format_image` writes an empty
  image, and `FileSystem` mounts one for file I/O through descriptors.
- `otkernel.mkfs`: the `mkfs-otfs` command, which formats an image file.
- `otkernel.keyboard`: `Keyboard`, a scancode decoder with shift tracking and
  a bounded event queue.

## Installing

```
pip install .
```

## Creating an image

```
mkfs-otfs disk.img
```

This writes a freshly formatted, deterministic image to `disk.img` and prints
`mkfs: wrote deterministic image disk.img`. If it is given anything other than
exactly one argument, it prints a usage line and exits with status 2. If the
image cannot be written, it exits with status 1. `python -m otkernel.mkfs
disk.img` does the same.

## The OTFS image

An image is 256 blocks of 512 bytes. Block 0 holds the superblock, which
starts with the magic `OTFSv1`. Blocks 1–4 hold a flat directory of up to 32
entries. Blocks 5–6 hold the block allocation table. The remaining 249 blocks
hold file data. File names are 1 to 31 bytes of UTF-8 and may contain neither
`/` nor `\`.

```python
from otkernel.otfs import FileSystem, OpenFlags, format_image

format_image("disk.img")
with FileSystem("disk.img") as fs:
    fd = fs.open("notes.txt", OpenFlags.READ | OpenFlags.WRITE | OpenFlags.CREATE)
    fs.write(fd, b"hello")        # returns 5
    fs.seek(fd, 0)
    assert fs.read(fd, 100) == b"hello"
    fs.close(fd)
```

- Constructing `FileSystem(path)` mounts the image. The superblock, the
  allocation table and the directory entries are checked first, and a bad
  image raises `FsStateError`.
- `open(name, flags)` returns a descriptor. At most 16 descriptors can be open
  at once. `flags` must include `READ` or `WRITE`, and `TRUNC` requires
  `WRITE`. `CREATE` creates a missing file; without it, a missing file raises
  `FsNotFoundError`.
- `read(fd, size)` returns at most `size` bytes, and `b""` at or past end of
  file.
- `write(fd, data)` writes at the descriptor's offset, allocating blocks as
  needed, and grows the file.
- `seek(fd, offset)` sets an absolute offset.
- `close(fd)` releases a descriptor.
- `unmount()` writes the metadata back and closes the image. Leaving the
  `with` block does the same.

Failures raise subclasses of `FsError`: `FsArgumentError`, `FsIOError`,
`FsStateError`, `FsNotFoundError` and `FsNoSpaceError`. Each carries a numeric
`code` (-1 to -5).

## Paths and directories

```python
from otkernel.path import normalize, resolve
from otkernel.dirtree import DirTree

normalize("//usr///local/../bin/.//")     # "/usr/bin"
resolve("/usr/local", "../../var//log/")  # "/var/log"
resolve("/", "../../..")                  # "/"

tree = DirTree()
tree.mkdir("/var")
tree.mkdir_p("/usr/local/bin")
tree.readdir("/")                         # ["usr", "var"]
tree.cd("/usr/local/bin")
tree.pwd()                                # "/usr/local/bin"
```

Paths are limited to 256 bytes, and absolute paths cannot climb above the
root. Failures raise `PathError`, which is a `ValueError`.

The tree has the following limits and behaviour:

- It holds at most 128 directories, with names of 1 to 31 bytes.
- `mkdir` fails if the parent is missing or the directory already exists.
- `mkdir_p` creates any missing parents and accepts directories that already
  exist.
- `readdir(path, limit)` returns child names in sorted order. With a `limit`,
  a larger directory raises `ReaddirOverflow`, whose `count` holds the full
  number of entries.
- `walk` returns a directory's node index.
- A failed `cd` leaves the working directory unchanged.
- Failures raise `DirError`.

## Keyboard decoding

```python
from otkernel.keyboard import Keyboard

kb = Keyboard(focus_provider=lambda: "main-window")
kb.handle_scancode(0x2A)                  # left shift down, nothing queued
kb.handle_scancode(0x1E)                  # queues text "A"
event, focus = kb.pop_event_with_focus()  # focus == "main-window"
```

Decoding works as follows:

- Printable keys become `TEXT` events, with shifted characters while either
  shift key is held.
- Enter, Backspace, Tab and Escape become `CONTROL` events carrying a
  `ControlCode`.
- Key releases, unknown keys and `0xE0`-prefixed extended keys produce no
  event.
- Each queued event is stored with whatever `focus_provider` returned at that
  moment.

The queue holds 64 events. Pushing to a full queue, or popping from an empty
one, raises `KeyboardQueueError`. A scancode outside 0–255 raises
`ValueError`.

## What it does not do

- The directory tree lives only in memory and is not stored in an OTFS image.
- OTFS itself has a single flat directory with no subdirectories, and files
  cannot be deleted.
- There is no command beyond `mkfs-otfs`: no shell and no tool to list or copy
  files in an image.

## Running the tests

```
pip install .[test]
pytest
```