"""A small FAT-style filesystem kept in a single fixed-size image file."""

from __future__ import annotations

import enum
import os
import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional, Union

BLOCK_SIZE = 512
TOTAL_BLOCKS = 256
MAX_FILES = 32
MAX_OPEN_FILES = 16
MAX_NAME_LEN = 31

VERSION = 1
DIR_START_BLOCK = 1
DIR_BLOCK_COUNT = 4
FAT_START_BLOCK = DIR_START_BLOCK + DIR_BLOCK_COUNT
FAT_BLOCK_COUNT = 2
DATA_START_BLOCK = FAT_START_BLOCK + FAT_BLOCK_COUNT
DATA_BLOCK_COUNT = TOTAL_BLOCKS - DATA_START_BLOCK

MAGIC = b"OTFSv1\x00\x00"
FAT_FREE = 0xFFFFFFFF
FAT_END = 0xFFFFFFFE

_SUPERBLOCK = struct.Struct("<8s10I16x")
_DIR_ENTRY = struct.Struct("<B3x32sII20x")
_FAT_FORMAT = f"<{DATA_BLOCK_COUNT}I"
_FAT_BYTES = FAT_BLOCK_COUNT * BLOCK_SIZE
_NAME_FIELD = 32
_U32_MAX = 0xFFFFFFFF

_EXPECTED_SUPERBLOCK = (
    MAGIC,
    VERSION,
    BLOCK_SIZE,
    TOTAL_BLOCKS,
    DIR_START_BLOCK,
    DIR_BLOCK_COUNT,
    FAT_START_BLOCK,
    FAT_BLOCK_COUNT,
    DATA_START_BLOCK,
    DATA_BLOCK_COUNT,
    MAX_FILES,
)

PathLike = Union[str, "os.PathLike[str]"]

__all__ = [
    "BLOCK_SIZE",
    "TOTAL_BLOCKS",
    "MAX_FILES",
    "MAX_OPEN_FILES",
    "MAX_NAME_LEN",
    "DATA_START_BLOCK",
    "DATA_BLOCK_COUNT",
    "DIR_START_BLOCK",
    "FAT_START_BLOCK",
    "MAGIC",
    "OpenFlags",
    "FsError",
    "FsArgumentError",
    "FsIOError",
    "FsStateError",
    "FsNotFoundError",
    "FsNoSpaceError",
    "FileSystem",
    "format_image",
]


class OpenFlags(enum.IntFlag):
    """Flags accepted by FileSystem.open."""

    READ = 1 << 0
    WRITE = 1 << 1
    CREATE = 1 << 2
    TRUNC = 1 << 3


class FsError(Exception):
    """Base class of filesystem errors; ``code`` is the numeric status."""

    code = 0


class FsArgumentError(FsError):
    """An argument was malformed."""

    code = -1


class FsIOError(FsError):
    """Reading or writing the image file failed."""

    code = -2


class FsStateError(FsError):
    """The filesystem or a descriptor is in the wrong state, or metadata is corrupt."""

    code = -3


class FsNotFoundError(FsError):
    """No file has the requested name."""

    code = -4


class FsNoSpaceError(FsError):
    """No free block, directory entry or descriptor is left."""

    code = -5


@dataclass
class _Entry:
    used: int = 0
    raw_name: bytes = bytes(_NAME_FIELD)
    first_block: int = FAT_END
    size: int = 0

    @property
    def name(self) -> bytes:
        return self.raw_name.split(b"\x00", 1)[0]

    def pack(self) -> bytes:
        return _DIR_ENTRY.pack(self.used, self.raw_name, self.first_block, self.size)


@dataclass
class _OpenFile:
    dir_index: int
    flags: int
    offset: int = 0


def _name_bytes_valid(name: bytes) -> bool:
    return 0 < len(name) <= MAX_NAME_LEN and b"/" not in name and b"\\" not in name


def _encode_name(name: str) -> bytes:
    if not isinstance(name, str):
        raise FsArgumentError("file name must be a string")
    try:
        encoded = name.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise FsArgumentError(f"invalid file name {name!r}") from exc
    if b"\x00" in encoded or not _name_bytes_valid(encoded):
        raise FsArgumentError(f"invalid file name {name!r}")
    return encoded


def _valid_block(index: int) -> bool:
    return 0 <= index < DATA_BLOCK_COUNT


def _block_offset(block: int) -> int:
    return block * BLOCK_SIZE


def _read_at(file: BinaryIO, offset: int, size: int) -> bytes:
    try:
        file.seek(offset)
        data = file.read(size)
    except OSError as exc:
        raise FsIOError(str(exc)) from exc
    if data is None or len(data) != size:
        raise FsIOError(f"short read at offset {offset}")
    return data


def _write_at(file: BinaryIO, offset: int, data: bytes) -> None:
    try:
        file.seek(offset)
        written = file.write(data)
        file.flush()
    except OSError as exc:
        raise FsIOError(str(exc)) from exc
    if written != len(data):
        raise FsIOError(f"short write at offset {offset}")


def format_image(image_path: PathLike) -> None:
    """Create or overwrite ``image_path`` with an empty filesystem."""
    superblock = _SUPERBLOCK.pack(*_EXPECTED_SUPERBLOCK)
    directory = _Entry().pack() * MAX_FILES
    fat = b"\xff" * _FAT_BYTES
    try:
        with open(image_path, "wb+") as file:
            _write_at(file, 0, bytes(BLOCK_SIZE * TOTAL_BLOCKS))
            _write_at(file, 0, superblock)
            _write_at(file, _block_offset(DIR_START_BLOCK), directory)
            _write_at(file, _block_offset(FAT_START_BLOCK), fat)
    except OSError as exc:
        raise FsIOError(str(exc)) from exc


class FileSystem:
    """A mounted image; construct it to mount and call unmount to flush and close."""

    def __init__(self, image_path: PathLike) -> None:
        self._file: Optional[BinaryIO] = None
        self._entries: list[_Entry] = []
        self._fat: list[int] = []
        self._open: list[Optional[_OpenFile]] = [None] * MAX_OPEN_FILES
        self.block_size = 0
        self.data_start_block = 0
        self.data_blocks = 0

        try:
            file = open(image_path, "rb+")
        except OSError as exc:
            raise FsIOError(str(exc)) from exc
        try:
            self._load(file)
        except BaseException:
            file.close()
            self._entries = []
            self._fat = []
            raise

        self._file = file
        self.block_size = BLOCK_SIZE
        self.data_start_block = DATA_START_BLOCK
        self.data_blocks = DATA_BLOCK_COUNT

    @property
    def mounted(self) -> bool:
        """True until the filesystem is unmounted."""
        return self._file is not None

    def __enter__(self) -> FileSystem:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._file is not None:
            self.unmount()

    # -- loading and validation ------------------------------------------

    def _load(self, file: BinaryIO) -> None:
        superblock = _SUPERBLOCK.unpack(_read_at(file, 0, _SUPERBLOCK.size))
        if superblock != _EXPECTED_SUPERBLOCK:
            raise FsStateError("superblock does not describe a supported image")

        directory = _read_at(file, _block_offset(DIR_START_BLOCK), MAX_FILES * _DIR_ENTRY.size)
        self._entries = [_Entry(*fields) for fields in _DIR_ENTRY.iter_unpack(directory)]

        fat_bytes = _read_at(file, _block_offset(FAT_START_BLOCK), _FAT_BYTES)
        self._fat = list(struct.unpack_from(_FAT_FORMAT, fat_bytes))

        self._validate_metadata()

    def _validate_chain(self, entry: _Entry) -> None:
        required = (entry.size + BLOCK_SIZE - 1) // BLOCK_SIZE
        if required == 0:
            if entry.first_block != FAT_END:
                raise FsStateError("empty file owns blocks")
            return
        if entry.first_block == FAT_END or not _valid_block(entry.first_block):
            raise FsStateError("file has no valid first block")

        blocks = 0
        current = entry.first_block
        while current != FAT_END:
            if not _valid_block(current) or blocks >= DATA_BLOCK_COUNT:
                raise FsStateError("broken block chain")
            blocks += 1
            current = self._fat[current]

        if blocks < required:
            raise FsStateError("block chain shorter than file size")

    def _validate_metadata(self) -> None:
        for value in self._fat:
            if value not in (FAT_FREE, FAT_END) and not _valid_block(value):
                raise FsStateError("allocation table holds an invalid block index")

        used = [entry for entry in self._entries if entry.used]
        for entry in used:
            if b"\x00" not in entry.raw_name or not _name_bytes_valid(entry.name):
                raise FsStateError("directory entry has an invalid name")
            self._validate_chain(entry)

        names = [entry.name for entry in used]
        if len(set(names)) != len(names):
            raise FsStateError("duplicate file names in directory")

    # -- metadata and blocks ---------------------------------------------

    def _require_mounted(self) -> BinaryIO:
        if self._file is None:
            raise FsStateError("filesystem is not mounted")
        return self._file

    def _sync(self) -> None:
        file = self._require_mounted()
        directory = b"".join(entry.pack() for entry in self._entries)
        fat = struct.pack(_FAT_FORMAT, *self._fat).ljust(_FAT_BYTES, b"\xff")
        _write_at(file, _block_offset(DIR_START_BLOCK), directory)
        _write_at(file, _block_offset(FAT_START_BLOCK), fat)

    def _read_block(self, index: int) -> bytes:
        if not _valid_block(index):
            raise FsArgumentError(f"invalid data block {index}")
        return _read_at(self._require_mounted(), _block_offset(DATA_START_BLOCK + index), BLOCK_SIZE)

    def _write_block(self, index: int, data: bytes) -> None:
        if not _valid_block(index):
            raise FsArgumentError(f"invalid data block {index}")
        _write_at(self._require_mounted(), _block_offset(DATA_START_BLOCK + index), data)

    def _allocate_block(self) -> int:
        for index, value in enumerate(self._fat):
            if value == FAT_FREE:
                self._fat[index] = FAT_END
                self._write_block(index, bytes(BLOCK_SIZE))
                return index
        raise FsNoSpaceError("no free data blocks")

    def _release_chain(self, first_block: int) -> None:
        current = first_block
        seen = 0
        while current != FAT_END:
            if not _valid_block(current) or seen > DATA_BLOCK_COUNT:
                raise FsStateError("broken block chain")
            seen += 1
            following = self._fat[current]
            self._fat[current] = FAT_FREE
            current = following

    def _resolve_block(self, entry: _Entry, logical: int, allocate: bool) -> int:
        if entry.first_block == FAT_END:
            if not allocate:
                raise FsNotFoundError("file has no data blocks")
            entry.first_block = self._allocate_block()

        current = entry.first_block
        if not _valid_block(current):
            raise FsStateError("invalid first block")

        for _ in range(logical):
            following = self._fat[current]
            if following == FAT_END:
                if not allocate:
                    raise FsNotFoundError("offset beyond block chain")
                following = self._allocate_block()
                self._fat[current] = following
            if not _valid_block(following):
                raise FsStateError("broken block chain")
            current = following
        return current

    def _find_entry(self, name: bytes) -> Optional[int]:
        for index, entry in enumerate(self._entries):
            if entry.used and entry.name == name:
                return index
        return None

    def _new_entry(self, name: bytes) -> int:
        for index, entry in enumerate(self._entries):
            if not entry.used:
                self._entries[index] = _Entry(used=1, raw_name=name.ljust(_NAME_FIELD, b"\x00"))
                return index
        raise FsNoSpaceError("directory is full")

    def _handle(self, fd: int) -> Optional[_OpenFile]:
        if not isinstance(fd, int) or not 0 <= fd < MAX_OPEN_FILES:
            raise FsArgumentError(f"invalid descriptor {fd!r}")
        return self._open[fd]

    # -- public operations -----------------------------------------------

    def unmount(self) -> None:
        """Write metadata back and close the image."""
        file = self._require_mounted()
        self._sync()
        try:
            file.close()
        except OSError as exc:
            raise FsIOError(str(exc)) from exc
        self._file = None
        self._entries = []
        self._fat = []
        self._open = [None] * MAX_OPEN_FILES
        self.block_size = 0
        self.data_start_block = 0
        self.data_blocks = 0

    def open(self, name: str, flags: int) -> int:
        """Open ``name`` and return a descriptor positioned at offset 0."""
        self._require_mounted()
        encoded = _encode_name(name)
        flags = int(flags)
        if not flags & (OpenFlags.READ | OpenFlags.WRITE):
            raise FsArgumentError("open needs READ or WRITE")
        if flags & OpenFlags.TRUNC and not flags & OpenFlags.WRITE:
            raise FsArgumentError("TRUNC needs WRITE")

        index = self._find_entry(encoded)
        if index is None:
            if not flags & OpenFlags.CREATE:
                raise FsNotFoundError(f"no such file: {name}")
            index = self._new_entry(encoded)
            self._sync()

        if flags & OpenFlags.TRUNC:
            entry = self._entries[index]
            if entry.first_block != FAT_END:
                self._release_chain(entry.first_block)
            entry.first_block = FAT_END
            entry.size = 0
            self._sync()

        for fd, slot in enumerate(self._open):
            if slot is None:
                self._open[fd] = _OpenFile(dir_index=index, flags=flags)
                return fd
        raise FsNoSpaceError("too many open files")

    def close(self, fd: int) -> None:
        """Release a descriptor."""
        self._require_mounted()
        if self._handle(fd) is None:
            raise FsStateError(f"descriptor {fd} is not open")
        self._open[fd] = None

    def seek(self, fd: int, offset: int) -> None:
        """Move a descriptor to an absolute byte offset."""
        self._require_mounted()
        handle = self._handle(fd)
        if handle is None:
            raise FsStateError(f"descriptor {fd} is not open")
        if not isinstance(offset, int) or not 0 <= offset <= _U32_MAX:
            raise FsArgumentError(f"invalid offset {offset!r}")
        handle.offset = offset

    def read(self, fd: int, size: int) -> bytes:
        """Read up to ``size`` bytes; returns b"" at or past end of file."""
        self._require_mounted()
        handle = self._handle(fd)
        if size < 0:
            raise FsArgumentError("size must not be negative")
        if handle is None or not handle.flags & OpenFlags.READ:
            raise FsStateError(f"descriptor {fd} is not open for reading")

        entry = self._entries[handle.dir_index]
        if handle.offset >= entry.size or size == 0:
            return b""
        size = min(size, entry.size - handle.offset)

        out = bytearray()
        while len(out) < size:
            logical, intra = divmod(handle.offset, BLOCK_SIZE)
            chunk = min(BLOCK_SIZE - intra, size - len(out))
            try:
                block = self._resolve_block(entry, logical, allocate=False)
            except FsError as exc:
                raise FsStateError(str(exc)) from exc
            out += self._read_block(block)[intra:intra + chunk]
            handle.offset += chunk
        return bytes(out)

    def write(self, fd: int, data: bytes) -> int:
        """Write ``data`` at the descriptor's offset and return the byte count."""
        self._require_mounted()
        handle = self._handle(fd)
        if handle is None or not handle.flags & OpenFlags.WRITE:
            raise FsStateError(f"descriptor {fd} is not open for writing")

        payload = bytes(data)
        entry = self._entries[handle.dir_index]
        done = 0
        while done < len(payload):
            logical, intra = divmod(handle.offset, BLOCK_SIZE)
            chunk = min(BLOCK_SIZE - intra, len(payload) - done)
            try:
                block = self._resolve_block(entry, logical, allocate=True)
            except FsNoSpaceError:
                raise
            except FsError as exc:
                raise FsStateError(str(exc)) from exc

            contents = bytearray(self._read_block(block))
            contents[intra:intra + chunk] = payload[done:done + chunk]
            self._write_block(block, bytes(contents))

            done += chunk
            handle.offset += chunk

        if handle.offset > entry.size:
            entry.size = handle.offset
        self._sync()
        return done