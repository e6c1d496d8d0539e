"""An in-memory directory tree with a current working directory."""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Optional

from otkernel.path import PathError, resolve

NAME_MAX = 31
MAX_NODES = 128

__all__ = ["NAME_MAX", "MAX_NODES", "DirError", "ReaddirOverflow", "DirTree"]


class DirError(Exception):
    """Raised when a directory operation fails."""


class ReaddirOverflow(DirError):
    """Raised when a directory holds more entries than the caller allowed."""

    def __init__(self, count: int, limit: int) -> None:
        super().__init__(f"directory has {count} entries, limit is {limit}")
        self.count = count
        self.limit = limit


@dataclass
class _Node:
    name: str
    parent: int
    children: list[str] = field(default_factory=list)
    child_index: dict[str, int] = field(default_factory=dict)


def _valid_name(name: str) -> bool:
    size = len(name.encode("utf-8"))
    return 0 < size <= NAME_MAX


class DirTree:
    """A tree of directories rooted at "/", with children kept in name order."""

    def __init__(self) -> None:
        self._nodes: list[_Node] = [_Node(name="", parent=-1)]
        self._cwd = 0

    def _path_of(self, index: int) -> str:
        names: list[str] = []
        while index > 0:
            node = self._nodes[index]
            names.append(node.name)
            index = node.parent
        return "/" + "/".join(reversed(names))

    def _absolute(self, path: str) -> str:
        try:
            return resolve(self._path_of(self._cwd), path)
        except PathError as exc:
            raise DirError(str(exc)) from exc

    def _lookup(self, absolute: str) -> int:
        current = 0
        if absolute == "/":
            return current
        for name in absolute[1:].split("/"):
            if not _valid_name(name):
                raise DirError(f"invalid name {name!r}")
            child = self._nodes[current].child_index.get(name)
            if child is None:
                raise DirError(f"no such directory: {absolute}")
            current = child
        return current

    def _add_child(self, parent: int, name: str) -> int:
        if len(self._nodes) >= MAX_NODES:
            raise DirError("directory tree is full")
        index = len(self._nodes)
        self._nodes.append(_Node(name=name, parent=parent))
        node = self._nodes[parent]
        bisect.insort(node.children, name)
        node.child_index[name] = index
        return index

    def _mkdir(self, path: str, create_parents: bool) -> None:
        absolute = self._absolute(path)
        if absolute == "/":
            raise DirError("cannot create root")

        names = absolute[1:].split("/")
        current = 0
        created_any = False
        for position, name in enumerate(names):
            last = position == len(names) - 1
            if not _valid_name(name):
                raise DirError(f"invalid name {name!r}")
            child = self._nodes[current].child_index.get(name)
            if child is not None:
                if last and not create_parents:
                    raise DirError(f"already exists: {absolute}")
                current = child
                continue
            if not create_parents and not last:
                raise DirError(f"missing parent for {absolute}")
            current = self._add_child(current, name)
            created_any = True

        if not create_parents and not created_any:
            raise DirError(f"already exists: {absolute}")

    def walk(self, path: str) -> int:
        """Return the node index of the directory at ``path``."""
        return self._lookup(self._absolute(path))

    def mkdir(self, path: str) -> None:
        """Create one directory whose parent must already exist."""
        self._mkdir(path, create_parents=False)

    def mkdir_p(self, path: str) -> None:
        """Create a directory and any missing parents; existing ones are fine."""
        self._mkdir(path, create_parents=True)

    def readdir(self, path: str, limit: Optional[int] = None) -> list[str]:
        """Return the names in a directory, sorted.

        With a ``limit``, more entries than that raise ReaddirOverflow,
        which carries the full count.
        """
        node = self._nodes[self.walk(path)]
        names = list(node.children)
        if limit is not None and len(names) > limit:
            raise ReaddirOverflow(len(names), limit)
        return names

    def cd(self, path: str) -> None:
        """Change the working directory; it is unchanged on failure."""
        self._cwd = self.walk(path)

    def pwd(self) -> str:
        """Return the absolute path of the working directory."""
        return self._path_of(self._cwd)