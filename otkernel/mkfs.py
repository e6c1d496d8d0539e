"""Command that writes an empty filesystem image."""

from __future__ import annotations

import sys
from typing import Optional, Sequence

from otkernel.otfs import FsError, format_image

__all__ = ["main"]

_PROG = "mkfs_otfs"


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Format the image named by the single argument; return the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 1:
        print(f"usage: {_PROG} <image-path>", file=sys.stderr)
        return 2

    image_path = args[0]
    try:
        format_image(image_path)
    except FsError:
        print(f"mkfs failed for {image_path}", file=sys.stderr)
        return 1

    print(f"mkfs: wrote deterministic image {image_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())