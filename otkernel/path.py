"""Normalisation and resolution of slash-separated paths."""

PATH_MAX = 256
_MAX_SEGMENTS = PATH_MAX // 2

__all__ = ["PATH_MAX", "PathError", "normalize", "resolve"]


class PathError(ValueError):
    """Raised when a path cannot be normalised or resolved."""


def _size(text: str) -> int:
    return len(text.encode("utf-8"))


def normalize(path: str) -> str:
    """Collapse repeated slashes, "." and ".." segments of ``path``.

    Absolute paths clamp ".." at the root; relative paths keep leading "..".
    An empty relative result becomes ".".
    """
    if not path:
        raise PathError("empty path")

    absolute = path.startswith("/")
    segments: list[str] = []
    pool_used = 0

    for segment in path.split("/"):
        if not segment or segment == ".":
            continue
        if segment == "..":
            if segments and segments[-1] != "..":
                segments.pop()
                continue
            if absolute:
                continue

        seg_size = _size(segment)
        if (
            len(segments) >= _MAX_SEGMENTS
            or seg_size >= PATH_MAX
            or pool_used + seg_size + 1 > PATH_MAX
        ):
            raise PathError(f"path too long: {path!r}")
        segments.append(segment)
        pool_used += seg_size + 1

    joined = "/".join(segments)
    if absolute:
        result = "/" + joined
    else:
        result = joined or "."

    if _size(result) + 1 > PATH_MAX:
        raise PathError(f"normalized path too long: {path!r}")
    return result


def resolve(cwd: str, path: str) -> str:
    """Resolve ``path`` against the absolute directory ``cwd``."""
    base = normalize(cwd)
    if not base.startswith("/"):
        raise PathError(f"working directory is not absolute: {cwd!r}")

    if path.startswith("/"):
        return normalize(path)
    if not path:
        return normalize(base)

    if _size(base) + _size(path) + 2 > PATH_MAX:
        raise PathError(f"joined path too long: {base!r} + {path!r}")

    joined = "/" + path if base == "/" else f"{base}/{path}"
    return normalize(joined)