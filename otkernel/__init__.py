"""Path handling, an in-memory directory tree, the OTFS image format with its mkfs command, and a keyboard scancode decoder."""

__version__ = "0.1.0"
__all__ = ["dirtree", "keyboard", "mkfs", "otfs", "path"]