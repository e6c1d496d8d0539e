"""Translation of keyboard scancodes into queued text and control events."""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Optional, Tuple

QUEUE_CAPACITY = 64

_EXTENDED_PREFIX = 0xE0
_LEFT_SHIFT = 0x2A
_RIGHT_SHIFT = 0x36
_BREAK_BIT = 0x80

_LEFT_SHIFT_MASK = 0x01
_RIGHT_SHIFT_MASK = 0x02

__all__ = [
    "QUEUE_CAPACITY",
    "KeyboardEventType",
    "ControlCode",
    "KeyboardEvent",
    "KeyboardQueueError",
    "Keyboard",
]


class KeyboardEventType(enum.IntEnum):
    """Kind of a keyboard event."""

    TEXT = 0
    CONTROL = 1


class ControlCode(enum.IntEnum):
    """Non-printing keys reported as control events."""

    ENTER = 1
    BACKSPACE = 2
    TAB = 3
    ESCAPE = 4


_CONTROL_KEYS = {
    0x01: ControlCode.ESCAPE,
    0x0E: ControlCode.BACKSPACE,
    0x0F: ControlCode.TAB,
    0x1C: ControlCode.ENTER,
}

# keycode -> (unshifted, shifted)
_PRINTABLE_KEYS = {
    0x02: ("1", "!"),
    0x03: ("2", "@"),
    0x04: ("3", "#"),
    0x05: ("4", "$"),
    0x06: ("5", "%"),
    0x07: ("6", "^"),
    0x08: ("7", "&"),
    0x09: ("8", "*"),
    0x0A: ("9", "("),
    0x0B: ("0", ")"),
    0x0C: ("-", "_"),
    0x0D: ("=", "+"),
    0x10: ("q", "Q"),
    0x11: ("w", "W"),
    0x12: ("e", "E"),
    0x13: ("r", "R"),
    0x14: ("t", "T"),
    0x15: ("y", "Y"),
    0x16: ("u", "U"),
    0x17: ("i", "I"),
    0x18: ("o", "O"),
    0x19: ("p", "P"),
    0x1A: ("[", "{"),
    0x1B: ("]", "}"),
    0x1E: ("a", "A"),
    0x1F: ("s", "S"),
    0x20: ("d", "D"),
    0x21: ("f", "F"),
    0x22: ("g", "G"),
    0x23: ("h", "H"),
    0x24: ("j", "J"),
    0x25: ("k", "K"),
    0x26: ("l", "L"),
    0x27: (";", ":"),
    0x28: ("'", '"'),
    0x29: ("`", "~"),
    0x2B: ("\\", "|"),
    0x2C: ("z", "Z"),
    0x2D: ("x", "X"),
    0x2E: ("c", "C"),
    0x2F: ("v", "V"),
    0x30: ("b", "B"),
    0x31: ("n", "N"),
    0x32: ("m", "M"),
    0x33: (",", "<"),
    0x34: (".", ">"),
    0x35: ("/", "?"),
    0x39: (" ", " "),
}


@dataclass(frozen=True)
class KeyboardEvent:
    """A key press: either a printable character or a control code."""

    type: KeyboardEventType
    scancode: int
    pressed: bool = True
    text: str = ""
    control: Optional[ControlCode] = None


class KeyboardQueueError(Exception):
    """Raised when the event queue is full on push or empty on pop."""


class Keyboard:
    """Scancode decoder with shift tracking and a bounded event queue.

    ``focus_provider`` is called for every queued event; its result is
    stored alongside the event and returned by ``pop_event_with_focus``.
    """

    def __init__(self, focus_provider: Optional[Callable[[], Any]] = None) -> None:
        self._focus_provider = focus_provider
        self._queue: Deque[Tuple[KeyboardEvent, Any]] = deque()
        self._shift_mask = 0
        self._saw_extended_prefix = False

    def reset(self) -> None:
        """Drop queued events and forget modifier and prefix state."""
        self._queue.clear()
        self._shift_mask = 0
        self._saw_extended_prefix = False

    def _focus(self) -> Any:
        return self._focus_provider() if self._focus_provider is not None else None

    def _push(self, event: KeyboardEvent) -> KeyboardEvent:
        if len(self._queue) >= QUEUE_CAPACITY:
            raise KeyboardQueueError("keyboard event queue is full")
        self._queue.append((event, self._focus()))
        return event

    def handle_scancode(self, scancode: int) -> Optional[KeyboardEvent]:
        """Process one scancode byte; return the queued event, if any."""
        if not isinstance(scancode, int) or not 0 <= scancode <= 0xFF:
            raise ValueError(f"scancode must be a byte, got {scancode!r}")

        if scancode == _EXTENDED_PREFIX:
            self._saw_extended_prefix = True
            return None
        if self._saw_extended_prefix:
            self._saw_extended_prefix = False
            return None

        is_break = bool(scancode & _BREAK_BIT)
        keycode = scancode & ~_BREAK_BIT & 0xFF

        shift_bit = {_LEFT_SHIFT: _LEFT_SHIFT_MASK, _RIGHT_SHIFT: _RIGHT_SHIFT_MASK}.get(keycode)
        if shift_bit is not None:
            if is_break:
                self._shift_mask &= ~shift_bit
            else:
                self._shift_mask |= shift_bit
            return None

        if is_break:
            return None

        control = _CONTROL_KEYS.get(keycode)
        if control is not None:
            return self._push(
                KeyboardEvent(type=KeyboardEventType.CONTROL, scancode=keycode, control=control)
            )

        chars = _PRINTABLE_KEYS.get(keycode)
        if chars is None:
            return None
        text = chars[1] if self._shift_mask else chars[0]
        return self._push(KeyboardEvent(type=KeyboardEventType.TEXT, scancode=keycode, text=text))

    def pop_event_with_focus(self) -> Tuple[KeyboardEvent, Any]:
        """Remove the oldest event and return it with the focus seen when queued."""
        if not self._queue:
            raise KeyboardQueueError("keyboard event queue is empty")
        return self._queue.popleft()

    def pop_event(self) -> KeyboardEvent:
        """Remove and return the oldest event."""
        return self.pop_event_with_focus()[0]

    def pending_count(self) -> int:
        """Number of queued events."""
        return len(self._queue)