import pytest

from otkernel.keyboard import (
    QUEUE_CAPACITY,
    ControlCode,
    Keyboard,
    KeyboardEventType,
    KeyboardQueueError,
)

SCANCODES = {
    "c": 0x2E,
    "d": 0x20,
    "t": 0x14,
    "/": 0x35,
    " ": 0x39,
    "p": 0x19,
    "w": 0x11,
}


def type_text(keyboard, text):
    for ch in text:
        keyboard.handle_scancode(SCANCODES[ch])


def drain(keyboard):
    events = []
    while keyboard.pending_count():
        events.append(keyboard.pop_event())
    return events


def test_plain_letter_is_text_event():
    kb = Keyboard()
    event = kb.handle_scancode(0x1E)
    assert kb.pending_count() == 1
    popped = kb.pop_event()
    assert popped == event
    assert popped.type is KeyboardEventType.TEXT
    assert popped.text == "a"
    assert popped.scancode == 0x1E
    assert popped.pressed is True
    assert popped.control is None


def test_typed_text_keeps_fifo_order():
    kb = Keyboard()
    type_text(kb, "cd /t")
    assert kb.pending_count() == 5
    assert "".join(e.text for e in drain(kb)) == "cd /t"


def test_left_shift_press_and_release():
    kb = Keyboard()
    kb.handle_scancode(0x2A)
    kb.handle_scancode(0x1E)
    kb.handle_scancode(0x2A | 0x80)
    kb.handle_scancode(0x1E)
    assert [e.text for e in drain(kb)] == ["A", "a"]


def test_both_shifts_tracked_independently():
    kb = Keyboard()
    kb.handle_scancode(0x2A)
    kb.handle_scancode(0x36)
    kb.handle_scancode(0x2A | 0x80)
    kb.handle_scancode(0x1E)
    kb.handle_scancode(0x36 | 0x80)
    kb.handle_scancode(0x1E)
    assert [e.text for e in drain(kb)] == ["A", "a"]


def test_shift_keys_queue_nothing():
    kb = Keyboard()
    assert kb.handle_scancode(0x2A) is None
    assert kb.handle_scancode(0x36) is None
    assert kb.pending_count() == 0


def test_control_key_event():
    kb = Keyboard()
    kb.handle_scancode(0x1C)
    event = kb.pop_event()
    assert event.type is KeyboardEventType.CONTROL
    assert event.control is ControlCode.ENTER
    assert event.text == ""


@pytest.mark.parametrize(
    "scancode, control",
    [
        (0x01, ControlCode.ESCAPE),
        (0x0E, ControlCode.BACKSPACE),
        (0x0F, ControlCode.TAB),
        (0x1C, ControlCode.ENTER),
    ],
)
def test_control_mapping(scancode, control):
    kb = Keyboard()
    assert kb.handle_scancode(scancode).control is control


def test_break_codes_are_ignored():
    kb = Keyboard()
    assert kb.handle_scancode(0x1E | 0x80) is None
    assert kb.handle_scancode(0x1C | 0x80) is None
    assert kb.pending_count() == 0


def test_extended_prefix_swallows_next_code():
    kb = Keyboard()
    assert kb.handle_scancode(0xE0) is None
    assert kb.handle_scancode(0x1C) is None
    assert kb.pending_count() == 0
    kb.handle_scancode(0x1C)
    assert kb.pop_event().control is ControlCode.ENTER


def test_extended_prefix_swallows_shift():
    kb = Keyboard()
    kb.handle_scancode(0xE0)
    kb.handle_scancode(0x2A)
    kb.handle_scancode(0x1E)
    assert kb.pop_event().text == "a"


def test_unmapped_scancode_queues_nothing():
    kb = Keyboard()
    assert kb.handle_scancode(0x3B) is None
    assert kb.pending_count() == 0


def test_focus_captured_at_queue_time():
    focus = {"window": "left"}
    kb = Keyboard(lambda: focus["window"])
    type_text(kb, "p")
    focus["window"] = "right"
    type_text(kb, "w")
    first_event, first_focus = kb.pop_event_with_focus()
    second_event, second_focus = kb.pop_event_with_focus()
    assert (first_event.text, first_focus) == ("p", "left")
    assert (second_event.text, second_focus) == ("w", "right")


def test_focus_defaults_to_none():
    kb = Keyboard()
    kb.handle_scancode(0x1E)
    _, focus = kb.pop_event_with_focus()
    assert focus is None


def test_queue_full_raises_and_keeps_count():
    kb = Keyboard()
    for _ in range(QUEUE_CAPACITY):
        kb.handle_scancode(0x1E)
    assert kb.pending_count() == QUEUE_CAPACITY
    with pytest.raises(KeyboardQueueError):
        kb.handle_scancode(0x1E)
    assert kb.pending_count() == QUEUE_CAPACITY


def test_queue_reusable_after_draining_half():
    kb = Keyboard()
    for _ in range(QUEUE_CAPACITY):
        kb.handle_scancode(0x1E)
    for _ in range(QUEUE_CAPACITY // 2):
        kb.pop_event()
    for _ in range(QUEUE_CAPACITY // 2):
        kb.handle_scancode(0x1C)
    events = drain(kb)
    assert len(events) == QUEUE_CAPACITY
    assert events[-1].control is ControlCode.ENTER
    assert events[0].text == "a"


def test_pop_empty_raises():
    kb = Keyboard()
    with pytest.raises(KeyboardQueueError):
        kb.pop_event()
    with pytest.raises(KeyboardQueueError):
        kb.pop_event_with_focus()


def test_reset_clears_queue_and_shift():
    kb = Keyboard()
    kb.handle_scancode(0x2A)
    kb.handle_scancode(0x1E)
    kb.handle_scancode(0xE0)
    kb.reset()
    assert kb.pending_count() == 0
    kb.handle_scancode(0x1E)
    assert kb.pop_event().text == "a"


@pytest.mark.parametrize("bad", [-1, 256])
def test_invalid_scancode_rejected(bad):
    kb = Keyboard()
    with pytest.raises(ValueError):
        kb.handle_scancode(bad)