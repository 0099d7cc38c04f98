"""Unit tests for input event decoding and the synthetic sources."""

import mido
import pytest

from pitchtrainer import input_sources
from pitchtrainer.input_sources import (
    KEY_DOWN,
    KEY_UP,
    InputEvent,
    SyntheticEventSource,
    list_input_ports,
    virtual_keyboard_events,
)


def test_note_on_is_key_down() -> None:
    event = InputEvent.from_message(mido.Message("note_on", note=60, velocity=90))
    assert event == InputEvent(KEY_DOWN, 60, 90)


def test_note_on_with_zero_velocity_is_key_up() -> None:
    event = InputEvent.from_message(mido.Message("note_on", note=60, velocity=0))
    assert event is not None and event.type == KEY_UP


def test_note_off_is_key_up() -> None:
    event = InputEvent.from_message(mido.Message("note_off", note=64, velocity=40))
    assert event == InputEvent(KEY_UP, 64, 40)


def test_other_messages_are_dropped() -> None:
    assert InputEvent.from_message(mido.Message("control_change", control=64, value=127)) is None


def test_unknown_event_type_raises() -> None:
    with pytest.raises(ValueError):
        InputEvent("hold", 60)


def test_success_events_press_then_release() -> None:
    events = SyntheticEventSource(velocity=70).success_events([60, 64])
    assert [(e.type, e.pitch) for e in events] == [
        (KEY_DOWN, 60), (KEY_DOWN, 64), (KEY_UP, 60), (KEY_UP, 64),
    ]
    assert events[0].velocity == 70


def test_failure_events_avoid_chord_keys() -> None:
    events = SyntheticEventSource().failure_events([60, 61])
    assert [(e.type, e.pitch) for e in events] == [(KEY_DOWN, 62), (KEY_UP, 62)]


def test_failure_events_for_empty_chord_use_middle_c() -> None:
    events = SyntheticEventSource().failure_events([])
    assert events[0].pitch == 60


def test_virtual_keyboard_events() -> None:
    events = virtual_keyboard_events("C4 e4, G4")
    assert [e.pitch for e in events if e.type == KEY_DOWN] == [60, 64, 67]
    assert [e.pitch for e in events if e.type == KEY_UP] == [60, 64, 67]


def test_virtual_keyboard_rejects_unknown_note() -> None:
    with pytest.raises(ValueError):
        virtual_keyboard_events("C4 Z9")


def test_list_input_ports(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(input_sources.mido, "get_input_names", lambda: ["Digital Piano"])
    assert list_input_ports() == ["Digital Piano"]
