"""Input sources: key events from a MIDI port, a typed virtual keyboard or a debug generator."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

import mido

from pitchtrainer.theory import MIDDLE_C_MIDI, parse_note_name

KEY_DOWN = "down"
KEY_UP = "up"


@dataclass(frozen=True)
class InputEvent:
    """A single decoded key press or release."""

    type: str
    pitch: int
    velocity: int = 0

    def __post_init__(self) -> None:
        if self.type not in (KEY_DOWN, KEY_UP):
            raise ValueError(f"Unknown input event type '{self.type}'.")

    @classmethod
    def from_message(cls, message: Any) -> InputEvent | None:
        """
        Decode a mido message into an InputEvent.

        A note_on with velocity 0 is a release, as most keyboards send it
        instead of note_off. Messages other than notes return None.
        """
        if message.type == "note_on" and message.velocity > 0:
            return cls(KEY_DOWN, message.note, message.velocity)
        if message.type in ("note_on", "note_off"):
            return cls(KEY_UP, message.note, message.velocity)
        return None


class SyntheticEventSource:
    """
    Generates key events without any instrument attached.

    Replaces a global debug shortcut: callers feed the returned events into
    the matcher like real input, so debug runs exercise the same code path.
    """

    def __init__(self, velocity: int = 64) -> None:
        self.velocity = velocity

    def success_events(self, keys: Iterable[int]) -> list[InputEvent]:
        """Press every key of the chord, then release them all."""
        keys = list(keys)
        downs = [InputEvent(KEY_DOWN, key, self.velocity) for key in keys]
        ups = [InputEvent(KEY_UP, key) for key in keys]
        return downs + ups

    def failure_events(self, keys: Iterable[int]) -> list[InputEvent]:
        """Press and release one key that is not part of the chord."""
        keys = set(keys)
        wrong = max(keys) + 1 if keys else MIDDLE_C_MIDI
        while wrong in keys:
            wrong += 1
        return [InputEvent(KEY_DOWN, wrong, self.velocity), InputEvent(KEY_UP, wrong)]


def virtual_keyboard_events(line: str, velocity: int = 64) -> list[InputEvent]:
    """
    Turn a typed line of note names ('C4 E4 G4') into press-then-release events.

    Raises:
        ValueError: If any token is not a note name.
    """
    pitches = [parse_note_name(token) for token in line.replace(",", " ").split()]
    return SyntheticEventSource(velocity).success_events(pitches)


def list_input_ports() -> list[str]:
    """Names of the MIDI input ports currently available."""
    return list(mido.get_input_names())


class MidoInputSource:
    """
    Reads key events from a MIDI input port via mido.

    Usage as a context manager ensures the port is closed again:

        with MidoInputSource("Digital Piano") as source:
            for event in source:
                session.handle_event(event)
    """

    def __init__(self, port_name: str | None = None) -> None:
        self.port_name = port_name
        self._port: Any = None

    def open(self) -> None:
        """
        Open the port (the default input port if no name was given).

        Raises:
            OSError: If the port does not exist or no MIDI backend is available.
        """
        self._port = mido.open_input(self.port_name)

    def close(self) -> None:
        if self._port is not None:
            self._port.close()
            self._port = None

    def __iter__(self) -> Iterator[InputEvent]:
        if self._port is None:
            self.open()
        for message in self._port:
            event = InputEvent.from_message(message)
            if event is not None:
                yield event

    def __enter__(self) -> MidoInputSource:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
