"""Settings: immutable exercise configuration read by the generator and session."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pitchtrainer.theory import CLEF_RANGES, CLEFS

RANDOM_KEY_SIGNATURE = "random"
DEFAULT_BAR_LENGTH = 4
DEFAULT_CHORD_SIZE_RANGE = (1, 3)


@dataclass(frozen=True)
class ClefRanges:
    """An inclusive (low, high) pair for each clef."""

    treble: tuple[int, int]
    bass: tuple[int, int]

    def __getitem__(self, clef: str) -> tuple[int, int]:
        if clef not in CLEFS:
            raise KeyError(clef)
        return getattr(self, clef)


@dataclass(frozen=True)
class Settings:
    """
    Exercise configuration owned by the surrounding application.

    Attributes:
        chord_size_ranges: Inclusive (min, max) number of notes per chord and clef.
                           A size of 0 produces a rest.
        use_accidentals:   Allow pitches outside the key signature.
        key_signature:     Major key name ('C', 'Eb', ...) or "random".
        midi_inputs:       Names of the MIDI input ports to listen on.
        bar_length:        Number of chords in every bar.
        note_ranges:       Inclusive MIDI range the generator draws from per clef.
    """

    chord_size_ranges: ClefRanges = field(
        default_factory=lambda: ClefRanges(DEFAULT_CHORD_SIZE_RANGE, DEFAULT_CHORD_SIZE_RANGE)
    )
    use_accidentals: bool = False
    key_signature: str = "C"
    midi_inputs: tuple[str, ...] = ()
    bar_length: int = DEFAULT_BAR_LENGTH
    note_ranges: ClefRanges = field(
        default_factory=lambda: ClefRanges(CLEF_RANGES["treble"], CLEF_RANGES["bass"])
    )

    def chord_size_range(self, clef: str) -> tuple[int, int]:
        return self.chord_size_ranges[clef]

    def note_range(self, clef: str) -> tuple[int, int]:
        return self.note_ranges[clef]

    def replace(self, **changes: Any) -> Settings:
        """Return a copy with *changes* applied; the original stays untouched."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Settings:
        """
        Build Settings from the application's camelCase settings mapping.

        Recognised keys: ``chordSizeRanges`` ({"treble": [min, max], "bass": [...]}),
        ``useAccidentals``, ``keySignature``, ``midi.inputs``, ``barLength`` and
        ``noteRanges`` (inclusive MIDI bounds per clef, same shape as the chord sizes).
        Missing keys fall back to the defaults.
        """
        defaults = cls()
        ranges = data.get("chordSizeRanges", {})
        chord_size_ranges = ClefRanges(
            treble=_pair(ranges.get("treble", defaults.chord_size_ranges.treble)),
            bass=_pair(ranges.get("bass", defaults.chord_size_ranges.bass)),
        )
        notes = data.get("noteRanges", {})
        note_ranges = ClefRanges(
            treble=_pair(notes.get("treble", defaults.note_ranges.treble)),
            bass=_pair(notes.get("bass", defaults.note_ranges.bass)),
        )
        midi = data.get("midi", {})
        return cls(
            chord_size_ranges=chord_size_ranges,
            use_accidentals=bool(data.get("useAccidentals", defaults.use_accidentals)),
            key_signature=str(data.get("keySignature", defaults.key_signature)),
            midi_inputs=tuple(midi.get("inputs", ())),
            bar_length=int(data.get("barLength", defaults.bar_length)),
            note_ranges=note_ranges,
        )


def _pair(value: Any) -> tuple[int, int]:
    low, high = value
    return int(low), int(high)
