"""Data models for generated exercises: chords, bars and grand-staff bar pairs."""

from collections.abc import Iterator
from dataclasses import dataclass

from pitchtrainer.theory import CLEFS, Note, keys_of


@dataclass(frozen=True)
class Chord:
    """Notes sharing one time position. A chord without notes is a rest."""

    notes: tuple[Note, ...] = ()

    def __post_init__(self) -> None:
        keys = self.keys
        if len(keys) != len(set(keys)):
            raise ValueError(f"Chord contains duplicate pitches: {keys}.")

    @property
    def is_rest(self) -> bool:
        return all(note.is_rest for note in self.notes)

    @property
    def keys(self) -> list[int]:
        """Sorted MIDI numbers to press."""
        return sorted(key for note in self.notes for key in keys_of(note))


@dataclass(frozen=True)
class Bar:
    """Ordered chords for one clef."""

    clef: str
    chords: tuple[Chord, ...]

    def __post_init__(self) -> None:
        if self.clef not in CLEFS:
            raise ValueError(f"Unknown clef '{self.clef}'.")

    def __len__(self) -> int:
        return len(self.chords)

    def __getitem__(self, index: int) -> Chord:
        return self.chords[index]

    def __iter__(self) -> Iterator[Chord]:
        return iter(self.chords)


@dataclass(frozen=True)
class BarPair:
    """Treble and bass bars shown on one grand staff, aligned chord by chord."""

    treble: Bar
    bass: Bar

    def __post_init__(self) -> None:
        if len(self.treble) != len(self.bass):
            raise ValueError(
                f"Treble and bass bars must have the same length "
                f"({len(self.treble)} != {len(self.bass)})."
            )

    def __len__(self) -> int:
        return len(self.treble)

    def chord_keys(self, index: int) -> list[int]:
        """All MIDI numbers to press at *index*, both clefs combined."""
        return sorted(set(self.treble[index].keys) | set(self.bass[index].keys))

    @property
    def has_playable_chord(self) -> bool:
        return any(self.chord_keys(index) for index in range(len(self)))
