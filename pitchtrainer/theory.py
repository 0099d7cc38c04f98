"""Music theory helpers: note spellings, key signatures and clef ranges."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Final

from music21 import key as m21_key

# ── MIDI constants ──────────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12
MIDDLE_C_MIDI = 60  # C4 in Scientific Pitch Notation

#: Pitch class of each natural (white key) letter.
LETTER_PITCH_CLASSES: Final[dict[str, int]] = {
    "C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11,
}
_PITCH_CLASS_LETTERS: Final[dict[int, str]] = {pc: letter for letter, pc in LETTER_PITCH_CLASSES.items()}

CLEFS: Final[tuple[str, str]] = ("treble", "bass")

#: Playable MIDI range (inclusive) per clef: C4-C6 for treble, E2-C4 for bass.
CLEF_RANGES: Final[dict[str, tuple[int, int]]] = {
    "treble": (60, 84),
    "bass": (40, 60),
}

#: The twelve standard major key signatures, going round the circle of fifths.
KEY_SIGNATURE_NAMES: Final[tuple[str, ...]] = (
    "C", "G", "D", "A", "E", "B", "F#", "Db", "Ab", "Eb", "Bb", "F",
)

_KEY_NAME_PATTERN = re.compile(r"^([A-Ga-g])([#b]?)$")
_NOTE_NAME_PATTERN = re.compile(r"^([A-Ga-g])([#b]?)(-?\d+)$")


class Accidental(str, Enum):
    """Alteration carried by a note spelling."""

    NONE = "none"
    SHARP = "sharp"
    FLAT = "flat"
    NATURAL = "natural"  # unaltered letter that the key signature would alter

    @property
    def alter(self) -> int:
        """Semitone offset applied to the letter."""
        if self is Accidental.SHARP:
            return 1
        if self is Accidental.FLAT:
            return -1
        return 0

    @property
    def symbol(self) -> str:
        return {"sharp": "#", "flat": "b", "natural": "n"}.get(self.value, "")


@dataclass(frozen=True)
class Note:
    """
    A spelled pitch.

    Attributes:
        pitch_class: Sounding pitch class (0=C, 1=C#/Db, ..., 11=B).
        octave:      Scientific octave of the written letter (Cb4 sounds as B3).
        accidental:  Alteration of the spelling.
        is_rest:     True for a silent placeholder; the other fields are ignored.
    """

    pitch_class: int
    octave: int
    accidental: Accidental = Accidental.NONE
    is_rest: bool = False

    def __post_init__(self) -> None:
        if self.is_rest:
            return
        if not 0 <= self.pitch_class < SEMITONES_PER_OCTAVE:
            raise ValueError(f"Pitch class must be in 0-11, got {self.pitch_class}.")
        letter_pc = (self.pitch_class - self.accidental.alter) % SEMITONES_PER_OCTAVE
        if letter_pc not in _PITCH_CLASS_LETTERS:
            raise ValueError(
                f"Pitch class {self.pitch_class} cannot be spelled with accidental "
                f"'{self.accidental.value}'."
            )

    @property
    def letter(self) -> str:
        """The written letter name, e.g. 'F' for F#."""
        letter_pc = (self.pitch_class - self.accidental.alter) % SEMITONES_PER_OCTAVE
        return _PITCH_CLASS_LETTERS[letter_pc]

    @property
    def midi(self) -> int:
        """Absolute MIDI note number of the sounding pitch."""
        letter_pc = LETTER_PITCH_CLASSES[self.letter]
        return (self.octave + 1) * SEMITONES_PER_OCTAVE + letter_pc + self.accidental.alter


@dataclass(frozen=True)
class KeySignature:
    """
    Letter alterations implied by a major key.

    Attributes:
        name:        Tonic of the major key, e.g. 'Eb'.
        sharps:      Number of sharps (negative for flats), as music21 counts them.
        alterations: (letter, alter) pairs for every letter the signature alters.
    """

    name: str
    sharps: int
    alterations: tuple[tuple[str, int], ...] = ()

    @classmethod
    def from_name(cls, name: str) -> KeySignature:
        """
        Build the key signature of the major key named *name* ('C', 'F#', 'Bb').

        Raises:
            ValueError: If *name* is not a note letter with an optional # or b.
        """
        return _key_signature(name.strip())

    def alter_for(self, letter: str) -> int:
        """Semitone alteration the signature applies to *letter* (0 if none)."""
        return dict(self.alterations).get(letter, 0)

    @property
    def prefers_flats(self) -> bool:
        return self.sharps < 0


@lru_cache(maxsize=None)
def _key_signature(name: str) -> KeySignature:
    match = _KEY_NAME_PATTERN.match(name)
    if not match:
        raise ValueError(f"Unknown key signature '{name}'.")
    letter, accidental = match.group(1).upper(), match.group(2)
    # music21 spells flats as '-' and treats lower-case tonics as minor keys.
    sharps = m21_key.Key(letter + accidental.replace("b", "-")).sharps
    altered = m21_key.KeySignature(sharps).alteredPitches
    alterations = tuple(
        (p.step, int(p.accidental.alter)) for p in altered if p.accidental is not None
    )
    return KeySignature(name=letter + accidental, sharps=sharps, alterations=alterations)


C_MAJOR: Final[KeySignature] = KeySignature(name="C", sharps=0)


def is_black_key(midi_number: int) -> bool:
    """True if the MIDI note sits on a black key."""
    return midi_number % SEMITONES_PER_OCTAVE not in _PITCH_CLASS_LETTERS


def _spell(midi_number: int, letter: str, key_signature: KeySignature) -> Note | None:
    """Spell *midi_number* on *letter*, or None if that needs more than one sharp/flat."""
    letter_pc = LETTER_PITCH_CLASSES[letter]
    alter = (midi_number - letter_pc + 6) % SEMITONES_PER_OCTAVE - 6
    if abs(alter) > 1:
        return None
    octave = (midi_number - alter) // SEMITONES_PER_OCTAVE - 1
    if alter == 1:
        accidental = Accidental.SHARP
    elif alter == -1:
        accidental = Accidental.FLAT
    elif key_signature.alter_for(letter):
        accidental = Accidental.NATURAL
    else:
        accidental = Accidental.NONE
    return Note(midi_number % SEMITONES_PER_OCTAVE, octave, accidental)


def spellings_for(midi_number: int, key_signature: KeySignature) -> set[Note]:
    """
    Return every spelling of *midi_number* that is valid under *key_signature*.

    A spelling is valid if it matches the signature's alteration for its
    letter, if it is the natural spelling of a white key, or if it is a single
    sharp or flat on a black key. E#, B#, Cb and Fb therefore only appear when
    the key signature itself contains them.

    Args:
        midi_number:   Raw MIDI note number as delivered by the instrument.
        key_signature: The key signature of the current bar.

    Returns:
        A non-empty set of Notes, all sounding *midi_number*.
    """
    spellings: set[Note] = set()
    black = is_black_key(midi_number)
    for letter in LETTER_PITCH_CLASSES:
        note = _spell(midi_number, letter, key_signature)
        if note is None:
            continue
        alter = note.accidental.alter
        if alter == 0 or black or alter == key_signature.alter_for(letter):
            spellings.add(note)
    return spellings


def preferred_spelling(midi_number: int, key_signature: KeySignature) -> Note:
    """
    Pick one spelling of *midi_number* deterministically.

    Order of preference: the spelling implied by the key signature, then the
    natural spelling of a white key, then flats in flat keys and sharps in
    every other key.
    """
    spellings = spellings_for(midi_number, key_signature)
    for note in spellings:
        if note.accidental.alter == key_signature.alter_for(note.letter):
            return note
    for note in spellings:
        if note.accidental.alter == 0:
            return note
    wanted = Accidental.FLAT if key_signature.prefers_flats else Accidental.SHARP
    return next(note for note in spellings if note.accidental is wanted)


def keys_of(note: Note) -> list[int]:
    """MIDI numbers the player has to press for *note* (none for a rest)."""
    if note.is_rest:
        return []
    return [note.midi]


def displayed_accidental(note: Note, key_signature: KeySignature) -> Accidental | None:
    """
    Accidental sign that has to be drawn next to *note*.

    Returns None when the key signature already implies the alteration.
    """
    if note.is_rest:
        return None
    alter = note.accidental.alter
    if alter == key_signature.alter_for(note.letter):
        return None
    if alter == 0:
        return Accidental.NATURAL
    return note.accidental


def note_name(note: Note) -> str:
    """Human-readable name such as 'F#4', 'Bb3' or 'C5'."""
    if note.is_rest:
        return "rest"
    sign = note.accidental.symbol if note.accidental.alter else ""
    return f"{note.letter}{sign}{note.octave}"


def midi_name(midi_number: int, key_signature: KeySignature = C_MAJOR) -> str:
    """Name a raw MIDI number as spelled in *key_signature*, e.g. 61 -> 'C#4' in C."""
    return note_name(preferred_spelling(midi_number, key_signature))


def parse_note_name(text: str) -> int:
    """
    Convert a note name such as 'C4', 'f#3' or 'Bb2' to a MIDI number.

    Raises:
        ValueError: If *text* is not a letter, optional #/b and an octave.
    """
    match = _NOTE_NAME_PATTERN.match(text.strip())
    if not match:
        raise ValueError(f"Cannot parse note name '{text}'. Use e.g. C4, F#3 or Bb2.")
    letter, sign, octave = match.group(1).upper(), match.group(2), int(match.group(3))
    alter = {"#": 1, "b": -1}.get(sign, 0)
    return (octave + 1) * SEMITONES_PER_OCTAVE + LETTER_PITCH_CLASSES[letter] + alter
