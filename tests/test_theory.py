"""Unit tests for spellings, key signatures and note names."""

import pytest

from pitchtrainer.theory import (
    C_MAJOR,
    KEY_SIGNATURE_NAMES,
    Accidental,
    KeySignature,
    Note,
    displayed_accidental,
    keys_of,
    midi_name,
    note_name,
    parse_note_name,
    preferred_spelling,
    spellings_for,
)


def _names(notes: set[Note]) -> set[str]:
    return {note_name(note) for note in notes}


def test_key_signature_from_name_sharps() -> None:
    g_major = KeySignature.from_name("G")
    assert g_major.sharps == 1
    assert g_major.alter_for("F") == 1
    assert g_major.alter_for("C") == 0


def test_key_signature_from_name_flats() -> None:
    b_flat = KeySignature.from_name("Bb")
    assert b_flat.sharps == -2
    assert dict(b_flat.alterations) == {"B": -1, "E": -1}
    assert b_flat.prefers_flats


def test_key_signature_c_major_matches_constant() -> None:
    assert KeySignature.from_name("C") == C_MAJOR


def test_key_signature_unknown_name_raises() -> None:
    with pytest.raises(ValueError):
        KeySignature.from_name("H")


def test_note_midi_from_spelling() -> None:
    assert Note(0, 4).midi == 60
    assert Note(1, 4, Accidental.SHARP).midi == 61
    assert Note(1, 4, Accidental.FLAT).midi == 61
    assert Note(11, 4, Accidental.FLAT).midi == 59  # Cb4 sounds as B3


def test_note_letter() -> None:
    assert Note(6, 4, Accidental.SHARP).letter == "F"
    assert Note(6, 4, Accidental.FLAT).letter == "G"


def test_note_without_letter_raises() -> None:
    with pytest.raises(ValueError):
        Note(1, 4, Accidental.NONE)


def test_spellings_for_black_key_in_c() -> None:
    assert _names(spellings_for(61, C_MAJOR)) == {"C#4", "Db4"}


def test_spellings_for_white_key_in_c_has_no_enharmonics() -> None:
    assert _names(spellings_for(60, C_MAJOR)) == {"C4"}


def test_spellings_for_includes_key_signature_spelling() -> None:
    f_sharp = KeySignature.from_name("F#")
    assert _names(spellings_for(65, f_sharp)) == {"E#4", "F4"}


def test_spellings_for_natural_in_altered_key() -> None:
    g_major = KeySignature.from_name("G")
    (f_natural,) = spellings_for(65, g_major)
    assert f_natural.accidental is Accidental.NATURAL


def test_preferred_spelling_sharps_in_c() -> None:
    assert note_name(preferred_spelling(61, C_MAJOR)) == "C#4"


def test_preferred_spelling_flats_in_flat_key() -> None:
    assert note_name(preferred_spelling(61, KeySignature.from_name("F"))) == "Db4"


def test_preferred_spelling_follows_key_signature() -> None:
    assert note_name(preferred_spelling(70, KeySignature.from_name("E"))) == "A#4"
    assert note_name(preferred_spelling(70, KeySignature.from_name("Eb"))) == "Bb4"


@pytest.mark.parametrize("name", KEY_SIGNATURE_NAMES)
def test_preferred_spelling_round_trips(name: str) -> None:
    signature = KeySignature.from_name(name)
    for midi in range(40, 85):
        note = preferred_spelling(midi, signature)
        assert note.midi == midi
        assert note in spellings_for(midi, signature)
        assert keys_of(note) == [midi]


def test_keys_of_rest_is_empty() -> None:
    assert keys_of(Note(0, 4, is_rest=True)) == []


def test_displayed_accidental() -> None:
    g_major = KeySignature.from_name("G")
    assert displayed_accidental(preferred_spelling(66, g_major), g_major) is None
    assert displayed_accidental(preferred_spelling(65, g_major), g_major) is Accidental.NATURAL
    assert displayed_accidental(preferred_spelling(61, C_MAJOR), C_MAJOR) is Accidental.SHARP


def test_parse_note_name() -> None:
    assert parse_note_name("C4") == 60
    assert parse_note_name("f#3") == 54
    assert parse_note_name("Bb2") == 46
    assert parse_note_name(" A0 ") == 21


def test_parse_note_name_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        parse_note_name("X4")
    with pytest.raises(ValueError):
        parse_note_name("C")


def test_midi_name_uses_sharps() -> None:
    assert midi_name(61) == "C#4"
    assert midi_name(60) == "C4"


def test_midi_name_follows_key_signature() -> None:
    assert midi_name(70, KeySignature.from_name("Bb")) == "Bb4"
    assert midi_name(66, KeySignature.from_name("Db")) == "Gb4"
