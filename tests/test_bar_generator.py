"""Unit tests for BarGenerator and the settings diff."""

import numpy as np
import pytest

from pitchtrainer.bar_generator import (
    ALL_TARGETS,
    HAND_SPAN,
    BarGenerator,
    RegenerationTarget,
    regeneration_targets,
)
from pitchtrainer.errors import ConfigurationError
from pitchtrainer.settings import ClefRanges, Settings
from pitchtrainer.theory import (
    C_MAJOR,
    CLEFS,
    KEY_SIGNATURE_NAMES,
    KeySignature,
    displayed_accidental,
    spellings_for,
)


def _generator(seed: int = 0) -> BarGenerator:
    return BarGenerator(np.random.default_rng(seed))


def _settings(treble=(1, 3), bass=(1, 3), **kwargs) -> Settings:
    return Settings(chord_size_ranges=ClefRanges(treble=treble, bass=bass), **kwargs)


def test_bars_have_equal_length_and_sizes_in_range() -> None:
    settings = _settings(treble=(1, 4), bass=(2, 3), bar_length=6)
    for seed in range(20):
        bars = _generator(seed).generate_bars(settings)
        assert len(bars.treble) == len(bars.bass) == 6
        for clef in CLEFS:
            low, high = settings.chord_size_range(clef)
            for chord in getattr(bars, clef):
                if not chord.is_rest:
                    assert low <= len(chord.notes) <= high


def test_notes_stay_in_clef_range_and_hand_span() -> None:
    settings = _settings(use_accidentals=True)
    for seed in range(20):
        bars = _generator(seed).generate_bars(settings)
        for clef in CLEFS:
            low, high = settings.note_range(clef)
            for chord in getattr(bars, clef):
                keys = chord.keys
                assert all(low <= key <= high for key in keys)
                if keys:
                    assert keys[-1] - keys[0] <= HAND_SPAN
                    assert len(keys) == len(set(keys))


@pytest.mark.parametrize("name", KEY_SIGNATURE_NAMES)
def test_generated_spellings_round_trip(name: str) -> None:
    signature = KeySignature.from_name(name)
    settings = _settings(use_accidentals=True)
    bars = _generator(len(name)).generate_bars(settings, signature)
    for bar in (bars.treble, bars.bass):
        for chord in bar:
            for note in chord.notes:
                assert note in spellings_for(note.midi, signature)


def test_without_accidentals_notes_are_diatonic() -> None:
    signature = KeySignature.from_name("Ab")
    for seed in range(10):
        bars = _generator(seed).generate_bars(_settings(), signature)
        for bar in (bars.treble, bars.bass):
            for chord in bar:
                for note in chord.notes:
                    assert displayed_accidental(note, signature) is None


def test_same_seed_same_bars() -> None:
    settings = _settings(use_accidentals=True)
    assert _generator(7).generate_bars(settings) == _generator(7).generate_bars(settings)


def test_rests_appear_occasionally() -> None:
    generator = _generator(3)
    settings = _settings(treble=(1, 1), bass=(1, 1))
    chords = [chord for _ in range(50) for chord in generator.generate_bar("treble", settings)]
    rests = sum(1 for chord in chords if chord.is_rest)
    assert 0 < rests < len(chords) // 2


def test_zero_chord_size_produces_only_rests() -> None:
    bars = _generator().generate_bars(_settings(bass=(0, 0)))
    assert all(chord.is_rest for chord in bars.bass)


def test_generate_bar_defaults_to_c_major() -> None:
    bar = _generator().generate_bar("treble", _settings())
    for chord in bar:
        for note in chord.notes:
            assert displayed_accidental(note, C_MAJOR) is None


def test_generate_key_signature_fixed_is_idempotent() -> None:
    generator = _generator()
    settings = _settings(key_signature="Eb")
    first = generator.generate_key_signature(settings)
    assert first == generator.generate_key_signature(settings)
    assert first.name == "Eb"


def test_generate_key_signature_random_is_standard_and_seeded() -> None:
    settings = _settings(key_signature="random")
    names = {_generator(seed).generate_key_signature(settings).name for seed in range(40)}
    assert names <= set(KEY_SIGNATURE_NAMES)
    assert len(names) > 1
    assert (
        _generator(5).generate_key_signature(settings)
        == _generator(5).generate_key_signature(settings)
    )


def test_unknown_key_signature_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        _generator().generate_key_signature(_settings(key_signature="Q#"))


@pytest.mark.parametrize(
    "settings",
    [
        _settings(treble=(3, 1)),
        _settings(treble=(-1, 2)),
        _settings(bar_length=0),
        _settings(treble=(9, 9)),
        _settings(note_ranges=ClefRanges(treble=(70, 60), bass=(40, 60))),
    ],
)
def test_invalid_settings_raise_configuration_error(settings: Settings) -> None:
    with pytest.raises(ConfigurationError):
        _generator().generate_bar("treble", settings)


def test_configuration_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        _generator().generate_bar("treble", _settings(treble=(3, 1)))


def test_unknown_clef_raises() -> None:
    with pytest.raises(ConfigurationError):
        _generator().generate_bar("alto", _settings())


def test_rests_only_in_both_clefs_raises() -> None:
    with pytest.raises(ConfigurationError):
        _generator().generate_bars(_settings(treble=(0, 0), bass=(0, 0)))


def test_regeneration_targets_single_clef() -> None:
    old = _settings()
    assert regeneration_targets(old, _settings(treble=(2, 2))) == {RegenerationTarget.TREBLE}
    assert regeneration_targets(old, _settings(bass=(1, 1))) == {RegenerationTarget.BASS}


def test_regeneration_targets_global_changes() -> None:
    old = _settings()
    assert regeneration_targets(old, old.replace(use_accidentals=True)) == ALL_TARGETS
    assert regeneration_targets(old, old.replace(key_signature="D")) == ALL_TARGETS
    assert regeneration_targets(old, old.replace(bar_length=8)) == ALL_TARGETS


def test_regeneration_targets_nothing_relevant_changed() -> None:
    old = _settings()
    assert regeneration_targets(old, old) == frozenset()
    assert regeneration_targets(old, old.replace(midi_inputs=("Piano",))) == frozenset()
