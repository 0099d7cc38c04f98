"""BarGenerator: random bars of chords and rests for sight-reading drills."""

import logging
from enum import Enum

import numpy as np

from pitchtrainer.errors import ConfigurationError
from pitchtrainer.models import Bar, BarPair, Chord
from pitchtrainer.settings import RANDOM_KEY_SIGNATURE, Settings
from pitchtrainer.theory import (
    C_MAJOR,
    CLEFS,
    KEY_SIGNATURE_NAMES,
    SEMITONES_PER_OCTAVE,
    KeySignature,
    displayed_accidental,
    preferred_spelling,
)

logger = logging.getLogger(__name__)

#: Chance that any chord position becomes a rest regardless of chord size.
REST_PROBABILITY = 0.1

#: Widest interval (in semitones) between the lowest and highest chord tone.
HAND_SPAN = SEMITONES_PER_OCTAVE


class RegenerationTarget(Enum):
    """Part of the exercise that has to be generated again after a settings change."""

    TREBLE = "treble"
    BASS = "bass"
    KEY_SIGNATURE = "key_signature"


ALL_TARGETS = frozenset(RegenerationTarget)
_CLEF_TARGETS = {"treble": RegenerationTarget.TREBLE, "bass": RegenerationTarget.BASS}


def regeneration_targets(old: Settings, new: Settings) -> frozenset[RegenerationTarget]:
    """
    Decide what to regenerate when settings change from *old* to *new*.

    Accidental usage, key signature and bar length affect both clefs, so a
    change to any of them regenerates everything. Otherwise only the clefs
    whose chord-size or note range changed are regenerated.
    """
    if (
        old.use_accidentals != new.use_accidentals
        or old.key_signature != new.key_signature
        or old.bar_length != new.bar_length
    ):
        return ALL_TARGETS
    return frozenset(
        target
        for clef, target in _CLEF_TARGETS.items()
        if old.chord_size_range(clef) != new.chord_size_range(clef)
        or old.note_range(clef) != new.note_range(clef)
    )


class BarGenerator:
    """
    Produces bars of random chords constrained by Settings.

    Algorithm overview
    ------------------
    For every position of a bar:

    1. **Rest draw** – With probability REST_PROBABILITY the position is a rest,
       so the drill also trains reading rests, not just pitches.

    2. **Chord size** – The number of notes is drawn uniformly from the clef's
       chord-size range. A size of 0 also yields a rest.

    3. **Root and voicing** – A root is drawn from the clef's playable pitches;
       the remaining notes are distinct pitches at most HAND_SPAN semitones
       above it, so every chord fits under one hand.

    4. **Spelling** – Each pitch is spelled with the key signature's preferred
       spelling. Without accidentals only pitches diatonic to the key are used.

    All randomness comes from the injected numpy Generator, so a seeded
    generator yields reproducible bars.
    """

    def __init__(self, rng: np.random.Generator | None = None) -> None:
        self.rng = rng if rng is not None else np.random.default_rng()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _candidate_pitches(
        self, clef: str, settings: Settings, key_signature: KeySignature
    ) -> list[int]:
        low, high = settings.note_range(clef)
        pitches = list(range(low, high + 1))
        if not settings.use_accidentals:
            pitches = [
                p for p in pitches
                if displayed_accidental(preferred_spelling(p, key_signature), key_signature) is None
            ]
        if not pitches:
            raise ConfigurationError(f"The {clef} clef has no playable pitches in range {low}-{high}.")
        return pitches

    def _viable_roots(self, candidates: list[int], size: int) -> list[int]:
        """Roots that leave room for *size* distinct pitches within one hand span."""
        return [
            root for root in candidates
            if sum(1 for p in candidates if root <= p <= root + HAND_SPAN) >= size
        ]

    def _random_chord(self, size: int, candidates: list[int], key_signature: KeySignature) -> Chord:
        roots = self._viable_roots(candidates, size)
        root = roots[int(self.rng.integers(len(roots)))]
        pitches = [root]
        if size > 1:
            window = [p for p in candidates if root < p <= root + HAND_SPAN]
            pitches.extend(int(p) for p in self.rng.choice(window, size=size - 1, replace=False))
        return Chord(tuple(preferred_spelling(p, key_signature) for p in sorted(pitches)))

    def _validate_chord_sizes(self, clef: str, settings: Settings) -> tuple[int, int]:
        if clef not in CLEFS:
            raise ConfigurationError(f"Unknown clef '{clef}'. Use one of: {', '.join(CLEFS)}.")
        if settings.bar_length < 1:
            raise ConfigurationError(f"Bar length must be positive, got {settings.bar_length}.")
        min_size, max_size = settings.chord_size_range(clef)
        if min_size < 0 or min_size > max_size:
            raise ConfigurationError(
                f"Invalid chord size range for the {clef} clef: [{min_size}, {max_size}]."
            )
        return min_size, max_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate_bar(
        self, clef: str, settings: Settings, key_signature: KeySignature = C_MAJOR
    ) -> Bar:
        """
        Generate one bar of chords and rests for *clef*.

        Args:
            clef:          "treble" or "bass".
            settings:      Chord-size ranges, accidental usage and bar length.
            key_signature: Signature used for pitch selection and spelling.

        Returns:
            A Bar with exactly ``settings.bar_length`` chords.

        Raises:
            ConfigurationError: If the settings cannot produce a valid bar.
        """
        min_size, max_size = self._validate_chord_sizes(clef, settings)
        candidates: list[int] = []
        if max_size > 0:
            candidates = self._candidate_pitches(clef, settings, key_signature)
            if not self._viable_roots(candidates, max_size):
                raise ConfigurationError(
                    f"Chords of {max_size} notes do not fit within one hand span "
                    f"in the {clef} clef."
                )

        chords: list[Chord] = []
        for _ in range(settings.bar_length):
            if self.rng.random() < REST_PROBABILITY:
                chords.append(Chord())
                continue
            size = int(self.rng.integers(min_size, max_size, endpoint=True))
            chords.append(self._random_chord(size, candidates, key_signature) if size else Chord())

        logger.debug(
            "Generated %s bar in %s: %s", clef, key_signature.name, [chord.keys for chord in chords]
        )
        return Bar(clef=clef, chords=tuple(chords))

    def generate_key_signature(self, settings: Settings) -> KeySignature:
        """
        Return the configured key signature, or a uniformly random standard one.

        Raises:
            ConfigurationError: If the configured name is not a key signature.
        """
        name = settings.key_signature
        if name == RANDOM_KEY_SIGNATURE:
            name = KEY_SIGNATURE_NAMES[int(self.rng.integers(len(KEY_SIGNATURE_NAMES)))]
        try:
            return KeySignature.from_name(name)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    def generate_bars(
        self, settings: Settings, key_signature: KeySignature = C_MAJOR
    ) -> BarPair:
        """
        Generate aligned treble and bass bars.

        Both bars always have ``settings.bar_length`` chords, so every treble
        chord has a bass counterpart.

        Raises:
            ConfigurationError: If the settings cannot produce a valid bar, or
                                if both clefs are configured to rests only.
        """
        if all(settings.chord_size_range(clef)[1] == 0 for clef in CLEFS):
            raise ConfigurationError("Both clefs are limited to rests; nothing to play.")
        return BarPair(
            treble=self.generate_bar("treble", settings, key_signature),
            bass=self.generate_bar("bass", settings, key_signature),
        )
