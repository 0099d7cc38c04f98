"""Exception hierarchy for pitchtrainer."""


class TrainerError(Exception):
    """Base class for every error raised by pitchtrainer."""


class ConfigurationError(TrainerError, ValueError):
    """
    Settings that cannot produce a valid exercise.

    Raised for inverted or negative chord-size ranges, empty playable ranges,
    chords too large for one hand span and unknown clefs or key signatures.
    """
