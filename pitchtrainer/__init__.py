"""pitchtrainer: sight-reading drills checked against a MIDI keyboard."""

__version__ = "0.1.0"
