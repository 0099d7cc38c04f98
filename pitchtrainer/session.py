"""TrainingSession: walks through generated bars while the player answers chord by chord."""

import logging
import time
from collections.abc import Callable

from pitchtrainer.bar_generator import BarGenerator, RegenerationTarget, regeneration_targets
from pitchtrainer.collaborators import (
    ANALYTICS_CATEGORY,
    AnalyticsService,
    StatisticEvent,
    StatisticService,
)
from pitchtrainer.errors import ConfigurationError
from pitchtrainer.input_sources import InputEvent
from pitchtrainer.midi_matcher import DEFAULT_TIMEOUT_MS, MatchResult, MidiMatcher, Phase
from pitchtrainer.models import BarPair
from pitchtrainer.settings import Settings
from pitchtrainer.theory import KeySignature

logger = logging.getLogger(__name__)

#: Fresh bar pairs consisting only of rests are drawn again at most this often.
MAX_REGENERATION_ATTEMPTS = 100


class TrainingSession:
    """
    Orchestrates generator, matcher and the statistics/analytics collaborators.

    The session is the matcher's listener: a success advances to the next
    chord (a new pair of bars after the last one), a wrong key keeps the
    chord in place until the player releases it. Rest positions are skipped
    without waiting for input. Outcomes are only reported to the
    collaborators; the session never stores or sends them itself.
    """

    def __init__(
        self,
        settings: Settings,
        statistics: StatisticService,
        analytics: AnalyticsService,
        generator: BarGenerator | None = None,
        clock: Callable[[], float] = time.monotonic,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        """
        Raises:
            ConfigurationError: If *settings* cannot produce a playable exercise.
        """
        self.settings = settings
        self.statistics = statistics
        self.analytics = analytics
        self.generator = generator if generator is not None else BarGenerator()
        self.matcher = MidiMatcher(self, clock=clock, timeout_ms=timeout_ms)
        self.error_message: str | None = None
        self.chord_index = 0
        self.key_signature, self.bars = self._generate_new_bars(settings)
        self._present_current_chord()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _generate_new_bars(
        self, settings: Settings, key_signature: KeySignature | None = None
    ) -> tuple[KeySignature, BarPair]:
        for _ in range(MAX_REGENERATION_ATTEMPTS):
            signature = key_signature or self.generator.generate_key_signature(settings)
            bars = self.generator.generate_bars(settings, signature)
            if bars.has_playable_chord:
                return signature, bars
        raise ConfigurationError(
            f"No playable chord in {MAX_REGENERATION_ATTEMPTS} generated bars; "
            "check the chord size ranges."
        )

    def _step(self) -> None:
        if self.chord_index + 1 >= len(self.bars):
            self.key_signature, self.bars = self._generate_new_bars(self.settings)
            self.chord_index = 0
            self.error_message = None
            logger.debug("New bars in %s", self.key_signature.name)
        else:
            self.chord_index += 1

    def _present_current_chord(self) -> None:
        while (
            self.matcher.set_desired_keys(self.current_keys(), self.key_signature)
            is Phase.RESOLVED_SUCCESS
        ):
            logger.debug("Skipping rest at position %d", self.chord_index)
            self._step()

    def _report(self, success: bool, result: MatchResult) -> None:
        self.statistics.register(
            StatisticEvent(
                success=success,
                keys=result.keys,
                key_signature=self.key_signature,
                time=result.elapsed_ms,
            )
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def current_keys(self) -> list[int]:
        """MIDI numbers of the current chord across both clefs."""
        return self.bars.chord_keys(self.chord_index)

    def advance(self) -> None:
        """Move to the next chord, generating new bars after the last one."""
        self._step()
        self._present_current_chord()

    def handle_event(self, event: InputEvent) -> Phase:
        """Feed one key event to the matcher, in arrival order."""
        return self.matcher.handle(event)

    def update_settings(self, settings: Settings) -> None:
        """
        Apply new settings, regenerating only what they affect.

        Raises:
            ConfigurationError: If the new settings cannot produce an exercise.
        """
        targets = regeneration_targets(self.settings, settings)
        if not targets:
            self.settings = settings
            return

        key_signature = self.key_signature
        if RegenerationTarget.KEY_SIGNATURE in targets:
            key_signature, bars = self._generate_new_bars(settings)
        else:
            treble, bass = self.bars.treble, self.bars.bass
            if RegenerationTarget.TREBLE in targets:
                treble = self.generator.generate_bar("treble", settings, key_signature)
            if RegenerationTarget.BASS in targets:
                bass = self.generator.generate_bar("bass", settings, key_signature)
            bars = BarPair(treble=treble, bass=bass)
            if not bars.has_playable_chord:
                key_signature, bars = self._generate_new_bars(settings, key_signature)

        self.settings = settings
        self.key_signature, self.bars = key_signature, bars
        logger.debug("Settings changed, regenerated %s", sorted(t.value for t in targets))
        self.chord_index = 0
        self._present_current_chord()

    def close(self) -> None:
        """Tear down the session; pending chord state is discarded."""
        self.matcher.reset()

    # ------------------------------------------------------------------
    # Matcher callbacks
    # ------------------------------------------------------------------

    def on_success(self, result: MatchResult) -> None:
        self._report(True, result)
        self.error_message = None
        self.analytics.send_event(ANALYTICS_CATEGORY, "success")
        self.advance()

    def on_timeout(self, result: MatchResult) -> None:
        self.analytics.send_event(ANALYTICS_CATEGORY, "success")
        self.advance()

    def on_failure(self, result: MatchResult) -> None:
        self._report(False, result)
        self.analytics.send_event(ANALYTICS_CATEGORY, "failure")

    def on_error(self, message: str) -> None:
        logger.info(message)
        self.error_message = message

    def on_error_resolve(self) -> None:
        self.error_message = None
