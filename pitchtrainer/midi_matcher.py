"""MidiMatcher: compares live key events against the chord the player has to play."""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from pitchtrainer.input_sources import KEY_DOWN, InputEvent
from pitchtrainer.theory import C_MAJOR, KeySignature, midi_name

logger = logging.getLogger(__name__)

#: Completions slower than this are kept out of the statistics.
DEFAULT_TIMEOUT_MS = 30000


class Phase(Enum):
    IDLE = "idle"
    WAITING = "waiting"
    PARTIALLY_MATCHED = "partially_matched"
    RESOLVED_SUCCESS = "resolved_success"
    RESOLVED_FAILURE = "resolved_failure"


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome reported to the listener.

    Attributes:
        keys:       Sorted MIDI numbers of the desired chord.
        elapsed_ms: Milliseconds since the chord became current.
        wrong_key:  The offending pitch for failures, else None.
    """

    keys: tuple[int, ...]
    elapsed_ms: int
    wrong_key: int | None = None


@dataclass
class MatchState:
    """Mutable matching state of the current chord."""

    desired_keys: frozenset[int]
    start_time: float
    pressed_keys: set[int] = field(default_factory=set)
    wrong_keys: set[int] = field(default_factory=set)
    phase: Phase = Phase.WAITING
    key_signature: KeySignature = C_MAJOR


class MatchListener(Protocol):
    def on_success(self, result: MatchResult) -> None: ...

    def on_timeout(self, result: MatchResult) -> None: ...

    def on_failure(self, result: MatchResult) -> None: ...

    def on_error(self, message: str) -> None: ...

    def on_error_resolve(self) -> None: ...


class MidiMatcher:
    """
    State machine matching key events against one desired chord at a time.

    Transitions
    -----------
    IDLE → WAITING                 set_desired_keys() with at least one key
    IDLE → RESOLVED_SUCCESS        set_desired_keys() with no keys (rest)
    WAITING → PARTIALLY_MATCHED    a desired key goes down
    PARTIALLY_MATCHED → WAITING    the last held desired key goes up
    * → RESOLVED_SUCCESS           all desired keys held, no wrong key held
    * → RESOLVED_FAILURE           a key outside the chord goes down
    RESOLVED_FAILURE → WAITING /   every wrong key released again
      PARTIALLY_MATCHED

    Partial presses are never penalised; only wrong keys are. A success later
    than *timeout_ms* is routed to ``on_error`` + ``on_timeout`` instead of
    ``on_success`` so slow answers after a break do not skew the statistics.

    Listener callbacks may call ``set_desired_keys`` for the next chord; the
    matcher never touches the replaced state afterwards.
    """

    def __init__(
        self,
        listener: MatchListener,
        clock: Callable[[], float] = time.monotonic,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        """
        Args:
            listener:   Receives success/timeout/failure/error/resolve callbacks.
            clock:      Returns the current time in seconds.
            timeout_ms: Threshold above which a success counts as a timeout.
        """
        self.listener = listener
        self.clock = clock
        self.timeout_ms = timeout_ms
        self.state: MatchState | None = None

    @property
    def phase(self) -> Phase:
        return self.state.phase if self.state is not None else Phase.IDLE

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _elapsed_ms(self, state: MatchState) -> int:
        return int(round((self.clock() - state.start_time) * 1000))

    def _result(self, state: MatchState, wrong_key: int | None = None) -> MatchResult:
        return MatchResult(
            keys=tuple(sorted(state.desired_keys)),
            elapsed_ms=self._elapsed_ms(state),
            wrong_key=wrong_key,
        )

    def _resolve_success(self, state: MatchState) -> None:
        state.phase = Phase.RESOLVED_SUCCESS
        result = self._result(state)
        if result.elapsed_ms > self.timeout_ms:
            logger.info("Chord %s completed after %d ms; ignored", result.keys, result.elapsed_ms)
            self.listener.on_error(
                f"Since you took more than {self.timeout_ms // 1000} seconds, this chord "
                "was ignored to avoid dragging down your statistics. "
                "Hopefully, you just took a break in between :)"
            )
            self.listener.on_timeout(result)
        else:
            logger.debug("Chord %s completed after %d ms", result.keys, result.elapsed_ms)
            self.listener.on_success(result)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_desired_keys(
        self, keys: Iterable[int], key_signature: KeySignature = C_MAJOR
    ) -> Phase:
        """
        Make *keys* the current chord and start its timer.

        An empty chord (rest) resolves as a success right away without any
        listener call; callers check the returned phase and move on.
        Wrong keys are named as spelled in *key_signature*.

        Returns:
            The phase of the new chord.
        """
        desired = frozenset(keys)
        self.state = MatchState(
            desired_keys=desired, start_time=self.clock(), key_signature=key_signature
        )
        if not desired:
            self.state.phase = Phase.RESOLVED_SUCCESS
        logger.debug("Desired keys %s (%s)", sorted(desired), self.state.phase.value)
        return self.state.phase

    def reset(self) -> None:
        """Discard the current chord; later events are ignored until the next one."""
        self.state = None

    def key_down(self, pitch: int) -> Phase:
        state = self.state
        if state is None or state.phase is Phase.RESOLVED_SUCCESS:
            logger.debug("Ignoring key-down %d in phase %s", pitch, self.phase.value)
            return self.phase

        if pitch not in state.desired_keys:
            if pitch in state.wrong_keys:
                return state.phase
            state.wrong_keys.add(pitch)
            state.phase = Phase.RESOLVED_FAILURE
            self.listener.on_failure(self._result(state, wrong_key=pitch))
            self.listener.on_error(
                f"Wrong key {midi_name(pitch, state.key_signature)} (MIDI {pitch}) "
                "is not part of the current chord."
            )
            return state.phase

        if pitch in state.pressed_keys:
            return state.phase
        state.pressed_keys.add(pitch)

        if state.phase is Phase.RESOLVED_FAILURE:
            return state.phase
        if state.pressed_keys == state.desired_keys:
            self._resolve_success(state)
        else:
            state.phase = Phase.PARTIALLY_MATCHED
        return state.phase

    def key_up(self, pitch: int) -> Phase:
        state = self.state
        if state is None:
            return Phase.IDLE

        state.pressed_keys.discard(pitch)
        if pitch in state.wrong_keys:
            state.wrong_keys.discard(pitch)
            if state.phase is Phase.RESOLVED_FAILURE and not state.wrong_keys:
                state.phase = Phase.PARTIALLY_MATCHED if state.pressed_keys else Phase.WAITING
                self.listener.on_error_resolve()
                if state.pressed_keys == state.desired_keys:
                    self._resolve_success(state)
            return state.phase

        if state.phase is Phase.PARTIALLY_MATCHED and not state.pressed_keys:
            state.phase = Phase.WAITING
            self.listener.on_error_resolve()
        return state.phase

    def handle(self, event: InputEvent) -> Phase:
        """Dispatch a decoded input event to key_down or key_up."""
        if event.type == KEY_DOWN:
            return self.key_down(event.pitch)
        return self.key_up(event.pitch)
