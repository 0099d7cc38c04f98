"""Statistics and analytics collaborators fed by the training session."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from pitchtrainer.theory import KeySignature

logger = logging.getLogger(__name__)

ANALYTICS_CATEGORY = "PitchReading"


@dataclass(frozen=True)
class StatisticEvent:
    """
    One answered chord.

    Attributes:
        success:       False if a wrong key was pressed.
        keys:          MIDI numbers of the chord.
        key_signature: Key signature the chord was shown in.
        time:          Milliseconds from showing the chord to the answer.
    """

    success: bool
    keys: tuple[int, ...]
    key_signature: KeySignature
    time: int


class StatisticService(Protocol):
    def register(self, event: StatisticEvent) -> None: ...


class AnalyticsService(Protocol):
    def send_event(self, category: str, action: str) -> None: ...


@dataclass(frozen=True)
class StatisticSummary:
    total: int
    successes: int
    mean_success_time_ms: float | None

    @property
    def success_rate(self) -> float:
        return self.successes / self.total if self.total else 0.0


@dataclass
class InMemoryStatistics:
    """Keeps registered events in a list; enough for a single CLI session."""

    events: list[StatisticEvent] = field(default_factory=list)

    def register(self, event: StatisticEvent) -> None:
        self.events.append(event)

    def summary(self) -> StatisticSummary:
        times = [event.time for event in self.events if event.success]
        return StatisticSummary(
            total=len(self.events),
            successes=len(times),
            mean_success_time_ms=sum(times) / len(times) if times else None,
        )


class LoggingAnalytics:
    """Writes analytics events to the log instead of sending them anywhere."""

    def send_event(self, category: str, action: str) -> None:
        logger.info("Analytics event %s/%s", category, action)
