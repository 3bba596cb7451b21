import threading
from typing import Callable, Optional

from loguru import logger

from models import Record, Section


class TimerState(Record):
    section: Section
    exercise_index: int
    set_index: int
    seconds_remaining: int


class TimerTicker(threading.Thread):
    """Background thread ticking one timer generation once per interval."""

    def __init__(self, timer: "RestTimer", generation: int, interval: float = 1.0) -> None:
        super().__init__(daemon=True)
        self.timer = timer
        self.generation = generation
        self.interval = interval
        self._stopped = threading.Event()

    def stop(self) -> None:
        self._stopped.set()

    def run(self) -> None:
        while not self._stopped.wait(self.interval):
            self.timer.tick(self.generation)
            if self.timer.generation != self.generation or not self.timer.active:
                break


class RestTimer:
    """Single countdown timer owned by one workout session.

    Starting a timer replaces the previous one. Every start or cancel bumps
    ``generation`` and ticks carrying an older generation are ignored, so a
    replaced timer never updates the new state.
    """

    def __init__(
        self,
        *,
        auto_tick: bool = False,
        interval: float = 1.0,
        on_expire: Optional[Callable[[TimerState], None]] = None,
    ) -> None:
        self.auto_tick = auto_tick
        self.interval = interval
        self.on_expire = on_expire
        self.generation = 0
        self._state: TimerState | None = None
        self._ticker: TimerTicker | None = None
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> TimerState | None:
        with self._lock:
            return self._state.model_copy() if self._state else None

    def start(
        self, section: str, exercise_index: int, set_index: int, duration_seconds: int
    ) -> int:
        with self._lock:
            self._stop_ticker()
            self.generation += 1
            self._state = TimerState(
                section=section,
                exercise_index=exercise_index,
                set_index=set_index,
                seconds_remaining=max(int(duration_seconds), 0),
            )
            generation = self.generation
            if self.auto_tick:
                self._ticker = TimerTicker(self, generation, self.interval)
                self._ticker.start()
        logger.debug(
            "rest timer {} started for {}[{}] set {} ({}s)",
            generation,
            section,
            exercise_index,
            set_index,
            duration_seconds,
        )
        return generation

    def tick(self, generation: int | None = None) -> TimerState | None:
        """Advance the countdown by one second and return the new state."""
        expired = None
        with self._lock:
            if generation is not None and generation != self.generation:
                return None
            if self._state is None:
                return None
            self._state.seconds_remaining -= 1
            if self._state.seconds_remaining <= 0:
                expired = self._state
                expired.seconds_remaining = 0
                self._state = None
                current = None
            else:
                current = self._state.model_copy()
        if expired is not None:
            logger.debug("rest timer {} expired", self.generation)
            if self.on_expire:
                self.on_expire(expired)
        return current

    def cancel(self) -> None:
        with self._lock:
            self._stop_ticker()
            self.generation += 1
            self._state = None

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.stop()
            self._ticker = None
