from __future__ import annotations
import datetime
import math
import uuid
from typing import Callable, Iterable, Optional

from loguru import logger

from algorithms import MathTools
from autosave_service import AutoSaveBridge, utc_now
from db import LoggedWorkoutRepository
from errors import FinalizationError, StorageError
from models import LoggedExercise, LoggedWorkout, Program
from session_store import SessionStateStore
from stats_service import StatisticsService


class SessionFinalizer:
    """Turn a live session into an immutable ``LoggedWorkout``.

    The history append is the only write whose loss would drop user data, so
    it is retried and raises ``FinalizationError`` when it keeps failing. The
    in-progress snapshot is cleared only after the append succeeded.
    """

    def __init__(
        self,
        history: LoggedWorkoutRepository,
        autosave: AutoSaveBridge,
        statistics: Optional[StatisticsService] = None,
        *,
        clock: Callable[[], datetime.datetime] = utc_now,
        retries: int = 2,
        completed_only: bool = False,
        detect_records: bool = False,
    ) -> None:
        self.history = history
        self.autosave = autosave
        self.statistics = statistics or StatisticsService(history)
        self.clock = clock
        self.retries = retries
        self.completed_only = completed_only
        self.detect_records = detect_records

    @staticmethod
    def total_volume(exercises: Iterable[LoggedExercise], completed_only: bool = False) -> float:
        return MathTools.volume(
            (s.reps, s.weight)
            for exercise in exercises
            for s in exercise.sets
            if s.completed or not completed_only
        )

    @staticmethod
    def duration_seconds(started_at: datetime.datetime, finished_at: datetime.datetime) -> int:
        elapsed = (finished_at - started_at).total_seconds()
        return max(int(math.floor(elapsed + 0.5)), 0)

    def build(
        self,
        store: SessionStateStore,
        program: Program,
        client_id: str,
        started_at: datetime.datetime,
    ) -> LoggedWorkout:
        finished_at = self.clock()
        date = finished_at.isoformat()
        exercises = [e.model_copy(deep=True) for e in store.logged_exercises]
        return LoggedWorkout(
            id=str(uuid.uuid4()),
            program_id=program.id,
            program_name=program.name,
            client_id=client_id,
            date=date,
            logged_exercises=exercises,
            logged_cardio=[c.model_copy(deep=True) for c in store.logged_cardio],
            duration_seconds=self.duration_seconds(started_at, finished_at),
            total_volume=self.total_volume(exercises, self.completed_only),
            feeling="none",
            prs_achieved=self._new_records(client_id, exercises, date),
        )

    def _new_records(self, client_id: str, exercises: list, date: str) -> list:
        if not self.detect_records:
            return []
        try:
            return self.statistics.new_records(client_id, exercises, date)
        except StorageError as e:
            logger.warning("personal records unavailable for {}: {}", client_id, e)
            return []

    def persist(self, workout: LoggedWorkout) -> None:
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                self.history.add(workout)
                return
            except StorageError as e:
                logger.warning(
                    "saving workout {} failed (attempt {}/{}): {}",
                    workout.id,
                    attempt,
                    attempts,
                    e,
                )
        raise FinalizationError(
            f"workout {workout.id} could not be saved after {attempts} attempts",
            attempts=attempts,
        )

    def finalize(
        self,
        store: SessionStateStore,
        program: Program,
        client_id: str,
        started_at: datetime.datetime,
    ) -> LoggedWorkout:
        workout = self.build(store, program, client_id, started_at)
        self.persist(workout)
        self.autosave.clear(client_id, program.id)
        logger.info(
            "workout {} finished for client {}: {}s, volume {:.1f} kg",
            workout.id,
            client_id,
            workout.duration_seconds,
            workout.total_volume,
        )
        return workout
