from __future__ import annotations
import math
from typing import Callable, List, Optional

from loguru import logger

from algorithms import MathTools, UnitConverter
from models import (
    CardioDistanceSet,
    CardioTimeSet,
    CardioUnitSet,
    Complete,
    InProgressWorkout,
    LoggedCardio,
    LoggedExercise,
    LoggedSet,
    MutationResult,
    NoteSet,
    Program,
    RepsSet,
    RpeSet,
    WeightSet,
)
from rest_timer import RestTimer


class SessionStateStore:
    """Mutable log of the workout currently being performed."""

    SET_FIELDS = ("weight", "reps", "rpe")
    CARDIO_FIELDS = ("actual_time", "actual_distance", "distance_unit")

    def __init__(
        self,
        program: Program,
        *,
        unit: str = "kg",
        resume: Optional[InProgressWorkout] = None,
        timer: Optional[RestTimer] = None,
        rest_default_seconds: int = MathTools.DEFAULT_REST_SECONDS,
    ) -> None:
        self.program = program
        self.unit = unit
        self.timer = timer or RestTimer()
        self.rest_default_seconds = rest_default_seconds
        self._listeners: List[Callable[["SessionStateStore"], None]] = []
        if resume is not None:
            self.logged_exercises = [e.model_copy(deep=True) for e in resume.logged_exercises]
            self.logged_cardio = [c.model_copy(deep=True) for c in resume.logged_cardio]
        else:
            self.logged_exercises = self.fresh_exercises(program)
            self.logged_cardio = self.fresh_cardio(program)

    @staticmethod
    def fresh_exercises(program: Program) -> list[LoggedExercise]:
        return [
            LoggedExercise(
                exercise_id=exercise.id,
                exercise_name=exercise.name,
                notes="",
                sets=[
                    LoggedSet(set_number=i + 1, weight=0, reps=0, rpe=0, completed=False)
                    for i in range(exercise.sets)
                ],
            )
            for exercise in program.all_exercises
        ]

    @staticmethod
    def fresh_cardio(program: Program) -> list[LoggedCardio]:
        return [
            LoggedCardio(
                cardio_id=c.id,
                activity=c.activity,
                goal_type=c.goal_type,
                goal_value=c.goal_value,
                distance_unit=c.distance_unit or "mi",
            )
            for c in program.cardio
        ]

    def add_listener(self, callback: Callable[["SessionStateStore"], None]) -> None:
        """Register ``callback`` to run after every applied mutation."""
        self._listeners.append(callback)

    def _changed(self) -> None:
        for callback in self._listeners:
            callback(self)

    # --- lookup ---

    def _logged_exercise(self, section: str, exercise_index: int) -> LoggedExercise | None:
        exercises = self.program.section(section)
        if exercise_index < 0 or exercise_index >= len(exercises):
            return None
        exercise_id = exercises[exercise_index].id
        for logged in self.logged_exercises:
            if logged.exercise_id == exercise_id:
                return logged
        return None

    def _logged_set(self, section: str, exercise_index: int, set_index: int) -> LoggedSet | None:
        logged = self._logged_exercise(section, exercise_index)
        if logged is None or set_index < 0 or set_index >= len(logged.sets):
            return None
        return logged.sets[set_index]

    def _logged_cardio(self, cardio_index: int) -> LoggedCardio | None:
        if cardio_index < 0 or cardio_index >= len(self.program.cardio):
            return None
        cardio_id = self.program.cardio[cardio_index].id
        for logged in self.logged_cardio:
            if logged.cardio_id == cardio_id:
                return logged
        return None

    @staticmethod
    def _missing(reason: str) -> MutationResult:
        logger.debug("mutation ignored: {}", reason)
        return MutationResult(applied=False, reason=reason)

    # --- mutations ---

    def apply(self, mutation) -> MutationResult:
        """Dispatch a mutation variant to the matching operation."""
        if isinstance(mutation, WeightSet):
            return self.set_field(
                mutation.section, mutation.exercise_index, mutation.set_index, "weight", mutation.value
            )
        if isinstance(mutation, RepsSet):
            return self.set_field(
                mutation.section, mutation.exercise_index, mutation.set_index, "reps", mutation.value
            )
        if isinstance(mutation, RpeSet):
            return self.set_field(
                mutation.section, mutation.exercise_index, mutation.set_index, "rpe", mutation.value
            )
        if isinstance(mutation, NoteSet):
            return self.set_note(mutation.section, mutation.exercise_index, mutation.text)
        if isinstance(mutation, Complete):
            return self.toggle_set_complete(
                mutation.section, mutation.exercise_index, mutation.set_index
            )
        if isinstance(mutation, CardioTimeSet):
            return self.set_cardio_field(mutation.cardio_index, "actual_time", mutation.value)
        if isinstance(mutation, CardioDistanceSet):
            return self.set_cardio_field(mutation.cardio_index, "actual_distance", mutation.value)
        if isinstance(mutation, CardioUnitSet):
            return self.set_cardio_field(mutation.cardio_index, "distance_unit", mutation.unit)
        raise TypeError(f"unsupported mutation {type(mutation).__name__}")

    def set_field(
        self, section: str, exercise_index: int, set_index: int, field: str, value
    ) -> MutationResult:
        if field not in self.SET_FIELDS:
            return self._missing(f"unknown field {field!r}")
        logged_set = self._logged_set(section, exercise_index, set_index)
        if logged_set is None:
            return self._missing(f"no set {section}[{exercise_index}][{set_index}]")
        number = MathTools.parse_number(value)
        if field == "weight":
            logged_set.weight = max(UnitConverter.from_display_weight(number, self.unit), 0.0)
        elif field == "reps":
            logged_set.reps = int(math.floor(number + 0.5))
        else:
            logged_set.rpe = number
        self._changed()
        return MutationResult(applied=True)

    def set_note(self, section: str, exercise_index: int, text: str) -> MutationResult:
        logged = self._logged_exercise(section, exercise_index)
        if logged is None:
            return self._missing(f"no exercise {section}[{exercise_index}]")
        logged.notes = text or ""
        self._changed()
        return MutationResult(applied=True)

    def toggle_set_complete(
        self, section: str, exercise_index: int, set_index: int
    ) -> MutationResult:
        logged_set = self._logged_set(section, exercise_index, set_index)
        if logged_set is None:
            return self._missing(f"no set {section}[{exercise_index}][{set_index}]")
        logged_set.completed = not logged_set.completed
        rest_started = False
        if logged_set.completed:
            self.start_rest(section, exercise_index, set_index)
            rest_started = True
        self._changed()
        return MutationResult(applied=True, rest_started=rest_started)

    def set_cardio_field(self, cardio_index: int, field: str, value) -> MutationResult:
        if field not in self.CARDIO_FIELDS:
            return self._missing(f"unknown cardio field {field!r}")
        logged = self._logged_cardio(cardio_index)
        if logged is None:
            return self._missing(f"no cardio {cardio_index}")
        if field == "distance_unit":
            logged.distance_unit = value
        else:
            setattr(logged, field, MathTools.parse_number(value))
        self._changed()
        return MutationResult(applied=True)

    # --- rest timer ---

    def rest_seconds(self, section: str, exercise_index: int) -> int:
        exercise = self.program.section(section)[exercise_index]
        return MathTools.parse_rest_seconds(exercise.rest, self.rest_default_seconds)

    def start_rest(self, section: str, exercise_index: int, set_index: int) -> MutationResult:
        if self._logged_set(section, exercise_index, set_index) is None:
            return self._missing(f"no set {section}[{exercise_index}][{set_index}]")
        self.timer.start(
            section, exercise_index, set_index, self.rest_seconds(section, exercise_index)
        )
        return MutationResult(applied=True, rest_started=True)

    # --- views ---

    def all_sets(self) -> list[LoggedSet]:
        return [s for exercise in self.logged_exercises for s in exercise.sets]

    def snapshot(self, client_id: str, program_id: str, last_updated: str) -> InProgressWorkout:
        return InProgressWorkout(
            client_id=client_id,
            program_id=program_id,
            logged_exercises=[e.model_copy(deep=True) for e in self.logged_exercises],
            logged_cardio=[c.model_copy(deep=True) for c in self.logged_cardio],
            last_updated=last_updated,
        )
