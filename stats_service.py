from __future__ import annotations
from typing import Dict, Iterable, List

from algorithms import MathTools, UnitConverter
from db import LoggedWorkoutRepository
from models import LoggedExercise, LoggedWorkout, PersonalRecord, PersonalRecordEntry


class StatisticsService:
    """Compute derived views over a client's workout history."""

    def __init__(self, history: LoggedWorkoutRepository) -> None:
        self.history = history

    @staticmethod
    def record_sets(exercises: Iterable[LoggedExercise], date: str) -> List[PersonalRecordEntry]:
        """Return completed, non-empty sets with their estimated 1RM."""
        entries = []
        for exercise in exercises:
            for s in exercise.sets:
                if s.completed and s.weight > 0 and s.reps > 0:
                    entries.append(
                        PersonalRecordEntry(
                            exercise_name=exercise.exercise_name,
                            weight=s.weight,
                            reps=s.reps,
                            date=date,
                            estimated_1rm=MathTools.epley_1rm(s.weight, s.reps),
                        )
                    )
        return entries

    def workouts(self, client_id: str) -> List[LoggedWorkout]:
        """Return the client's finished workouts, newest first."""
        return sorted(
            self.history.fetch_for_client(client_id), key=lambda w: w.date, reverse=True
        )

    def personal_records(self, client_id: str, limit: int = 3) -> List[PersonalRecord]:
        """Top ``limit`` sets per exercise by estimated 1RM."""
        by_exercise: Dict[str, List[PersonalRecordEntry]] = {}
        for workout in self.history.fetch_for_client(client_id):
            for entry in self.record_sets(workout.logged_exercises, workout.date):
                by_exercise.setdefault(entry.exercise_name, []).append(entry)
        records = []
        for name, entries in by_exercise.items():
            entries.sort(key=lambda e: e.estimated_1rm, reverse=True)
            records.append(PersonalRecord(exercise_name=name, records=entries[:limit]))
        records.sort(key=lambda r: r.exercise_name.lower())
        return records

    def best_estimates(self, client_id: str) -> Dict[str, float]:
        best: Dict[str, float] = {}
        for workout in self.history.fetch_for_client(client_id):
            for entry in self.record_sets(workout.logged_exercises, workout.date):
                if entry.estimated_1rm > best.get(entry.exercise_name, 0.0):
                    best[entry.exercise_name] = entry.estimated_1rm
        return best

    def new_records(
        self, client_id: str, exercises: Iterable[LoggedExercise], date: str
    ) -> List[PersonalRecordEntry]:
        """Best set per exercise that beats the client's previous best."""
        previous = self.best_estimates(client_id)
        top: Dict[str, PersonalRecordEntry] = {}
        for entry in self.record_sets(exercises, date):
            current = top.get(entry.exercise_name)
            if current is None or entry.estimated_1rm > current.estimated_1rm:
                top[entry.exercise_name] = entry
        return [
            entry
            for name, entry in top.items()
            if entry.estimated_1rm > previous.get(name, 0.0)
        ]

    def progress(self, client_id: str, exercise_name: str) -> List[dict]:
        """Heaviest logged weight of ``exercise_name`` per workout, oldest first."""
        data = []
        for workout in sorted(self.history.fetch_for_client(client_id), key=lambda w: w.date):
            for exercise in workout.logged_exercises:
                if exercise.exercise_name != exercise_name:
                    continue
                max_weight = max([s.weight for s in exercise.sets] + [0.0])
                if max_weight > 0:
                    data.append({"date": workout.date, "weight": max_weight})
                break
        return data

    @staticmethod
    def summary(workout: LoggedWorkout, unit: str = "kg") -> dict:
        volume = UnitConverter.to_display_weight(workout.total_volume, unit)
        return {
            "id": workout.id,
            "program_name": workout.program_name,
            "total_volume": round(volume),
            "unit": unit,
            "duration_minutes": workout.duration_seconds // 60,
            "duration_seconds": workout.duration_seconds % 60,
            "new_prs": len(workout.prs_achieved),
            "feeling": workout.feeling,
        }

    def set_feeling(self, workout_id: str, feeling: str) -> LoggedWorkout:
        return self.history.set_feeling(workout_id, feeling)
