import datetime

from db import LOGGED_WORKOUTS_KEY, KeyValueStore
from errors import StorageError
from models import CardioExercise, Exercise, Program


class FakeClock:
    def __init__(self, start: datetime.datetime | None = None) -> None:
        self.now = start or datetime.datetime(2024, 5, 1, 9, 0, tzinfo=datetime.timezone.utc)

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += datetime.timedelta(seconds=seconds)


class FlakyStore(KeyValueStore):
    """Store whose writes can be switched off per key."""

    def __init__(self, db_path: str) -> None:
        super().__init__(db_path)
        self.fail_all = False
        self.fail_keys: set[str] = set()
        self.write_attempts: dict[str, int] = {}

    def _attempt(self, key: str) -> None:
        self.write_attempts[key] = self.write_attempts.get(key, 0) + 1
        if self.fail_all or key in self.fail_keys:
            raise StorageError(f"store unavailable for {key}")

    def set(self, key: str, value) -> None:
        self._attempt(key)
        super().set(key, value)

    def update(self, key: str, change):
        self._attempt(key)
        return super().update(key, change)

    def delete(self, key: str) -> None:
        if self.fail_all:
            raise StorageError(f"store unavailable for {key}")
        super().delete(key)

    def fail_history(self) -> None:
        self.fail_keys.add(LOGGED_WORKOUTS_KEY)


def simple_program(rest: str = "45s", sets: int = 3) -> Program:
    return Program(
        id="p1",
        name="Simple Strength",
        exercises=[Exercise(id="squat", name="Squat", sets=sets, reps="5", rest=rest)],
    )


def full_program() -> Program:
    return Program(
        id="p2",
        name="Full Body",
        warmup=[Exercise(id="jj", name="Jumping Jacks", sets=1, reps="60s", rest="30s")],
        exercises=[
            Exercise(id="bench", name="Bench Press", sets=2, reps="5-8", rest="90s"),
            Exercise(id="row", name="Barbell Row", sets=3, reps="8-12", rest="abc"),
        ],
        cardio=[
            CardioExercise(id="run", activity="Treadmill Run", goal_type="time", goal_value=15),
            CardioExercise(
                id="row-erg",
                activity="Rower",
                goal_type="distance",
                goal_value=2,
                distance_unit="km",
            ),
        ],
        cooldown=[Exercise(id="quad", name="Quad Stretch", sets=1, reps="30s", rest="0s")],
    )
