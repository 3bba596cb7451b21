"""FitTrack data models."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Section = Literal["warmup", "main", "cooldown"]
WeightUnit = Literal["kg", "lbs"]
DistanceUnit = Literal["km", "mi", "m", "yd"]
Feeling = Literal["none", "difficult", "okay", "great"]
InvoiceStatus = Literal["draft", "sent", "paid", "overdue"]

SECTIONS: tuple[str, ...] = ("warmup", "main", "cooldown")


class Record(BaseModel):
    """Base model storing camelCase keys and accepting either spelling."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Exercise(Record):
    """An exercise prescribed by a program."""
    id: str
    name: str
    sets: int = 1
    reps: str = ""
    rest: str = "60s"
    video_url: str | None = None
    cues: str | None = None
    prescribed_weight: str | None = None
    prescribed_rpe: str | None = None


class CardioExercise(Record):
    """A cardio activity prescribed by a program."""
    id: str
    activity: str
    goal_type: Literal["time", "distance"] = "time"
    goal_value: float = 0
    distance_unit: DistanceUnit | None = None
    intensity: Literal["low", "moderate", "high"] = "moderate"


class Program(Record):
    """A workout program; ``exercises`` holds the main section."""
    id: str
    name: str
    description: str = ""
    program_notes: str | None = None
    warmup: list[Exercise] = []
    exercises: list[Exercise] = []
    cardio: list[CardioExercise] = []
    cooldown: list[Exercise] = []
    owner_id: str | None = None

    def section(self, key: str) -> list[Exercise]:
        if key == "warmup":
            return self.warmup
        if key == "main":
            return self.exercises
        if key == "cooldown":
            return self.cooldown
        return []

    @property
    def all_exercises(self) -> list[Exercise]:
        return [*self.warmup, *self.exercises, *self.cooldown]


class Client(Record):
    id: str
    name: str
    assigned_program_ids: list[str] = []
    notes: str | None = None
    status: Literal["active", "suspended"] = "active"


class LoggedSet(Record):
    """A single set; ``weight`` is always kilograms."""
    set_number: int
    weight: float = 0.0
    reps: int = 0
    rpe: float | None = None
    completed: bool = False


class LoggedExercise(Record):
    exercise_id: str
    exercise_name: str
    sets: list[LoggedSet] = []
    notes: str = ""


class LoggedCardio(Record):
    cardio_id: str
    activity: str
    goal_type: Literal["time", "distance"] = "time"
    goal_value: float = 0
    actual_time: float | None = None
    actual_distance: float | None = None
    distance_unit: DistanceUnit | None = None


class InProgressWorkout(Record):
    """Resumable snapshot of a session, one per client and program."""
    client_id: str
    program_id: str
    logged_exercises: list[LoggedExercise] = []
    logged_cardio: list[LoggedCardio] = []
    last_updated: str


class PersonalRecordEntry(Record):
    exercise_name: str | None = None
    weight: float
    reps: int
    date: str
    estimated_1rm: float = Field(alias="estimated1RM")


class PersonalRecord(Record):
    exercise_name: str
    records: list[PersonalRecordEntry] = []


class LoggedWorkout(Record):
    """A finished workout. Only ``feeling`` changes after creation."""
    id: str
    program_id: str
    program_name: str
    client_id: str
    date: str
    logged_exercises: list[LoggedExercise] = []
    logged_cardio: list[LoggedCardio] = []
    duration_seconds: int = 0
    total_volume: float = 0.0
    feeling: Feeling = "none"
    prs_achieved: list[PersonalRecordEntry] = []


class Invoice(Record):
    id: str
    client_id: str
    client_name: str = ""
    amount: float
    description: str = ""
    status: InvoiceStatus = "draft"
    issue_date: str
    due_date: str
    paid_date: str | None = None


# --- Session mutations ---

RawValue = Union[float, str, None]


class WeightSet(Record):
    kind: Literal["weight"] = "weight"
    section: Section
    exercise_index: int
    set_index: int
    value: RawValue = None


class RepsSet(Record):
    kind: Literal["reps"] = "reps"
    section: Section
    exercise_index: int
    set_index: int
    value: RawValue = None


class RpeSet(Record):
    kind: Literal["rpe"] = "rpe"
    section: Section
    exercise_index: int
    set_index: int
    value: RawValue = None


class NoteSet(Record):
    kind: Literal["note"] = "note"
    section: Section
    exercise_index: int
    text: str = ""


class Complete(Record):
    """Toggle the completion flag of a set."""
    kind: Literal["complete"] = "complete"
    section: Section
    exercise_index: int
    set_index: int


class CardioTimeSet(Record):
    kind: Literal["cardio_time"] = "cardio_time"
    cardio_index: int
    value: RawValue = None


class CardioDistanceSet(Record):
    kind: Literal["cardio_distance"] = "cardio_distance"
    cardio_index: int
    value: RawValue = None


class CardioUnitSet(Record):
    kind: Literal["cardio_unit"] = "cardio_unit"
    cardio_index: int
    unit: DistanceUnit


Mutation = Annotated[
    Union[
        WeightSet,
        RepsSet,
        RpeSet,
        NoteSet,
        Complete,
        CardioTimeSet,
        CardioDistanceSet,
        CardioUnitSet,
    ],
    Field(discriminator="kind"),
]


class MutationResult(Record):
    """Outcome of a mutation; ``applied`` is False for missing targets."""
    applied: bool
    reason: str | None = None
    rest_started: bool = False
