import uuid

from models import CardioExercise, Client, Exercise, Program
from rest_api import FitTrackAPI

TRAINER_CLIENT_ID = "trainer-profile-id"


def _exercise(name: str, sets: int, reps: str, rest: str, **extra) -> Exercise:
    return Exercise(id=str(uuid.uuid4()), name=name, sets=sets, reps=reps, rest=rest, **extra)


def sample_programs() -> list[Program]:
    return [
        Program(
            id="program-1",
            name="Full Body Strength A",
            description="A balanced workout targeting all major muscle groups.",
            program_notes="Focus on controlling the weight on the way down for every exercise.",
            warmup=[
                _exercise("Jumping Jacks", 1, "60s", "30s"),
                _exercise("Cat-Cow Stretch", 1, "10", "0s"),
            ],
            exercises=[
                _exercise(
                    "Barbell Squat", 4, "5-8", "90s",
                    cues="Keep your chest up and back straight. Drive through your heels.",
                    prescribed_weight="135lbs", prescribed_rpe="7-8",
                ),
                _exercise("Bench Press", 4, "5-8", "90s", prescribed_weight="185lbs", prescribed_rpe="8"),
                _exercise("Barbell Row", 3, "8-12", "60s"),
                _exercise("Overhead Press", 3, "8-12", "60s"),
            ],
            cardio=[
                CardioExercise(
                    id=str(uuid.uuid4()),
                    activity="Treadmill Run",
                    goal_type="time",
                    goal_value=15,
                    intensity="moderate",
                )
            ],
            cooldown=[
                _exercise("Quad Stretch", 1, "30s each side", "0s"),
                _exercise("Pigeon Pose", 1, "30s each side", "0s"),
            ],
        ),
        Program(
            id="program-2",
            name="HIIT Cardio Blast",
            description="High-intensity interval training to maximize calorie burn.",
            exercises=[
                _exercise("Burpees", 5, "45s work", "15s"),
                _exercise("High Knees", 5, "45s work", "15s"),
                _exercise("Jumping Jacks", 5, "45s work", "15s"),
                _exercise("Mountain Climbers", 5, "45s work", "15s"),
            ],
        ),
    ]


def seed(api: FitTrackAPI | None = None) -> bool:
    """Insert the demo client and programs into an empty store."""
    api = api or FitTrackAPI()
    if api.programs.fetch_all() or api.clients.fetch_all():
        print("Store already contains data")
        return False
    api.programs.save_all(sample_programs())
    api.clients.save_all(
        [
            Client(
                id=TRAINER_CLIENT_ID,
                name="Me",
                assigned_program_ids=["program-1"],
                notes="My personal training profile.",
            )
        ]
    )
    print("Seed data inserted")
    return True


if __name__ == "__main__":
    seed()
