import os
import sys
import json
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from cli import backup_db, export_workouts, print_records, restore_db
from db import KeyValueStore, LoggedWorkoutRepository
from rest_api import FitTrackAPI
from seed_sample_data import TRAINER_CLIENT_ID, seed
from models import LoggedExercise, LoggedSet, LoggedWorkout


class CLIToolsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_cli.db"
        self.yaml_path = "test_cli.yaml"
        self.paths = [self.db_path, self.yaml_path, "test_backup.db", "test_export.json"]
        self._cleanup()
        self.history = LoggedWorkoutRepository(KeyValueStore(self.db_path))
        for i, client_id in enumerate(["c1", "c1", "c2"]):
            self.history.add(
                LoggedWorkout(
                    id=f"w{i}",
                    program_id="p1",
                    program_name="Push",
                    client_id=client_id,
                    date=f"2024-05-0{i + 1}T09:00:00",
                    logged_exercises=[
                        LoggedExercise(
                            exercise_id="bench",
                            exercise_name="Bench Press",
                            sets=[LoggedSet(set_number=1, weight=100, reps=5, completed=True)],
                        )
                    ],
                    total_volume=500,
                )
            )

    def tearDown(self) -> None:
        self._cleanup()

    def _cleanup(self) -> None:
        for path in self.paths:
            if os.path.exists(path):
                os.remove(path)

    def test_export(self) -> None:
        self.assertEqual(export_workouts(self.db_path, "test_export.json"), 3)
        self.assertEqual(export_workouts(self.db_path, "test_export.json", "c1"), 2)
        with open("test_export.json", "r", encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual([w["id"] for w in data], ["w0", "w1"])
        self.assertEqual(data[0]["totalVolume"], 500)

    def test_backup_restore(self) -> None:
        backup_db(self.db_path, "test_backup.db")
        self.history.save_all([])
        self.assertEqual(self.history.fetch_all(), [])
        restore_db("test_backup.db", self.db_path)
        self.assertEqual(len(self.history.fetch_all()), 3)

    def test_print_records(self) -> None:
        from io import StringIO
        from contextlib import redirect_stdout

        out = StringIO()
        with redirect_stdout(out):
            print_records(self.db_path, "c1", "lbs")
        text = out.getvalue()
        self.assertIn("Bench Press", text)
        self.assertIn("220.5 lbs x 5", text)

    def test_seed_only_once(self) -> None:
        api = FitTrackAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.assertTrue(seed(api))
        self.assertFalse(seed(api))
        self.assertEqual(len(api.programs.fetch_all()), 2)
        client = api.clients.fetch(TRAINER_CLIENT_ID)
        self.assertEqual(client.assigned_program_ids, ["program-1"])


if __name__ == "__main__":
    unittest.main()
