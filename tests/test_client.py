import os
import sys
import unittest

from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import FitTrackClient
from helpers import simple_program
from rest_api import FitTrackAPI


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_client.db"
        self.yaml_path = "test_client.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.api = FitTrackAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.client = FitTrackClient(base_url="http://testserver", http=TestClient(self.api.app))

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_log_workout(self) -> None:
        client_id = self.client.create_client("Robin")
        program_id = self.client.create_program(simple_program().to_json())
        self.assertEqual(self.client.assign_program(client_id, program_id)["assignedProgramIds"], ["p1"])
        session = self.client.start_session(client_id, program_id, unit="kg")
        self.client.mutate(
            session["id"],
            {"kind": "weight", "section": "main", "exerciseIndex": 0, "setIndex": 0, "value": 100},
        )
        self.client.mutate(
            session["id"],
            {"kind": "reps", "section": "main", "exerciseIndex": 0, "setIndex": 0, "value": 3},
        )
        workout = self.client.finish(session["id"])
        self.assertEqual(workout["totalVolume"], 300)
        self.assertEqual([w["id"] for w in self.client.workouts(client_id)], [workout["id"]])

    def test_resume_conflict_raises(self) -> None:
        client_id = self.client.create_client("Robin")
        program_id = self.client.create_program(simple_program().to_json())
        self.client.start_session(client_id, program_id)
        with self.assertRaises(Exception):
            self.client.start_session(client_id, program_id)


if __name__ == "__main__":
    unittest.main()
