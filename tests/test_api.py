import os
import sys
import unittest

from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from helpers import FakeClock, full_program, simple_program
from rest_api import FitTrackAPI


class APITestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_api.db"
        self.yaml_path = "test_api_settings.yaml"
        self._cleanup()
        self.clock = FakeClock()
        self.api = FitTrackAPI(db_path=self.db_path, yaml_path=self.yaml_path, clock=self.clock)
        self.client = TestClient(self.api.app)

    def tearDown(self) -> None:
        self._cleanup()

    def _cleanup(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def _setup_client(self, program=None) -> str:
        program = program or simple_program()
        response = self.client.post("/programs", json=program.to_json())
        self.assertEqual(response.status_code, 200)
        response = self.client.post("/clients", params={"name": "Alex"})
        self.assertEqual(response.status_code, 200)
        client_id = response.json()["id"]
        response = self.client.post(f"/clients/{client_id}/programs/{program.id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["assignedProgramIds"], [program.id])
        return client_id

    def _mutate(self, session_id: str, **payload) -> dict:
        response = self.client.post(f"/sessions/{session_id}/mutations", json=payload)
        self.assertEqual(response.status_code, 200)
        return response.json()

    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.json(), {"status": "ok"})

    def test_full_workflow(self) -> None:
        client_id = self._setup_client()

        response = self.client.post(
            "/sessions", params={"client_id": client_id, "program_id": "p1", "unit": "lbs"}
        )
        self.assertEqual(response.status_code, 200)
        session = response.json()
        self.assertFalse(session["resumed"])
        self.assertEqual(session["unit"], "lbs")
        self.assertIsNone(session["rest_timer"])
        self.assertEqual(len(session["snapshot"]["loggedExercises"][0]["sets"]), 3)
        sid = session["id"]

        result = self._mutate(
            sid, kind="weight", section="main", exerciseIndex=0, setIndex=0, value="100"
        )
        self.assertEqual(result, {"applied": True, "restStarted": False})
        self._mutate(sid, kind="reps", section="main", exerciseIndex=0, setIndex=0, value=5)
        result = self._mutate(sid, kind="complete", section="main", exerciseIndex=0, setIndex=0)
        self.assertEqual(result, {"applied": True, "restStarted": True})

        session = self.client.get(f"/sessions/{sid}").json()
        self.assertEqual(
            session["rest_timer"],
            {"section": "main", "exerciseIndex": 0, "setIndex": 0, "secondsRemaining": 45},
        )
        logged = session["snapshot"]["loggedExercises"][0]["sets"][0]
        self.assertAlmostEqual(logged["weight"], 45.36, places=2)
        self.assertTrue(logged["completed"])

        response = self.client.post(f"/sessions/{sid}/rest/tick")
        self.assertEqual(response.json()["restTimer"]["secondsRemaining"], 44)
        response = self.client.delete(f"/sessions/{sid}/rest")
        self.assertEqual(response.json(), {"status": "cancelled"})
        self.assertIsNone(self.client.post(f"/sessions/{sid}/rest/tick").json()["restTimer"])

        self.clock.advance(600)
        response = self.client.post(f"/sessions/{sid}/finish")
        self.assertEqual(response.status_code, 200)
        workout = response.json()
        self.assertEqual(workout["durationSeconds"], 600)
        self.assertAlmostEqual(workout["totalVolume"], 226.8, places=1)
        self.assertEqual(workout["prsAchieved"], [])

        self.assertEqual(self.client.get(f"/sessions/{sid}").status_code, 404)
        self.assertEqual(self.client.get(f"/in_progress/{client_id}/p1").status_code, 404)

        history = self.client.get(f"/clients/{client_id}/workouts").json()
        self.assertEqual([w["id"] for w in history], [workout["id"]])

        summary = self.client.get(
            f"/workouts/{workout['id']}/summary", params={"unit": "lbs"}
        ).json()
        self.assertEqual(summary["total_volume"], 500)
        self.assertEqual(summary["duration_minutes"], 10)
        self.assertEqual(summary["new_prs"], 0)

        response = self.client.put(
            f"/workouts/{workout['id']}/feeling", params={"feeling": "great"}
        )
        self.assertEqual(response.json(), {"status": "updated", "feeling": "great"})
        self.assertEqual(self.client.get(f"/workouts/{workout['id']}").json()["feeling"], "great")

        records = self.client.get(f"/clients/{client_id}/personal_records").json()
        self.assertEqual(records[0]["exerciseName"], "Squat")
        progress = self.client.get(
            f"/clients/{client_id}/progress", params={"exercise": "Squat"}
        ).json()
        self.assertEqual(len(progress), 1)

    def test_resume_flow(self) -> None:
        client_id = self._setup_client()
        params = {"client_id": client_id, "program_id": "p1"}
        sid = self.client.post("/sessions", params=params).json()["id"]
        self._mutate(sid, kind="weight", section="main", exerciseIndex=0, setIndex=1, value=80)
        self.assertEqual(self.client.post("/sessions", params=params).status_code, 409)
        self.assertEqual(self.client.delete(f"/sessions/{sid}").json(), {"status": "abandoned"})

        snapshot = self.client.get(f"/in_progress/{client_id}/p1").json()
        self.assertEqual(snapshot["loggedExercises"][0]["sets"][1]["weight"], 80)
        self.assertEqual(len(self.client.get(f"/clients/{client_id}/in_progress").json()), 1)

        self.assertEqual(self.client.post("/sessions", params=params).status_code, 409)

        response = self.client.post("/sessions", params={**params, "resume": "true"})
        self.assertEqual(response.status_code, 200)
        session = response.json()
        self.assertTrue(session["resumed"])
        self.assertEqual(session["snapshot"]["loggedExercises"][0]["sets"][1]["weight"], 80)
        self.client.delete(f"/sessions/{session['id']}")

        response = self.client.post("/sessions", params={**params, "resume": "false"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["snapshot"]["loggedExercises"][0]["sets"][1]["weight"], 0)

    def test_discard_in_progress(self) -> None:
        client_id = self._setup_client()
        sid = self.client.post(
            "/sessions", params={"client_id": client_id, "program_id": "p1"}
        ).json()["id"]
        self.client.delete(f"/sessions/{sid}")
        for _ in range(2):
            response = self.client.delete(f"/in_progress/{client_id}/p1")
            self.assertEqual(response.json(), {"status": "discarded"})
        self.assertEqual(self.client.get(f"/in_progress/{client_id}/p1").status_code, 404)

    def test_invalid_requests(self) -> None:
        client_id = self._setup_client(full_program())
        self.assertEqual(
            self.client.post("/sessions", params={"client_id": client_id, "program_id": "nope"}).status_code,
            404,
        )
        self.assertEqual(
            self.client.post("/sessions", params={"client_id": "nobody", "program_id": "p2"}).status_code,
            404,
        )
        self.assertEqual(
            self.client.post(
                "/sessions", params={"client_id": client_id, "program_id": "p2", "unit": "stone"}
            ).status_code,
            400,
        )
        sid = self.client.post(
            "/sessions", params={"client_id": client_id, "program_id": "p2"}
        ).json()["id"]
        response = self.client.post(f"/sessions/{sid}/mutations", json={"kind": "jump"})
        self.assertEqual(response.status_code, 400)
        result = self._mutate(
            sid, kind="reps", section="cooldown", exerciseIndex=4, setIndex=0, value=3
        )
        self.assertFalse(result["applied"])
        self.assertIn("reason", result)
        result = self._mutate(sid, kind="cardio_unit", cardioIndex=1, unit="m")
        self.assertTrue(result["applied"])
        self.assertEqual(self.client.post("/sessions/missing/finish").status_code, 404)
        self.assertEqual(self.client.post("/programs", json=simple_program(rest="60s").to_json()).status_code, 200)
        self.assertEqual(self.client.post("/programs", json=simple_program().to_json()).status_code, 400)
        self.assertEqual(self.client.post("/clients", params={"name": "  "}).status_code, 400)

    def test_start_rest_explicitly(self) -> None:
        client_id = self._setup_client(full_program())
        sid = self.client.post(
            "/sessions", params={"client_id": client_id, "program_id": "p2"}
        ).json()["id"]
        response = self.client.post(
            f"/sessions/{sid}/rest",
            params={"section": "warmup", "exercise_index": 0, "set_index": 0},
        )
        body = response.json()
        self.assertTrue(body["restStarted"])
        self.assertEqual(body["restTimer"]["secondsRemaining"], 30)

    def test_finish_failure_returns_503(self) -> None:
        client_id = self._setup_client()
        sid = self.client.post(
            "/sessions", params={"client_id": client_id, "program_id": "p1"}
        ).json()["id"]
        self.api.settings.set_int("finalize_retries", 0)

        def broken_add(workout) -> None:
            from errors import StorageError

            raise StorageError("disk full")

        self.api.sessions.history.add = broken_add
        self.assertEqual(self.client.post(f"/sessions/{sid}/finish").status_code, 503)
        self.assertEqual(self.client.get(f"/sessions/{sid}").status_code, 200)
        self.assertEqual(self.client.get(f"/in_progress/{client_id}/p1").status_code, 200)

    def test_tools(self) -> None:
        body = self.client.get("/tools/convert/weight", params={"value": 100, "unit": "kg"}).json()
        self.assertAlmostEqual(body["lbs"], 220.462)
        body = self.client.get(
            "/tools/convert/distance", params={"value": 1, "from_unit": "mi", "to_unit": "km"}
        ).json()
        self.assertAlmostEqual(body["value"], 1.60934)
        self.assertEqual(
            self.client.get(
                "/tools/convert/distance", params={"value": 1, "from_unit": "mi", "to_unit": "ft"}
            ).status_code,
            400,
        )
        body = self.client.get("/tools/pace", params={"distance": 5, "duration": "25:00"}).json()
        self.assertEqual(body, {"pace_seconds": 300, "pace": "05:00"})

    def test_settings(self) -> None:
        settings = self.client.get("/settings").json()
        self.assertEqual(settings["rest_default_seconds"], 60)
        self.assertFalse(settings["volume_completed_only"])
        response = self.client.put("/settings", json={"weight_unit": "lbs", "rest_default_seconds": 75})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["weight_unit"], "lbs")
        self.assertEqual(self.client.put("/settings", json={"weight_unit": "stone"}).status_code, 400)
        self.assertEqual(self.client.put("/settings", json={"rest_default_seconds": 0}).status_code, 400)
        response = self.client.put("/settings", json={"volume_completed_only": "false"})
        self.assertIs(response.json()["volume_completed_only"], False)

    def test_billing(self) -> None:
        client_id = self._setup_client()
        response = self.client.post(
            "/invoices",
            params={
                "client_id": client_id,
                "amount": 120,
                "due_date": "2024-05-10",
                "issue_date": "2024-05-01",
                "description": "May coaching",
            },
        )
        self.assertEqual(response.status_code, 200)
        invoice_id = response.json()["id"]
        self.assertEqual(self.client.post(f"/invoices/{invoice_id}/pay").status_code, 400)
        self.assertEqual(self.client.post(f"/invoices/{invoice_id}/send").json()["status"], "sent")
        response = self.client.post("/invoices/refresh", params={"today": "2024-05-20"})
        self.assertEqual(response.json()[0]["status"], "overdue")
        self.assertEqual(self.client.post("/invoices/refresh", params={"today": "soon"}).status_code, 400)
        status = self.client.get(f"/clients/{client_id}/billing_status").json()
        self.assertTrue(status["has_overdue"])
        self.assertTrue(status["locked_out"])
        self.assertEqual(self.client.post(f"/invoices/{invoice_id}/pay").json()["status"], "paid")
        self.assertEqual(
            self.client.post(
                "/invoices", params={"client_id": client_id, "amount": 0, "due_date": "2024-06-01"}
            ).status_code,
            400,
        )
        self.assertEqual(
            self.client.post(
                "/invoices", params={"client_id": "nobody", "amount": 5, "due_date": "2024-06-01"}
            ).status_code,
            404,
        )


if __name__ == "__main__":
    unittest.main()
