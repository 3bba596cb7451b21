import requests
from typing import Optional


class FitTrackClient:
    """Simple REST client for the FitTrack API."""

    def __init__(self, base_url: str = "http://localhost:8000", http=None) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http or requests

    def _post(self, path: str, **kwargs):
        resp = self.http.post(f"{self.base_url}{path}", **kwargs)
        resp.raise_for_status()
        return resp.json()

    def _get(self, path: str, **kwargs):
        resp = self.http.get(f"{self.base_url}{path}", **kwargs)
        resp.raise_for_status()
        return resp.json()

    def create_client(self, name: str, notes: Optional[str] = None) -> str:
        return self._post("/clients", params={"name": name, "notes": notes})["id"]

    def create_program(self, program: dict) -> str:
        return self._post("/programs", json=program)["id"]

    def assign_program(self, client_id: str, program_id: str) -> dict:
        return self._post(f"/clients/{client_id}/programs/{program_id}")

    def start_session(
        self,
        client_id: str,
        program_id: str,
        resume: Optional[bool] = None,
        unit: Optional[str] = None,
    ) -> dict:
        params = {"client_id": client_id, "program_id": program_id}
        if resume is not None:
            params["resume"] = str(resume).lower()
        if unit:
            params["unit"] = unit
        return self._post("/sessions", params=params)

    def mutate(self, session_id: str, mutation: dict) -> dict:
        return self._post(f"/sessions/{session_id}/mutations", json=mutation)

    def finish(self, session_id: str) -> dict:
        return self._post(f"/sessions/{session_id}/finish")

    def workouts(self, client_id: str) -> list:
        return self._get(f"/clients/{client_id}/workouts")
