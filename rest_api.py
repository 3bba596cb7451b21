import datetime
import uuid
from typing import Callable

from fastapi import APIRouter, Body, FastAPI, HTTPException
from loguru import logger
from pydantic import TypeAdapter, ValidationError

from algorithms import PaceCalculator, UnitConverter
from autosave_service import utc_now
from billing_service import BillingService
from db import (
    ClientRepository,
    InvoiceRepository,
    KeyValueStore,
    ProgramRepository,
    SettingsRepository,
)
from errors import (
    FinalizationError,
    FitTrackError,
    NotFoundError,
    ResumeRequiredError,
    SessionConflictError,
)
from models import Client, Mutation, Program
from session_service import SessionHandle, WorkoutSessionService
from stats_service import StatisticsService

MUTATION_ADAPTER = TypeAdapter(Mutation)


class FitTrackAPI:
    """Provides REST endpoints for workout sessions, history and billing."""

    def __init__(
        self,
        db_path: str = "fittrack.db",
        yaml_path: str = "settings.yaml",
        *,
        clock: Callable[[], datetime.datetime] = utc_now,
        auto_tick: bool = False,
    ) -> None:
        self.db_path = db_path
        self.settings = SettingsRepository(db_path, yaml_path)
        self.store = KeyValueStore(db_path)
        self.programs = ProgramRepository(self.store)
        self.clients = ClientRepository(self.store)
        self.invoices = InvoiceRepository(self.store)
        self.sessions = WorkoutSessionService(
            self.store, self.settings, clock=clock, auto_tick=auto_tick
        )
        self.history = self.sessions.history
        self.statistics = StatisticsService(self.history)
        self.billing = BillingService(self.invoices, self.clients, self.settings)
        self.app = FastAPI(
            title="FitTrack API",
            description="REST API for workout sessions, history and billing",
        )
        self._setup_routes()

    def _session(self, session_id: str) -> SessionHandle:
        try:
            return self.sessions.get(session_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    def _session_view(self, handle: SessionHandle) -> dict:
        timer = handle.timer.state
        return {
            "id": handle.id,
            "client_id": handle.client_id,
            "program_id": handle.program.id,
            "unit": handle.unit,
            "started_at": handle.started_at.isoformat(),
            "snapshot": self.sessions.current_snapshot(handle).to_json(),
            "rest_timer": timer.to_json() if timer else None,
        }

    def _setup_routes(self) -> None:
        programs_router = APIRouter(prefix="/programs", tags=["Programs"])
        clients_router = APIRouter(prefix="/clients", tags=["Clients"])
        sessions_router = APIRouter(prefix="/sessions", tags=["Sessions"])
        invoices_router = APIRouter(prefix="/invoices", tags=["Billing"])
        tools_router = APIRouter(prefix="/tools", tags=["Tools"])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                self.store.get("health")
                return {"status": "ok"}
            except Exception as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        # --- programs ---

        @programs_router.get("")
        def list_programs():
            return [p.to_json() for p in self.programs.fetch_all()]

        @programs_router.post("")
        def create_program(payload: dict = Body(...)):
            payload.setdefault("id", str(uuid.uuid4()))
            try:
                program = Program.model_validate(payload)
            except ValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            if any(p.id == program.id for p in self.programs.fetch_all()):
                raise HTTPException(status_code=400, detail="program id already exists")
            self.programs.add(program)
            return {"id": program.id}

        @programs_router.get("/{program_id}")
        def get_program(program_id: str):
            try:
                return self.programs.fetch(program_id).to_json()
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @programs_router.delete("/{program_id}")
        def delete_program(program_id: str):
            try:
                self.programs.delete(program_id)
                return {"status": "deleted"}
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))

        # --- clients ---

        @clients_router.get("")
        def list_clients():
            return [c.to_json() for c in self.clients.fetch_all()]

        @clients_router.post("")
        def create_client(name: str, notes: str | None = None):
            if not name.strip():
                raise HTTPException(status_code=400, detail="name required")
            client = Client(id=str(uuid.uuid4()), name=name.strip(), notes=notes)
            self.clients.add(client)
            return {"id": client.id}

        @clients_router.get("/{client_id}")
        def get_client(client_id: str):
            try:
                return self.clients.fetch(client_id).to_json()
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @clients_router.post("/{client_id}/programs/{program_id}")
        def assign_program(client_id: str, program_id: str):
            try:
                self.programs.fetch(program_id)
                client = self.clients.assign_program(client_id, program_id)
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return client.to_json()

        @clients_router.get("/{client_id}/workouts")
        def client_workouts(client_id: str):
            return [w.to_json() for w in self.statistics.workouts(client_id)]

        @clients_router.get("/{client_id}/personal_records")
        def personal_records(client_id: str, limit: int = 3):
            return [r.to_json() for r in self.statistics.personal_records(client_id, limit)]

        @clients_router.get("/{client_id}/progress")
        def exercise_progress(client_id: str, exercise: str):
            return self.statistics.progress(client_id, exercise)

        @clients_router.get("/{client_id}/in_progress")
        def client_in_progress(client_id: str):
            return [w.to_json() for w in self.sessions.in_progress.fetch_for_client(client_id)]

        @clients_router.get("/{client_id}/billing_status")
        def billing_status(client_id: str):
            return self.billing.client_status(client_id)

        # --- resumable snapshots ---

        @self.app.get("/in_progress/{client_id}/{program_id}")
        def get_in_progress(client_id: str, program_id: str):
            snapshot = self.sessions.load_resumable(client_id, program_id)
            if snapshot is None:
                raise HTTPException(status_code=404, detail="no workout in progress")
            return snapshot.to_json()

        @self.app.delete("/in_progress/{client_id}/{program_id}")
        def discard_in_progress(client_id: str, program_id: str):
            self.sessions.discard(client_id, program_id)
            return {"status": "discarded"}

        # --- sessions ---

        @sessions_router.post("")
        def start_session(
            client_id: str,
            program_id: str,
            resume: bool | None = None,
            unit: str | None = None,
        ):
            if unit is not None and unit not in ("kg", "lbs"):
                raise HTTPException(status_code=400, detail="unit must be kg or lbs")
            try:
                program = self.programs.fetch(program_id)
                self.clients.fetch(client_id)
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            snapshot = None
            if resume:
                snapshot = self.sessions.load_resumable(client_id, program_id)
            try:
                handle = self.sessions.start_session(
                    program,
                    client_id,
                    snapshot,
                    unit=unit,
                    discard_existing=resume is False,
                )
            except (ResumeRequiredError, SessionConflictError) as e:
                raise HTTPException(status_code=409, detail=str(e))
            view = self._session_view(handle)
            view["resumed"] = snapshot is not None
            return view

        @sessions_router.get("/{session_id}")
        def get_session(session_id: str):
            return self._session_view(self._session(session_id))

        @sessions_router.post("/{session_id}/mutations")
        def mutate_session(session_id: str, payload: dict = Body(...)):
            handle = self._session(session_id)
            try:
                mutation = MUTATION_ADAPTER.validate_python(payload)
            except ValidationError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return self.sessions.mutate(handle, mutation).to_json()

        @sessions_router.post("/{session_id}/rest")
        def start_rest(session_id: str, section: str, exercise_index: int, set_index: int):
            handle = self._session(session_id)
            result = self.sessions.start_rest(handle, section, exercise_index, set_index)
            timer = handle.timer.state
            return {**result.to_json(), "restTimer": timer.to_json() if timer else None}

        @sessions_router.post("/{session_id}/rest/tick")
        def tick_rest(session_id: str):
            state = self.sessions.tick_rest(self._session(session_id))
            return {"restTimer": state.to_json() if state else None}

        @sessions_router.delete("/{session_id}/rest")
        def cancel_rest(session_id: str):
            self.sessions.cancel_rest(self._session(session_id))
            return {"status": "cancelled"}

        @sessions_router.post("/{session_id}/finish")
        def finish_session(session_id: str):
            handle = self._session(session_id)
            try:
                workout = self.sessions.finish(handle)
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except FinalizationError as e:
                logger.error("finishing session {} failed: {}", session_id, e)
                raise HTTPException(status_code=503, detail=str(e))
            return workout.to_json()

        @sessions_router.delete("/{session_id}")
        def abandon_session(session_id: str):
            self.sessions.abandon(self._session(session_id))
            return {"status": "abandoned"}

        # --- history ---

        @self.app.get("/workouts/{workout_id}")
        def get_workout(workout_id: str):
            try:
                return self.history.fetch(workout_id).to_json()
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @self.app.get("/workouts/{workout_id}/summary")
        def workout_summary(workout_id: str, unit: str = "kg"):
            try:
                workout = self.history.fetch(workout_id)
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return self.statistics.summary(workout, unit)

        @self.app.put("/workouts/{workout_id}/feeling")
        def set_feeling(workout_id: str, feeling: str):
            if feeling not in ("none", "difficult", "okay", "great"):
                raise HTTPException(status_code=400, detail="invalid feeling")
            try:
                workout = self.statistics.set_feeling(workout_id, feeling)
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "updated", "feeling": workout.feeling}

        # --- billing ---

        @invoices_router.get("")
        def list_invoices(client_id: str | None = None):
            if client_id:
                return [i.to_json() for i in self.invoices.fetch_for_client(client_id)]
            return [i.to_json() for i in self.invoices.fetch_all()]

        @invoices_router.post("")
        def create_invoice(
            client_id: str,
            amount: float,
            due_date: str,
            description: str = "",
            issue_date: str | None = None,
        ):
            try:
                invoice = self.billing.create(
                    client_id, amount, description, due_date, issue_date
                )
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": invoice.id}

        @invoices_router.post("/refresh")
        def refresh_invoices(today: str | None = None):
            try:
                day = datetime.date.fromisoformat(today) if today else None
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return [i.to_json() for i in self.billing.refresh_statuses(day)]

        @invoices_router.post("/{invoice_id}/send")
        def send_invoice(invoice_id: str):
            try:
                return self.billing.send(invoice_id).to_json()
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except FitTrackError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @invoices_router.post("/{invoice_id}/pay")
        def pay_invoice(invoice_id: str, paid_date: str | None = None):
            try:
                return self.billing.mark_paid(invoice_id, paid_date).to_json()
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except FitTrackError as e:
                raise HTTPException(status_code=400, detail=str(e))

        # --- tools ---

        @tools_router.get("/convert/weight")
        def convert_weight(value: float, unit: str):
            if unit == "kg":
                return {"kg": value, "lbs": UnitConverter.kg_to_lbs(value)}
            if unit == "lbs":
                return {"kg": UnitConverter.lbs_to_kg(value), "lbs": value}
            raise HTTPException(status_code=400, detail="unit must be kg or lbs")

        @tools_router.get("/convert/distance")
        def convert_distance(value: float, from_unit: str, to_unit: str):
            units = UnitConverter.METERS_IN
            if from_unit not in units or to_unit not in units:
                raise HTTPException(status_code=400, detail="unknown distance unit")
            return {
                "value": UnitConverter.convert_distance(value, from_unit, to_unit),
                "unit": to_unit,
            }

        @tools_router.get("/pace")
        def pace(distance: float, duration: str):
            seconds = PaceCalculator.parse_time_to_seconds(duration)
            pace_seconds = PaceCalculator.calculate_pace(distance, seconds)
            return {
                "pace_seconds": pace_seconds,
                "pace": PaceCalculator.format_seconds_to_time(pace_seconds),
            }

        # --- settings ---

        @self.app.get("/settings")
        def get_settings():
            return self.settings.all_settings()

        @self.app.put("/settings")
        def update_settings(values: dict = Body(...)):
            try:
                return self.settings.update(values)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        self.app.include_router(programs_router)
        self.app.include_router(clients_router)
        self.app.include_router(sessions_router)
        self.app.include_router(invoices_router)
        self.app.include_router(tools_router)


api = FitTrackAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
