from __future__ import annotations
import datetime
import threading
import uuid
from typing import Callable, Dict, Optional

from loguru import logger

from autosave_service import AutoSaveBridge, utc_now
from db import (
    InProgressWorkoutRepository,
    KeyValueStore,
    LoggedWorkoutRepository,
    SettingsRepository,
)
from errors import (
    FinalizationError,
    ResumeRequiredError,
    SessionConflictError,
    SessionNotFoundError,
)
from finalizer_service import SessionFinalizer
from models import InProgressWorkout, LoggedWorkout, MutationResult, Program
from rest_timer import RestTimer, TimerState
from session_store import SessionStateStore
from stats_service import StatisticsService


class SessionHandle:
    """A live workout session owned by one caller."""

    def __init__(
        self,
        program: Program,
        client_id: str,
        store: SessionStateStore,
        started_at: datetime.datetime,
    ) -> None:
        self.id = str(uuid.uuid4())
        self.program = program
        self.client_id = client_id
        self.store = store
        self.started_at = started_at

    @property
    def timer(self) -> RestTimer:
        return self.store.timer

    @property
    def unit(self) -> str:
        return self.store.unit


class WorkoutSessionService:
    """Start, mutate, and finish workout sessions.

    Display unit and clock are passed in explicitly; each session owns its own
    rest timer so several sessions can run side by side.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Optional[SettingsRepository] = None,
        *,
        clock: Callable[[], datetime.datetime] = utc_now,
        auto_tick: bool = False,
    ) -> None:
        self.settings = settings
        self.clock = clock
        self.auto_tick = auto_tick
        self.in_progress = InProgressWorkoutRepository(store)
        self.history = LoggedWorkoutRepository(store)
        self.statistics = StatisticsService(self.history)
        self.autosave = AutoSaveBridge(self.in_progress, clock)
        self.sessions: Dict[str, SessionHandle] = {}
        self._lock = threading.Lock()

    def _setting_int(self, key: str, default: int) -> int:
        return self.settings.get_int(key, default) if self.settings else default

    def _setting_bool(self, key: str, default: bool) -> bool:
        return self.settings.get_bool(key, default) if self.settings else default

    def default_unit(self) -> str:
        return self.settings.get_text("weight_unit", "kg") if self.settings else "kg"

    def finalizer(self) -> SessionFinalizer:
        return SessionFinalizer(
            self.history,
            self.autosave,
            self.statistics,
            clock=self.clock,
            retries=self._setting_int("finalize_retries", 2),
            completed_only=self._setting_bool("volume_completed_only", False),
            detect_records=self._setting_bool("detect_personal_records", False),
        )

    # --- resume gate ---

    def load_resumable(self, client_id: str, program_id: str) -> Optional[InProgressWorkout]:
        return self.autosave.load(client_id, program_id)

    def discard(self, client_id: str, program_id: str) -> bool:
        """Drop the in-progress snapshot so a fresh session can start."""
        return self.autosave.clear(client_id, program_id)

    def _live_session(self, client_id: str, program_id: str) -> Optional[SessionHandle]:
        for handle in self.sessions.values():
            if handle.client_id == client_id and handle.program.id == program_id:
                return handle
        return None

    # --- lifecycle ---

    def start_session(
        self,
        program: Program,
        client_id: str,
        resume_snapshot: Optional[InProgressWorkout] = None,
        *,
        unit: Optional[str] = None,
        discard_existing: bool = False,
    ) -> SessionHandle:
        with self._lock:
            if self._live_session(client_id, program.id) is not None:
                raise SessionConflictError(
                    f"client {client_id} already has a live session for program {program.id}"
                )
            if resume_snapshot is None:
                if discard_existing:
                    self.discard(client_id, program.id)
                elif self.load_resumable(client_id, program.id) is not None:
                    raise ResumeRequiredError(
                        f"client {client_id} has an unfinished workout for program {program.id}"
                    )
            timer = RestTimer(auto_tick=self.auto_tick)
            store = SessionStateStore(
                program,
                unit=unit or self.default_unit(),
                resume=resume_snapshot,
                timer=timer,
                rest_default_seconds=self._setting_int("rest_default_seconds", 60),
            )
            handle = SessionHandle(program, client_id, store, self.clock())
            self.autosave.attach(store, client_id, program.id)
            self.autosave.save(store, client_id, program.id)
            self.sessions[handle.id] = handle
        logger.info(
            "session {} started for client {} on program {} ({})",
            handle.id,
            client_id,
            program.id,
            "resumed" if resume_snapshot else "fresh",
        )
        return handle

    def get(self, session_id: str) -> SessionHandle:
        try:
            return self.sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(f"session {session_id} not found")

    def mutate(self, handle: SessionHandle, mutation) -> MutationResult:
        return handle.store.apply(mutation)

    def start_rest(
        self, handle: SessionHandle, section: str, exercise_index: int, set_index: int
    ) -> MutationResult:
        return handle.store.start_rest(section, exercise_index, set_index)

    def cancel_rest(self, handle: SessionHandle) -> None:
        handle.timer.cancel()

    def tick_rest(self, handle: SessionHandle) -> Optional[TimerState]:
        return handle.timer.tick()

    def current_snapshot(self, handle: SessionHandle) -> InProgressWorkout:
        return handle.store.snapshot(
            handle.client_id, handle.program.id, self.clock().isoformat()
        )

    def finish(self, handle: SessionHandle) -> LoggedWorkout:
        """Persist the session as a finished workout and close it.

        The session is closed before the workout is written, so a second
        finish of the same handle raises ``SessionNotFoundError``. On
        ``FinalizationError`` the session is reopened and its snapshot stays
        saved so the caller can retry.
        """
        with self._lock:
            if self.sessions.pop(handle.id, None) is None:
                raise SessionNotFoundError(f"session {handle.id} not found")
        try:
            workout = self.finalizer().finalize(
                handle.store, handle.program, handle.client_id, handle.started_at
            )
        except FinalizationError:
            with self._lock:
                self.sessions[handle.id] = handle
            raise
        handle.timer.cancel()
        return workout

    def abandon(self, handle: SessionHandle) -> None:
        """Close the session but keep its snapshot for a later resume."""
        handle.timer.cancel()
        with self._lock:
            self.sessions.pop(handle.id, None)
        logger.info("session {} abandoned; snapshot kept", handle.id)
