from __future__ import annotations
import datetime
from typing import Callable, Optional

from loguru import logger

from db import InProgressWorkoutRepository
from errors import StorageError
from models import InProgressWorkout
from session_store import SessionStateStore


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class AutoSaveBridge:
    """Keep the in-progress snapshot of a session in durable storage.

    Saves are best effort: a failing store only costs resumability, so write
    errors are logged and dropped.
    """

    def __init__(
        self,
        repo: InProgressWorkoutRepository,
        clock: Callable[[], datetime.datetime] = utc_now,
    ) -> None:
        self.repo = repo
        self.clock = clock

    def attach(self, store: SessionStateStore, client_id: str, program_id: str) -> None:
        """Persist ``store`` after every mutation applied to it."""
        store.add_listener(lambda s: self.save(s, client_id, program_id))

    def save(self, store: SessionStateStore, client_id: str, program_id: str) -> bool:
        snapshot = store.snapshot(client_id, program_id, self.clock().isoformat())
        try:
            self.repo.save(snapshot)
        except StorageError as e:
            logger.warning("auto-save for {}/{} dropped: {}", client_id, program_id, e)
            return False
        return True

    def load(self, client_id: str, program_id: str) -> Optional[InProgressWorkout]:
        try:
            return self.repo.fetch(client_id, program_id)
        except StorageError as e:
            logger.warning("in-progress workout for {}/{} unreadable: {}", client_id, program_id, e)
            return None

    def clear(self, client_id: str, program_id: str) -> bool:
        try:
            self.repo.delete(client_id, program_id)
        except StorageError as e:
            logger.warning("could not clear in-progress workout {}/{}: {}", client_id, program_id, e)
            return False
        return True
