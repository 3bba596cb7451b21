import datetime
import json
import sqlite3
from contextlib import contextmanager
from typing import Callable, List, Optional, Tuple

from loguru import logger

from config import YamlConfig
from errors import NotFoundError, StorageError
from models import Client, InProgressWorkout, Invoice, LoggedWorkout, Program
from settings_schema import validate_settings


CLIENTS_KEY = "fit_track_clients"
PROGRAMS_KEY = "fit_track_programs"
LOGGED_WORKOUTS_KEY = "fit_track_logged_workouts"
INVOICES_KEY = "fit_track_invoices"
IN_PROGRESS_WORKOUTS_KEY = "fit_track_in_progress_workouts"


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "kv_store": (
            """CREATE TABLE kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT
                );""",
            ["key", "value", "updated_at"],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "fittrack.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)
        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            conn.execute(f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;")
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_settings(self) -> None:
        defaults = {
            "weight_unit": "kg",
            "distance_unit": "mi",
            "rest_default_seconds": "60",
            "volume_completed_only": "0",
            "lockout_threshold_days": "7",
            "finalize_retries": "2",
            "detect_personal_records": "0",
        }
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, value),
                )


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class KeyValueStore(BaseRepository):
    """Durable JSON key-value store backed by the ``kv_store`` table."""

    @staticmethod
    def _decode(key: str, raw: str):
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.error("corrupt JSON stored under {!r}", key)
            raise StorageError(f"value of {key!r} is not valid JSON") from e

    def get(self, key: str):
        try:
            rows = self.fetch_all("SELECT value FROM kv_store WHERE key = ?;", (key,))
        except sqlite3.Error as e:
            raise StorageError(f"read of {key!r} failed: {e}") from e
        if not rows:
            return None
        return self._decode(key, rows[0][0])

    def _write(self, conn: sqlite3.Connection, key: str, value) -> None:
        conn.execute(
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at;",
            (
                key,
                json.dumps(value),
                datetime.datetime.now().isoformat(timespec="seconds"),
            ),
        )

    def set(self, key: str, value) -> None:
        try:
            with self._connection() as conn:
                self._write(conn, key, value)
        except sqlite3.Error as e:
            raise StorageError(f"write of {key!r} failed: {e}") from e

    def update(self, key: str, change: Callable):
        """Read, change and write ``key`` inside one write transaction.

        ``change`` receives the stored value (or None) and returns the new
        one. Concurrent updates of the same database run one after another.
        """
        try:
            with self._connection() as conn:
                conn.execute("BEGIN IMMEDIATE;")
                rows = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?;", (key,)
                ).fetchall()
                current = self._decode(key, rows[0][0]) if rows else None
                value = change(current)
                self._write(conn, key, value)
        except sqlite3.Error as e:
            raise StorageError(f"update of {key!r} failed: {e}") from e
        return value

    def delete(self, key: str) -> None:
        try:
            self.execute("DELETE FROM kv_store WHERE key = ?;", (key,))
        except sqlite3.Error as e:
            raise StorageError(f"delete of {key!r} failed: {e}") from e

    def keys(self, prefix: str = "") -> list[str]:
        rows = self.fetch_all(
            "SELECT key FROM kv_store WHERE key LIKE ? ORDER BY key;", (prefix + "%",)
        )
        return [r[0] for r in rows]


class CollectionRepository:
    """List of records kept under a single key, changed in one transaction."""

    key: str = ""
    model = None

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def _load(self, items) -> list:
        return [self.model.model_validate(item) for item in items or []]

    def fetch_all(self) -> list:
        return self._load(self.store.get(self.key))

    def save_all(self, items: list) -> None:
        self.store.set(self.key, [item.to_json() for item in items])

    def _change(self, change: Callable[[list], list]) -> None:
        self.store.update(
            self.key, lambda raw: [item.to_json() for item in change(self._load(raw))]
        )

    def fetch(self, item_id: str):
        for item in self.fetch_all():
            if item.id == item_id:
                return item
        raise NotFoundError(f"{self.model.__name__} {item_id} not found")

    def add(self, item) -> None:
        self._change(lambda items: [*items, item])

    def replace(self, item) -> None:
        def change(items: list) -> list:
            for i, existing in enumerate(items):
                if existing.id == item.id:
                    items[i] = item
                    return items
            raise NotFoundError(f"{self.model.__name__} {item.id} not found")

        self._change(change)

    def delete(self, item_id: str) -> None:
        def change(items: list) -> list:
            remaining = [i for i in items if i.id != item_id]
            if len(remaining) == len(items):
                raise NotFoundError(f"{self.model.__name__} {item_id} not found")
            return remaining

        self._change(change)


class ProgramRepository(CollectionRepository):
    """Repository for workout programs."""

    key = PROGRAMS_KEY
    model = Program


class ClientRepository(CollectionRepository):
    """Repository for trainer clients."""

    key = CLIENTS_KEY
    model = Client

    def assign_program(self, client_id: str, program_id: str) -> Client:
        client = self.fetch(client_id)
        if program_id not in client.assigned_program_ids:
            client.assigned_program_ids.append(program_id)
            self.replace(client)
        return client


class InvoiceRepository(CollectionRepository):
    """Repository for client invoices."""

    key = INVOICES_KEY
    model = Invoice

    def fetch_for_client(self, client_id: str) -> list[Invoice]:
        return [inv for inv in self.fetch_all() if inv.client_id == client_id]


class LoggedWorkoutRepository(CollectionRepository):
    """Append-only history of finished workouts."""

    key = LOGGED_WORKOUTS_KEY
    model = LoggedWorkout

    def fetch_for_client(self, client_id: str) -> list[LoggedWorkout]:
        return [w for w in self.fetch_all() if w.client_id == client_id]

    def set_feeling(self, workout_id: str, feeling: str) -> LoggedWorkout:
        workout = self.fetch(workout_id)
        workout.feeling = feeling
        self.replace(workout)
        return workout


class InProgressWorkoutRepository:
    """Resumable session snapshots keyed by client and program."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    @staticmethod
    def key_for(client_id: str, program_id: str) -> str:
        return f"{IN_PROGRESS_WORKOUTS_KEY}:{client_id}:{program_id}"

    def fetch(self, client_id: str, program_id: str) -> Optional[InProgressWorkout]:
        data = self.store.get(self.key_for(client_id, program_id))
        return InProgressWorkout.model_validate(data) if data else None

    def save(self, snapshot: InProgressWorkout) -> None:
        self.store.set(
            self.key_for(snapshot.client_id, snapshot.program_id), snapshot.to_json()
        )

    def delete(self, client_id: str, program_id: str) -> None:
        self.store.delete(self.key_for(client_id, program_id))

    def fetch_for_client(self, client_id: str) -> list[InProgressWorkout]:
        prefix = f"{IN_PROGRESS_WORKOUTS_KEY}:{client_id}:"
        result = []
        for key in self.store.keys(prefix):
            data = self.store.get(key)
            if data:
                result.append(InProgressWorkout.model_validate(data))
        return result


class SettingsRepository(BaseRepository):
    """Repository for application settings synchronized with YAML."""

    BOOL_KEYS = {"volume_completed_only", "detect_personal_records"}

    def __init__(
        self, db_path: str = "fittrack.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, float | str | bool] = {}
        for k, v in rows:
            if k in self.BOOL_KEYS:
                result[k] = v in {"1", "1.0", "true", "True"}
                continue
            try:
                number = float(v)
                result[k] = int(number) if number.is_integer() else number
            except ValueError:
                result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                val = str(value)
                if key in self.BOOL_KEYS:
                    val = "1" if val in {"1", "1.0", "true", "True"} else "0"
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, val),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def get_bool(self, key: str, default: bool) -> bool:
        return self.get_text(key, "1" if default else "0") in {
            "1",
            "true",
            "True",
            "1.0",
        }

    def set_text(self, key: str, value: str) -> None:
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(value))

    def set_bool(self, key: str, value: bool) -> None:
        self.set_text(key, "1" if value else "0")

    def all_settings(self) -> dict:
        self._sync_from_yaml()
        return self._raw_all_settings()

    def update(self, values: dict) -> dict:
        """Validate and store several settings at once."""
        parsed = validate_settings({**self.all_settings(), **values})
        for key, raw in values.items():
            value = getattr(parsed, key, raw)
            if key in self.BOOL_KEYS:
                self.set_bool(key, bool(value))
            else:
                self.set_text(key, str(value))
        return self.all_settings()
