import sqlite3
import datetime
from contextlib import contextmanager
from typing import Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from config import DEFAULT_SETTINGS, YamlConfig
from errors import DuplicateResourceError, ResourceNotFoundError
from settings_schema import validate_settings
from tools import TimeTools


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "users": (
            """CREATE TABLE users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    email TEXT NOT NULL UNIQUE,
                    password TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );""",
            ["id", "username", "email", "password", "created_at"],
        ),
        "user_profiles": (
            """CREATE TABLE user_profiles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL UNIQUE,
                    age INTEGER,
                    weight REAL,
                    skeletal_muscle_mass REAL,
                    body_fat_mass REAL,
                    basal_metabolic_rate INTEGER,
                    updated_at TEXT,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "user_id",
                "age",
                "weight",
                "skeletal_muscle_mass",
                "body_fat_mass",
                "basal_metabolic_rate",
                "updated_at",
            ],
        ),
        "exercise_types": (
            """CREATE TABLE exercise_types (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    category TEXT NOT NULL,
                    muscle_group TEXT NOT NULL,
                    description TEXT
                );""",
            ["id", "name", "category", "muscle_group", "description"],
        ),
        "workout_routines": (
            """CREATE TABLE workout_routines (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL,
                    duration INTEGER NOT NULL,
                    difficulty TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "user_id",
                "name",
                "description",
                "duration",
                "difficulty",
                "created_at",
            ],
        ),
        "routine_exercises": (
            """CREATE TABLE routine_exercises (
                    routine_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    PRIMARY KEY (routine_id, exercise_id),
                    FOREIGN KEY(routine_id) REFERENCES workout_routines(id) ON DELETE CASCADE,
                    FOREIGN KEY(exercise_id) REFERENCES exercise_types(id) ON DELETE CASCADE
                );""",
            ["routine_id", "exercise_id"],
        ),
        "workout_sessions": (
            """CREATE TABLE workout_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    routine_id INTEGER,
                    date TEXT NOT NULL,
                    duration INTEGER NOT NULL DEFAULT 0,
                    notes TEXT,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
                    FOREIGN KEY(routine_id) REFERENCES workout_routines(id) ON DELETE SET NULL
                );""",
            ["id", "user_id", "routine_id", "date", "duration", "notes"],
        ),
        "exercise_records": (
            """CREATE TABLE exercise_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    set_number INTEGER NOT NULL CHECK (set_number >= 1),
                    reps INTEGER NOT NULL CHECK (reps >= 1),
                    weight REAL,
                    duration INTEGER,
                    rpe INTEGER,
                    FOREIGN KEY(session_id) REFERENCES workout_sessions(id) ON DELETE CASCADE,
                    FOREIGN KEY(exercise_id) REFERENCES exercise_types(id)
                );""",
            [
                "id",
                "session_id",
                "exercise_id",
                "set_number",
                "reps",
                "weight",
                "duration",
                "rpe",
            ],
        ),
        "diet_sessions": (
            """CREATE TABLE diet_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    date TEXT NOT NULL,
                    notes TEXT,
                    UNIQUE (user_id, date),
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            ["id", "user_id", "date", "notes"],
        ),
        "food_entries": (
            """CREATE TABLE food_entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    diet_session_id INTEGER NOT NULL,
                    meal_type TEXT NOT NULL,
                    food_name TEXT NOT NULL,
                    calories INTEGER NOT NULL,
                    protein REAL,
                    carbs REAL,
                    fat REAL,
                    FOREIGN KEY(diet_session_id) REFERENCES diet_sessions(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "diet_session_id",
                "meal_type",
                "food_name",
                "calories",
                "protein",
                "carbs",
                "fat",
            ],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    _INDEXES = [
        "CREATE INDEX IF NOT EXISTS idx_session_user_date ON workout_sessions (user_id, date);",
        "CREATE INDEX IF NOT EXISTS idx_record_session ON exercise_records (session_id);",
        "CREATE INDEX IF NOT EXISTS idx_routine_user ON workout_routines (user_id, created_at);",
        "CREATE INDEX IF NOT EXISTS idx_food_diet_session ON food_entries (diet_session_id);",
    ]

    _DEFAULT_EXERCISE_TYPES = [
        ("Bench Press", "CHEST", "Chest"),
        ("Push Up", "CHEST", "Chest"),
        ("Deadlift", "BACK", "Back"),
        ("Pull Up", "BACK", "Back"),
        ("Barbell Row", "BACK", "Back"),
        ("Squat", "LEGS", "Legs"),
        ("Lunge", "LEGS", "Legs"),
        ("Crunch", "ABS", "Abs"),
        ("Plank", "ABS", "Abs"),
        ("Barbell Curl", "ARMS", "Biceps"),
        ("Triceps Extension", "ARMS", "Triceps"),
        ("Overhead Press", "SHOULDERS", "Shoulders"),
        ("Lateral Raise", "SHOULDERS", "Shoulders"),
        ("Running", "CARDIO", "Full Body"),
        ("Cycling", "CARDIO", "Legs"),
        ("Hamstring Stretch", "FLEXIBILITY", "Legs"),
        ("Single Leg Stand", "BALANCE", "Legs"),
    ]

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._ensure_indexes()
        self._init_exercise_types()
        self._init_settings()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=ON;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            cursor.execute("PRAGMA legacy_alter_table=on;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            cursor.execute("PRAGMA foreign_keys=on;")

    def _ensure_indexes(self) -> None:
        with self._connection() as conn:
            for sql in self._INDEXES:
                conn.execute(sql)

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

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col == "duration" and table == "workout_sessions":
                        return "0"
                    if col == "created_at":
                        return "datetime('now')"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_exercise_types(self) -> None:
        with self._connection() as conn:
            for name, category, muscle_group in self._DEFAULT_EXERCISE_TYPES:
                conn.execute(
                    "INSERT OR IGNORE INTO exercise_types (name, category, muscle_group) VALUES (?, ?, ?);",
                    (name, category, muscle_group),
                )

    def _init_settings(self) -> None:
        with self._connection() as conn:
            for key, value in DEFAULT_SETTINGS.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, str(value)),
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

    @staticmethod
    def _placeholders(values: Iterable) -> str:
        return ", ".join("?" for _ in values)


class UserRepository(BaseRepository):
    """Repository for user accounts."""

    def create(self, username: str, email: str, password_hash: str) -> int:
        try:
            return self.execute(
                "INSERT INTO users (username, email, password, created_at) VALUES (?, ?, ?, ?);",
                (username, email, password_hash, TimeTools.to_storage(TimeTools.utcnow())),
            )
        except sqlite3.IntegrityError:
            raise DuplicateResourceError("username or email already in use")

    def fetch_by_username(self, username: str) -> dict | None:
        rows = self.fetch_all(
            "SELECT id, username, email, password, created_at FROM users WHERE username = ?;",
            (username,),
        )
        if not rows:
            return None
        uid, name, email, password, created_at = rows[0]
        return {
            "id": uid,
            "username": name,
            "email": email,
            "password": password,
            "created_at": created_at,
        }

    def exists_username(self, username: str) -> bool:
        return bool(
            self.fetch_all("SELECT 1 FROM users WHERE username = ?;", (username,))
        )

    def exists_email(self, email: str) -> bool:
        return bool(self.fetch_all("SELECT 1 FROM users WHERE email = ?;", (email,)))

    def delete(self, user_id: int) -> None:
        self.execute("DELETE FROM users WHERE id = ?;", (user_id,))


class UserProfileRepository(BaseRepository):
    """Repository for body metrics attached to a user."""

    FIELDS = [
        "age",
        "weight",
        "skeletal_muscle_mass",
        "body_fat_mass",
        "basal_metabolic_rate",
    ]

    def fetch_for_user(self, user_id: int) -> dict | None:
        rows = self.fetch_all(
            f"SELECT id, {', '.join(self.FIELDS)}, updated_at FROM user_profiles WHERE user_id = ?;",
            (user_id,),
        )
        if not rows:
            return None
        pid, *values, updated_at = rows[0]
        profile = {"id": pid}
        profile.update(dict(zip(self.FIELDS, values)))
        profile["updated_at"] = updated_at
        return profile

    def create(self, user_id: int) -> dict:
        self.execute(
            "INSERT OR IGNORE INTO user_profiles (user_id, updated_at) VALUES (?, ?);",
            (user_id, TimeTools.to_storage(TimeTools.utcnow())),
        )
        return self.fetch_for_user(user_id)

    def update(self, user_id: int, changes: dict) -> dict:
        """Apply non-null ``changes`` to the profile, creating it if needed."""
        self.create(user_id)
        updates = {k: v for k, v in changes.items() if k in self.FIELDS and v is not None}
        assignments = [f"{k} = ?" for k in updates] + ["updated_at = ?"]
        params = list(updates.values()) + [
            TimeTools.to_storage(TimeTools.utcnow()),
            user_id,
        ]
        self.execute(
            f"UPDATE user_profiles SET {', '.join(assignments)} WHERE user_id = ?;",
            tuple(params),
        )
        return self.fetch_for_user(user_id)


class ExerciseTypeRepository(BaseRepository):
    """Repository for the exercise type catalogue."""

    CATEGORIES = (
        "CHEST",
        "BACK",
        "LEGS",
        "ABS",
        "ARMS",
        "SHOULDERS",
        "CARDIO",
        "FLEXIBILITY",
        "BALANCE",
    )

    @staticmethod
    def _row_to_dict(row: Tuple) -> dict:
        tid, name, category, muscle_group, description = row
        return {
            "id": tid,
            "name": name,
            "category": category,
            "muscle_group": muscle_group,
            "description": description,
        }

    def fetch_types(self, category: Optional[str] = None) -> list[dict]:
        query = "SELECT id, name, category, muscle_group, description FROM exercise_types"
        params: tuple = ()
        if category:
            query += " WHERE category = ?"
            params = (category,)
        rows = self.fetch_all(query + " ORDER BY id;", params)
        return [self._row_to_dict(r) for r in rows]

    def fetch_detail(self, type_id: int) -> dict | None:
        rows = self.fetch_all(
            "SELECT id, name, category, muscle_group, description FROM exercise_types WHERE id = ?;",
            (type_id,),
        )
        return self._row_to_dict(rows[0]) if rows else None

    def missing_ids(self, type_ids: Iterable[int]) -> list[int]:
        """Return the ids from ``type_ids`` that do not exist."""
        ids = sorted(set(type_ids))
        if not ids:
            return []
        rows = self.fetch_all(
            f"SELECT id FROM exercise_types WHERE id IN ({self._placeholders(ids)});",
            tuple(ids),
        )
        found = {r[0] for r in rows}
        return [i for i in ids if i not in found]

    def add(
        self,
        name: str,
        category: str,
        muscle_group: str,
        description: str | None = None,
    ) -> int:
        if category not in self.CATEGORIES:
            raise ValueError(f"unknown category: {category}")
        try:
            return self.execute(
                "INSERT INTO exercise_types (name, category, muscle_group, description) VALUES (?, ?, ?, ?);",
                (name, category, muscle_group, description),
            )
        except sqlite3.IntegrityError:
            raise DuplicateResourceError(f"exercise type already exists: {name}")

    def delete(self, type_id: int) -> None:
        if self.fetch_detail(type_id) is None:
            raise ResourceNotFoundError("exercise type not found")
        try:
            self.execute("DELETE FROM exercise_types WHERE id = ?;", (type_id,))
        except sqlite3.IntegrityError:
            raise ValueError("exercise type is referenced by logged sets")


class WorkoutRoutineRepository(BaseRepository):
    """Repository for reusable workout routines."""

    DIFFICULTIES = ("BEGINNER", "INTERMEDIATE", "ADVANCED")

    def create(
        self,
        user_id: int,
        name: str,
        description: str,
        duration: int,
        difficulty: str,
        exercise_ids: Iterable[int],
    ) -> int:
        if difficulty not in self.DIFFICULTIES:
            raise ValueError(f"unknown difficulty: {difficulty}")
        with self._connection() as conn:
            cursor = conn.execute(
                "INSERT INTO workout_routines (user_id, name, description, duration, difficulty, created_at) VALUES (?, ?, ?, ?, ?, ?);",
                (
                    user_id,
                    name,
                    description,
                    duration,
                    difficulty,
                    TimeTools.to_storage(TimeTools.utcnow()),
                ),
            )
            routine_id = cursor.lastrowid
            conn.executemany(
                "INSERT OR IGNORE INTO routine_exercises (routine_id, exercise_id) VALUES (?, ?);",
                [(routine_id, eid) for eid in exercise_ids],
            )
        return routine_id

    def _exercise_ids(self, routine_ids: list[int]) -> dict[int, list[int]]:
        result: dict[int, list[int]] = {rid: [] for rid in routine_ids}
        if not routine_ids:
            return result
        rows = self.fetch_all(
            f"SELECT routine_id, exercise_id FROM routine_exercises WHERE routine_id IN ({self._placeholders(routine_ids)}) ORDER BY exercise_id;",
            tuple(routine_ids),
        )
        for rid, eid in rows:
            result[rid].append(eid)
        return result

    def fetch_for_user(
        self, user_id: int, limit: int | None = None, offset: int | None = None
    ) -> list[dict]:
        query = (
            "SELECT id, name, description, duration, difficulty, created_at FROM workout_routines "
            "WHERE user_id = ? ORDER BY created_at DESC, id DESC"
        )
        params: list[int] = [user_id]
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset or 0])
        rows = self.fetch_all(query + ";", tuple(params))
        exercises = self._exercise_ids([r[0] for r in rows])
        return [
            {
                "id": rid,
                "name": name,
                "description": description,
                "duration": duration,
                "difficulty": difficulty,
                "created_at": created_at,
                "exercise_ids": exercises[rid],
            }
            for rid, name, description, duration, difficulty, created_at in rows
        ]

    def fetch_detail(self, routine_id: int, user_id: int) -> dict | None:
        rows = self.fetch_all(
            "SELECT id, name, description, duration, difficulty, created_at FROM workout_routines "
            "WHERE id = ? AND user_id = ?;",
            (routine_id, user_id),
        )
        if not rows:
            return None
        rid, name, description, duration, difficulty, created_at = rows[0]
        return {
            "id": rid,
            "name": name,
            "description": description,
            "duration": duration,
            "difficulty": difficulty,
            "created_at": created_at,
            "exercise_ids": self._exercise_ids([rid])[rid],
        }

    def delete(self, routine_id: int, user_id: int) -> None:
        if self.fetch_detail(routine_id, user_id) is None:
            raise ResourceNotFoundError("routine not found")
        self.execute("DELETE FROM workout_routines WHERE id = ?;", (routine_id,))


class ExerciseRecordRepository(BaseRepository):
    """Repository for the sets logged inside a workout session."""

    def fetch_for_sessions(self, session_ids: list[int]) -> dict[int, list[dict]]:
        result: dict[int, list[dict]] = {sid: [] for sid in session_ids}
        if not session_ids:
            return result
        rows = self.fetch_all(
            "SELECT r.id, r.session_id, r.exercise_id, t.name, r.set_number, r.reps, r.weight, r.duration, r.rpe "
            "FROM exercise_records r JOIN exercise_types t ON t.id = r.exercise_id "
            f"WHERE r.session_id IN ({self._placeholders(session_ids)}) ORDER BY r.id ASC;",
            tuple(session_ids),
        )
        for rid, sid, eid, name, set_number, reps, weight, duration, rpe in rows:
            result[sid].append(
                {
                    "id": rid,
                    "exercise_id": eid,
                    "exercise_name": name,
                    "set_number": set_number,
                    "reps": reps,
                    "weight": weight,
                    "duration": duration,
                    "rpe": rpe,
                }
            )
        return result


class WorkoutSessionRepository(BaseRepository):
    """Repository for workout sessions and the aggregate queries over them."""

    _COLUMNS = "id, user_id, routine_id, date, duration, notes"

    def __init__(self, db_path: str = "workout.db") -> None:
        super().__init__(db_path)
        self.records = ExerciseRecordRepository(db_path)

    def create(
        self,
        user_id: int,
        date: datetime.datetime,
        duration: int | None = None,
        notes: str | None = None,
        routine_id: int | None = None,
        records: Iterable[dict] = (),
    ) -> int:
        """Insert a session and its records in a single transaction."""
        with self._connection() as conn:
            cursor = conn.execute(
                "INSERT INTO workout_sessions (user_id, routine_id, date, duration, notes) VALUES (?, ?, ?, ?, ?);",
                (user_id, routine_id, TimeTools.to_storage(date), duration or 0, notes),
            )
            session_id = cursor.lastrowid
            conn.executemany(
                "INSERT INTO exercise_records (session_id, exercise_id, set_number, reps, weight, duration, rpe) VALUES (?, ?, ?, ?, ?, ?, ?);",
                [
                    (
                        session_id,
                        r["exercise_id"],
                        r["set_number"],
                        r["reps"],
                        r.get("weight"),
                        r.get("duration"),
                        r.get("rpe"),
                    )
                    for r in records
                ],
            )
        return session_id

    def _with_records(self, rows: List[Tuple]) -> list[dict]:
        records = self.records.fetch_for_sessions([r[0] for r in rows])
        return [
            {
                "id": sid,
                "user_id": user_id,
                "routine_id": routine_id,
                "date": date,
                "duration": duration,
                "notes": notes,
                "exercises": records[sid],
            }
            for sid, user_id, routine_id, date, duration, notes in rows
        ]

    def fetch_detail(self, session_id: int, user_id: int) -> dict | None:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM workout_sessions WHERE id = ? AND user_id = ?;",
            (session_id, user_id),
        )
        return self._with_records(rows)[0] if rows else None

    def fetch_recent(
        self, user_id: int, limit: int, offset: int = 0
    ) -> list[dict]:
        """Return sessions newest first; equal dates fall back to newest id."""
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM workout_sessions WHERE user_id = ? "
            "ORDER BY date DESC, id DESC LIMIT ? OFFSET ?;",
            (user_id, limit, offset),
        )
        return self._with_records(rows)

    def fetch_between(
        self, user_id: int, start: datetime.datetime, end: datetime.datetime
    ) -> list[dict]:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM workout_sessions WHERE user_id = ? "
            "AND date >= ? AND date <= ? ORDER BY date DESC, id DESC;",
            (user_id, TimeTools.to_storage(start), TimeTools.to_storage(end)),
        )
        return self._with_records(rows)

    def sum_volume_for_user(self, user_id: int) -> float | None:
        rows = self.fetch_all(
            "SELECT SUM(r.weight * r.reps) FROM exercise_records r "
            "JOIN workout_sessions s ON s.id = r.session_id WHERE s.user_id = ?;",
            (user_id,),
        )
        return rows[0][0]

    def count_for_user(self, user_id: int) -> int:
        rows = self.fetch_all(
            "SELECT COUNT(*) FROM workout_sessions WHERE user_id = ?;", (user_id,)
        )
        return int(rows[0][0])

    def count_for_user_since(self, user_id: int, since: datetime.datetime) -> int:
        rows = self.fetch_all(
            "SELECT COUNT(*) FROM workout_sessions WHERE user_id = ? AND date >= ?;",
            (user_id, TimeTools.to_storage(since)),
        )
        return int(rows[0][0])

    def recent_session_volumes(
        self, user_id: int, limit: int = 10
    ) -> list[tuple[str, float | None]]:
        """Return ``(date, volume)`` for the latest sessions, newest first."""
        rows = self.fetch_all(
            "SELECT s.date, SUM(r.weight * r.reps) FROM workout_sessions s "
            "LEFT JOIN exercise_records r ON r.session_id = s.id "
            "WHERE s.user_id = ? GROUP BY s.id, s.date "
            "ORDER BY s.date DESC, s.id DESC LIMIT ?;",
            (user_id, limit),
        )
        return [(d, v) for d, v in rows]

    def session_counts_by_date(
        self,
        user_id: int,
        since: datetime.datetime,
        zone: ZoneInfo | datetime.tzinfo = datetime.timezone.utc,
    ) -> dict[datetime.date, int]:
        """Return session counts per calendar day in ``zone`` from ``since`` on."""
        rows = self.fetch_all(
            "SELECT date FROM workout_sessions WHERE user_id = ? AND date >= ?;",
            (user_id, TimeTools.to_storage(since)),
        )
        counts: dict[datetime.date, int] = {}
        for (ts,) in rows:
            day = TimeTools.local_date(ts, zone)
            counts[day] = counts.get(day, 0) + 1
        return counts

    def delete(self, session_id: int, user_id: int) -> None:
        rows = self.fetch_all(
            "SELECT id FROM workout_sessions WHERE id = ? AND user_id = ?;",
            (session_id, user_id),
        )
        if not rows:
            raise ResourceNotFoundError("workout session not found")
        self.execute("DELETE FROM workout_sessions WHERE id = ?;", (session_id,))


class FoodEntryRepository(BaseRepository):
    """Repository for the food entries of a diet session."""

    def fetch_for_sessions(self, diet_ids: list[int]) -> dict[int, list[dict]]:
        result: dict[int, list[dict]] = {did: [] for did in diet_ids}
        if not diet_ids:
            return result
        rows = self.fetch_all(
            "SELECT id, diet_session_id, meal_type, food_name, calories, protein, carbs, fat "
            f"FROM food_entries WHERE diet_session_id IN ({self._placeholders(diet_ids)}) ORDER BY id;",
            tuple(diet_ids),
        )
        for fid, did, meal_type, food_name, calories, protein, carbs, fat in rows:
            result[did].append(
                {
                    "id": fid,
                    "meal_type": meal_type,
                    "food_name": food_name,
                    "calories": calories,
                    "protein": protein,
                    "carbs": carbs,
                    "fat": fat,
                }
            )
        return result


class DietSessionRepository(BaseRepository):
    """Repository for daily diet sessions (one per user and date)."""

    MEAL_TYPES = ("BREAKFAST", "LUNCH", "DINNER", "SNACK")

    def __init__(self, db_path: str = "workout.db") -> None:
        super().__init__(db_path)
        self.entries = FoodEntryRepository(db_path)

    def _with_entries(self, rows: List[Tuple]) -> list[dict]:
        entries = self.entries.fetch_for_sessions([r[0] for r in rows])
        return [
            {"id": did, "date": date, "notes": notes, "food_entries": entries[did]}
            for did, date, notes in rows
        ]

    def fetch_for_date(self, user_id: int, day: datetime.date) -> dict | None:
        rows = self.fetch_all(
            "SELECT id, date, notes FROM diet_sessions WHERE user_id = ? AND date = ?;",
            (user_id, day.isoformat()),
        )
        return self._with_entries(rows)[0] if rows else None

    def fetch_detail(self, diet_id: int, user_id: int) -> dict | None:
        rows = self.fetch_all(
            "SELECT id, date, notes FROM diet_sessions WHERE id = ? AND user_id = ?;",
            (diet_id, user_id),
        )
        return self._with_entries(rows)[0] if rows else None

    def fetch_page(self, user_id: int, limit: int, offset: int = 0) -> list[dict]:
        rows = self.fetch_all(
            "SELECT id, date, notes FROM diet_sessions WHERE user_id = ? "
            "ORDER BY date DESC, id DESC LIMIT ? OFFSET ?;",
            (user_id, limit, offset),
        )
        return self._with_entries(rows)

    def save(
        self,
        user_id: int,
        day: datetime.date,
        notes: str | None,
        entries: Iterable[dict],
        diet_id: int | None = None,
    ) -> int:
        """Create or replace a diet session and all of its food entries.

        With ``diet_id`` the owned session is updated in place; otherwise the
        session already stored for ``day`` is reused when there is one.
        """
        entries = list(entries)
        for entry in entries:
            if entry["meal_type"] not in self.MEAL_TYPES:
                raise ValueError(f"unknown meal type: {entry['meal_type']}")
        with self._connection() as conn:
            if diet_id is not None:
                row = conn.execute(
                    "SELECT id FROM diet_sessions WHERE id = ? AND user_id = ?;",
                    (diet_id, user_id),
                ).fetchone()
                if row is None:
                    raise ResourceNotFoundError("diet session not found")
            else:
                row = conn.execute(
                    "SELECT id FROM diet_sessions WHERE user_id = ? AND date = ?;",
                    (user_id, day.isoformat()),
                ).fetchone()
            try:
                if row is None:
                    diet_id = conn.execute(
                        "INSERT INTO diet_sessions (user_id, date, notes) VALUES (?, ?, ?);",
                        (user_id, day.isoformat(), notes),
                    ).lastrowid
                else:
                    diet_id = row[0]
                    conn.execute(
                        "UPDATE diet_sessions SET date = ?, notes = ? WHERE id = ?;",
                        (day.isoformat(), notes, diet_id),
                    )
                    conn.execute(
                        "DELETE FROM food_entries WHERE diet_session_id = ?;",
                        (diet_id,),
                    )
            except sqlite3.IntegrityError:
                raise DuplicateResourceError(
                    f"diet session already exists for {day.isoformat()}"
                )
            conn.executemany(
                "INSERT INTO food_entries (diet_session_id, meal_type, food_name, calories, protein, carbs, fat) VALUES (?, ?, ?, ?, ?, ?, ?);",
                [
                    (
                        diet_id,
                        e["meal_type"],
                        e["food_name"],
                        e.get("calories") or 0,
                        e.get("protein"),
                        e.get("carbs"),
                        e.get("fat"),
                    )
                    for e in entries
                ],
            )
        return diet_id

    def delete(self, diet_id: int, user_id: int) -> None:
        rows = self.fetch_all(
            "SELECT id FROM diet_sessions WHERE id = ? AND user_id = ?;",
            (diet_id, user_id),
        )
        if not rows:
            raise ResourceNotFoundError("diet session not found")
        self.execute("DELETE FROM diet_sessions WHERE id = ?;", (diet_id,))


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    def __init__(
        self, db_path: str = "workout.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, int | float | str] = {}
        for k, v in rows:
            try:
                result[k] = int(v)
                continue
            except ValueError:
                pass
            try:
                result[k] = float(v)
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
                if value is None or isinstance(value, bool):
                    continue
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, str(value)),
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

    def set_text(self, key: str, value: str) -> None:
        validate_settings({key: value})
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def all_settings(self, include_secrets: bool = False) -> dict:
        self._sync_from_yaml()
        data = self._raw_all_settings()
        if not include_secrets:
            for key in YamlConfig.SENSITIVE_KEYS:
                data.pop(key, None)
        return data
