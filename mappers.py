"""Conversion of repository rows into API transfer objects."""

import datetime

from schemas import (
    DietSessionOut,
    ExerciseRecordOut,
    ExerciseTypeOut,
    FoodEntryOut,
    ProfileOut,
    RoutineOut,
    WorkoutSessionOut,
)
from tools import MathTools, TimeTools


def session_to_dto(row: dict, zone: datetime.tzinfo) -> WorkoutSessionOut:
    """Map a session row with its records, dating it in ``zone``."""
    records = row.get("exercises", [])
    started = TimeTools.from_storage(row["date"]).astimezone(zone)
    return WorkoutSessionOut(
        id=row["id"],
        date=started.date(),
        started_at=started,
        duration=row.get("duration") or 0,
        notes=row.get("notes"),
        routine_id=row.get("routine_id"),
        total_volume=MathTools.volume((r["reps"], r["weight"]) for r in records),
        exercises=[ExerciseRecordOut(**r) for r in records],
    )


def diet_to_dto(row: dict) -> DietSessionOut:
    return DietSessionOut(
        id=row["id"],
        date=datetime.date.fromisoformat(row["date"]),
        notes=row.get("notes"),
        food_entries=[FoodEntryOut(**e) for e in row.get("food_entries", [])],
    )


def routine_to_dto(row: dict) -> RoutineOut:
    data = dict(row)
    data["created_at"] = TimeTools.from_storage(row["created_at"])
    return RoutineOut(**data)


def exercise_type_to_dto(row: dict) -> ExerciseTypeOut:
    return ExerciseTypeOut(**row)


def profile_to_dto(row: dict) -> ProfileOut:
    data = dict(row)
    if data.get("updated_at"):
        data["updated_at"] = TimeTools.from_storage(data["updated_at"])
    return ProfileOut(**data)
