import datetime
import logging
from typing import List, Optional

from db import (
    ExerciseTypeRepository,
    UserRepository,
    WorkoutRoutineRepository,
    WorkoutSessionRepository,
)
from errors import ResourceNotFoundError, UserNotFoundError
from mappers import session_to_dto
from schemas import WorkoutSessionIn, WorkoutSessionOut
from tools import TimeTools

logger = logging.getLogger(__name__)


class SessionService:
    """Log, list and remove workout sessions."""

    def __init__(
        self,
        user_repo: UserRepository,
        session_repo: WorkoutSessionRepository,
        type_repo: ExerciseTypeRepository,
        routine_repo: WorkoutRoutineRepository | None = None,
    ) -> None:
        self.users = user_repo
        self.sessions = session_repo
        self.exercise_types = type_repo
        self.routines = routine_repo

    def _user_id(self, username: str) -> int:
        user = self.users.fetch_by_username(username)
        if user is None:
            raise UserNotFoundError(username)
        return user["id"]

    @staticmethod
    def session_instant(
        day: Optional[datetime.date],
        zone: datetime.tzinfo,
        now: Optional[datetime.datetime] = None,
    ) -> datetime.datetime:
        """Return the instant to record for a session logged on ``day``.

        Today (or no date) means the current instant; any other day is pinned
        to its midnight in ``zone``.
        """
        now = now or TimeTools.utcnow()
        if day is None or day == TimeTools.today(zone, now):
            return now
        return TimeTools.start_of_day(day, zone)

    def create_session(
        self,
        username: str,
        data: WorkoutSessionIn,
        zone: datetime.tzinfo,
        now: Optional[datetime.datetime] = None,
    ) -> WorkoutSessionOut:
        user_id = self._user_id(username)
        missing = self.exercise_types.missing_ids(r.exercise_id for r in data.exercises)
        if missing:
            raise ResourceNotFoundError(f"exercise type not found: {missing[0]}")
        if data.routine_id is not None and self.routines is not None:
            if self.routines.fetch_detail(data.routine_id, user_id) is None:
                raise ResourceNotFoundError("routine not found")
        instant = self.session_instant(data.date, zone, now)
        session_id = self.sessions.create(
            user_id,
            instant,
            duration=data.duration,
            notes=data.notes,
            routine_id=data.routine_id,
            records=[r.model_dump() for r in data.exercises],
        )
        logger.info(
            f"workout session {session_id} created for {username} with {len(data.exercises)} sets"
        )
        return session_to_dto(self.sessions.fetch_detail(session_id, user_id), zone)

    def list_sessions(
        self, username: str, page: int, size: int, zone: datetime.tzinfo
    ) -> List[WorkoutSessionOut]:
        if page < 0 or size < 1:
            raise ValueError("page must be >= 0 and size >= 1")
        user_id = self._user_id(username)
        rows = self.sessions.fetch_recent(user_id, size, page * size)
        return [session_to_dto(r, zone) for r in rows]

    def sessions_between(
        self,
        username: str,
        start_date: datetime.date,
        end_date: datetime.date,
        zone: datetime.tzinfo,
    ) -> List[WorkoutSessionOut]:
        """Return sessions from ``start_date`` to ``end_date`` inclusive, dated in ``zone``."""
        if start_date > end_date:
            raise ValueError("start_date must not be after end_date")
        user_id = self._user_id(username)
        rows = self.sessions.fetch_between(
            user_id,
            TimeTools.start_of_day(start_date, zone),
            TimeTools.end_of_day(end_date, zone),
        )
        return [session_to_dto(r, zone) for r in rows]

    def get_session(
        self, username: str, session_id: int, zone: datetime.tzinfo
    ) -> WorkoutSessionOut:
        row = self.sessions.fetch_detail(session_id, self._user_id(username))
        if row is None:
            raise ResourceNotFoundError("workout session not found")
        return session_to_dto(row, zone)

    def delete_session(self, username: str, session_id: int) -> None:
        self.sessions.delete(session_id, self._user_id(username))
        logger.info(f"workout session {session_id} deleted for {username}")
