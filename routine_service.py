import logging
from typing import List, Optional

from db import ExerciseTypeRepository, UserRepository, WorkoutRoutineRepository
from errors import ResourceNotFoundError, UserNotFoundError
from mappers import exercise_type_to_dto, routine_to_dto
from schemas import ExerciseTypeIn, ExerciseTypeOut, RoutineIn, RoutineOut

logger = logging.getLogger(__name__)


class RoutineService:
    """Handle workout routines and the exercise type catalogue."""

    def __init__(
        self,
        user_repo: UserRepository,
        routine_repo: WorkoutRoutineRepository,
        type_repo: ExerciseTypeRepository,
    ) -> None:
        self.users = user_repo
        self.routines = routine_repo
        self.exercise_types = type_repo

    def _user_id(self, username: str) -> int:
        user = self.users.fetch_by_username(username)
        if user is None:
            raise UserNotFoundError(username)
        return user["id"]

    def create_routine(self, username: str, data: RoutineIn) -> RoutineOut:
        user_id = self._user_id(username)
        missing = self.exercise_types.missing_ids(data.exercise_ids)
        if missing:
            raise ResourceNotFoundError(f"exercise type not found: {missing[0]}")
        rid = self.routines.create(
            user_id,
            data.name,
            data.description,
            data.duration,
            data.difficulty,
            data.exercise_ids,
        )
        logger.info(f"routine {rid} created for {username}")
        return routine_to_dto(self.routines.fetch_detail(rid, user_id))

    def list_routines(
        self, username: str, page: Optional[int] = None, size: Optional[int] = None
    ) -> List[RoutineOut]:
        if (page is not None and page < 0) or (size is not None and size < 1):
            raise ValueError("page must be >= 0 and size >= 1")
        user_id = self._user_id(username)
        if page is None or size is None:
            rows = self.routines.fetch_for_user(user_id)
        else:
            rows = self.routines.fetch_for_user(user_id, size, page * size)
        return [routine_to_dto(r) for r in rows]

    def delete_routine(self, username: str, routine_id: int) -> None:
        self.routines.delete(routine_id, self._user_id(username))
        logger.info(f"routine {routine_id} deleted for {username}")

    def list_exercise_types(self, category: Optional[str] = None) -> List[ExerciseTypeOut]:
        return [exercise_type_to_dto(r) for r in self.exercise_types.fetch_types(category)]

    def add_exercise_type(self, data: ExerciseTypeIn) -> ExerciseTypeOut:
        tid = self.exercise_types.add(
            data.name, data.category, data.muscle_group, data.description
        )
        logger.info(f"exercise type {data.name} added")
        return exercise_type_to_dto(self.exercise_types.fetch_detail(tid))

    def delete_exercise_type(self, type_id: int) -> None:
        self.exercise_types.delete(type_id)
        logger.info(f"exercise type {type_id} deleted")
