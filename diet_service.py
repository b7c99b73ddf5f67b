import datetime
import logging
from typing import List, Optional

from db import DietSessionRepository, UserRepository
from errors import ResourceNotFoundError, UserNotFoundError
from mappers import diet_to_dto
from schemas import DietSessionIn, DietSessionOut

logger = logging.getLogger(__name__)


class DietService:
    """Manage the daily diet log of a user."""

    def __init__(self, user_repo: UserRepository, diet_repo: DietSessionRepository) -> None:
        self.users = user_repo
        self.diets = diet_repo

    def _user_id(self, username: str) -> int:
        user = self.users.fetch_by_username(username)
        if user is None:
            raise UserNotFoundError(username)
        return user["id"]

    def list_sessions(self, username: str, page: int, size: int) -> List[DietSessionOut]:
        if page < 0 or size < 1:
            raise ValueError("page must be >= 0 and size >= 1")
        rows = self.diets.fetch_page(self._user_id(username), size, page * size)
        return [diet_to_dto(r) for r in rows]

    def session_for_date(
        self, username: str, day: datetime.date
    ) -> Optional[DietSessionOut]:
        row = self.diets.fetch_for_date(self._user_id(username), day)
        return diet_to_dto(row) if row is not None else None

    def get_session(self, username: str, diet_id: int) -> DietSessionOut:
        row = self.diets.fetch_detail(diet_id, self._user_id(username))
        if row is None:
            raise ResourceNotFoundError("diet session not found")
        return diet_to_dto(row)

    def save_session(self, username: str, data: DietSessionIn) -> DietSessionOut:
        """Create the diet session for ``data.date`` or replace the existing one."""
        user_id = self._user_id(username)
        diet_id = self.diets.save(
            user_id,
            data.date,
            data.notes,
            [e.model_dump() for e in data.food_entries],
            diet_id=data.id,
        )
        logger.info(
            f"diet session {diet_id} saved for {username} on {data.date.isoformat()}"
        )
        return diet_to_dto(self.diets.fetch_detail(diet_id, user_id))

    def delete_session(self, username: str, diet_id: int) -> None:
        self.diets.delete(diet_id, self._user_id(username))
        logger.info(f"diet session {diet_id} deleted for {username}")
