import logging

from db import UserProfileRepository, UserRepository
from errors import UserNotFoundError
from mappers import profile_to_dto
from schemas import ProfileOut, ProfileUpdate

logger = logging.getLogger(__name__)


class ProfileService:
    """Read and update the body metrics of a user."""

    def __init__(self, user_repo: UserRepository, profile_repo: UserProfileRepository) -> None:
        self.users = user_repo
        self.profiles = profile_repo

    def _user_id(self, username: str) -> int:
        user = self.users.fetch_by_username(username)
        if user is None:
            raise UserNotFoundError(username)
        return user["id"]

    def get_profile(self, username: str) -> ProfileOut:
        """Return the profile of ``username``, creating an empty one on first use."""
        user_id = self._user_id(username)
        row = self.profiles.fetch_for_user(user_id)
        if row is None:
            row = self.profiles.create(user_id)
        return profile_to_dto(row)

    def update_profile(self, username: str, data: ProfileUpdate) -> ProfileOut:
        user_id = self._user_id(username)
        row = self.profiles.update(user_id, data.model_dump(exclude_none=True))
        logger.info(f"profile updated for {username}")
        return profile_to_dto(row)
