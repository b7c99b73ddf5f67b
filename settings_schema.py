from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ValidationError, field_validator


class SettingsSchema(BaseModel):
    default_timezone: str = "Asia/Seoul"
    jwt_secret: str | bool | None = None
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 1440
    page_size: int = 100

    @field_validator("default_timezone")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            raise ValueError(f"unknown timezone: {value}")
        return value

    @field_validator("jwt_expiration_minutes", "page_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
