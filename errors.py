"""Domain exceptions raised by the services.

Each exception carries a stable error ``code`` and the HTTP ``status`` the
REST layer answers with.
"""


class UserNotFoundError(LookupError):
    code = "U001"
    status = 404

    def __init__(self, username: str) -> None:
        super().__init__(f"user not found: {username}")
        self.username = username


class ResourceNotFoundError(LookupError):
    code = "R001"
    status = 404


class DuplicateResourceError(ValueError):
    code = "R002"
    status = 409


class InvalidTimezoneError(ValueError):
    code = "C002"
    status = 400

    def __init__(self, name: str) -> None:
        super().__init__(f"invalid timezone: {name}")
        self.name = name


class AuthenticationError(Exception):
    code = "A001"
    status = 401


DOMAIN_ERRORS = (
    UserNotFoundError,
    ResourceNotFoundError,
    DuplicateResourceError,
    InvalidTimezoneError,
    AuthenticationError,
)
