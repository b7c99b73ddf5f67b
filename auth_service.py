"""Account registration, login and JWT handling.

Passwords are SHA-256 pre-hashed and then hashed with bcrypt so that the
72 byte bcrypt input limit never truncates a password. Tokens are signed
with the secret from the ``JWT_SECRET`` environment variable or, failing
that, the ``jwt_secret`` setting, which is generated on first use.
"""

import base64
import datetime
import hashlib
import logging
import secrets

import bcrypt
from jose import JWTError, jwt

from config import env_override
from db import SettingsRepository, UserRepository
from errors import AuthenticationError, DuplicateResourceError
from schemas import AuthResponse

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32


class AuthService:
    """Register users and issue or verify their access tokens."""

    def __init__(self, user_repo: UserRepository, settings_repo: SettingsRepository) -> None:
        self.users = user_repo
        self.settings = settings_repo
        self.secret = self._load_secret()
        self.algorithm = self.settings.get_text("jwt_algorithm", "HS256")
        self.expiration = datetime.timedelta(
            minutes=self.settings.get_int("jwt_expiration_minutes", 1440)
        )

    def _load_secret(self) -> str:
        env_secret = env_override("jwt_secret")
        if env_secret:
            if len(env_secret) < MIN_SECRET_LENGTH:
                raise ValueError(
                    f"JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters"
                )
            return env_secret
        stored = self.settings.get_text("jwt_secret", "")
        if len(stored) >= MIN_SECRET_LENGTH:
            return stored
        secret = secrets.token_urlsafe(48)
        self.settings.set_text("jwt_secret", secret)
        logger.warning("no usable JWT secret configured, generated a new one")
        return secret

    @staticmethod
    def _prehash(password: str) -> bytes:
        digest = hashlib.sha256(password.encode("utf-8")).digest()
        return base64.b64encode(digest)

    @classmethod
    def hash_password(cls, password: str) -> str:
        return bcrypt.hashpw(cls._prehash(password), bcrypt.gensalt()).decode("utf-8")

    @classmethod
    def verify_password(cls, password: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(cls._prehash(password), hashed.encode("utf-8"))
        except ValueError:
            return False

    def create_token(
        self, username: str, now: datetime.datetime | None = None
    ) -> str:
        issued = now or datetime.datetime.now(datetime.timezone.utc)
        payload = {
            "sub": username,
            "iat": issued,
            "exp": issued + self.expiration,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> str:
        """Return the username a valid ``token`` was issued for."""
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise AuthenticationError(f"invalid token: {e}")
        username = claims.get("sub")
        if not username:
            raise AuthenticationError("token has no subject")
        return username

    def register(self, username: str, email: str, password: str) -> AuthResponse:
        if self.users.exists_username(username):
            raise DuplicateResourceError(f"username already taken: {username}")
        if self.users.exists_email(email):
            raise DuplicateResourceError(f"email already registered: {email}")
        self.users.create(username, email, self.hash_password(password))
        logger.info(f"user {username} registered")
        return AuthResponse(
            token=self.create_token(username), username=username, email=email
        )

    def login(self, username: str, password: str) -> AuthResponse:
        user = self.users.fetch_by_username(username)
        if user is None or not self.verify_password(password, user["password"]):
            logger.warning(f"failed login for {username}")
            raise AuthenticationError("invalid username or password")
        return AuthResponse(
            token=self.create_token(username),
            username=user["username"],
            email=user["email"],
        )
