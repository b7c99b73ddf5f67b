"""Settings file handling.

Settings live in a YAML file next to the database. Keys listed in
``YamlConfig.SENSITIVE_KEYS`` are moved to the system keyring when
``ENCRYPT_SETTINGS=1`` and only a ``true`` marker stays in the file.
"""

import os
import yaml
import keyring

APP_VERSION = "1.0.0"

DEFAULT_SETTINGS = {
    "default_timezone": "Asia/Seoul",
    "jwt_algorithm": "HS256",
    "jwt_expiration_minutes": 1440,
    "page_size": 100,
}

ENV_OVERRIDES = {
    "jwt_secret": "JWT_SECRET",
}


def env_override(key: str) -> str | None:
    """Return the environment value that takes precedence over setting ``key``."""
    name = ENV_OVERRIDES.get(key)
    if name is None:
        return None
    return os.environ.get(name) or None


class YamlConfig:
    """Load and save settings to a YAML file with optional keyring storage."""

    SENSITIVE_KEYS = {
        "jwt_secret",
    }

    def __init__(self, path: str = "settings.yaml", service: str = "workout_tracker") -> None:
        self.path = path
        self.encrypt = os.environ.get("ENCRYPT_SETTINGS") == "1"
        self.service = service

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a mapping of settings")
        if self.encrypt:
            for key in self.SENSITIVE_KEYS & data.keys():
                secret = keyring.get_password(self.service, key)
                if secret is None:
                    data.pop(key)
                else:
                    data[key] = secret
        return data

    def save(self, data: dict) -> None:
        out = {k: v for k, v in data.items() if v is not None}
        if self.encrypt:
            for key in self.SENSITIVE_KEYS & out.keys():
                keyring.set_password(self.service, key, str(out[key]))
                out[key] = True
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(out, f, sort_keys=True)
