import requests
from typing import Optional


class WorkoutClient:
    """Simple REST client for the workout API.

    ``http`` defaults to the ``requests`` module; anything exposing the same
    ``get``/``post``/``put``/``delete`` calls can be passed instead.
    """

    def __init__(self, base_url: str = "http://localhost:8000", http=requests) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http
        self.token: Optional[str] = None

    def _headers(self) -> dict:
        if self.token is None:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method: str, path: str, **kwargs):
        call = getattr(self.http, method)
        resp = call(f"{self.base_url}{path}", headers=self._headers(), **kwargs)
        resp.raise_for_status()
        if resp.status_code == 204:
            return None
        return resp.json()

    def register(self, username: str, email: str, password: str) -> dict:
        data = self._request(
            "post",
            "/api/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        self.token = data["token"]
        return data

    def login(self, username: str, password: str) -> dict:
        data = self._request(
            "post",
            "/api/auth/login",
            json={"username": username, "password": password},
        )
        self.token = data["token"]
        return data

    def create_session(self, exercises: list[dict], date: Optional[str] = None, **fields) -> dict:
        body = {"exercises": exercises, "date": date, **fields}
        return self._request("post", "/api/sessions", json=body)

    def list_sessions(self, **params) -> list:
        return self._request("get", "/api/sessions", params=params)

    def delete_session(self, session_id: int) -> None:
        self._request("delete", f"/api/sessions/{session_id}")

    def workout_dashboard(self, tz: str = "UTC") -> dict:
        return self._request("get", "/api/sessions/dashboard", params={"tz": tz})

    def save_diet_session(self, date: str, food_entries: list[dict], notes: Optional[str] = None) -> dict:
        body = {"date": date, "notes": notes, "food_entries": food_entries}
        return self._request("post", "/api/diet-sessions", json=body)

    def diet_session_for_date(self, date: str) -> Optional[dict]:
        return self._request("get", "/api/diet-sessions/by-date", params={"date": date})

    def diet_today(self, tz: str = "UTC") -> dict:
        return self._request("get", "/api/diet-sessions/today", params={"tz": tz})

    def exercise_types(self, category: Optional[str] = None) -> list:
        if category:
            return self._request("get", f"/api/exercises/category/{category}")
        return self._request("get", "/api/exercises")
