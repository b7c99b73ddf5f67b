import os
import sys
import datetime
import unittest
from zoneinfo import ZoneInfo
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from rest_api import WorkoutAPI
from tools import TimeTools


class APITestCase(unittest.TestCase):
    def setUp(self) -> None:
        os.environ.pop("JWT_SECRET", None)
        self.db_path = "test_workout.db"
        self.yaml_path = "test_settings.yaml"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        if os.path.exists(self.yaml_path):
            os.remove(self.yaml_path)
        self.api = WorkoutAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.client = TestClient(self.api.app)
        self.headers = self._register("alice")

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        if os.path.exists(self.yaml_path):
            os.remove(self.yaml_path)

    def _register(self, username: str) -> dict:
        response = self.client.post(
            "/api/auth/register",
            json={
                "username": username,
                "email": f"{username}@example.com",
                "password": "correct-horse",
            },
        )
        self.assertEqual(response.status_code, 201)
        return {"Authorization": f"Bearer {response.json()['token']}"}

    def _exercise_id(self, name: str) -> int:
        response = self.client.get("/api/exercises", headers=self.headers)
        return [t["id"] for t in response.json() if t["name"] == name][0]

    def _log_session(self, **body) -> dict:
        bench = self._exercise_id("Bench Press")
        body.setdefault(
            "exercises",
            [
                {"exercise_id": bench, "set_number": 1, "reps": 10, "weight": 100.0},
                {"exercise_id": bench, "set_number": 2, "reps": 8, "weight": 100.0},
            ],
        )
        response = self.client.post("/api/sessions", json=body, headers=self.headers)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()


class HealthAndAuthTestCase(APITestCase):
    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

    def test_register_duplicate(self) -> None:
        response = self.client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "new@example.com", "password": "correct-horse"},
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["code"], "R002")
        self.assertEqual(response.json()["status"], 409)

    def test_register_validation(self) -> None:
        response = self.client.post(
            "/api/auth/register",
            json={"username": "bob", "email": "not-an-email", "password": "short"},
        )
        self.assertEqual(response.status_code, 422)

    def test_login(self) -> None:
        response = self.client.post(
            "/api/auth/login", json={"username": "alice", "password": "correct-horse"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["email"], "alice@example.com")
        response = self.client.post(
            "/api/auth/login", json={"username": "alice", "password": "wrong-horse"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "A001")

    def test_protected_routes_need_token(self) -> None:
        response = self.client.get("/api/sessions")
        self.assertEqual(response.status_code, 401)
        response = self.client.get(
            "/api/sessions", headers={"Authorization": "Bearer not.a.token"}
        )
        self.assertEqual(response.status_code, 401)
        response = self.client.get("/api/sessions", headers={"Authorization": "Token abc"})
        self.assertEqual(response.status_code, 401)

    def test_token_for_removed_user(self) -> None:
        user = self.api.users.fetch_by_username("alice")
        self.api.users.delete(user["id"])
        response = self.client.get("/api/sessions/dashboard", headers=self.headers)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "U001")


class WorkoutSessionAPITestCase(APITestCase):
    def test_create_and_dashboard(self) -> None:
        session = self._log_session(notes="heavy day", duration=50)
        seoul_today = TimeTools.today(ZoneInfo("Asia/Seoul"))
        self.assertEqual(session["date"], seoul_today.isoformat())
        self.assertEqual(session["total_volume"], 1800.0)
        self.assertEqual(len(session["exercises"]), 2)
        self.assertEqual(session["exercises"][0]["exercise_name"], "Bench Press")

        response = self.client.get(
            "/api/sessions/dashboard", params={"tz": "UTC"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        dash = response.json()
        self.assertEqual(dash["total_volume"], 1800.0)
        self.assertEqual(dash["total_workouts"], 1)
        self.assertEqual(dash["monthly_workouts"], 1)
        self.assertEqual(len(dash["heatmap_levels"]), 365)
        self.assertEqual(dash["heatmap_levels"][-1], 1)
        utc_today = TimeTools.today(ZoneInfo("UTC"))
        self.assertEqual(
            dash["heatmap_start_date"],
            (utc_today - datetime.timedelta(days=364)).isoformat(),
        )
        self.assertEqual(
            dash["volume_chart_data"],
            [{"date": utc_today.strftime("%m.%d"), "volume": 1800.0}],
        )
        self.assertEqual([s["id"] for s in dash["recent_sessions"]], [session["id"]])

    def test_empty_dashboard(self) -> None:
        response = self.client.get("/api/sessions/dashboard", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        dash = response.json()
        self.assertEqual(dash["total_volume"], 0.0)
        self.assertEqual(dash["recent_sessions"], [])
        self.assertEqual(dash["volume_chart_data"], [])
        self.assertEqual(dash["heatmap_levels"], [0] * 365)

    def test_dashboard_invalid_timezone(self) -> None:
        response = self.client.get(
            "/api/sessions/dashboard", params={"tz": "Not/AZone"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "C002")

    def test_zone_directory_rejected(self) -> None:
        for path in ("/api/sessions/dashboard", "/api/diet-sessions/today"):
            for tz in ("America", "Etc"):
                response = self.client.get(path, params={"tz": tz}, headers=self.headers)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["code"], "C002")

    def test_past_date_pins_start_of_day(self) -> None:
        past = datetime.date(2024, 3, 10)
        session = self._log_session(date=past.isoformat())
        self.assertEqual(session["date"], past.isoformat())
        started = datetime.datetime.fromisoformat(session["started_at"])
        self.assertEqual(started.astimezone(ZoneInfo("Asia/Seoul")).time(), datetime.time(0, 0))

    def test_unknown_exercise_type(self) -> None:
        response = self.client.post(
            "/api/sessions",
            json={"exercises": [{"exercise_id": 9999, "set_number": 1, "reps": 5}]},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "R001")

    def test_invalid_reps(self) -> None:
        response = self.client.post(
            "/api/sessions",
            json={"exercises": [{"exercise_id": 1, "set_number": 1, "reps": 0}]},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 422)

    def test_list_range_get_delete(self) -> None:
        older = self._log_session(date="2024-03-10")
        newer = self._log_session(date="2024-03-12")
        response = self.client.get("/api/sessions", headers=self.headers)
        self.assertEqual([s["id"] for s in response.json()], [newer["id"], older["id"]])
        response = self.client.get(
            "/api/sessions", params={"page": 1, "size": 1}, headers=self.headers
        )
        self.assertEqual([s["id"] for s in response.json()], [older["id"]])
        response = self.client.get(
            "/api/sessions",
            params={"start_date": "2024-03-10", "end_date": "2024-03-11"},
            headers=self.headers,
        )
        self.assertEqual([s["id"] for s in response.json()], [older["id"]])
        response = self.client.get(
            "/api/sessions",
            params={"start_date": "2024-03-12", "end_date": "2024-03-10"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.get(f"/api/sessions/{older['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["date"], "2024-03-10")

        response = self.client.delete(f"/api/sessions/{older['id']}", headers=self.headers)
        self.assertEqual(response.json(), {"status": "deleted"})
        response = self.client.get(f"/api/sessions/{older['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 404)

    def test_sessions_are_owner_scoped(self) -> None:
        session = self._log_session()
        bob = self._register("bob")
        response = self.client.get(f"/api/sessions/{session['id']}", headers=bob)
        self.assertEqual(response.status_code, 404)
        response = self.client.delete(f"/api/sessions/{session['id']}", headers=bob)
        self.assertEqual(response.status_code, 404)
        response = self.client.get("/api/sessions/dashboard", headers=bob)
        self.assertEqual(response.json()["total_workouts"], 0)


class DietSessionAPITestCase(APITestCase):
    def _entries(self) -> list:
        return [
            {"meal_type": "BREAKFAST", "food_name": "Oatmeal", "calories": 350, "protein": 12.5, "carbs": 60.0, "fat": 6.0},
            {"meal_type": "LUNCH", "food_name": "Chicken Salad", "calories": 520, "protein": 42.0, "carbs": 18.0, "fat": 28.5},
        ]

    def test_by_date_and_today(self) -> None:
        today = TimeTools.today(ZoneInfo("Asia/Seoul")).isoformat()
        response = self.client.get(
            "/api/diet-sessions/by-date", params={"date": today}, headers=self.headers
        )
        self.assertEqual(response.status_code, 204)
        response = self.client.get(
            "/api/diet-sessions/today", params={"tz": "Asia/Seoul"}, headers=self.headers
        )
        self.assertEqual(
            response.json(),
            {"calories": 0, "protein": 0, "carbs": 0, "fat": 0, "has_data": False},
        )

        response = self.client.post(
            "/api/diet-sessions",
            json={"date": today, "notes": "clean", "food_entries": self._entries()},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["food_entries"]), 2)

        response = self.client.get(
            "/api/diet-sessions/by-date", params={"date": today}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["notes"], "clean")

        response = self.client.get(
            "/api/diet-sessions/today", params={"tz": "Asia/Seoul"}, headers=self.headers
        )
        self.assertEqual(
            response.json(),
            {"calories": 870, "protein": 54, "carbs": 78, "fat": 34, "has_data": True},
        )

    def test_upsert_replaces_entries(self) -> None:
        body = {"date": "2024-06-15", "food_entries": self._entries()}
        first = self.client.post("/api/diet-sessions", json=body, headers=self.headers).json()
        body["food_entries"] = self._entries()[:1]
        second = self.client.post("/api/diet-sessions", json=body, headers=self.headers).json()
        self.assertEqual(first["id"], second["id"])
        self.assertEqual(len(second["food_entries"]), 1)
        response = self.client.get(f"/api/diet-sessions/{first['id']}", headers=self.headers)
        self.assertEqual(response.json()["food_entries"][0]["food_name"], "Oatmeal")

    def test_list_and_delete(self) -> None:
        for day in ("2024-06-14", "2024-06-15"):
            self.client.post(
                "/api/diet-sessions", json={"date": day, "food_entries": []}, headers=self.headers
            )
        response = self.client.get("/api/diet-sessions", headers=self.headers)
        sessions = response.json()
        self.assertEqual([s["date"] for s in sessions], ["2024-06-15", "2024-06-14"])
        response = self.client.delete(
            f"/api/diet-sessions/{sessions[0]['id']}", headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        response = self.client.get(
            f"/api/diet-sessions/{sessions[0]['id']}", headers=self.headers
        )
        self.assertEqual(response.status_code, 404)

    def test_invalid_meal_type(self) -> None:
        response = self.client.post(
            "/api/diet-sessions",
            json={
                "date": "2024-06-15",
                "food_entries": [{"meal_type": "BRUNCH", "food_name": "Toast", "calories": 100}],
            },
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 422)


class RoutineAndCatalogueAPITestCase(APITestCase):
    def test_routines(self) -> None:
        bench = self._exercise_id("Bench Press")
        response = self.client.post(
            "/api/routines",
            json={
                "name": "Push",
                "description": "Chest and shoulders",
                "duration": 45,
                "difficulty": "INTERMEDIATE",
                "exercise_ids": [bench],
            },
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201)
        routine = response.json()
        self.assertEqual(routine["exercise_ids"], [bench])
        response = self.client.get("/api/routines", headers=self.headers)
        self.assertEqual([r["id"] for r in response.json()], [routine["id"]])

        session = self._log_session(routine_id=routine["id"])
        self.assertEqual(session["routine_id"], routine["id"])

        response = self.client.delete(f"/api/routines/{routine['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/routines", headers=self.headers).json(), [])

    def test_routine_paging_rejects_bad_bounds(self) -> None:
        for params in ({"page": 0, "size": -1}, {"page": -1, "size": 10}, {"page": 0, "size": 0}):
            response = self.client.get("/api/routines", params=params, headers=self.headers)
            self.assertEqual(response.status_code, 400)
        response = self.client.get("/api/routines", params={"page": 0, "size": 5}, headers=self.headers)
        self.assertEqual(response.status_code, 200)

    def test_exercise_catalogue(self) -> None:
        response = self.client.get("/api/exercises/category/legs", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(all(t["category"] == "LEGS" for t in response.json()))
        response = self.client.post(
            "/api/exercises",
            json={"name": "Hip Thrust", "category": "LEGS", "muscle_group": "Glutes"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201)
        type_id = response.json()["id"]
        response = self.client.post(
            "/api/exercises",
            json={"name": "Hip Thrust", "category": "LEGS", "muscle_group": "Glutes"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 409)
        response = self.client.delete(f"/api/exercises/{type_id}", headers=self.headers)
        self.assertEqual(response.status_code, 200)

    def test_delete_used_exercise_type(self) -> None:
        self._log_session()
        bench = self._exercise_id("Bench Press")
        response = self.client.delete(f"/api/exercises/{bench}", headers=self.headers)
        self.assertEqual(response.status_code, 400)


class ProfileAPITestCase(APITestCase):
    def test_get_and_update(self) -> None:
        response = self.client.get("/api/users/profile", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()["weight"])
        response = self.client.put(
            "/api/users/profile",
            json={"weight": 78.2, "basal_metabolic_rate": 1650},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["weight"], 78.2)
        response = self.client.put(
            "/api/users/profile", json={"age": 29}, headers=self.headers
        )
        profile = response.json()
        self.assertEqual(profile["age"], 29)
        self.assertEqual(profile["weight"], 78.2)
        self.assertEqual(profile["basal_metabolic_rate"], 1650)


if __name__ == "__main__":
    unittest.main()
