import datetime
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from auth_service import AuthService
from config import APP_VERSION
from db import (
    DietSessionRepository,
    ExerciseTypeRepository,
    SettingsRepository,
    UserProfileRepository,
    UserRepository,
    WorkoutRoutineRepository,
    WorkoutSessionRepository,
)
from diet_service import DietService
from errors import DOMAIN_ERRORS, AuthenticationError
from profile_service import ProfileService
from routine_service import RoutineService
from schemas import (
    AuthResponse,
    DietDashboard,
    DietSessionIn,
    DietSessionOut,
    ExerciseTypeIn,
    ExerciseTypeOut,
    LoginRequest,
    ProfileOut,
    ProfileUpdate,
    RegisterRequest,
    RoutineIn,
    RoutineOut,
    WorkoutDashboard,
    WorkoutSessionIn,
    WorkoutSessionOut,
)
from session_service import SessionService
from stats_service import StatisticsService
from tools import TimeTools

logger = logging.getLogger(__name__)


class WorkoutAPI:
    """Provides REST endpoints for workout and diet tracking."""

    def __init__(
        self,
        db_path: str = "workout.db",
        yaml_path: str = "settings.yaml",
    ) -> None:
        self.db_path = db_path
        self.settings = SettingsRepository(db_path, yaml_path)
        self.users = UserRepository(db_path)
        self.profiles = UserProfileRepository(db_path)
        self.exercise_types = ExerciseTypeRepository(db_path)
        self.routines = WorkoutRoutineRepository(db_path)
        self.sessions = WorkoutSessionRepository(db_path)
        self.diets = DietSessionRepository(db_path)
        self.auth = AuthService(self.users, self.settings)
        self.statistics = StatisticsService(self.users, self.sessions, self.diets)
        self.session_service = SessionService(
            self.users, self.sessions, self.exercise_types, self.routines
        )
        self.diet_service = DietService(self.users, self.diets)
        self.routine_service = RoutineService(
            self.users, self.routines, self.exercise_types
        )
        self.profile_service = ProfileService(self.users, self.profiles)
        self.app = FastAPI(
            title="Workout API",
            description="REST API for workout logging, diet tracking and dashboards",
            version=APP_VERSION,
        )
        self._setup_error_handlers()
        self._setup_routes()

    def default_zone(self):
        return TimeTools.zone(self.settings.get_text("default_timezone", "Asia/Seoul"))

    def page_size(self, size: Optional[int]) -> int:
        return size if size is not None else self.settings.get_int("page_size", 100)

    def _setup_error_handlers(self) -> None:
        async def domain_error(request: Request, exc: Exception) -> JSONResponse:
            status = getattr(exc, "status", 400)
            code = getattr(exc, "code", "C001")
            logger.warning(
                f"{request.method} {request.url.path} rejected with {code}: {exc}"
            )
            return JSONResponse(
                status_code=status,
                content={"code": code, "message": str(exc), "status": status},
            )

        for exc_class in DOMAIN_ERRORS:
            self.app.add_exception_handler(exc_class, domain_error)
        self.app.add_exception_handler(ValueError, domain_error)

    def _setup_routes(self) -> None:
        auth_router = APIRouter(prefix="/api/auth", tags=["Auth"])
        sessions_router = APIRouter(prefix="/api/sessions", tags=["Workout Sessions"])
        diet_router = APIRouter(prefix="/api/diet-sessions", tags=["Diet Sessions"])
        routines_router = APIRouter(prefix="/api/routines", tags=["Routines"])
        exercises_router = APIRouter(prefix="/api/exercises", tags=["Exercise Types"])
        profile_router = APIRouter(prefix="/api/users/profile", tags=["Profile"])

        def current_user(authorization: Optional[str] = Header(None)) -> str:
            if not authorization or not authorization.startswith("Bearer "):
                raise AuthenticationError("missing bearer token")
            return self.auth.verify_token(authorization[len("Bearer "):])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                self.settings.all_settings()
                return {"status": "ok", "version": APP_VERSION}
            except Exception as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        @auth_router.post("/register", response_model=AuthResponse, status_code=201)
        def register(body: RegisterRequest):
            return self.auth.register(body.username, body.email, body.password)

        @auth_router.post("/login", response_model=AuthResponse)
        def login(body: LoginRequest):
            return self.auth.login(body.username, body.password)

        @sessions_router.post("", response_model=WorkoutSessionOut, status_code=201)
        def create_session(body: WorkoutSessionIn, username: str = Depends(current_user)):
            return self.session_service.create_session(
                username, body, self.default_zone()
            )

        @sessions_router.get("", response_model=List[WorkoutSessionOut])
        def list_sessions(
            start_date: Optional[datetime.date] = None,
            end_date: Optional[datetime.date] = None,
            page: int = 0,
            size: Optional[int] = None,
            username: str = Depends(current_user),
        ):
            zone = self.default_zone()
            if start_date is not None and end_date is not None:
                return self.session_service.sessions_between(
                    username, start_date, end_date, zone
                )
            return self.session_service.list_sessions(
                username, page, self.page_size(size), zone
            )

        @sessions_router.get("/dashboard", response_model=WorkoutDashboard)
        def workout_dashboard(tz: str = "UTC", username: str = Depends(current_user)):
            return self.statistics.workout_dashboard(username, tz)

        @sessions_router.get("/{session_id}", response_model=WorkoutSessionOut)
        def get_session(session_id: int, username: str = Depends(current_user)):
            return self.session_service.get_session(
                username, session_id, self.default_zone()
            )

        @sessions_router.delete("/{session_id}")
        def delete_session(session_id: int, username: str = Depends(current_user)):
            self.session_service.delete_session(username, session_id)
            return {"status": "deleted"}

        @diet_router.get("", response_model=List[DietSessionOut])
        def list_diet_sessions(
            page: int = 0,
            size: Optional[int] = None,
            username: str = Depends(current_user),
        ):
            return self.diet_service.list_sessions(username, page, self.page_size(size))

        @diet_router.get("/by-date", response_model=DietSessionOut)
        def diet_session_by_date(
            date: datetime.date, username: str = Depends(current_user)
        ):
            session = self.diet_service.session_for_date(username, date)
            if session is None:
                return Response(status_code=204)
            return session

        @diet_router.get("/today", response_model=DietDashboard)
        def diet_today(tz: str = "UTC", username: str = Depends(current_user)):
            return self.statistics.diet_daily_summary(username, tz)

        @diet_router.get("/{diet_id}", response_model=DietSessionOut)
        def get_diet_session(diet_id: int, username: str = Depends(current_user)):
            return self.diet_service.get_session(username, diet_id)

        @diet_router.post("", response_model=DietSessionOut)
        def save_diet_session(body: DietSessionIn, username: str = Depends(current_user)):
            return self.diet_service.save_session(username, body)

        @diet_router.delete("/{diet_id}")
        def delete_diet_session(diet_id: int, username: str = Depends(current_user)):
            self.diet_service.delete_session(username, diet_id)
            return {"status": "deleted"}

        @routines_router.post("", response_model=RoutineOut, status_code=201)
        def create_routine(body: RoutineIn, username: str = Depends(current_user)):
            return self.routine_service.create_routine(username, body)

        @routines_router.get("", response_model=List[RoutineOut])
        def list_routines(
            page: Optional[int] = None,
            size: Optional[int] = None,
            username: str = Depends(current_user),
        ):
            return self.routine_service.list_routines(username, page, size)

        @routines_router.delete("/{routine_id}")
        def delete_routine(routine_id: int, username: str = Depends(current_user)):
            self.routine_service.delete_routine(username, routine_id)
            return {"status": "deleted"}

        @exercises_router.get("", response_model=List[ExerciseTypeOut])
        def list_exercise_types(username: str = Depends(current_user)):
            return self.routine_service.list_exercise_types()

        @exercises_router.get("/category/{category}", response_model=List[ExerciseTypeOut])
        def exercise_types_by_category(
            category: str, username: str = Depends(current_user)
        ):
            return self.routine_service.list_exercise_types(category.upper())

        @exercises_router.post("", response_model=ExerciseTypeOut, status_code=201)
        def add_exercise_type(body: ExerciseTypeIn, username: str = Depends(current_user)):
            return self.routine_service.add_exercise_type(body)

        @exercises_router.delete("/{type_id}")
        def delete_exercise_type(type_id: int, username: str = Depends(current_user)):
            self.routine_service.delete_exercise_type(type_id)
            return {"status": "deleted"}

        @profile_router.get("", response_model=ProfileOut)
        def get_profile(username: str = Depends(current_user)):
            return self.profile_service.get_profile(username)

        @profile_router.put("", response_model=ProfileOut)
        def update_profile(body: ProfileUpdate, username: str = Depends(current_user)):
            return self.profile_service.update_profile(username, body)

        self.app.include_router(auth_router)
        self.app.include_router(sessions_router)
        self.app.include_router(diet_router)
        self.app.include_router(routines_router)
        self.app.include_router(exercises_router)
        self.app.include_router(profile_router)


api = WorkoutAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
