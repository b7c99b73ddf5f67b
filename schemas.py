"""Pydantic models for request bodies and API responses."""

import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

MealType = Literal["BREAKFAST", "LUNCH", "DINNER", "SNACK"]
Difficulty = Literal["BEGINNER", "INTERMEDIATE", "ADVANCED"]
Category = Literal[
    "CHEST",
    "BACK",
    "LEGS",
    "ABS",
    "ARMS",
    "SHOULDERS",
    "CARDIO",
    "FLEXIBILITY",
    "BALANCE",
]


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class LoginRequest(BaseModel):
    username: str
    password: str


class AuthResponse(BaseModel):
    token: str
    username: str
    email: str


class ExerciseRecordIn(BaseModel):
    exercise_id: int
    set_number: int = Field(ge=1)
    reps: int = Field(ge=1)
    weight: Optional[float] = Field(default=None, ge=0)
    duration: Optional[int] = Field(default=None, ge=0)
    rpe: Optional[int] = Field(default=None, ge=1, le=10)


class ExerciseRecordOut(BaseModel):
    id: int
    exercise_id: int
    exercise_name: str
    set_number: int
    reps: int
    weight: Optional[float] = None
    duration: Optional[int] = None
    rpe: Optional[int] = None


class WorkoutSessionIn(BaseModel):
    date: Optional[datetime.date] = None
    duration: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None
    routine_id: Optional[int] = None
    exercises: List[ExerciseRecordIn] = []


class WorkoutSessionOut(BaseModel):
    id: int
    date: datetime.date
    started_at: datetime.datetime
    duration: int
    notes: Optional[str] = None
    routine_id: Optional[int] = None
    total_volume: float
    exercises: List[ExerciseRecordOut] = []


class FoodEntryIn(BaseModel):
    meal_type: MealType
    food_name: str = Field(min_length=1)
    calories: int = Field(ge=0)
    protein: Optional[float] = Field(default=None, ge=0)
    carbs: Optional[float] = Field(default=None, ge=0)
    fat: Optional[float] = Field(default=None, ge=0)


class FoodEntryOut(FoodEntryIn):
    id: int


class DietSessionIn(BaseModel):
    id: Optional[int] = None
    date: datetime.date
    notes: Optional[str] = None
    food_entries: List[FoodEntryIn] = []


class DietSessionOut(BaseModel):
    id: int
    date: datetime.date
    notes: Optional[str] = None
    food_entries: List[FoodEntryOut] = []


class RoutineIn(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    duration: int = Field(ge=1)
    difficulty: Difficulty
    exercise_ids: List[int] = []


class RoutineOut(BaseModel):
    id: int
    name: str
    description: str
    duration: int
    difficulty: Difficulty
    created_at: datetime.datetime
    exercise_ids: List[int] = []


class ExerciseTypeIn(BaseModel):
    name: str = Field(min_length=1)
    category: Category
    muscle_group: str = Field(min_length=1)
    description: Optional[str] = None


class ExerciseTypeOut(ExerciseTypeIn):
    id: int


class ProfileUpdate(BaseModel):
    age: Optional[int] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)
    skeletal_muscle_mass: Optional[float] = Field(default=None, ge=0)
    body_fat_mass: Optional[float] = Field(default=None, ge=0)
    basal_metabolic_rate: Optional[int] = Field(default=None, ge=0)


class ProfileOut(ProfileUpdate):
    id: int
    updated_at: Optional[datetime.datetime] = None


class VolumeDataPoint(BaseModel):
    """One point of the volume chart: ``MM.dd`` label and session volume."""

    model_config = ConfigDict(frozen=True)

    date: str
    volume: float


class WorkoutDashboard(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_volume: float
    total_workouts: int
    monthly_workouts: int
    recent_sessions: tuple[WorkoutSessionOut, ...]
    volume_chart_data: tuple[VolumeDataPoint, ...]
    heatmap_start_date: datetime.date
    heatmap_levels: tuple[int, ...]


class DietDashboard(BaseModel):
    model_config = ConfigDict(frozen=True)

    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fat: int = 0
    has_data: bool = False
