import math
from datetime import date as calendar_date, datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class Goal(str, Enum):
    WEIGHT_LOSS = "weight-loss"
    MUSCLE_GAIN = "muscle-gain"
    MAINTENANCE = "maintenance"
    HEALTH = "health"
    IMPROVE_FITNESS = "improve-fitness"
    GENERAL_FITNESS = "general-fitness"
    STRENGTH = "strength"


class ActivityLevel(str, Enum):
    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very-active"


def _round_grams(value: Any) -> Any:
    # Model output often carries fractional grams or numeric strings.
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return value
    if isinstance(value, float):
        return int(math.floor(value + 0.5))
    return value


def _check_sequence(numbers: List[int], label: str) -> None:
    expected = list(range(1, len(numbers) + 1))
    if numbers != expected:
        raise ValueError(f"{label} numbers must run 1..{len(numbers)}, got {numbers}")


# ---------- incoming request ----------

class PlanRequestBody(BaseModel):
    """Raw profile/goal/preferences as sent by the client."""
    model_config = ConfigDict(populate_by_name=True)

    goal: Optional[str] = Field(None, validation_alias=AliasChoices("goal", "primaryGoal", "primary_goal"))
    age: Optional[float] = None
    gender: Optional[str] = None
    height: Optional[float] = None  # cm
    weight: Optional[float] = None  # kg
    activity_level: Optional[str] = Field(None, validation_alias=AliasChoices("activity_level", "activityLevel"))
    target_weight: Optional[float] = Field(None, validation_alias=AliasChoices("target_weight", "targetWeight"))
    timeframe: Optional[str] = None
    sleep_hours: Optional[str] = Field(None, validation_alias=AliasChoices("sleep_hours", "sleepHours"))
    workout_preference: Optional[str] = Field(
        None, validation_alias=AliasChoices("workout_preference", "workoutPreference", "workout_environment")
    )
    workout_duration: Optional[str] = Field(None, validation_alias=AliasChoices("workout_duration", "workoutDuration"))
    workout_frequency: Optional[str] = Field(None, validation_alias=AliasChoices("workout_frequency", "workoutFrequency"))
    equipment: Optional[str] = None
    dietary_preferences: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("dietary_preferences", "dietaryPreferences", "foodPreferences"),
    )
    dietary_restrictions: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("dietary_restrictions", "dietaryRestrictions", "restrictions"),
    )
    daily_calories: Optional[float] = Field(None, validation_alias=AliasChoices("daily_calories", "dailyCalories"))
    days: Optional[int] = None

    @field_validator("workout_duration", "workout_frequency", "sleep_hours", "timeframe", mode="before")
    @classmethod
    def numbers_as_text(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("dietary_preferences", "dietary_restrictions", mode="before")
    @classmethod
    def split_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        return v


# ---------- normalized request ----------

class Biometrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    age: int
    gender: str
    height: float
    weight: float


class Preferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    workout_environment: str
    workout_duration: str
    workout_frequency: str
    equipment: Optional[str] = None
    dietary_preferences: List[str] = Field(default_factory=list)
    dietary_restrictions: List[str] = Field(default_factory=list)


class PlanRequest(BaseModel):
    """Canonical request handed to both generation strategies."""
    model_config = ConfigDict(frozen=True)

    goal: Goal
    biometrics: Biometrics
    activity_level: ActivityLevel
    preferences: Preferences
    days: int = 7
    daily_calories: Optional[int] = None
    target_weight: Optional[float] = None
    timeframe: Optional[str] = None
    sleep_hours: Optional[str] = None


# ---------- generated plans ----------

class NutritionTargets(BaseModel):
    model_config = ConfigDict(frozen=True)

    daily_calories: int = Field(..., gt=0)
    protein_g: int
    carbs_g: int
    fat_g: int


class ExerciseEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    sets: int = Field(..., gt=0)
    reps: str = Field(..., min_length=1)
    rest: str
    instructions: str

    @field_validator("reps", "rest", mode="before")
    @classmethod
    def numbers_as_text(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class WorkoutDayPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    day_number: int = Field(..., ge=1)
    name: str = Field(..., min_length=1)
    exercises: List[ExerciseEntry] = Field(..., min_length=1)


class WorkoutWeek(BaseModel):
    model_config = ConfigDict(frozen=True)

    week_number: int = Field(..., ge=1)
    days: List[WorkoutDayPlan] = Field(..., min_length=1)

    @field_validator("days")
    @classmethod
    def days_are_contiguous(cls, v):
        _check_sequence([d.day_number for d in v], "day")
        return v


class GeneratedWorkoutPlan(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    plan_name: str = Field(..., min_length=1)
    plan_description: str
    weeks: List[WorkoutWeek] = Field(..., min_length=1)
    notes: Optional[str] = None
    is_ai_generated: bool = Field(
        True, validation_alias=AliasChoices("is_ai_generated", "isAIGenerated"), serialization_alias="isAIGenerated"
    )
    fallback_reason: Optional[str] = Field(
        None, validation_alias=AliasChoices("fallback_reason", "fallbackReason"), serialization_alias="fallbackReason"
    )

    @field_validator("weeks")
    @classmethod
    def weeks_are_contiguous(cls, v):
        _check_sequence([w.week_number for w in v], "week")
        return v


class MealEntry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1)
    meal_time: str = Field(..., validation_alias=AliasChoices("meal_time", "mealTime"))
    calories: int = Field(..., ge=0)
    protein: int = Field(..., ge=0)
    carbs: int = Field(..., ge=0)
    fat: int = Field(..., ge=0)
    description: str
    instructions: str = ""

    @field_validator("calories", "protein", "carbs", "fat", mode="before")
    @classmethod
    def round_numbers(cls, v):
        return _round_grams(v)


class NutritionDayPlan(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    day_number: int = Field(..., ge=1, validation_alias=AliasChoices("day_number", "day"))
    name: str = Field(..., min_length=1)
    meals: List[MealEntry] = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def default_name(cls, data):
        if isinstance(data, dict) and not data.get("name"):
            number = data.get("day_number", data.get("day"))
            if number is not None:
                data = {**data, "name": f"Day {number}"}
        return data


class GeneratedNutritionPlan(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    plan_name: str = Field(..., min_length=1)
    plan_description: str
    targets: NutritionTargets
    days: List[NutritionDayPlan] = Field(..., min_length=1)
    is_ai_generated: bool = Field(
        True, validation_alias=AliasChoices("is_ai_generated", "isAIGenerated"), serialization_alias="isAIGenerated"
    )
    fallback_reason: Optional[str] = Field(
        None, validation_alias=AliasChoices("fallback_reason", "fallbackReason"), serialization_alias="fallbackReason"
    )

    @field_validator("days")
    @classmethod
    def days_are_contiguous(cls, v):
        _check_sequence([d.day_number for d in v], "day")
        return v


# ---------- responses ----------

class WorkoutPlanResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan: GeneratedWorkoutPlan
    is_ai_generated: bool = Field(
        ..., validation_alias=AliasChoices("is_ai_generated", "isAIGenerated"), serialization_alias="isAIGenerated"
    )
    fallback_reason: Optional[str] = Field(
        None, validation_alias=AliasChoices("fallback_reason", "fallbackReason"), serialization_alias="fallbackReason"
    )
    plan_id: Optional[int] = Field(None, validation_alias=AliasChoices("plan_id", "planId"), serialization_alias="planId")


class NutritionPlanResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan: GeneratedNutritionPlan
    targets: NutritionTargets
    is_ai_generated: bool = Field(
        ..., validation_alias=AliasChoices("is_ai_generated", "isAIGenerated"), serialization_alias="isAIGenerated"
    )
    fallback_reason: Optional[str] = Field(
        None, validation_alias=AliasChoices("fallback_reason", "fallbackReason"), serialization_alias="fallbackReason"
    )
    plan_id: Optional[int] = Field(None, validation_alias=AliasChoices("plan_id", "planId"), serialization_alias="planId")


class SavedPlanResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_id: int = Field(..., validation_alias=AliasChoices("plan_id", "planId"), serialization_alias="planId")


class PlanSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    goal: Optional[str] = None
    is_ai_generated: bool
    fallback_reason: Optional[str] = None
    created_at: Optional[datetime] = None


class NutritionLogIn(BaseModel):
    date: calendar_date
    daily_calories: int = Field(..., ge=0)
    daily_protein: float = Field(0, ge=0)
    daily_carbs: float = Field(0, ge=0)
    daily_fat: float = Field(0, ge=0)
    weight: Optional[float] = Field(None, gt=0, le=500)
    notes: Optional[str] = Field(None, max_length=1000)


class NutritionLogEntry(NutritionLogIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
