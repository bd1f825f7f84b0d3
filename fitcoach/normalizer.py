"""
Turns raw client profile data into a canonical PlanRequest.

Bad values are never rejected here: out-of-range numbers are clamped and
missing or non-positive ones fall back to population averages, so the backup
generators always receive something they can work with.
"""
import logging
import math
from typing import Optional, Tuple, Union

from fitcoach.schemas import ActivityLevel, Biometrics, Goal, PlanRequest, PlanRequestBody, Preferences

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT_KG = 70.0
DEFAULT_HEIGHT_CM = 170.0
DEFAULT_AGE = 30
DEFAULT_GENDER = "male"
DEFAULT_GOAL = Goal.GENERAL_FITNESS
DEFAULT_ACTIVITY_LEVEL = ActivityLevel.MODERATE
# A label we cannot recognise is a different case from a missing one
UNMATCHED_ACTIVITY_LEVEL = ActivityLevel.SEDENTARY

DEFAULT_WORKOUT_ENVIRONMENT = "home"
DEFAULT_WORKOUT_FREQUENCY = "3-4"
DEFAULT_WORKOUT_DURATION = "30-45"
DEFAULT_DAYS = 7

# Plausible human ranges, (low, high)
AGE_RANGE = (13, 100)
HEIGHT_RANGE_CM = (100.0, 250.0)
WEIGHT_RANGE_KG = (30.0, 300.0)
DAILY_CALORIES_RANGE = (800, 10000)

GOAL_ALIASES = {
    'weight-loss': Goal.WEIGHT_LOSS,
    'lose-weight': Goal.WEIGHT_LOSS,
    'fat-loss': Goal.WEIGHT_LOSS,
    'muscle-gain': Goal.MUSCLE_GAIN,
    'build-muscle': Goal.MUSCLE_GAIN,
    'maintenance': Goal.MAINTENANCE,
    'maintain': Goal.MAINTENANCE,
    'health': Goal.HEALTH,
    'general-health': Goal.HEALTH,
    'improve-fitness': Goal.IMPROVE_FITNESS,
    'general-fitness': Goal.GENERAL_FITNESS,
    'fitness': Goal.GENERAL_FITNESS,
    'strength': Goal.STRENGTH,
    'performance': Goal.STRENGTH,
}

ACTIVITY_ALIASES = {
    'sedentary': ActivityLevel.SEDENTARY,
    'light': ActivityLevel.LIGHT,
    'lightly-active': ActivityLevel.LIGHT,
    'moderate': ActivityLevel.MODERATE,
    'moderately-active': ActivityLevel.MODERATE,
    'active': ActivityLevel.ACTIVE,
    'very-active': ActivityLevel.VERY_ACTIVE,
    'extra-active': ActivityLevel.VERY_ACTIVE,
}


def canonical_label(value: Optional[str]) -> str:
    """'Very Active' / 'very_active' / ' very-active ' -> 'very-active'."""
    if not value:
        return ''
    return '-'.join(str(value).strip().lower().replace('_', ' ').replace('-', ' ').split())


def resolve_goal(value: Union[Goal, str, None]) -> Goal:
    if isinstance(value, Goal):
        return value
    label = canonical_label(value)
    if not label:
        return DEFAULT_GOAL
    return GOAL_ALIASES.get(label, DEFAULT_GOAL)


def resolve_activity_level(value: Union[ActivityLevel, str, None]) -> ActivityLevel:
    if isinstance(value, ActivityLevel):
        return value
    label = canonical_label(value)
    if not label:
        return DEFAULT_ACTIVITY_LEVEL
    return ACTIVITY_ALIASES.get(label, UNMATCHED_ACTIVITY_LEVEL)


def clamp(
    value: Optional[float], bounds: Tuple[float, float], default: Optional[float], field_name: str
) -> Optional[float]:
    """Default missing, non-finite or non-positive values, clamp the rest into bounds."""
    if value is None or not math.isfinite(value) or value <= 0:
        return default
    low, high = bounds
    if value < low or value > high:
        clamped = min(max(value, low), high)
        logger.info("Clamped %s from %s to %s", field_name, value, clamped)
        return clamped
    return value


def normalize_gender(value: Optional[str]) -> str:
    label = canonical_label(value)
    if label in ('female', 'f', 'woman'):
        return 'female'
    if label in ('male', 'm', 'man'):
        return 'male'
    # Kept verbatim; the calculator treats anything but "female" with the male formula
    return label or DEFAULT_GENDER


def normalize_request(body: PlanRequestBody, max_days: int = 30) -> PlanRequest:
    """Build the canonical request used by both generation strategies."""
    age = clamp(body.age, AGE_RANGE, DEFAULT_AGE, 'age')
    biometrics = Biometrics(
        age=int(round(age)),
        gender=normalize_gender(body.gender),
        height=clamp(body.height, HEIGHT_RANGE_CM, DEFAULT_HEIGHT_CM, 'height'),
        weight=clamp(body.weight, WEIGHT_RANGE_KG, DEFAULT_WEIGHT_KG, 'weight'),
    )

    preferences = Preferences(
        workout_environment=(body.workout_preference or '').strip() or DEFAULT_WORKOUT_ENVIRONMENT,
        workout_duration=(body.workout_duration or '').strip() or DEFAULT_WORKOUT_DURATION,
        workout_frequency=(body.workout_frequency or '').strip() or DEFAULT_WORKOUT_FREQUENCY,
        equipment=body.equipment,
        dietary_preferences=list(body.dietary_preferences),
        dietary_restrictions=list(body.dietary_restrictions),
    )

    days = body.days if body.days and body.days > 0 else DEFAULT_DAYS
    days = min(days, max_days)

    # No default here: a missing figure means "calculate it"
    daily_calories = clamp(body.daily_calories, DAILY_CALORIES_RANGE, None, 'daily_calories')
    if daily_calories is not None:
        daily_calories = int(round(daily_calories))

    target_weight = body.target_weight
    if target_weight is not None and (not math.isfinite(target_weight) or target_weight <= 0):
        target_weight = None

    return PlanRequest(
        goal=resolve_goal(body.goal),
        biometrics=biometrics,
        activity_level=resolve_activity_level(body.activity_level),
        preferences=preferences,
        days=days,
        daily_calories=daily_calories,
        target_weight=target_weight,
        timeframe=body.timeframe,
        sleep_hours=body.sleep_hours,
    )
