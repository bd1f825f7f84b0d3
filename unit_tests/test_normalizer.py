# unit_tests/test_normalizer.py
"""
Unit Tests for request normalization
====================================
Run with: python -m pytest unit_tests/test_normalizer.py -v
"""
from fitcoach.normalizer import canonical_label, normalize_request, resolve_activity_level, resolve_goal
from fitcoach.schemas import ActivityLevel, Goal, PlanRequestBody


def test_empty_body_gets_population_defaults():
    request = normalize_request(PlanRequestBody())
    assert request.biometrics.weight == 70
    assert request.biometrics.height == 170
    assert request.biometrics.age == 30
    assert request.biometrics.gender == "male"
    assert request.activity_level == ActivityLevel.MODERATE
    assert request.goal == Goal.GENERAL_FITNESS
    assert request.days == 7
    assert request.daily_calories is None
    assert request.preferences.workout_environment == "home"
    assert request.preferences.workout_frequency == "3-4"


def test_camel_case_client_fields():
    body = PlanRequestBody.model_validate({
        "primaryGoal": "weight-loss",
        "activityLevel": "Very Active",
        "workoutFrequency": "4-5",
        "workoutPreference": "gym",
        "workoutDuration": 45,
        "dailyCalories": 1850.4,
        "dietaryRestrictions": ["gluten-free"],
        "foodPreferences": "chicken, rice",
        "targetWeight": 65,
    })
    request = normalize_request(body)
    assert request.goal == Goal.WEIGHT_LOSS
    assert request.activity_level == ActivityLevel.VERY_ACTIVE
    assert request.preferences.workout_frequency == "4-5"
    assert request.preferences.workout_environment == "gym"
    assert request.preferences.workout_duration == "45"
    assert request.daily_calories == 1850
    assert request.preferences.dietary_restrictions == ["gluten-free"]
    assert request.preferences.dietary_preferences == ["chicken", "rice"]
    assert request.target_weight == 65


def test_out_of_range_values_are_clamped_not_rejected():
    request = normalize_request(PlanRequestBody(age=7, height=400, weight=12))
    assert request.biometrics.age == 13
    assert request.biometrics.height == 250
    assert request.biometrics.weight == 30


def test_non_positive_values_fall_back_to_defaults():
    request = normalize_request(PlanRequestBody(age=-4, height=0, weight=-70, daily_calories=-100, days=0))
    assert request.biometrics.age == 30
    assert request.biometrics.height == 170
    assert request.biometrics.weight == 70
    assert request.daily_calories is None
    assert request.days == 7


def test_days_capped():
    assert normalize_request(PlanRequestBody(days=90)).days == 30
    assert normalize_request(PlanRequestBody(days=90), max_days=14).days == 14


def test_missing_vs_unknown_activity():
    assert resolve_activity_level(None) == ActivityLevel.MODERATE
    assert resolve_activity_level("") == ActivityLevel.MODERATE
    assert resolve_activity_level("marathoner") == ActivityLevel.SEDENTARY


def test_goal_aliases():
    assert resolve_goal("Muscle Gain") == Goal.MUSCLE_GAIN
    assert resolve_goal("general_fitness") == Goal.GENERAL_FITNESS
    assert resolve_goal("Improve Fitness") == Goal.IMPROVE_FITNESS
    assert resolve_goal("unknown") == Goal.GENERAL_FITNESS
    assert resolve_goal("performance") == Goal.STRENGTH
    assert resolve_goal(None) == Goal.GENERAL_FITNESS


def test_gender_normalization():
    assert normalize_request(PlanRequestBody(gender="F")).biometrics.gender == "female"
    assert normalize_request(PlanRequestBody(gender="Female")).biometrics.gender == "female"
    assert normalize_request(PlanRequestBody(gender="non-binary")).biometrics.gender == "non-binary"


def test_canonical_label():
    assert canonical_label("  Very_Active ") == "very-active"
    assert canonical_label(None) == ""


def test_non_finite_numbers_take_defaults():
    nan, inf = float("nan"), float("inf")
    request = normalize_request(PlanRequestBody(age=nan, height=inf, weight=nan, daily_calories=nan, target_weight=inf))
    assert request.biometrics.age == 30
    assert request.biometrics.height == 170
    assert request.biometrics.weight == 70
    assert request.daily_calories is None
    assert request.target_weight is None


def test_daily_calories_are_clamped():
    assert normalize_request(PlanRequestBody(daily_calories=1e30)).daily_calories == 10000
    assert normalize_request(PlanRequestBody(daily_calories=float("inf"))).daily_calories is None
    assert normalize_request(PlanRequestBody(daily_calories=300)).daily_calories == 800
