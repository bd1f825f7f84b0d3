# unit_tests/test_core_logic.py
"""
Unit Tests for the calorie calculator and the backup plan generators
====================================================================
Run with: python -m pytest unit_tests/test_core_logic.py -v
"""
import itertools

import pytest

from fitcoach.core_logic import (
    CalorieCalculator,
    NutritionFallbackGenerator,
    WorkoutFallbackGenerator,
    calculate_daily_calories,
    generate_fallback_nutrition,
    generate_fallback_workout,
    round_half_up,
)
from fitcoach.schemas import ActivityLevel, GeneratedNutritionPlan, GeneratedWorkoutPlan, Goal


# =============================================================================
# Calculator
# =============================================================================

def test_round_half_up():
    assert round_half_up(1667.5) == 1668
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2


def test_reference_male_maintenance():
    assert calculate_daily_calories(70, 170, 30, "male", "moderate", "maintenance") == 2585


def test_reference_female_weight_loss():
    assert calculate_daily_calories(60, 165, 25, "female", "sedentary", "weight-loss") == 1291


def test_bmr_rounds_before_activity_multiplier():
    assert CalorieCalculator.calculate_bmr(70, 170, 30, "male") == 1668
    assert CalorieCalculator.calculate_bmr(60, 165, 25, "female") == 1345


def test_missing_inputs_use_population_defaults():
    assert calculate_daily_calories(None, None, None, None, None, "maintenance") == 2585
    assert calculate_daily_calories(0, 0, 0, "", None, "maintenance") == 2585


def test_non_finite_inputs_use_population_defaults():
    nan, inf = float("nan"), float("inf")
    assert calculate_daily_calories(nan, inf, nan, "male", "moderate", "maintenance") == 2585


def test_unmatched_activity_is_sedentary():
    # 1668 * 1.2 = 2001.6
    assert calculate_daily_calories(70, 170, 30, "male", "couch potato", "maintenance") == 2002


def test_activity_labels_are_forgiving():
    assert CalorieCalculator.activity_multiplier("Very Active") == 1.9
    assert CalorieCalculator.activity_multiplier("very_active") == 1.9
    assert CalorieCalculator.activity_multiplier(ActivityLevel.LIGHT) == 1.375


def test_other_gender_uses_male_formula():
    male = calculate_daily_calories(70, 170, 30, "male", "moderate", "maintenance")
    assert calculate_daily_calories(70, 170, 30, "non-binary", "moderate", "maintenance") == male


def test_surplus_goals():
    # 1668 * 1.725 = 2877.3 -> 2877; * 1.1 = 3164.7 -> 3165
    assert calculate_daily_calories(70, 170, 30, "male", "active", "strength") == 3165
    assert calculate_daily_calories(70, 170, 30, "male", "active", "muscle-gain") == 3165
    assert calculate_daily_calories(70, 170, 30, "male", "active", "performance") == 3165


def test_neutral_goals_leave_tdee_unchanged():
    for goal in ("maintenance", "health", "improve-fitness", "general-fitness", "something else"):
        assert calculate_daily_calories(70, 170, 30, "male", "moderate", goal) == 2585


def test_every_goal_and_activity_has_a_table_entry():
    assert set(CalorieCalculator.GOAL_FACTORS) == set(Goal)
    assert set(CalorieCalculator.ACTIVITY_MULTIPLIERS) == set(ActivityLevel)
    assert set(WorkoutFallbackGenerator.PLAN_NAMES) == set(Goal)


def test_macro_split_2000():
    targets = CalorieCalculator.calculate_macros(2000)
    assert targets.daily_calories == 2000
    assert targets.protein_g == 150
    assert targets.carbs_g == 225
    assert targets.fat_g == 56


@pytest.mark.parametrize("calories", [1200, 1291, 1789, 2585, 3165, 4000])
def test_macro_energy_close_to_target(calories):
    t = CalorieCalculator.calculate_macros(calories)
    energy = t.protein_g * 4 + t.carbs_g * 4 + t.fat_g * 9
    # each macro may drift by half a gram
    assert abs(energy - calories) <= 2 * 4 + 9


def test_explicit_daily_calories_override(make_request):
    request = make_request(goal="weight-loss", daily_calories=2000)
    assert CalorieCalculator.targets_for(request).daily_calories == 2000


# =============================================================================
# Workout backup plan
# =============================================================================

def test_workout_plan_names(make_request):
    expected = {
        "weight-loss": "Weight Loss Program",
        "muscle-gain": "Muscle Building Program",
        "improve-fitness": "General Fitness Improvement",
        "maintenance": "Basic Fitness Plan",
        "health": "Basic Fitness Plan",
        "general-fitness": "Basic Fitness Plan",
        "unknown": "Basic Fitness Plan",
        None: "Basic Fitness Plan",
    }
    for goal, name in expected.items():
        assert generate_fallback_workout(make_request(goal=goal)).plan_name == name


def test_default_goal_reads_as_general_fitness(make_request):
    plan = generate_fallback_workout(make_request())
    assert plan.plan_description.endswith("your general fitness goal.")


def test_four_to_five_days_gives_four_day_weeks(make_request):
    plan = generate_fallback_workout(make_request(workout_frequency="4-5"))
    assert len(plan.weeks) == 4
    for week in plan.weeks:
        assert [d.day_number for d in week.days] == [1, 2, 3, 4]
        assert [d.name for d in week.days] == ["Upper Body", "Lower Body", "Chest and Arms", "Back and Shoulders"]


def test_six_plus_gives_five_days_and_cycles_focus(make_request):
    plan = generate_fallback_workout(make_request(workout_frequency="6+"))
    for week in plan.weeks:
        assert len(week.days) == 5
        assert week.days[4].name == "Upper Body"
        assert week.days[4].exercises == week.days[0].exercises


def test_default_frequency_is_three_full_body_days(make_request):
    plan = generate_fallback_workout(make_request())
    names = [d.name for d in plan.weeks[0].days]
    assert names == ["Full Body - Push Focus", "Full Body - Pull Focus", "Full Body - Core Focus"]
    assert all(len(d.exercises) == 3 for d in plan.weeks[0].days)


def test_weeks_repeat_the_same_days(make_request):
    plan = generate_fallback_workout(make_request(workout_frequency="4-5"))
    assert plan.weeks[0].days == plan.weeks[2].days


def test_weight_loss_appends_cardio(make_request):
    plan = generate_fallback_workout(make_request(goal="weight-loss"))
    for week in plan.weeks:
        for day in week.days:
            assert len(day.exercises) == 4
            finisher = day.exercises[-1]
            assert finisher.name == "Jumping Jacks"
            assert finisher.sets == 1
            assert finisher.reps == "3 minutes"


def test_workout_backup_is_tagged(make_request):
    plan = generate_fallback_workout(make_request(), reason="Generation service timed out")
    assert plan.is_ai_generated is False
    assert plan.fallback_reason == "Generation service timed out"
    assert "home workouts" in plan.plan_description
    assert plan.notes


def test_workout_backup_is_deterministic(make_request):
    request = make_request(goal="weight-loss", workout_frequency="6+", workout_preference="gym")
    assert generate_fallback_workout(request, "x") == generate_fallback_workout(request, "x")


# =============================================================================
# Nutrition backup plan
# =============================================================================

def test_nutrition_backup_structure(make_request):
    plan = generate_fallback_nutrition(make_request(goal="weight-loss", daily_calories=2000, days=5), reason="boom")
    assert plan.plan_name == "Weight-loss Nutrition Plan"
    assert [d.day_number for d in plan.days] == [1, 2, 3, 4, 5]
    assert plan.fallback_reason == "boom"
    assert plan.is_ai_generated is False

    day2 = plan.days[1]
    assert [m.name for m in day2.meals] == ["Day 2 Breakfast", "Day 2 Lunch", "Day 2 Snack", "Day 2 Dinner"]
    assert [m.calories for m in day2.meals] == [500, 700, 200, 600]

    breakfast = day2.meals[0]
    assert breakfast.meal_time == "8:00 AM"
    assert (breakfast.protein, breakfast.carbs, breakfast.fat) == (38, 56, 14)


def test_nutrition_backup_uses_calculated_targets(make_request):
    request = make_request(goal="maintenance", weight=70, height=170, age=30, gender="male", activity_level="moderate")
    plan = generate_fallback_nutrition(request)
    assert plan.targets.daily_calories == 2585
    assert len(plan.days) == 7


def test_nutrition_backup_is_deterministic(make_request):
    request = make_request(goal="muscle-gain", days=3)
    assert NutritionFallbackGenerator.generate(request, "r") == NutritionFallbackGenerator.generate(request, "r")


# =============================================================================
# Every combination validates
# =============================================================================

GOALS = [
    "weight-loss", "muscle-gain", "maintenance", "health", "improve-fitness", "general-fitness", "strength", None, "unknown",
]
ACTIVITY = ["sedentary", "light", "moderate", "active", "very-active", None, "bogus"]
FREQUENCY = ["1-2", "3-4", "4-5", "6+", None]
DAYS = [1, 7, 14, None, 0, -3, 365]


def test_backup_plans_always_validate(make_request):
    for goal, activity, frequency in itertools.product(GOALS, ACTIVITY, FREQUENCY):
        request = make_request(goal=goal, activity_level=activity, workout_frequency=frequency)
        plan = generate_fallback_workout(request, "reason")
        again = GeneratedWorkoutPlan.model_validate(plan.model_dump())
        assert again == plan
        for week in plan.weeks:
            assert [d.day_number for d in week.days] == list(range(1, len(week.days) + 1))

    for goal, activity, days in itertools.product(GOALS, ACTIVITY, DAYS):
        request = make_request(goal=goal, activity_level=activity, days=days)
        plan = generate_fallback_nutrition(request, "reason")
        GeneratedNutritionPlan.model_validate(plan.model_dump())
        assert 1 <= len(plan.days) <= 30
        assert all(len(d.meals) == 4 for d in plan.days)
