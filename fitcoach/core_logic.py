"""
Core plan logic: calorie/macro calculation and the template-based backup plans.

Everything here is pure and deterministic. The backup generators are used
whenever the language model cannot produce a usable plan, so they must never
raise for a normalized request.
"""
import math
from typing import Any, Dict, List, Optional, Union

from fitcoach.normalizer import (
    DEFAULT_AGE,
    DEFAULT_GENDER,
    DEFAULT_HEIGHT_CM,
    DEFAULT_WEIGHT_KG,
    resolve_activity_level,
    resolve_goal,
)
from fitcoach.schemas import (
    ActivityLevel,
    ExerciseEntry,
    GeneratedNutritionPlan,
    GeneratedWorkoutPlan,
    Goal,
    MealEntry,
    NutritionDayPlan,
    NutritionTargets,
    PlanRequest,
    WorkoutDayPlan,
    WorkoutWeek,
)


def _usable(value, default):
    """Missing, non-finite and non-positive inputs take the default."""
    if value is None or not math.isfinite(value) or value <= 0:
        return default
    return value


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


class CalorieCalculator:
    """Mifflin-St Jeor based daily energy and macro targets."""

    ACTIVITY_MULTIPLIERS = {
        ActivityLevel.SEDENTARY: 1.2,
        ActivityLevel.LIGHT: 1.375,
        ActivityLevel.MODERATE: 1.55,
        ActivityLevel.ACTIVE: 1.725,
        ActivityLevel.VERY_ACTIVE: 1.9,
    }

    GOAL_FACTORS = {
        Goal.WEIGHT_LOSS: 0.8,   # 20% deficit
        Goal.MUSCLE_GAIN: 1.1,   # 10% surplus
        Goal.STRENGTH: 1.1,
        Goal.MAINTENANCE: 1.0,
        Goal.HEALTH: 1.0,
        Goal.IMPROVE_FITNESS: 1.0,
        Goal.GENERAL_FITNESS: 1.0,
    }

    MACRO_RATIOS = {'protein': 0.30, 'carbs': 0.45, 'fat': 0.25}
    KCAL_PER_GRAM = {'protein': 4, 'carbs': 4, 'fat': 9}

    @staticmethod
    def calculate_bmr(weight: float, height: float, age: float, gender: str) -> int:
        """Basal metabolic rate. Anything other than 'female' uses the male formula."""
        if (gender or DEFAULT_GENDER).strip().lower() == 'female':
            bmr = 10 * weight + 6.25 * height - 5 * age - 161
        else:
            bmr = 10 * weight + 6.25 * height - 5 * age + 5
        return round_half_up(bmr)

    @staticmethod
    def activity_multiplier(activity_level: Union[ActivityLevel, str, None]) -> float:
        return CalorieCalculator.ACTIVITY_MULTIPLIERS[resolve_activity_level(activity_level)]

    @staticmethod
    def goal_factor(goal: Union[Goal, str, None]) -> float:
        return CalorieCalculator.GOAL_FACTORS[resolve_goal(goal)]

    @staticmethod
    def calculate_daily_calories(
        weight: Optional[float],
        height: Optional[float],
        age: Optional[float],
        gender: Optional[str],
        activity_level: Union[ActivityLevel, str, None],
        goal: Union[Goal, str, None],
    ) -> int:
        """Target daily calories. Each stage (BMR, TDEE, goal) is rounded half-up."""
        weight = _usable(weight, DEFAULT_WEIGHT_KG)
        height = _usable(height, DEFAULT_HEIGHT_CM)
        age = _usable(age, DEFAULT_AGE)
        gender = gender or DEFAULT_GENDER

        bmr = CalorieCalculator.calculate_bmr(weight, height, age, gender)
        tdee = round_half_up(bmr * CalorieCalculator.activity_multiplier(activity_level))
        return round_half_up(tdee * CalorieCalculator.goal_factor(goal))

    @staticmethod
    def calculate_macros(daily_calories: int) -> NutritionTargets:
        """Split calories 30/45/25 into grams; each macro rounded on its own."""
        grams = {
            macro: round_half_up(daily_calories * ratio / CalorieCalculator.KCAL_PER_GRAM[macro])
            for macro, ratio in CalorieCalculator.MACRO_RATIOS.items()
        }
        return NutritionTargets(
            daily_calories=daily_calories,
            protein_g=grams['protein'],
            carbs_g=grams['carbs'],
            fat_g=grams['fat'],
        )

    @staticmethod
    def targets_for(request: PlanRequest) -> NutritionTargets:
        """Targets for a request, honouring an explicit daily calorie figure."""
        calories = request.daily_calories
        if not calories:
            bio = request.biometrics
            calories = CalorieCalculator.calculate_daily_calories(
                bio.weight, bio.height, bio.age, bio.gender, request.activity_level, request.goal
            )
        return CalorieCalculator.calculate_macros(calories)


def _exercise(name: str, sets: int, reps: str, rest: str, instructions: str) -> Dict[str, Any]:
    return {'name': name, 'sets': sets, 'reps': reps, 'rest': rest, 'instructions': instructions}


class WorkoutFallbackGenerator:
    """Builds the fixed 4-week backup workout plan."""

    WEEKS = 4

    PLAN_NAMES = {
        Goal.WEIGHT_LOSS: 'Weight Loss Program',
        Goal.MUSCLE_GAIN: 'Muscle Building Program',
        Goal.IMPROVE_FITNESS: 'General Fitness Improvement',
        Goal.MAINTENANCE: 'Basic Fitness Plan',
        Goal.HEALTH: 'Basic Fitness Plan',
        Goal.STRENGTH: 'Basic Fitness Plan',
        Goal.GENERAL_FITNESS: 'Basic Fitness Plan',
    }

    DAYS_PER_WEEK = {'4-5': 4, '6+': 5}
    DEFAULT_DAYS_PER_WEEK = 3

    # Keyed by day_number % 4, used when training 4+ days a week
    SPLIT_ROUTINE = {
        1: ('Upper Body', [
            _exercise('Push-ups', 3, '10-15', '60 sec',
                      'Keep your body straight, lower until your chest nearly touches the floor.'),
            _exercise('Dumbbell Rows', 3, '10-12 each side', '60 sec',
                      'Bend at hips, keep back flat, pull dumbbell to hip.'),
            _exercise('Overhead Press', 3, '10-12', '60 sec',
                      'Press weights directly overhead, keeping core tight.'),
        ]),
        2: ('Lower Body', [
            _exercise('Bodyweight Squats', 3, '15-20', '60 sec',
                      'Keep weight in heels, go as low as comfortable, keep knees in line with toes.'),
            _exercise('Lunges', 3, '10-12 each leg', '60 sec',
                      'Step forward, lower body until both knees are at 90 degrees.'),
            _exercise('Glute Bridges', 3, '15-20', '60 sec',
                      'Lie on back, feet flat, raise hips to create straight line from knees to shoulders.'),
        ]),
        3: ('Chest and Arms', [
            _exercise('Incline Push-ups', 3, '12-15', '60 sec',
                      'Hands on elevated surface, perform push-up with straight body.'),
            _exercise('Tricep Dips', 3, '10-15', '60 sec',
                      'Use chair or bench, lower body until arms at 90 degrees.'),
            _exercise('Bicep Curls', 3, '12-15', '60 sec',
                      'Keep elbows at sides, curl weights toward shoulders.'),
        ]),
        0: ('Back and Shoulders', [
            _exercise('Superman Holds', 3, '30 sec hold', '45 sec',
                      'Lie face down, extend arms and legs, lift limbs off ground.'),
            _exercise('Lateral Raises', 3, '12-15', '60 sec',
                      'Raise arms to sides until parallel with floor, slight bend in elbows.'),
            _exercise('Face Pulls', 3, '15-20', '60 sec',
                      'With resistance band, pull toward face with elbows high.'),
        ]),
    }

    # Keyed by day_number % 3, used below 4 days a week
    FULL_BODY_ROUTINE = {
        1: ('Full Body - Push Focus', [
            _exercise('Push-ups', 3, '10-15', '60 sec',
                      'Keep your body straight, lower until your chest nearly touches the floor.'),
            _exercise('Bodyweight Squats', 3, '15-20', '60 sec',
                      'Keep weight in heels, go as low as comfortable, keep knees in line with toes.'),
            _exercise('Shoulder Taps', 3, '10-12 each side', '60 sec',
                      'Start in push-up position, tap opposite shoulder while maintaining stability.'),
        ]),
        2: ('Full Body - Pull Focus', [
            _exercise('Bodyweight Rows', 3, '10-15', '60 sec',
                      'Using table or bar at waist height, pull chest toward bar with straight body.'),
            _exercise('Glute Bridges', 3, '15-20', '60 sec',
                      'Lie on back, feet flat, raise hips to create straight line from knees to shoulders.'),
            _exercise('Superman Holds', 3, '30 sec hold', '45 sec',
                      'Lie face down, extend arms and legs, lift limbs off ground.'),
        ]),
        0: ('Full Body - Core Focus', [
            _exercise('Plank', 3, '30-45 sec hold', '45 sec',
                      'Forearms on ground, maintain straight line from head to heels.'),
            _exercise('Mountain Climbers', 3, '30-45 sec', '45 sec',
                      'Start in push-up position, alternate bringing knees to chest.'),
            _exercise('Russian Twists', 3, '10-15 each side', '60 sec',
                      'Sit with knees bent, lean back slightly, twist torso side to side.'),
        ]),
    }

    CARDIO_FINISHER = _exercise(
        'Jumping Jacks', 1, '3 minutes', '60 sec',
        'Jump while raising arms and spreading legs, then return to starting position.'
    )

    NOTES = (
        "This is a starter plan. Adjust intensity as needed, ensuring proper form on all exercises. "
        "Rest at least 1-2 days between workouts that target the same muscle groups. "
        "Stay hydrated and listen to your body."
    )

    @staticmethod
    def days_per_week(workout_frequency: Optional[str]) -> int:
        key = (workout_frequency or '').strip()
        return WorkoutFallbackGenerator.DAYS_PER_WEEK.get(key, WorkoutFallbackGenerator.DEFAULT_DAYS_PER_WEEK)

    @staticmethod
    def day_template(day_number: int, days_per_week: int):
        """Focus and exercises for a day. Depends only on the day number, never the week."""
        if days_per_week >= 4:
            return WorkoutFallbackGenerator.SPLIT_ROUTINE[day_number % 4]
        return WorkoutFallbackGenerator.FULL_BODY_ROUTINE[day_number % 3]

    @staticmethod
    def generate(request: PlanRequest, reason: Optional[str] = None) -> GeneratedWorkoutPlan:
        gen = WorkoutFallbackGenerator
        plan_name = gen.PLAN_NAMES[request.goal]
        days_per_week = gen.days_per_week(request.preferences.workout_frequency)

        weeks: List[WorkoutWeek] = []
        for week_number in range(1, gen.WEEKS + 1):
            days = []
            for day_number in range(1, days_per_week + 1):
                focus, exercises = gen.day_template(day_number, days_per_week)
                entries = [ExerciseEntry(**e) for e in exercises]
                if request.goal == Goal.WEIGHT_LOSS:
                    entries.append(ExerciseEntry(**gen.CARDIO_FINISHER))
                days.append(WorkoutDayPlan(day_number=day_number, name=focus, exercises=entries))
            weeks.append(WorkoutWeek(week_number=week_number, days=days))

        description = (
            f"A 4-week {plan_name.lower()} designed for {request.preferences.workout_environment} workouts. "
            f"This plan focuses on progressive overload and balanced training to help you achieve "
            f"your {request.goal.value.replace('-', ' ')} goal."
        )
        return GeneratedWorkoutPlan(
            plan_name=plan_name,
            plan_description=description,
            weeks=weeks,
            notes=gen.NOTES,
            is_ai_generated=False,
            fallback_reason=reason,
        )


class NutritionFallbackGenerator:
    """Builds the fixed four-meal backup nutrition plan."""

    # name, time, share of the day, description, instructions
    MEAL_TEMPLATES = [
        ('Breakfast', '8:00 AM', 0.25, 'Protein-rich breakfast to start the day',
         'Prepare quickly for a nutritious start to your day'),
        ('Lunch', '12:30 PM', 0.35, 'Balanced meal with lean protein and vegetables',
         'Can be prepared ahead of time for convenience'),
        ('Snack', '4:00 PM', 0.10, 'Quick energy boost',
         'Easy to pack and consume on-the-go'),
        ('Dinner', '7:00 PM', 0.30, 'Nutritious evening meal',
         'Enjoy a satisfying dinner to end your day'),
    ]

    @staticmethod
    def plan_name(goal: Goal) -> str:
        label = goal.value
        return f"{label[:1].upper()}{label[1:]} Nutrition Plan"

    @staticmethod
    def day_meals(day_number: int, targets: NutritionTargets) -> List[MealEntry]:
        meals = []
        for name, meal_time, share, description, instructions in NutritionFallbackGenerator.MEAL_TEMPLATES:
            meals.append(MealEntry(
                name=f"Day {day_number} {name}",
                meal_time=meal_time,
                calories=round_half_up(targets.daily_calories * share),
                protein=round_half_up(targets.protein_g * share),
                carbs=round_half_up(targets.carbs_g * share),
                fat=round_half_up(targets.fat_g * share),
                description=description,
                instructions=instructions,
            ))
        return meals

    @staticmethod
    def generate(request: PlanRequest, reason: Optional[str] = None) -> GeneratedNutritionPlan:
        targets = CalorieCalculator.targets_for(request)
        days = [
            NutritionDayPlan(
                day_number=n,
                name=f"Day {n}",
                meals=NutritionFallbackGenerator.day_meals(n, targets),
            )
            for n in range(1, request.days + 1)
        ]
        return GeneratedNutritionPlan(
            plan_name=NutritionFallbackGenerator.plan_name(request.goal),
            plan_description=(
                f"A {request.days}-day basic meal plan at about {targets.daily_calories} calories per day "
                f"({targets.protein_g}g protein, {targets.carbs_g}g carbs, {targets.fat_g}g fat)."
            ),
            targets=targets,
            days=days,
            is_ai_generated=False,
            fallback_reason=reason,
        )


def calculate_daily_calories(weight, height, age, gender, activity_level, goal) -> int:
    return CalorieCalculator.calculate_daily_calories(weight, height, age, gender, activity_level, goal)


def generate_fallback_workout(request: PlanRequest, reason: Optional[str] = None) -> GeneratedWorkoutPlan:
    return WorkoutFallbackGenerator.generate(request, reason)


def generate_fallback_nutrition(request: PlanRequest, reason: Optional[str] = None) -> GeneratedNutritionPlan:
    return NutritionFallbackGenerator.generate(request, reason)
