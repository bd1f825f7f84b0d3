"""
Storage for generated plans and nutrition logs.

A plan is written as one object graph (plan -> days -> exercises/meals) in a
single commit, so a failure leaves nothing behind.
"""
import logging
from itertools import groupby
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fitcoach.errors import PersistenceFailure
from fitcoach.models import (
    Exercise,
    NutritionLog,
    NutritionMeal,
    NutritionPlan,
    NutritionPlanDay,
    WorkoutPlan,
    WorkoutPlanDay,
)
from fitcoach.schemas import (
    GeneratedNutritionPlan,
    GeneratedWorkoutPlan,
    NutritionLogIn,
    NutritionTargets,
)

logger = logging.getLogger(__name__)


class PlanRepository:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self, obj, what: str):
        try:
            self.db.add(obj)
            self.db.commit()
            self.db.refresh(obj)
        except (SQLAlchemyError, OverflowError, ValueError) as e:
            # Driver-level conversion errors bypass SQLAlchemy's wrapping
            self.db.rollback()
            logger.error("Failed to save %s: %s", what, e)
            raise PersistenceFailure(f"Could not save {what}") from e
        return obj

    # ---------- workout plans ----------

    def save_workout_plan(self, user_id: str, plan: GeneratedWorkoutPlan, goal: Optional[str] = None) -> int:
        """Store a plan and return its id. Saving the same plan twice creates two records."""
        record = WorkoutPlan(
            user_id=user_id,
            name=plan.plan_name,
            description=plan.plan_description,
            goal=goal,
            duration_weeks=len(plan.weeks),
            notes=plan.notes,
            is_ai_generated=plan.is_ai_generated,
            fallback_reason=plan.fallback_reason,
        )
        for week in plan.weeks:
            for day in week.days:
                day_row = WorkoutPlanDay(week_number=week.week_number, day_number=day.day_number, name=day.name)
                day_row.exercises = [
                    Exercise(
                        position=i,
                        name=ex.name,
                        sets=ex.sets,
                        reps=ex.reps,
                        rest=ex.rest,
                        instructions=ex.instructions,
                    )
                    for i, ex in enumerate(day.exercises)
                ]
                record.days.append(day_row)

        self._commit(record, "workout plan")
        logger.info("Saved workout plan %s for user %s", record.id, user_id)
        return record.id

    def list_workout_plans(self, user_id: str) -> List[WorkoutPlan]:
        return (
            self.db.query(WorkoutPlan)
            .filter(WorkoutPlan.user_id == user_id)
            .order_by(WorkoutPlan.created_at.desc(), WorkoutPlan.id.desc())
            .all()
        )

    def _get_workout_row(self, user_id: str, plan_id: int) -> Optional[WorkoutPlan]:
        return (
            self.db.query(WorkoutPlan)
            .filter(WorkoutPlan.id == plan_id, WorkoutPlan.user_id == user_id)
            .first()
        )

    def get_workout_plan(self, user_id: str, plan_id: int) -> Optional[GeneratedWorkoutPlan]:
        record = self._get_workout_row(user_id, plan_id)
        if record is None:
            return None

        weeks = []
        for week_number, days in groupby(record.days, key=lambda d: d.week_number):
            weeks.append({
                "week_number": week_number,
                "days": [
                    {
                        "day_number": d.day_number,
                        "name": d.name,
                        "exercises": [
                            {
                                "name": ex.name,
                                "sets": ex.sets,
                                "reps": ex.reps,
                                "rest": ex.rest or "",
                                "instructions": ex.instructions or "",
                            }
                            for ex in d.exercises
                        ],
                    }
                    for d in days
                ],
            })
        return GeneratedWorkoutPlan(
            plan_name=record.name,
            plan_description=record.description or "",
            weeks=weeks,
            notes=record.notes,
            is_ai_generated=record.is_ai_generated,
            fallback_reason=record.fallback_reason,
        )

    def delete_workout_plan(self, user_id: str, plan_id: int) -> bool:
        record = self._get_workout_row(user_id, plan_id)
        if record is None:
            return False
        try:
            self.db.delete(record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailure("Could not delete workout plan") from e
        return True

    # ---------- nutrition plans ----------

    def save_nutrition_plan(self, user_id: str, plan: GeneratedNutritionPlan, goal: Optional[str] = None) -> int:
        targets = plan.targets
        record = NutritionPlan(
            user_id=user_id,
            name=plan.plan_name,
            description=plan.plan_description,
            goal=goal,
            daily_calories=targets.daily_calories,
            protein_target=targets.protein_g,
            carbs_target=targets.carbs_g,
            fat_target=targets.fat_g,
            is_ai_generated=plan.is_ai_generated,
            fallback_reason=plan.fallback_reason,
        )
        for day in plan.days:
            day_row = NutritionPlanDay(day_number=day.day_number, name=day.name)
            day_row.meals = [
                NutritionMeal(
                    position=i,
                    name=meal.name,
                    meal_time=meal.meal_time,
                    calories=meal.calories,
                    protein=meal.protein,
                    carbs=meal.carbs,
                    fat=meal.fat,
                    description=meal.description,
                    instructions=meal.instructions,
                )
                for i, meal in enumerate(day.meals)
            ]
            record.days.append(day_row)

        self._commit(record, "nutrition plan")
        logger.info("Saved nutrition plan %s for user %s", record.id, user_id)
        return record.id

    def list_nutrition_plans(self, user_id: str) -> List[NutritionPlan]:
        return (
            self.db.query(NutritionPlan)
            .filter(NutritionPlan.user_id == user_id)
            .order_by(NutritionPlan.created_at.desc(), NutritionPlan.id.desc())
            .all()
        )

    def _get_nutrition_row(self, user_id: str, plan_id: int) -> Optional[NutritionPlan]:
        return (
            self.db.query(NutritionPlan)
            .filter(NutritionPlan.id == plan_id, NutritionPlan.user_id == user_id)
            .first()
        )

    def get_nutrition_plan(self, user_id: str, plan_id: int) -> Optional[GeneratedNutritionPlan]:
        record = self._get_nutrition_row(user_id, plan_id)
        if record is None:
            return None

        return GeneratedNutritionPlan(
            plan_name=record.name,
            plan_description=record.description or "",
            targets=NutritionTargets(
                daily_calories=record.daily_calories,
                protein_g=record.protein_target,
                carbs_g=record.carbs_target,
                fat_g=record.fat_target,
            ),
            days=[
                {
                    "day_number": d.day_number,
                    "name": d.name,
                    "meals": [
                        {
                            "name": m.name,
                            "meal_time": m.meal_time,
                            "calories": m.calories,
                            "protein": m.protein,
                            "carbs": m.carbs,
                            "fat": m.fat,
                            "description": m.description or "",
                            "instructions": m.instructions or "",
                        }
                        for m in d.meals
                    ],
                }
                for d in record.days
            ],
            is_ai_generated=record.is_ai_generated,
            fallback_reason=record.fallback_reason,
        )

    def delete_nutrition_plan(self, user_id: str, plan_id: int) -> bool:
        record = self._get_nutrition_row(user_id, plan_id)
        if record is None:
            return False
        try:
            self.db.delete(record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailure("Could not delete nutrition plan") from e
        return True

    # ---------- nutrition logs ----------

    def upsert_nutrition_log(self, user_id: str, entry: NutritionLogIn) -> NutritionLog:
        """One log per user per date; a second write for the same date updates it."""
        log = (
            self.db.query(NutritionLog)
            .filter(NutritionLog.user_id == user_id, NutritionLog.date == entry.date)
            .first()
        )
        if log is None:
            log = NutritionLog(user_id=user_id, date=entry.date)

        log.daily_calories = entry.daily_calories
        log.daily_protein = entry.daily_protein
        log.daily_carbs = entry.daily_carbs
        log.daily_fat = entry.daily_fat
        log.weight = entry.weight
        log.notes = entry.notes
        return self._commit(log, "nutrition log")

    def list_nutrition_logs(self, user_id: str, limit: int = 30) -> List[NutritionLog]:
        return (
            self.db.query(NutritionLog)
            .filter(NutritionLog.user_id == user_id)
            .order_by(NutritionLog.date.desc())
            .limit(limit)
            .all()
        )
