from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from fitcoach.database import Base


class WorkoutPlan(Base):
    __tablename__ = "workout_plans"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    goal = Column(String, nullable=True)
    duration_weeks = Column(Integer, nullable=False, default=4)
    notes = Column(Text, nullable=True)
    is_ai_generated = Column(Boolean, nullable=False, default=True)
    fallback_reason = Column(Text, nullable=True)  # set only for backup plans
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    days = relationship(
        "WorkoutPlanDay", back_populates="plan", cascade="all, delete-orphan",
        order_by=lambda: [WorkoutPlanDay.week_number, WorkoutPlanDay.day_number],
    )


class WorkoutPlanDay(Base):
    __tablename__ = "workout_plan_days"

    id = Column(Integer, primary_key=True, index=True)
    workout_plan_id = Column(Integer, ForeignKey("workout_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    week_number = Column(Integer, nullable=False)
    day_number = Column(Integer, nullable=False)
    name = Column(String, nullable=False)  # focus, e.g. "Upper Body"

    plan = relationship("WorkoutPlan", back_populates="days")
    exercises = relationship(
        "Exercise", back_populates="day", cascade="all, delete-orphan", order_by="Exercise.position",
    )


class Exercise(Base):
    __tablename__ = "exercises"

    id = Column(Integer, primary_key=True, index=True)
    workout_plan_day_id = Column(Integer, ForeignKey("workout_plan_days.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String, nullable=False)
    sets = Column(Integer, nullable=False)
    reps = Column(String, nullable=False)  # "10-15", "30 sec hold", ...
    rest = Column(String, nullable=True)
    instructions = Column(Text, nullable=True)

    day = relationship("WorkoutPlanDay", back_populates="exercises")


class NutritionPlan(Base):
    __tablename__ = "nutrition_plans"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    goal = Column(String, nullable=True)
    daily_calories = Column(Integer, nullable=False)
    protein_target = Column(Integer, nullable=False)  # grams
    carbs_target = Column(Integer, nullable=False)
    fat_target = Column(Integer, nullable=False)
    is_ai_generated = Column(Boolean, nullable=False, default=True)
    fallback_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    days = relationship(
        "NutritionPlanDay", back_populates="plan", cascade="all, delete-orphan",
        order_by="NutritionPlanDay.day_number",
    )


class NutritionPlanDay(Base):
    __tablename__ = "nutrition_plan_days"

    id = Column(Integer, primary_key=True, index=True)
    nutrition_plan_id = Column(Integer, ForeignKey("nutrition_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    day_number = Column(Integer, nullable=False)
    name = Column(String, nullable=False)

    plan = relationship("NutritionPlan", back_populates="days")
    meals = relationship(
        "NutritionMeal", back_populates="day", cascade="all, delete-orphan", order_by="NutritionMeal.position",
    )


class NutritionMeal(Base):
    __tablename__ = "nutrition_meals"

    id = Column(Integer, primary_key=True, index=True)
    nutrition_plan_day_id = Column(Integer, ForeignKey("nutrition_plan_days.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String, nullable=False)
    meal_time = Column(String, nullable=False)
    calories = Column(Integer, nullable=False)
    protein = Column(Integer, nullable=False)
    carbs = Column(Integer, nullable=False)
    fat = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)

    day = relationship("NutritionPlanDay", back_populates="meals")


class NutritionLog(Base):
    __tablename__ = "nutrition_logs"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_nutrition_logs_user_date"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    daily_calories = Column(Integer, nullable=False)
    daily_protein = Column(Float, nullable=False, default=0)
    daily_carbs = Column(Float, nullable=False, default=0)
    daily_fat = Column(Float, nullable=False, default=0)
    weight = Column(Float, nullable=True)  # kg
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
