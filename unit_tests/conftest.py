import json
import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Keep the app away from real credentials and the on-disk database
os.environ["GEMINI_API_KEY"] = ""
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Add root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fitcoach.database import Base  # noqa: E402
import fitcoach.models  # noqa: E402,F401
from fitcoach.normalizer import normalize_request  # noqa: E402
from fitcoach.schemas import PlanRequestBody  # noqa: E402


class FakeClient:
    """Stands in for GeminiClient: returns canned text or raises."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def complete(self, system_instruction, prompt):
        self.calls.append((system_instruction, prompt))
        if self.error is not None:
            raise self.error
        return self.text


def exercise_dict(name="Goblet Squat"):
    return {"name": name, "sets": 4, "reps": "8-10", "rest": "90 sec", "instructions": "Hold the weight at your chest."}


def workout_dict(weeks=4, days=3):
    return {
        "plan_name": "Strength Builder",
        "plan_description": "Four weeks of progressive full-body work.",
        "weeks": [
            {
                "week_number": w,
                "days": [
                    {"day_number": d, "name": f"Session {d}", "exercises": [exercise_dict(), exercise_dict("Row")]}
                    for d in range(1, days + 1)
                ],
            }
            for w in range(1, weeks + 1)
        ],
        "notes": "Warm up first.",
    }


def nutrition_days(days=3):
    return [
        {
            "day": d,
            "meals": [
                {
                    "name": "Oats",
                    "mealTime": "8:00 AM",
                    "description": "Oats with berries",
                    "calories": 450.4,
                    "protein": 20,
                    "carbs": "60",
                    "fat": 12.5,
                    "instructions": "Cook oats in milk.",
                }
            ],
        }
        for d in range(1, days + 1)
    ]


@pytest.fixture
def workout_json():
    return json.dumps(workout_dict())


@pytest.fixture
def make_request():
    def _make(**fields):
        return normalize_request(PlanRequestBody(**fields))
    return _make


@pytest.fixture
def plan_request(make_request):
    return make_request(
        goal="muscle-gain", age=28, gender="female", height=165, weight=60,
        activity_level="active", workout_frequency="4-5", days=3,
    )


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
