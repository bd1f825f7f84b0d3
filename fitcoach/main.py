"""
FastAPI application exposing plan generation, plan storage and nutrition logs.
"""
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from fitcoach.config import get_settings
from fitcoach.core_logic import CalorieCalculator
from fitcoach.database import Base, engine, get_db
from fitcoach.errors import PersistenceFailure
from fitcoach.gemini_service import GeminiPlanService, build_client
from fitcoach.normalizer import normalize_request
from fitcoach.orchestrator import PlanOrchestrator
from fitcoach.persistence import PlanRepository
from fitcoach.schemas import (
    GeneratedNutritionPlan,
    GeneratedWorkoutPlan,
    NutritionLogEntry,
    NutritionLogIn,
    NutritionPlanResponse,
    NutritionTargets,
    PlanRequestBody,
    PlanSummary,
    SavedPlanResponse,
    WorkoutPlanResponse,
)

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Fitness Coaching API",
    description="Workout and nutrition plan generation with a template backup",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.orchestrator = PlanOrchestrator(GeminiPlanService(build_client(settings)))


# ---------- dependencies ----------

def get_orchestrator(request: Request) -> PlanOrchestrator:
    return request.app.state.orchestrator


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Identity comes from the auth layer in front of this service."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header"
        )
    return x_user_id.strip()


def has_active_entitlement(user_id: str) -> bool:
    # Billing lives elsewhere; override this dependency to enforce subscriptions
    return True


def get_entitlement_checker():
    return has_active_entitlement


def require_entitlement(
    user_id: str = Depends(get_current_user_id),
    checker=Depends(get_entitlement_checker),
) -> str:
    if not checker(user_id):
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail="An active subscription is required to generate plans"
        )
    return user_id


def persistence_error_response(error: PersistenceFailure, plan) -> JSONResponse:
    """The plan was generated but not stored; hand it back so the client can retry the save."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": f"Plan generated but could not be saved: {error}",
            "plan": jsonable_encoder(plan, by_alias=True),
        },
    )


# ---------- plan generation ----------

@app.post("/api/plans/workout", response_model=WorkoutPlanResponse)
async def create_workout_plan(
    body: PlanRequestBody,
    save: bool = True,
    user_id: str = Depends(require_entitlement),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
    db: Session = Depends(get_db),
):
    """Generate a 4-week workout plan, falling back to the template plan if needed."""
    plan_request = normalize_request(body, max_days=settings.max_nutrition_days)
    plan = await orchestrator.produce_workout(plan_request)

    plan_id = None
    if save:
        try:
            plan_id = PlanRepository(db).save_workout_plan(user_id, plan, goal=plan_request.goal.value)
        except PersistenceFailure as e:
            return persistence_error_response(e, plan)

    return WorkoutPlanResponse(
        plan=plan,
        is_ai_generated=plan.is_ai_generated,
        fallback_reason=plan.fallback_reason,
        plan_id=plan_id,
    )


@app.post("/api/plans/nutrition", response_model=NutritionPlanResponse)
async def create_nutrition_plan(
    body: PlanRequestBody,
    save: bool = True,
    user_id: str = Depends(require_entitlement),
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
    db: Session = Depends(get_db),
):
    """Generate a day-by-day nutrition plan, falling back to the template plan if needed."""
    plan_request = normalize_request(body, max_days=settings.max_nutrition_days)
    plan = await orchestrator.produce_nutrition(plan_request)

    plan_id = None
    if save:
        try:
            plan_id = PlanRepository(db).save_nutrition_plan(user_id, plan, goal=plan_request.goal.value)
        except PersistenceFailure as e:
            return persistence_error_response(e, plan)

    return NutritionPlanResponse(
        plan=plan,
        targets=plan.targets,
        is_ai_generated=plan.is_ai_generated,
        fallback_reason=plan.fallback_reason,
        plan_id=plan_id,
    )


@app.post("/api/plans/workout/save", response_model=SavedPlanResponse, status_code=status.HTTP_201_CREATED)
def save_workout_plan(
    plan: GeneratedWorkoutPlan,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Store an already generated workout plan (retry path after a failed save)."""
    try:
        plan_id = PlanRepository(db).save_workout_plan(user_id, plan)
    except PersistenceFailure as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return SavedPlanResponse(plan_id=plan_id)


@app.post("/api/plans/nutrition/save", response_model=SavedPlanResponse, status_code=status.HTTP_201_CREATED)
def save_nutrition_plan(
    plan: GeneratedNutritionPlan,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        plan_id = PlanRepository(db).save_nutrition_plan(user_id, plan)
    except PersistenceFailure as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return SavedPlanResponse(plan_id=plan_id)


# ---------- stored plans ----------

@app.get("/api/plans/workout", response_model=List[PlanSummary])
def list_workout_plans(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """The user's workout plans, newest first."""
    return PlanRepository(db).list_workout_plans(user_id)


@app.get("/api/plans/nutrition", response_model=List[PlanSummary])
def list_nutrition_plans(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return PlanRepository(db).list_nutrition_plans(user_id)


@app.get("/api/plans/workout/{plan_id}", response_model=GeneratedWorkoutPlan)
def get_workout_plan(plan_id: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    plan = PlanRepository(db).get_workout_plan(user_id, plan_id)
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workout plan not found"
        )
    return plan


@app.get("/api/plans/nutrition/{plan_id}", response_model=GeneratedNutritionPlan)
def get_nutrition_plan(plan_id: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    plan = PlanRepository(db).get_nutrition_plan(user_id, plan_id)
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Nutrition plan not found"
        )
    return plan


@app.delete("/api/plans/workout/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workout_plan(plan_id: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    try:
        deleted = PlanRepository(db).delete_workout_plan(user_id, plan_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workout plan not found")


@app.delete("/api/plans/nutrition/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_nutrition_plan(plan_id: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    try:
        deleted = PlanRepository(db).delete_nutrition_plan(user_id, plan_id)
    except PersistenceFailure as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Nutrition plan not found")


# ---------- calculator & logs ----------

@app.post("/api/calories", response_model=NutritionTargets)
async def calculate_targets(body: PlanRequestBody):
    """Daily calorie and macro targets for a profile, without generating a plan."""
    plan_request = normalize_request(body, max_days=settings.max_nutrition_days)
    return CalorieCalculator.targets_for(plan_request)


@app.post("/api/nutrition/logs", response_model=NutritionLogEntry)
def log_nutrition(entry: NutritionLogIn, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    try:
        return PlanRepository(db).upsert_nutrition_log(user_id, entry)
    except PersistenceFailure as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@app.get("/api/nutrition/logs", response_model=List[NutritionLogEntry])
def list_nutrition_logs(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Last 30 logged days, newest first."""
    return PlanRepository(db).list_nutrition_logs(user_id)


@app.get("/api/health")
async def health_check(orchestrator: PlanOrchestrator = Depends(get_orchestrator)):
    return {
        "status": "healthy",
        "generation_configured": orchestrator.generation_service.configured,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("fitcoach.main:app", host="0.0.0.0", port=8000, reload=False)
