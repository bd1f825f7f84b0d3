"""
Plan orchestration: try the language model once, fall back to templates.
"""
import logging

from fitcoach.core_logic import CalorieCalculator, NutritionFallbackGenerator, WorkoutFallbackGenerator
from fitcoach.gemini_service import GeminiPlanService, GenerationResult
from fitcoach.schemas import GeneratedNutritionPlan, GeneratedWorkoutPlan, PlanRequest

logger = logging.getLogger(__name__)


class PlanOrchestrator:
    """Produces a plan for every request; the remote model is optional.

    There are no retries. One failed attempt goes straight to the
    deterministic backup generator and the reason is recorded on the plan.
    """

    def __init__(self, generation_service: GeminiPlanService):
        self.generation_service = generation_service

    async def _attempt(self, coro_factory, kind: str) -> GenerationResult:
        try:
            result = await coro_factory()
        except Exception as e:
            # The service reports its own failures; anything else is still not the caller's problem
            logger.exception("Unexpected error while generating %s plan", kind)
            return GenerationResult.failure(f"Unexpected generation error: {e}")
        if not isinstance(result, GenerationResult):
            return GenerationResult.failure("Generation service returned an unexpected result")
        return result

    async def produce_workout(self, request: PlanRequest) -> GeneratedWorkoutPlan:
        result = await self._attempt(lambda: self.generation_service.generate_workout(request), "workout")
        if result.ok:
            logger.info("Workout plan generated by the language model")
            return result.plan.model_copy(update={"is_ai_generated": True, "fallback_reason": None})

        logger.warning("Workout generation failed, using backup plan: %s", result.error)
        return WorkoutFallbackGenerator.generate(request, reason=result.error)

    async def produce_nutrition(self, request: PlanRequest) -> GeneratedNutritionPlan:
        targets = CalorieCalculator.targets_for(request)
        result = await self._attempt(
            lambda: self.generation_service.generate_nutrition(request, targets), "nutrition"
        )
        if result.ok:
            logger.info("Nutrition plan generated by the language model")
            return result.plan.model_copy(update={"is_ai_generated": True, "fallback_reason": None})

        logger.warning("Nutrition generation failed, using backup plan: %s", result.error)
        return NutritionFallbackGenerator.generate(request, reason=result.error)
