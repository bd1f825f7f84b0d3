"""
Gemini-backed plan generation.

The model is asked for JSON only, but it often wraps the payload in prose or
markdown fences, so the reply is scanned for the first balanced JSON object or
array that parses. Every failure (transport, timeout, refusal, missing or
malformed JSON, wrong shape) comes back as a failed GenerationResult instead of
an exception; the orchestrator decides what to do with it.
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple, Union

import google.generativeai as genai
from pydantic import ValidationError

from fitcoach.config import Settings
from fitcoach.errors import RemoteGenerationUnavailable
from fitcoach.schemas import GeneratedNutritionPlan, GeneratedWorkoutPlan, NutritionTargets, PlanRequest

logger = logging.getLogger(__name__)

WORKOUT_WEEKS = 4

# Bounds on how much of a reply is scanned for JSON
MAX_RESPONSE_CHARS = 200_000
MAX_JSON_SCANS = 64

WORKOUT_SYSTEM_PROMPT = """You are a professional fitness trainer and exercise scientist with years of experience.
Your task is to create a personalized 4-week workout plan based on the user's profile, goals, and preferences.

Generate a structured workout plan that includes:
1. A weekly schedule with specific exercises for each day
2. Sets, reps, and rest periods for each exercise
3. Progression plan over the 4 weeks
4. Brief explanation of how this plan targets their specific goals

Format the response as JSON with the following structure:
{
  "plan_name": "Name of the plan based on goals",
  "plan_description": "Brief overview of the plan",
  "weeks": [
    {
      "week_number": 1,
      "days": [
        {
          "day_number": 1,
          "name": "Focus area (e.g., Lower Body Strength)",
          "exercises": [
            {
              "name": "Exercise name",
              "sets": 3,
              "reps": "10-12",
              "rest": "60 sec",
              "instructions": "How to perform the exercise"
            }
          ]
        }
      ]
    }
  ],
  "notes": "General advice and notes"
}

Number weeks 1 to 4 and, inside every week, number days from 1 without gaps.
ONLY return valid JSON that matches this structure exactly."""

NUTRITION_SYSTEM_PROMPT = """You are a nutritionist who creates personalized meal plans.
Always answer with JSON only, no commentary."""


class GeminiClient:
    """Thin async wrapper around a Gemini model: system + user text in, text out."""

    def __init__(self, api_key: str, model_name: str = "gemini-2.5-flash",
                 timeout_seconds: float = 20.0, temperature: float = 0.7):
        if not api_key:
            raise ValueError("GEMINI_API_KEY not found in environment variables")

        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        logger.info("Gemini client ready (model=%s, key=%s...)", model_name, api_key[:6])

    async def complete(self, system_instruction: str, prompt: str) -> str:
        model = genai.GenerativeModel(
            self.model_name,
            system_instruction=system_instruction,
            generation_config={"temperature": self.temperature},
        )
        response = await asyncio.wait_for(
            model.generate_content_async(prompt, request_options={"timeout": self.timeout_seconds}),
            timeout=self.timeout_seconds,
        )
        return response.text


def build_client(settings: Settings) -> Optional[GeminiClient]:
    """Create the Gemini client, or None when no API key is configured."""
    if not settings.generation_configured:
        logger.warning("GEMINI_API_KEY not set - every plan will use the backup generator")
        return None
    try:
        return GeminiClient(
            settings.gemini_api_key,
            model_name=settings.gemini_model,
            timeout_seconds=settings.generation_timeout_seconds,
            temperature=settings.generation_temperature,
        )
    except Exception as e:
        logger.warning("Gemini client initialization failed: %s", e)
        return None


@dataclass(frozen=True)
class GenerationResult:
    """Either a validated plan or the reason there is none."""
    plan: Optional[Union[GeneratedWorkoutPlan, GeneratedNutritionPlan]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.plan is not None

    @classmethod
    def success(cls, plan) -> "GenerationResult":
        return cls(plan=plan)

    @classmethod
    def failure(cls, reason: str) -> "GenerationResult":
        return cls(error=reason or "Unknown generation error")


def iter_json_candidates(text: str) -> Iterator[str]:
    """Yield each balanced {...} / [...] substring, in order of its opening bracket.

    At most MAX_JSON_SCANS opening brackets are tried.
    """
    pairs = {'{': '}', '[': ']'}
    scans = 0
    for start, ch in enumerate(text):
        if ch not in pairs:
            continue
        if scans >= MAX_JSON_SCANS:
            return
        scans += 1
        stack = []
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            c = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif c == '\\':
                    escaped = True
                elif c == '"':
                    in_string = False
                continue
            if c == '"':
                in_string = True
            elif c in pairs:
                stack.append(pairs[c])
            elif c in '}]':
                if not stack or stack.pop() != c:
                    break
                if not stack:
                    yield text[start:pos + 1]
                    break


def extract_json(text: Optional[str]) -> Any:
    """Parse the first well-formed JSON object/array embedded in text."""
    if not text or not text.strip():
        raise RemoteGenerationUnavailable("Empty response from generation service")
    if len(text) > MAX_RESPONSE_CHARS:
        raise RemoteGenerationUnavailable(
            f"Generation service response too large ({len(text)} characters, limit {MAX_RESPONSE_CHARS})"
        )

    last_error = None
    for candidate in iter_json_candidates(text):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e
    if last_error is not None:
        raise RemoteGenerationUnavailable(f"Could not parse JSON from generation service response: {last_error}")
    raise RemoteGenerationUnavailable("Could not extract JSON from generation service response")


def _describe(value, unit: str = "") -> str:
    if value is None or value == "" or value == []:
        return "Not specified"
    if isinstance(value, list):
        return ", ".join(value)
    return f"{value}{unit}"


def _validation_reason(kind: str, error: ValidationError) -> str:
    first = error.errors()[0] if error.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()))
    return f"Generated {kind} plan did not match the expected structure ({location}: {first.get('msg', error)})"


class GeminiPlanService:
    """Primary generation strategy backed by a language model."""

    def __init__(self, client=None):
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client is not None

    # ---------- prompts ----------

    @staticmethod
    def build_workout_prompt(request: PlanRequest) -> Tuple[str, str]:
        bio = request.biometrics
        prefs = request.preferences
        user_prompt = f"""
User Profile:
- Age: {bio.age}
- Gender: {bio.gender}
- Height: {bio.height} cm
- Weight: {bio.weight} kg
- Activity level: {request.activity_level.value}
- Sleep: {_describe(request.sleep_hours)}

Fitness Goals:
- Primary goal: {request.goal.value}
- Target weight: {_describe(request.target_weight, ' kg')}
- Timeframe: {_describe(request.timeframe)}

Preferences:
- Workout environment: {prefs.workout_environment}
- Available equipment: {_describe(prefs.equipment)}
- Preferred workout duration: {prefs.workout_duration}
- Preferred workout frequency: {prefs.workout_frequency}
- Dietary restrictions: {_describe(prefs.dietary_restrictions)}

Please create a personalized 4-week workout plan for this user."""
        return WORKOUT_SYSTEM_PROMPT, user_prompt

    @staticmethod
    def build_nutrition_prompt(request: PlanRequest, targets: NutritionTargets) -> Tuple[str, str]:
        bio = request.biometrics
        prefs = request.preferences
        preference_text = f"Food preferences: {', '.join(prefs.dietary_preferences)}." if prefs.dietary_preferences else ""
        restriction_text = f"Dietary restrictions: {', '.join(prefs.dietary_restrictions)}." if prefs.dietary_restrictions else ""

        user_prompt = f"""Create a {request.days}-day nutrition plan for a {request.goal.value} goal with approximately {targets.daily_calories} calories per day.
Daily macro targets: {targets.protein_g}g protein, {targets.carbs_g}g carbs, {targets.fat_g}g fat. {preference_text} {restriction_text}

User Profile:
- Age: {bio.age}
- Gender: {bio.gender}
- Height: {bio.height} cm
- Weight: {bio.weight} kg
- Activity level: {request.activity_level.value}
- Target weight: {_describe(request.target_weight, ' kg')}

For each day, provide 4-5 meals including breakfast, lunch, dinner, and snacks. For each meal, include:
1. Name of the meal
2. Brief description
3. Calories
4. Macronutrients (protein, carbs, fat in grams)
5. Meal time
6. Simple instructions

Format the response as a JSON array of days, numbered 1 to {request.days}, where each day has an array of meals with the following fields:
{{
  "day": 1,
  "meals": [
    {{
      "name": "meal name",
      "mealTime": "time of day",
      "description": "brief description",
      "calories": number,
      "protein": number,
      "carbs": number,
      "fat": number,
      "instructions": "simple instructions"
    }}
  ]
}}"""
        return NUTRITION_SYSTEM_PROMPT, user_prompt

    # ---------- parsing ----------

    @staticmethod
    def parse_workout_response(text: str) -> GeneratedWorkoutPlan:
        data = extract_json(text)
        if isinstance(data, list) and len(data) == 1 and isinstance(data[0], dict):
            data = data[0]
        if not isinstance(data, dict):
            raise RemoteGenerationUnavailable("Generated workout plan is not a JSON object")

        payload = {k: v for k, v in data.items() if k not in ("isAIGenerated", "fallbackReason")}
        payload.update(is_ai_generated=True, fallback_reason=None)
        try:
            plan = GeneratedWorkoutPlan.model_validate(payload)
        except ValidationError as e:
            raise RemoteGenerationUnavailable(_validation_reason("workout", e))

        if len(plan.weeks) != WORKOUT_WEEKS:
            raise RemoteGenerationUnavailable(
                f"Generated workout plan has {len(plan.weeks)} weeks, expected {WORKOUT_WEEKS}"
            )
        return plan

    @staticmethod
    def parse_nutrition_response(text: str, request: PlanRequest, targets: NutritionTargets) -> GeneratedNutritionPlan:
        data = extract_json(text)

        plan_name = None
        plan_description = None
        if isinstance(data, dict) and isinstance(data.get("days"), list):
            plan_name = data.get("plan_name")
            plan_description = data.get("plan_description")
            days = data["days"]
        elif isinstance(data, dict):
            # a single day object
            days = [data]
        else:
            days = data

        if not isinstance(days, list):
            raise RemoteGenerationUnavailable("Generated nutrition plan is not a list of days")

        label = request.goal.value
        payload = {
            "plan_name": plan_name or f"{label[:1].upper()}{label[1:]} Nutrition Plan",
            "plan_description": plan_description or (
                f"A {len(days)}-day meal plan at about {targets.daily_calories} calories per day."
            ),
            "targets": targets,
            "days": days,
            "is_ai_generated": True,
            "fallback_reason": None,
        }
        try:
            plan = GeneratedNutritionPlan.model_validate(payload)
        except ValidationError as e:
            raise RemoteGenerationUnavailable(_validation_reason("nutrition", e))

        if len(plan.days) != request.days:
            raise RemoteGenerationUnavailable(
                f"Generated nutrition plan has {len(plan.days)} days, expected {request.days}"
            )
        return plan

    # ---------- generation ----------

    async def _complete(self, system_instruction: str, prompt: str) -> str:
        if self.client is None:
            raise RemoteGenerationUnavailable("Generation service not configured (GEMINI_API_KEY missing)")
        try:
            return await self.client.complete(system_instruction, prompt)
        except RemoteGenerationUnavailable:
            raise
        except asyncio.TimeoutError:
            raise RemoteGenerationUnavailable("Generation service timed out")
        except Exception as e:
            error_msg = str(e)
            lowered = error_msg.lower()
            if '429' in lowered or 'rate limit' in lowered or 'quota' in lowered:
                raise RemoteGenerationUnavailable(f"Generation service rate limited (429): {error_msg[:200]}")
            raise RemoteGenerationUnavailable(f"Generation service error: {error_msg[:200] or type(e).__name__}")

    async def generate_workout(self, request: PlanRequest) -> GenerationResult:
        system_instruction, prompt = self.build_workout_prompt(request)
        try:
            text = await self._complete(system_instruction, prompt)
            return GenerationResult.success(self.parse_workout_response(text))
        except RemoteGenerationUnavailable as e:
            return GenerationResult.failure(e.reason)

    async def generate_nutrition(self, request: PlanRequest, targets: NutritionTargets) -> GenerationResult:
        system_instruction, prompt = self.build_nutrition_prompt(request, targets)
        try:
            text = await self._complete(system_instruction, prompt)
            return GenerationResult.success(self.parse_nutrition_response(text, request, targets))
        except RemoteGenerationUnavailable as e:
            return GenerationResult.failure(e.reason)
