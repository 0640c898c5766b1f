"""
AI-powered workout plan generation with validation and bounded repair.

Each attempt moves Draft -> Validating -> Accepted | Repairing | Rejected.
Validation failures are values (AttemptOutcome), never exceptions; only the
terminal Rejected state raises.
"""

import logging
import time
from datetime import datetime, timezone

from workout_generator.config import generation_params_for_duration
from workout_generator.duration import MIN_VIABLE_MINUTES, validate_and_adjust_duration
from workout_generator.errors import GenerationRejectedError, ModelClientError
from workout_generator.exercise_similarity import is_minor_variation, is_similar_exercise
from workout_generator.model_client import TIMEOUT, ModelClient
from workout_generator.models import AttemptOutcome, GenerationMetadata, ValidationErrors
from workout_generator.plan_validator import INJURY_CODE, format_violation, validate_plan
from workout_generator.programming_guidelines import get_programming_context
from workout_generator.prompt_builder import build_add_exercise_prompt, build_prompt, build_swap_exercise_prompt
from workout_generator.quality_scorer import score_workout
from workout_generator.result_cache import fingerprint_request
from workout_generator.schema_validator import backfill_uses_weight, validate_single_exercise, validate_workout_json


logger = logging.getLogger(__name__)

MAX_CORRECTION_LINES = 30


def _utc_now():
    return datetime.now(timezone.utc)


class PlanGenerator:
    """Generates validated workout plans using Claude AI."""

    def __init__(self, config, client=None, cache=None, clock=None, timer=None):
        """
        Initialize the plan generator.

        Args:
            config: Full configuration dictionary.
            client: Model client with a generate() method (defaults to ModelClient).
            cache: Optional ResultCache for accepted documents.
            clock: Callable returning the current datetime (for generatedAt).
            timer: Monotonic seconds callable used for the request budget.
        """
        self.config = config
        self.client = client or ModelClient(config)
        self.cache = cache
        self.model = config["model"]["name"]
        self.excellent_score = config["generation"]["excellent_score"]
        self.min_acceptable_score = config["generation"]["min_acceptable_score"]
        self.request_budget_seconds = config["generation"]["request_budget_seconds"]
        self.attempt_timeout_seconds = config["model"]["timeout_seconds"]
        self.clock = clock or _utc_now
        self.timer = timer or time.monotonic

    def generate(self, request, use_cache=True):
        """
        Generate an accepted workout document for a request.

        Args:
            request: Normalized WorkoutRequest.
            use_cache: Consult and fill the result cache when one is configured.

        Returns:
            dict with keys: exercises, workoutSummary, metadata

        Raises:
            GenerationRejectedError: repair budget exhausted without a valid plan.
            ModelClientError: model unavailable on every attempt, or a non-transient API error.
        """
        if self.cache is not None and use_cache:
            key = fingerprint_request(request, self.model)
            return self.cache.get_cached_or_run(key, lambda: self._generate_uncached(request))
        return self._generate_uncached(request)

    def _generate_uncached(self, request):
        programming = get_programming_context(request.goals, request.experience)
        bundle = build_prompt(request, programming)
        params = generation_params_for_duration(self.config, request.duration)
        max_attempts = 1 + params["max_repair_attempts"]

        logger.info(
            f"Generating {request.duration}-minute {request.workout_type} workout "
            f"({bundle.min_exercise_count}-{bundle.max_exercise_count} exercises, up to {max_attempts} attempts)",
            extra={
                "event": "generation_start",
                "workout_type": request.workout_type,
                "duration": request.duration,
                "experience": request.experience.value,
                "max_attempts": max_attempts,
            },
        )

        started = self.timer()
        messages = [{"role": "user", "content": bundle.user_message}]
        history = []
        outcomes = []
        best = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1 and self.timer() - started + self.attempt_timeout_seconds > self.request_budget_seconds:
                logger.warning(
                    f"Request budget leaves no room for attempt {attempt}",
                    extra={"event": "attempt_skipped", "attempt": attempt},
                )
                break

            logger.info(f"Attempt {attempt}/{max_attempts}", extra={"event": "attempt_start", "attempt": attempt})
            response = self.client.generate(bundle.system_message, messages, bundle.output_schema, params)
            outcome = self._evaluate(attempt, response, bundle, request)
            outcomes.append(outcome)

            if not outcome.accepted:
                violations = outcome.errors.messages()
                history.append(violations)
                logger.warning(
                    f"Attempt {attempt} failed validation with {len(violations)} violation(s)",
                    extra={"event": "attempt_failed", "attempt": attempt, "violations": violations},
                )
                if best is not None:
                    # A failed refinement never replaces the accepted plan.
                    break
                correction = self._build_correction_prompt(self._accumulated(history), bundle, request)
                messages = self._repair_messages(bundle.user_message, outcome.raw_text, correction)
                continue

            outcome.quality = score_workout(outcome.candidate, request)
            logger.info(
                f"Attempt {attempt} accepted: quality {outcome.quality.overall} ({outcome.quality.grade})",
                extra={
                    "event": "attempt_accepted",
                    "attempt": attempt,
                    "warnings": list(outcome.errors.warnings),
                },
            )
            logger.info(
                f"Quality score {outcome.quality.overall}",
                extra={"event": "quality_scored", "attempt": attempt, **outcome.quality.to_dict()},
            )

            if best is None or outcome.quality.overall > best.quality.overall:
                best = outcome

            if best.quality.overall >= self.excellent_score:
                logger.info(
                    f"Quality {best.quality.overall} reached excellent threshold {self.excellent_score}",
                    extra={"event": "quality_excellent", "score": best.quality.overall},
                )
                break

            if not outcome.errors.warnings:
                break

            refinement = self._build_refinement_prompt(outcome.errors.warnings, bundle)
            messages = self._repair_messages(bundle.user_message, outcome.raw_text, refinement)

        if best is not None:
            if best.quality.overall < self.min_acceptable_score:
                logger.warning(
                    f"Quality {best.quality.overall} is below minimum {self.min_acceptable_score}",
                    extra={"event": "quality_below_minimum", "score": best.quality.overall},
                )
            return self._build_document(best, bundle, params, request)

        self._reject(outcomes, history, "workout")

    def add_exercise(self, request, current_exercises):
        """
        Generate ONE exercise to append to an existing workout.

        Args:
            request: WorkoutRequest describing the client and workout.
            current_exercises: Exercise dicts already in the workout.

        Returns:
            dict with keys: exercise, metadata

        Raises:
            GenerationRejectedError: no distinct, valid exercise within the repair budget.
            ModelClientError: model unavailable on every attempt.
        """
        names = [exercise["name"] for exercise in current_exercises]
        programming = get_programming_context(request.goals, request.experience)
        bundle = build_add_exercise_prompt(request, programming, names)
        return self._generate_single("add", bundle, request, names)

    def swap_exercise(self, request, current_exercises, exercise_to_replace):
        """
        Generate ONE replacement for an exercise in an existing workout.

        The replacement must differ from the remaining exercises and must not be
        a minor variation of the exercise it replaces.
        """
        replaced = exercise_to_replace["name"]
        others = [exercise["name"] for exercise in current_exercises if exercise["name"] != replaced]
        programming = get_programming_context(request.goals, request.experience)
        bundle = build_swap_exercise_prompt(request, programming, exercise_to_replace, others)
        return self._generate_single("swap", bundle, request, others, replaced=replaced)

    def _generate_single(self, operation, bundle, request, other_names, replaced=None):
        params = generation_params_for_duration(self.config, request.duration)
        params["max_tokens"] = self.config["generation"]["single_exercise_max_tokens"]
        max_attempts = 1 + params["max_repair_attempts"]

        logger.info(
            f"Generating one exercise ({operation}) for a {request.workout_type} workout",
            extra={"event": "single_exercise_start", "operation": operation, "max_attempts": max_attempts},
        )

        messages = [{"role": "user", "content": bundle.user_message}]
        history = []
        outcomes = []

        for attempt in range(1, max_attempts + 1):
            response = self.client.generate(bundle.system_message, messages, bundle.output_schema, params)
            outcome = self._evaluate_single(attempt, response, request, other_names, replaced)
            outcomes.append(outcome)

            if outcome.accepted:
                exercise = outcome.candidate
                logger.info(
                    f"Exercise '{exercise['name']}' accepted on attempt {attempt}",
                    extra={"event": "single_exercise_accepted", "operation": operation, "attempt": attempt},
                )
                return {
                    "exercise": exercise,
                    "metadata": {
                        "model": self.model,
                        "operation": operation,
                        "repairAttempts": attempt - 1,
                        "validationWarnings": list(outcome.errors.warnings),
                        "generatedAt": self.clock().isoformat(),
                    },
                }

            violations = outcome.errors.messages()
            history.append(violations)
            logger.warning(
                f"Attempt {attempt} failed validation with {len(violations)} violation(s)",
                extra={"event": "attempt_failed", "attempt": attempt, "violations": violations},
            )
            correction = self._build_single_correction_prompt(self._accumulated(history), request, other_names)
            messages = self._repair_messages(bundle.user_message, outcome.raw_text, correction)

        self._reject(outcomes, history, "exercise")

    def _reject(self, outcomes, history, subject):
        attempts = len(outcomes)
        logger.error(
            f"Generation rejected after {attempts} attempt(s)",
            extra={"event": "generation_rejected", "attempts": attempts, "violation_history": history},
        )

        if outcomes and all(outcome.failure is not None for outcome in outcomes):
            last = outcomes[-1]
            raise ModelClientError(
                f"Model unavailable after {attempts} attempt(s): {last.failure}",
                transient=True,
                status_code=last.status_code or (408 if last.failure == TIMEOUT else None),
            )

        raise GenerationRejectedError(
            f"No valid {subject} after {attempts} attempt(s)",
            violation_history=history,
            attempts=attempts,
        )

    def _evaluate_single(self, attempt, response, request, other_names, replaced):
        errors = ValidationErrors()
        outcome = AttemptOutcome(attempt=attempt, errors=errors, raw_text=response.raw_text)

        if response.infrastructure_failure:
            outcome.failure = response.failure
            outcome.status_code = response.status_code
            errors.add_schema_error(f"model_unavailable | exercise | {response.detail}")
            return outcome

        if not response.ok:
            errors.add_schema_error(f"invalid_json | exercise | {response.detail}")
            return outcome

        exercise = response.parsed.get("exercise") if isinstance(response.parsed, dict) else None
        if not isinstance(exercise, dict):
            errors.add_schema_error("schema_violation | exercise | Response is missing the 'exercise' object")
            return outcome

        exercise = backfill_uses_weight({"exercises": [exercise]})["exercises"][0]
        schema = validate_single_exercise(exercise)
        for warning in schema["warnings"]:
            errors.add_warning(warning)
        if not schema["valid"]:
            for message in schema["errors"]:
                errors.add_schema_error(f"schema_violation | exercise | {message}")
            return outcome

        name = exercise["name"].strip()
        for other in other_names:
            if is_similar_exercise(other, name):
                errors.add_rule_error(f"duplicate_exercise | {name} | Too similar to existing exercise '{other}'")
        if replaced and is_minor_variation(replaced, name):
            errors.add_rule_error(
                f"minor_variation | {name} | Only a minor variation of '{replaced}'; use a different movement pattern"
            )

        for violation in validate_plan({"exercises": [exercise]}, request)["violations"]:
            errors.add_rule_error(format_violation(violation))

        outcome.candidate = exercise
        return outcome

    def _evaluate(self, attempt, response, bundle, request):
        """Run every gate over one model response."""
        errors = ValidationErrors()
        outcome = AttemptOutcome(attempt=attempt, errors=errors, raw_text=response.raw_text)

        if response.infrastructure_failure:
            outcome.failure = response.failure
            outcome.status_code = response.status_code
            errors.add_schema_error(f"model_unavailable | plan | {response.detail}")
            return outcome

        if not response.ok:
            errors.add_schema_error(f"invalid_json | plan | {response.detail}")
            return outcome

        candidate = backfill_uses_weight(response.parsed)
        outcome.candidate = candidate

        schema = validate_workout_json(candidate, bundle.min_exercise_count, bundle.max_exercise_count)
        for warning in schema["warnings"]:
            errors.add_warning(warning)
        if not schema["valid"]:
            for message in schema["errors"]:
                errors.add_schema_error(f"schema_violation | plan | {message}")
            return outcome

        rules = validate_plan(candidate, request)
        for violation in rules["violations"]:
            errors.add_rule_error(format_violation(violation))

        duration = validate_and_adjust_duration(candidate, request.duration)
        outcome.duration = duration
        if duration["actual_duration"] < MIN_VIABLE_MINUTES:
            errors.duration_error = (
                f"duration_too_short | plan | Estimated {duration['actual_duration']:.1f} min "
                f"is below the {MIN_VIABLE_MINUTES} minute minimum"
            )
        elif not duration["within_tolerance"]:
            errors.add_warning(duration["message"])

        return outcome

    def _accumulated(self, history):
        """Distinct violations across attempts, most recent attempt first."""
        seen = []
        for violations in reversed(history):
            for violation in violations:
                if violation not in seen:
                    seen.append(violation)
        return seen

    def _correction_lines(self, violations):
        """Cap the list without ever dropping an injury contraindication."""
        injuries = [v for v in violations if v.startswith(INJURY_CODE)]
        others = [v for v in violations if not v.startswith(INJURY_CODE)]
        kept = injuries + others[: max(0, MAX_CORRECTION_LINES - len(injuries))]
        return [f"- {violation}" for violation in kept]

    def _repair_messages(self, original_prompt, previous_text, correction):
        """Original instructions, the previous candidate, then the correction."""
        if not previous_text:
            return [{"role": "user", "content": f"{original_prompt}\n\n{correction}"}]
        return [
            {"role": "user", "content": original_prompt},
            {"role": "assistant", "content": previous_text},
            {"role": "user", "content": correction},
        ]

    def _build_correction_prompt(self, violations, bundle, request):
        """Build compact correction prompt from accumulated violations."""
        lines = self._correction_lines(violations)

        injury_line = ""
        if request.injuries:
            injury_line = (
                f"- Never include exercises on the avoid list for: {', '.join(request.injuries)}. "
                "Use the listed safe alternatives instead.\n"
            )

        return f"""Correct this workout plan to satisfy all listed validation violations.

Violations:
{chr(10).join(lines)}

Hard requirements:
- Use ONLY this equipment: {', '.join(request.equipment)}.
{injury_line}- Keep exactly {bundle.min_exercise_count}-{bundle.max_exercise_count} exercises with unique names.
- Every exercise keeps every required field with the correct type.
- Keep the {request.duration}-minute duration target.

Return the full corrected plan as JSON in the same shape."""

    def _build_single_correction_prompt(self, violations, request, other_names):
        lines = self._correction_lines(violations)
        avoid = f"- It must not repeat or resemble: {', '.join(other_names)}.\n" if other_names else ""
        return f"""Correct this exercise to satisfy all listed validation violations.

Violations:
{chr(10).join(lines)}

Hard requirements:
- Use ONLY this equipment: {', '.join(request.equipment)}.
{avoid}- Keep every required field with the correct type.

Return the corrected exercise as JSON in the same shape."""

    def _build_refinement_prompt(self, warnings, bundle):
        lines = [f"- {warning}" for warning in warnings[:MAX_CORRECTION_LINES]]
        return f"""This workout plan is valid but has quality issues. Improve it.

Quality issues:
{chr(10).join(lines)}

Keep every exercise safe for the stated injuries and within the available equipment.
Keep exactly {bundle.min_exercise_count}-{bundle.max_exercise_count} exercises with unique names.

Return the full improved plan as JSON in the same shape."""

    def _build_document(self, outcome, bundle, params, request):
        duration = outcome.duration
        metadata = GenerationMetadata(
            model=self.model,
            temperature=params["temperature"],
            min_exercise_count=bundle.min_exercise_count,
            max_exercise_count=bundle.max_exercise_count,
            actual_duration=duration["actual_duration"],
            target_duration=request.duration,
            duration_difference=duration["difference"],
            duration_within_tolerance=duration["within_tolerance"],
            quality_score=outcome.quality,
            repair_attempts=outcome.attempt - 1,
            generated_at=self.clock().isoformat(),
            validation_warnings=tuple(outcome.errors.warnings),
            target_intensity=request.target_intensity,
            progression_note=request.progression_note,
        )
        return {
            "exercises": outcome.candidate["exercises"],
            "workoutSummary": outcome.candidate.get("workoutSummary"),
            "metadata": metadata.to_dict(),
        }
