"""
Prompt construction for workout generation.

Pure and deterministic: identical requests produce identical prompts. Every
hard constraint the validators check later is spelled out here so the common
case passes on the first attempt.
"""

import math

from workout_generator.duration import duration_tolerance
from workout_generator.exercise_rules import (
    is_time_based,
    matched_injury_rules,
    workout_type_guidance,
)
from workout_generator.models import PromptBundle
from workout_generator.programming_guidelines import experience_guidance
from workout_generator.schema_validator import build_output_schema, build_single_exercise_schema


MIN_EXERCISE_COUNT = 4
TIME_BASED_MINUTES_PER_EXERCISE = (3, 5)
MAX_RECENT_EXERCISE_NAMES = 20


def warmup_allowance(duration):
    """Minutes reserved for warm-up before counting working exercises."""
    if duration >= 30:
        return 2.5
    if duration >= 20:
        return 1.5
    return 0


def compute_exercise_count_bounds(request, programming):
    """
    Exercise-count window for the requested duration.

    Returns:
        (min_count, max_count), min never below MIN_EXERCISE_COUNT.
    """
    available = request.duration - warmup_allowance(request.duration)

    if is_time_based(request.workout_type):
        fastest, slowest = TIME_BASED_MINUTES_PER_EXERCISE
        min_count = max(MIN_EXERCISE_COUNT, int(math.floor(available / slowest)))
        max_count = int(math.ceil(available / fastest))
    else:
        sets = programming.avg_sets
        per_exercise = sets + (sets - 1) * programming.avg_rest_seconds / 60
        min_count = max(MIN_EXERCISE_COUNT, int(math.floor(available / per_exercise)))
        max_count = int(math.ceil(available / (per_exercise * 0.75)))

    return min_count, max(min_count, max_count)


def rep_format_instruction(workout_type, programming):
    if is_time_based(workout_type):
        return 'time-based reps ONLY ("30s", "45s" or "60s")'
    low, high = programming.reps
    return f'rep ranges ("{low}-{high}")'


def _injury_block(request):
    matched = matched_injury_rules(request.injuries)
    if not request.injuries:
        return "INJURIES: None reported."

    lines = [f"INJURIES (CRITICAL SAFETY): {', '.join(request.injuries)}"]
    if request.injury_notes:
        lines.append(f"Notes: {request.injury_notes}")

    for injury, _, rule in matched:
        lines.append(f"\n{injury.upper()} - AVOID completely:")
        lines.extend(f"  - {example}" for example in rule["examples"])
        lines.append("SAFE ALTERNATIVES TO USE INSTEAD:")
        lines.extend(f"  - {alternative}" for alternative in rule["alternatives"])

    if not matched:
        lines.append("Avoid any exercise that loads or aggravates the injured area.")

    return "\n".join(lines)


def _progression_block(request):
    lines = []
    if request.target_intensity is not None:
        lines.append(f"TARGET INTENSITY: {request.target_intensity:.2f}x baseline (1.00 = normal effort)")
    if request.progression_note:
        lines.append(f"PROGRESSION: {request.progression_note}")
    return "\n".join(lines)


def _recent_block(request):
    names = []
    for workout in request.recent_workouts:
        for name in workout.exercise_names:
            if name and name not in names:
                names.append(name)
    if not names:
        return ""
    names = names[:MAX_RECENT_EXERCISE_NAMES]
    return "RECENT EXERCISES (avoid repeating where a good alternative exists):\n" + "\n".join(
        f"- {name}" for name in names
    )


def build_prompt(request, programming):
    """
    Build system and user messages for one generation request.

    Args:
        request: Normalized WorkoutRequest.
        programming: ProgrammingContext for the request's goals and experience.

    Returns:
        PromptBundle with messages, exercise-count bounds and output schema.
    """
    min_count, max_count = compute_exercise_count_bounds(request, programming)
    tolerance = duration_tolerance(request.duration)
    warmup = warmup_allowance(request.duration)
    available = request.duration - warmup
    time_based = is_time_based(request.workout_type)
    rep_format = rep_format_instruction(request.workout_type, programming)

    system_message = (
        f"You are an expert personal trainer. Generate a {request.duration}-minute "
        f"{request.workout_type} workout with {rep_format}. Use ONLY the available equipment "
        "and never include an exercise that is unsafe for the stated injuries. "
        "Return only valid JSON in the requested shape."
    )

    if time_based:
        rep_rules = (
            'REP FORMAT: every "reps" value must be a time string like "30s", "45s" or "60s". '
            "Do not use rep counts."
        )
    else:
        low, high = programming.reps
        rep_rules = (
            f'REP FORMAT: every "reps" value must be a range string like "{low}-{high}" '
            "or a single integer. Do not use time strings."
        )

    sections = [
        f"WORKOUT: {request.duration}-minute {request.workout_type} session.",
        f"Workout type focus: {workout_type_guidance(request.workout_type)}",
        f"GOALS: {', '.join(request.goals)}",
        experience_guidance(request.experience),
        (
            f"EQUIPMENT (use ONLY these, nothing else): {', '.join(request.equipment)}\n"
            "Exercises naming cable, barbell, dumbbell or machine equipment are only allowed "
            "when that equipment is listed."
        ),
        _injury_block(request),
        rep_rules,
        (
            "PROGRAMMING:\n"
            f"- Sets: {programming.sets[0]}-{programming.sets[1]}\n"
            f"- Reps: {programming.reps[0]}-{programming.reps[1]}\n"
            f"- Rest: {programming.rest_seconds[0]}-{programming.rest_seconds[1]} seconds\n"
            f"- Intensity: {programming.intensity}"
        ),
        (
            f"DURATION: total must be {request.duration} minutes (±{tolerance} minutes).\n"
            f"- Warm-up allowance: {warmup:g} minutes, working time: {available:g} minutes\n"
            "- Time per exercise = sets x work time + (sets - 1) x rest seconds / 60\n"
            "- Rep-based sets count as 1 minute of work each"
        ),
        f"EXERCISE COUNT: exactly {min_count}-{max_count} exercises.",
    ]

    progression = _progression_block(request)
    if progression:
        sections.append(progression)
    if request.preference_notes:
        sections.append(f"PREFERENCES: {request.preference_notes}")
    recent = _recent_block(request)
    if recent:
        sections.append(recent)

    sections.append(
        "REQUIRED FIELDS for every exercise:\n"
        "- name: unique exercise name\n"
        "- description: 2-3 sentences on setup and execution\n"
        "- sets (integer), reps, restSeconds (integer)\n"
        "- formTips: 3 specific form cues\n"
        "- safetyTips: 2 specific safety cues"
        + (" addressing the injuries" if request.injuries else "")
        + "\n"
        "- usesWeight (boolean), muscleGroups (list of strings)\n"
        f'- difficulty: "{request.experience.value.lower()}"'
    )
    sections.append(
        "Return JSON only, shaped as:\n"
        '{"exercises": [{"name": "...", "description": "...", "sets": 3, "reps": "...", '
        '"formTips": ["..."], "safetyTips": ["..."], "restSeconds": 60, "usesWeight": false, '
        '"muscleGroups": ["..."], "difficulty": "..."}], '
        '"workoutSummary": {"totalVolume": "...", "primaryFocus": "...", "expectedRPE": "..."}}'
    )

    return PromptBundle(
        system_message=system_message,
        user_message="\n\n".join(sections),
        min_exercise_count=min_count,
        max_exercise_count=max_count,
        output_schema=build_output_schema(min_count, max_count),
    )


SINGLE_EXERCISE_SHAPE = (
    "Return JSON only, shaped as:\n"
    '{"exercise": {"name": "...", "description": "...", "sets": 3, "reps": "...", '
    '"formTips": ["..."], "safetyTips": ["..."], "restSeconds": 60, "usesWeight": false, '
    '"muscleGroups": ["..."], "difficulty": "..."}}'
)


def _client_block(request):
    return (
        f"CLIENT: {request.experience.value} | Goals: {', '.join(request.goals)} | "
        f"Equipment (use ONLY these): {', '.join(request.equipment)}"
    )


def _single_rep_rule(request, programming):
    if is_time_based(request.workout_type):
        return '- CRITICAL: use a time string ("30s", "45s" or "60s") for reps, not a range'
    low, high = programming.reps
    return f'- Reps as a range string like "{low}-{high}" or a single integer'


def _single_bundle(system_message, sections):
    return PromptBundle(
        system_message=system_message,
        user_message="\n\n".join(section for section in sections if section),
        min_exercise_count=1,
        max_exercise_count=1,
        output_schema=build_single_exercise_schema(),
    )


def build_add_exercise_prompt(request, programming, existing_names):
    """
    Prompt for ONE extra exercise that complements an existing workout.

    Args:
        request: WorkoutRequest describing the client and workout.
        programming: ProgrammingContext for the request.
        existing_names: Names already in the workout; none may be repeated.
    """
    system_message = (
        "You are an expert personal trainer. Generate ONE exercise that complements an existing "
        "workout. It must be completely different from every existing exercise, with no variations "
        "or similar movements. Return only valid JSON."
    )
    sections = [
        f"Add ONE new exercise to a {request.workout_type} workout.",
        "EXISTING EXERCISES (DO NOT DUPLICATE):\n" + "\n".join(f"- {name}" for name in existing_names),
        _client_block(request),
        _injury_block(request),
        f"Workout type focus: {workout_type_guidance(request.workout_type)}",
        (
            "REQUIREMENTS:\n"
            "- A different movement pattern from every existing exercise\n"
            f"- {programming.sets[0]}-{programming.sets[1]} sets, "
            f"{programming.rest_seconds[0]}-{programming.rest_seconds[1]}s rest\n"
            f"{_single_rep_rule(request, programming)}\n"
            f'- difficulty: "{request.experience.value.lower()}"'
        ),
        SINGLE_EXERCISE_SHAPE,
    ]
    return _single_bundle(system_message, sections)


def build_swap_exercise_prompt(request, programming, exercise_to_replace, other_names):
    """
    Prompt for ONE replacement that trains the same muscles with a different movement.

    Args:
        request: WorkoutRequest describing the client and workout.
        programming: ProgrammingContext for the request.
        exercise_to_replace: Exercise dict being swapped out.
        other_names: Remaining names in the workout; none may be repeated.
    """
    name = exercise_to_replace["name"]
    muscles = ", ".join(exercise_to_replace.get("muscleGroups") or []) or "N/A"
    sets = exercise_to_replace.get("sets") or programming.sets[0]
    reps = exercise_to_replace.get("reps") or f"{programming.reps[0]}-{programming.reps[1]}"
    rest = exercise_to_replace.get("restSeconds") or 90

    system_message = (
        "You are an expert personal trainer. Generate ONE exercise that replaces another while "
        "targeting the same muscles with a DIFFERENT movement pattern. The replacement must not "
        "duplicate any existing exercise. Return only valid JSON."
    )
    sections = [
        f'Replace "{name}" in a {request.workout_type} workout with a similar alternative.',
        f"ORIGINAL: {name} ({muscles}) | {sets}x{reps}",
        (
            "OTHER EXERCISES (DO NOT DUPLICATE):\n" + "\n".join(f"- {other}" for other in other_names)
            if other_names
            else ""
        ),
        _client_block(request),
        _injury_block(request),
        (
            "REQUIREMENTS:\n"
            f'- Target the SAME muscle groups as "{name}"\n'
            "- Use a DIFFERENT movement pattern, not just an equipment or angle swap\n"
            f"- Match {sets}x{reps} with {rest}s rest\n"
            f"{_single_rep_rule(request, programming)}\n"
            f'- difficulty: "{request.experience.value.lower()}"'
        ),
        SINGLE_EXERCISE_SHAPE,
    ]
    return _single_bundle(system_message, sections)
