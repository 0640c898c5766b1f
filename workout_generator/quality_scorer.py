"""
Rule-based quality scoring for accepted workout plans.

The score is advisory: it can end the repair loop early when excellent and
triggers a warning when low, but it never rejects a plan on its own.
"""

import math

from workout_generator.exercise_rules import has_full_gym, normalize_name
from workout_generator.models import QualityScore


WEIGHTS = {
    "safety": 0.40,
    "programming": 0.30,
    "completeness": 0.20,
    "personalization": 0.10,
}

GRADE_THRESHOLDS = (
    (97, "A+"),
    (93, "A"),
    (90, "A-"),
    (87, "B+"),
    (83, "B"),
    (80, "B-"),
    (77, "C+"),
    (73, "C"),
    (70, "C-"),
    (67, "D+"),
    (63, "D"),
    (60, "D-"),
)

# (keywords, minimum rest seconds), first match wins.
REST_MINIMUMS = (
    (("squat", "deadlift", "press", "row"), 120),
    (("curl", "extension", "raise", "fly"), 60),
    (("warm", "mobility"), 15),
    (("plank", "hold"), 45),
)
DEFAULT_REST_MINIMUM = 30
MAX_REST_SECONDS = 300

COMPOUND_KEYWORDS = ("squat", "deadlift", "press", "row", "pull up", "chin up", "lunge")
ISOLATION_KEYWORDS = ("curl", "extension", "raise", "fly", "flye")

WEIGHT_EQUIPMENT_KEYWORDS = ("dumbbell", "barbell", "kettlebell", "resistance band", "cable", "machine")
LEG_MUSCLE_KEYWORDS = ("quad", "hamstring", "glute", "calf", "calves", "legs")


def _clamp(value):
    return max(0, min(100, value))


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def _tips(exercise, field_name):
    tips = exercise.get(field_name)
    if not isinstance(tips, list):
        return []
    return [tip for tip in tips if isinstance(tip, str)]


def _muscle_groups(exercises):
    groups = set()
    for exercise in exercises:
        for group in exercise.get("muscleGroups") or []:
            if isinstance(group, str):
                groups.add(group.strip().lower())
    return groups


def rest_minimum(exercise_name):
    name = normalize_name(exercise_name)
    for keywords, minimum in REST_MINIMUMS:
        if any(keyword in name for keyword in keywords):
            return minimum
    return DEFAULT_REST_MINIMUM


def completeness_score(plan):
    score = 100
    exercises = plan.get("exercises") or []

    if len(exercises) < 3:
        score -= 20

    for exercise in exercises:
        description = exercise.get("description") or ""
        if len(description) < 50:
            score -= 5
        elif len(description) < 100:
            score -= 2

        form_tips = _tips(exercise, "formTips")
        if len(form_tips) < 3:
            score -= 5
        elif any(len(tip) < 20 for tip in form_tips):
            score -= 2

        safety_tips = _tips(exercise, "safetyTips")
        if len(safety_tips) < 2:
            score -= 5
        elif any(len(tip) < 20 for tip in safety_tips):
            score -= 2

        if not exercise.get("muscleGroups"):
            score -= 3

    summary = plan.get("workoutSummary")
    if not isinstance(summary, dict):
        score -= 10
    else:
        for field_name in ("totalVolume", "primaryFocus", "expectedRPE"):
            if not summary.get(field_name):
                score -= 3

    return _clamp(score)


def safety_score(plan, request):
    score = 100
    exercises = plan.get("exercises") or []
    expected_difficulty = request.experience.value.lower()

    for exercise in exercises:
        safety_tips = _tips(exercise, "safetyTips")
        if len(safety_tips) < 2:
            score -= 8
        elif any(len(tip) < 15 for tip in safety_tips):
            score -= 3

        form_tips = _tips(exercise, "formTips")
        if len(form_tips) < 3:
            score -= 5
        elif any(len(tip) < 15 for tip in form_tips):
            score -= 3

        difficulty = exercise.get("difficulty")
        if isinstance(difficulty, str) and difficulty.strip().lower() != expected_difficulty:
            score -= 5

        rest = exercise.get("restSeconds")
        if isinstance(rest, (int, float)) and not isinstance(rest, bool):
            if rest < rest_minimum(exercise.get("name")):
                score -= 8
            elif rest > MAX_REST_SECONDS:
                score -= 3

    count = max(1, len(exercises))
    if request.injuries:
        avg_safety_length = sum(len(" ".join(_tips(ex, "safetyTips"))) for ex in exercises) / count
        if avg_safety_length > 120:
            score += 8
        elif avg_safety_length > 80:
            score += 4

    avg_form_length = sum(len(" ".join(_tips(ex, "formTips"))) for ex in exercises) / count
    if avg_form_length > 150:
        score += 5

    return _clamp(score)


def programming_score(plan, request):
    score = 100
    exercises = plan.get("exercises") or []

    for exercise in exercises:
        sets = exercise.get("sets")
        if isinstance(sets, (int, float)) and not isinstance(sets, bool):
            if sets < 1 or sets > 10:
                score -= 10
            elif sets < 2 or sets > 6:
                score -= 3
        if not exercise.get("reps"):
            score -= 5

    last_compound = -1
    first_isolation = len(exercises)
    for index, exercise in enumerate(exercises):
        name = normalize_name(exercise.get("name"))
        if any(keyword in name for keyword in COMPOUND_KEYWORDS):
            last_compound = index
        if any(keyword in name for keyword in ISOLATION_KEYWORDS) and index < first_isolation:
            first_isolation = index

    if first_isolation < last_compound:
        score -= 5

    if "full body" in request.workout_type.lower() and len(_muscle_groups(exercises)) < 4:
        score -= 10

    return _clamp(score)


def expected_exercise_range(duration):
    return max(3, duration // 8), int(math.ceil(duration / 4))


def personalization_score(plan, request):
    score = 100
    exercises = plan.get("exercises") or []

    expected_min, expected_max = expected_exercise_range(request.duration)
    if len(exercises) < expected_min:
        score -= 15
    elif len(exercises) > expected_max:
        score -= 10

    equipment = [normalize_name(item) for item in request.equipment]
    has_weight_equipment = has_full_gym(request.equipment) or any(
        keyword in item for item in equipment for keyword in WEIGHT_EQUIPMENT_KEYWORDS
    )
    if not has_weight_equipment and any(exercise.get("usesWeight") is True for exercise in exercises):
        score -= 20

    workout_type = request.workout_type.lower()
    groups = _muscle_groups(exercises)
    touches_legs = any(keyword in group for group in groups for keyword in LEG_MUSCLE_KEYWORDS)

    if "upper" in workout_type and touches_legs:
        score -= 10
    if "lower" in workout_type and not touches_legs:
        score -= 15

    return _clamp(score)


def grade_for(score):
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def score_workout(plan, request):
    """
    Weighted composite quality score.

    Returns:
        QualityScore (overall rounded half-up, grade from the unrounded value).
    """
    breakdown = {
        "completeness": completeness_score(plan),
        "safety": safety_score(plan, request),
        "programming": programming_score(plan, request),
        "personalization": personalization_score(plan, request),
    }
    overall = sum(breakdown[key] * weight for key, weight in WEIGHTS.items())

    return QualityScore(
        overall=_round_half_up(overall),
        grade=grade_for(overall),
        completeness=breakdown["completeness"],
        safety=breakdown["safety"],
        programming=breakdown["programming"],
        personalization=breakdown["personalization"],
    )
