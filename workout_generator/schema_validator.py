"""
Structural validation of model-produced workout JSON.

Checks run in a fixed order so messages are deterministic:
exercises array, exercise count, per-exercise fields and types, reps shape,
duplicate names, workout summary. Critical errors block acceptance; warnings
are logged and fed to the quality score only.
"""

import re

from workout_generator.exercise_rules import infer_uses_weight


REQUIRED_EXERCISE_FIELDS = (
    ("name", "string"),
    ("description", "string"),
    ("sets", "integer"),
    ("reps", "reps"),
    ("formTips", "string_list"),
    ("safetyTips", "string_list"),
    ("restSeconds", "integer"),
    ("usesWeight", "boolean"),
    ("muscleGroups", "string_list"),
    ("difficulty", "string"),
)

SUMMARY_FIELDS = ("totalVolume", "primaryFocus", "expectedRPE")

DIFFICULTY_LEVELS = ("beginner", "intermediate", "advanced")

REP_INTEGER_RE = re.compile(r"^\d+$")
REP_RANGE_RE = re.compile(r"^\d+\s*-\s*\d+$")
REP_TIME_RE = re.compile(r"^\d+(?:\s*-\s*\d+)?s$", re.IGNORECASE)

MIN_DESCRIPTION_LENGTH = 50
MIN_TIP_LENGTH = 15


def _exercise_schema():
    string_list = {"type": "array", "items": {"type": "string"}}
    return {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "description": {"type": "string"},
            "sets": {"type": "integer", "minimum": 1, "maximum": 10},
            "reps": {
                "anyOf": [
                    {"type": "integer", "minimum": 1},
                    {"type": "string", "pattern": r"^\d+(-\d+)?s?$"},
                ]
            },
            "formTips": string_list,
            "safetyTips": string_list,
            "restSeconds": {"type": "integer", "minimum": 0},
            "usesWeight": {"type": "boolean"},
            "muscleGroups": string_list,
            "difficulty": {"type": "string", "enum": list(DIFFICULTY_LEVELS)},
        },
        "required": [name for name, _ in REQUIRED_EXERCISE_FIELDS],
    }


def build_output_schema(min_exercise_count, max_exercise_count):
    """JSON Schema for the plan, used as the model's tool input schema."""
    return {
        "type": "object",
        "properties": {
            "exercises": {
                "type": "array",
                "items": _exercise_schema(),
                "minItems": min_exercise_count,
                "maxItems": max_exercise_count,
            },
            "workoutSummary": {
                "type": "object",
                "properties": {name: {"type": "string"} for name in SUMMARY_FIELDS},
                "required": list(SUMMARY_FIELDS),
            },
        },
        "required": ["exercises", "workoutSummary"],
    }


def build_single_exercise_schema():
    """Tool input schema for add/swap: one exercise under an "exercise" key."""
    return {
        "type": "object",
        "properties": {"exercise": _exercise_schema()},
        "required": ["exercise"],
    }


def _is_integer(value):
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def _matches_type(value, expected):
    if expected == "string":
        return isinstance(value, str)
    if expected == "integer":
        return _is_integer(value)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "string_list":
        return isinstance(value, list) and all(isinstance(item, str) for item in value)
    if expected == "reps":
        return _is_integer(value) or isinstance(value, str)
    return False


def is_valid_rep_shape(reps):
    """True for an integer, an "N-M" range, or a time token like "45s" / "30-45s"."""
    if _is_integer(reps):
        return reps > 0
    if not isinstance(reps, str):
        return False
    text = reps.strip()
    return bool(REP_INTEGER_RE.match(text) or REP_RANGE_RE.match(text) or REP_TIME_RE.match(text))


def backfill_uses_weight(candidate):
    """
    Infer a missing usesWeight flag from the exercise name.

    Returns a shallow copy; the input object is left untouched.
    """
    if not isinstance(candidate, dict) or not isinstance(candidate.get("exercises"), list):
        return candidate

    exercises = []
    for exercise in candidate["exercises"]:
        if isinstance(exercise, dict) and exercise.get("usesWeight") is None:
            exercise = dict(exercise)
            exercise["usesWeight"] = infer_uses_weight(exercise.get("name") if isinstance(exercise.get("name"), str) else "")
        exercises.append(exercise)

    filled = dict(candidate)
    filled["exercises"] = exercises
    return filled


def _label(index, exercise):
    name = exercise.get("name") if isinstance(exercise, dict) else None
    if isinstance(name, str) and name.strip():
        return f"Exercise {index + 1} ({name.strip()})"
    return f"Exercise {index + 1}"


def _check_exercise(label, exercise, errors, warnings):
    if not isinstance(exercise, dict):
        errors.append(f"{label}: must be a JSON object")
        return

    for field_name, expected in REQUIRED_EXERCISE_FIELDS:
        if field_name not in exercise or exercise[field_name] is None:
            errors.append(f"{label}: missing required field '{field_name}'")
        elif not _matches_type(exercise[field_name], expected):
            errors.append(f"{label}: field '{field_name}' must be of type {expected}")

    name = exercise.get("name")
    if isinstance(name, str) and not name.strip():
        errors.append(f"{label}: missing required field 'name'")

    description = exercise.get("description")
    if isinstance(description, str) and len(description.strip()) < MIN_DESCRIPTION_LENGTH:
        warnings.append(f"{label}: description is shorter than {MIN_DESCRIPTION_LENGTH} characters")

    for tips_field in ("formTips", "safetyTips"):
        tips = exercise.get(tips_field)
        if isinstance(tips, list):
            if not tips:
                warnings.append(f"{label}: '{tips_field}' is empty")
            elif any(isinstance(tip, str) and len(tip.strip()) < MIN_TIP_LENGTH for tip in tips):
                warnings.append(f"{label}: '{tips_field}' contains very short tips")

    sets = exercise.get("sets")
    if _is_integer(sets):
        if sets < 1:
            errors.append(f"{label}: sets must be at least 1, got {int(sets)}")
        elif sets > 10:
            warnings.append(f"{label}: {int(sets)} sets is outside 1-10")

    rest = exercise.get("restSeconds")
    if _is_integer(rest) and rest < 0:
        errors.append(f"{label}: restSeconds cannot be negative, got {int(rest)}")

    difficulty = exercise.get("difficulty")
    if isinstance(difficulty, str) and difficulty.strip().lower() not in DIFFICULTY_LEVELS:
        warnings.append(f"{label}: unknown difficulty '{difficulty}'")


def _check_rep_shape(label, exercise, warnings):
    if not isinstance(exercise, dict) or "reps" not in exercise:
        return
    reps = exercise["reps"]
    if _matches_type(reps, "reps") and not is_valid_rep_shape(reps):
        warnings.append(f"{label}: reps '{reps}' is not an integer, 'N-M' range, or time like '45s'")


def validate_single_exercise(exercise):
    """
    Validate one exercise produced for an add or swap.

    Same field, type and range checks as a full plan, without the
    count, duplicate or summary checks.
    """
    errors = []
    warnings = []
    label = _label(0, exercise) if isinstance(exercise, dict) else "Exercise"
    _check_exercise(label, exercise, errors, warnings)
    _check_rep_shape(label, exercise, warnings)
    return _result(errors, warnings, 1 if isinstance(exercise, dict) else 0)


def validate_workout_json(candidate, min_exercise_count, max_exercise_count):
    """
    Validate a parsed candidate against the plan schema.

    Args:
        candidate: Parsed JSON object (untrusted).
        min_exercise_count: Lowest acceptable exercise count.
        max_exercise_count: Highest acceptable exercise count.

    Returns:
        dict with keys: valid, errors (critical), warnings, summary
    """
    errors = []
    warnings = []

    if not isinstance(candidate, dict):
        errors.append("Workout plan must be a JSON object")
        return _result(errors, warnings, 0)

    exercises = candidate.get("exercises")
    if not isinstance(exercises, list):
        errors.append("Workout plan is missing required 'exercises' array")
        return _result(errors, warnings, 0)

    count = len(exercises)
    if count < min_exercise_count or count > max_exercise_count:
        errors.append(
            f"Exercise count {count} is outside the required range "
            f"{min_exercise_count}-{max_exercise_count}"
        )

    for index, exercise in enumerate(exercises):
        _check_exercise(_label(index, exercise), exercise, errors, warnings)

    for index, exercise in enumerate(exercises):
        _check_rep_shape(_label(index, exercise), exercise, warnings)

    seen = {}
    reported = set()
    for index, exercise in enumerate(exercises):
        if not isinstance(exercise, dict) or not isinstance(exercise.get("name"), str):
            continue
        key = exercise["name"].strip().casefold()
        if not key:
            continue
        if key in seen and key not in reported:
            reported.add(key)
            errors.append(
                f"Duplicate exercise name: '{exercise['name'].strip()}' "
                f"(exercises {seen[key] + 1} and {index + 1})"
            )
        seen.setdefault(key, index)

    summary = candidate.get("workoutSummary")
    if not isinstance(summary, dict):
        warnings.append("Workout plan is missing 'workoutSummary'")
    else:
        for field_name in SUMMARY_FIELDS:
            value = summary.get(field_name)
            if not isinstance(value, str) or not value.strip():
                warnings.append(f"workoutSummary is missing '{field_name}'")

    return _result(errors, warnings, count)


def _result(errors, warnings, count):
    return {
        "valid": not errors,
        "errors": errors,
        "warnings": warnings,
        "summary": (
            f"Schema: {count} exercises checked, {len(errors)} critical error(s), "
            f"{len(warnings)} warning(s)."
        ),
    }
