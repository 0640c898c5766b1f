"""
Domain rule validation for generated workout plans.
"""

import re

from workout_generator.exercise_rules import (
    contraindicated_token,
    excluded_family,
    has_equipment,
    matched_injury_rules,
    normalize_name,
    required_equipment,
)


DIGIT_RE = re.compile(r"\d")

INJURY_CODE = "injury_contraindication"


def _add_violation(violations, code, message, exercise=None):
    violations.append(
        {
            "code": code,
            "message": message,
            "exercise": exercise or "",
        }
    )


def _parse_plan_entries(plan):
    entries = []
    for index, exercise in enumerate(plan.get("exercises") or []):
        name = str(exercise.get("name") or "").strip()
        entries.append(
            {
                "index": index,
                "exercise": name,
                "normalized_exercise": normalize_name(name),
                "reps": exercise.get("reps"),
            }
        )
    return entries


def is_exercise_matching_workout_type(exercise_name, workout_type):
    """Lenient: only the hard anatomical exclusions fail."""
    return excluded_family(exercise_name, workout_type) is None


def is_exercise_using_available_equipment(exercise_name, equipment):
    """Bodyweight exercises always pass; named equipment must be available."""
    return all(has_equipment(family, equipment) for family in required_equipment(exercise_name))


def is_rep_format_well_formed(reps):
    """Reps must carry at least one digit; workout-type convention is not enforced here."""
    if isinstance(reps, bool):
        return False
    if isinstance(reps, (int, float)):
        return reps > 0
    return isinstance(reps, str) and bool(DIGIT_RE.search(reps))


def validate_plan(plan, request):
    """
    Validate a schema-checked plan against the request's domain rules.

    Args:
        plan: Plan dict that already passed schema validation.
        request: WorkoutRequest the plan was generated for.

    Returns:
        dict with keys: entries, violations, summary
    """
    entries = _parse_plan_entries(plan)
    violations = []
    injury_rules = matched_injury_rules(request.injuries)

    for entry in entries:
        exercise = entry["exercise"]

        family = excluded_family(exercise, request.workout_type)
        if family:
            _add_violation(
                violations,
                "workout_type_mismatch",
                f"'{exercise}' does not match {request.workout_type} workout ({family} exercise).",
                exercise=exercise,
            )

        for equipment_family in required_equipment(exercise):
            if not has_equipment(equipment_family, request.equipment):
                _add_violation(
                    violations,
                    "equipment_unavailable",
                    (
                        f"'{exercise}' needs {equipment_family} equipment, which is not in "
                        f"the available list: {', '.join(request.equipment)}."
                    ),
                    exercise=exercise,
                )

        if not is_rep_format_well_formed(entry["reps"]):
            _add_violation(
                violations,
                "invalid_rep_format",
                f"'{exercise}' has invalid rep format '{entry['reps']}' (no number).",
                exercise=exercise,
            )

        for injury, key, rule in injury_rules:
            token = contraindicated_token(exercise, rule)
            if token:
                _add_violation(
                    violations,
                    INJURY_CODE,
                    (
                        f"'{exercise}' is contraindicated for {injury} injury "
                        f"(avoid '{token}'); use a safe alternative such as {rule['alternatives'][0]}."
                    ),
                    exercise=exercise,
                )

    summary = (
        f"Rules: {len(entries)} exercises checked, {len(violations)} violation(s)."
        if entries
        else "Rules: no exercises to check."
    )

    return {
        "entries": entries,
        "violations": violations,
        "summary": summary,
    }


def format_violation(violation):
    exercise = violation.get("exercise") or "plan"
    return f"{violation['code']} | {exercise} | {violation['message']}"
