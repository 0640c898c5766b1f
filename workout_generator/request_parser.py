"""
Normalize an inbound request payload (camelCase JSON body) into a WorkoutRequest.
"""

from workout_generator.errors import InvalidRequestError
from workout_generator.exercise_rules import canonical_workout_type
from workout_generator.models import Experience, RecentWorkout, WorkoutRequest
from workout_generator.personalization import FEEDBACK_TEXT, MAX_SCALAR, MIN_SCALAR, completion_rate


DEFAULT_DURATION = 30
MIN_DURATION = 5
MAX_DURATION = 150
DEFAULT_GOALS = ("General Fitness",)
DEFAULT_EQUIPMENT = ("Bodyweight",)

EXPERIENCE_ALIASES = {
    "beginner": Experience.BEGINNER,
    "intermediate": Experience.INTERMEDIATE,
    "advanced": Experience.ADVANCED,
    "expert": Experience.ADVANCED,
}


def _as_list(value):
    """Wrap scalars, drop empty items, strip strings."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        value = [value]
    cleaned = []
    for item in value:
        if not item:
            continue
        text = str(item).strip()
        if text:
            cleaned.append(text)
    return cleaned


def parse_experience(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return Experience.INTERMEDIATE
    experience = EXPERIENCE_ALIASES.get(str(value).strip().lower())
    if experience is None:
        raise InvalidRequestError(f"Unknown experience level: {value}")
    return experience


def parse_duration(value):
    if value is None or value == "":
        return DEFAULT_DURATION
    if isinstance(value, bool):
        raise InvalidRequestError("Duration must be a number of minutes")
    try:
        minutes = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        raise InvalidRequestError(f"Duration must be a number of minutes, got {value!r}")
    return max(MIN_DURATION, min(MAX_DURATION, minutes))


def parse_target_intensity(value):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidRequestError("targetIntensity must be a number")
    try:
        intensity = float(value)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"targetIntensity must be a number, got {value!r}")
    return max(MIN_SCALAR, min(MAX_SCALAR, intensity))


def _parse_injuries(value):
    if isinstance(value, dict):
        return tuple(_as_list(value.get("list"))), str(value.get("notes") or "").strip()
    return tuple(_as_list(value)), ""


def _parse_recent_workouts(value):
    workouts = []
    for item in value or []:
        if not isinstance(item, dict):
            continue
        names = []
        for exercise in item.get("exercises") or []:
            name = exercise.get("name") if isinstance(exercise, dict) else exercise
            if name and str(name).strip():
                names.append(str(name).strip())
        workouts.append(
            RecentWorkout(
                workout_type=str(item.get("workoutType") or "").strip(),
                exercise_names=tuple(names),
                completion_rate=_recent_completion_rate(item),
                feedback=_parse_feedback(item.get("feedback")),
            )
        )
    return tuple(workouts)


def _recent_completion_rate(item):
    """Explicit completionRate wins; otherwise derive it from logged set weights."""
    rate = item.get("completionRate")
    if isinstance(rate, (int, float)) and not isinstance(rate, bool):
        return max(0.0, min(1.0, float(rate)))
    logged = [
        exercise
        for exercise in item.get("exercises") or []
        if isinstance(exercise, dict) and isinstance(exercise.get("weights"), dict)
    ]
    if not logged:
        return None
    return completion_rate([item])


def _parse_feedback(value):
    feedback = str(value or "").strip().lower()
    return feedback if feedback in FEEDBACK_TEXT else None


def parse_workout_request(payload):
    """
    Build a WorkoutRequest from a request body.

    Args:
        payload: dict decoded from the JSON body.

    Returns:
        WorkoutRequest

    Raises:
        InvalidRequestError: payload is not an object, or a field cannot be interpreted.
    """
    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    injuries, injury_notes = _parse_injuries(payload.get("injuries"))

    return WorkoutRequest(
        experience=parse_experience(payload.get("experience")),
        goals=tuple(_as_list(payload.get("goals"))) or DEFAULT_GOALS,
        equipment=tuple(_as_list(payload.get("equipment"))) or DEFAULT_EQUIPMENT,
        workout_type=canonical_workout_type(str(payload.get("workoutType") or "")),
        duration=parse_duration(payload.get("duration")),
        injuries=injuries,
        injury_notes=injury_notes,
        recent_workouts=_parse_recent_workouts(payload.get("recentWorkouts")),
        target_intensity=parse_target_intensity(payload.get("targetIntensity")),
        progression_note=str(payload.get("progressionNote") or "").strip(),
        preference_notes=str(payload.get("preferenceNotes") or "").strip(),
    )


def _exercise_entry(value):
    if isinstance(value, str):
        value = {"name": value}
    if not isinstance(value, dict):
        return None
    name = str(value.get("name") or "").strip()
    if not name:
        return None
    entry = dict(value)
    entry["name"] = name
    return entry


def parse_current_exercises(payload):
    """
    Exercises of the workout being edited, from currentWorkout.exercises.

    Raises:
        InvalidRequestError: no named exercises were supplied.
    """
    workout = payload.get("currentWorkout") if isinstance(payload, dict) else None
    exercises = workout.get("exercises") if isinstance(workout, dict) else None
    if not isinstance(exercises, list):
        exercises = []
    entries = [entry for entry in map(_exercise_entry, exercises) if entry is not None]
    if not entries:
        raise InvalidRequestError("currentWorkout with exercises is required")
    return entries


def parse_exercise_to_replace(payload):
    entry = _exercise_entry(payload.get("exerciseToReplace") if isinstance(payload, dict) else None)
    if entry is None:
        raise InvalidRequestError("exerciseToReplace with a name is required")
    return entry
