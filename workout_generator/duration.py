"""
Workout duration estimation and tolerance checks.
"""

import logging
import math
import re


logger = logging.getLogger(__name__)

SINGLE_TIME_RE = re.compile(r"^(\d+)s$", re.IGNORECASE)
RANGE_TIME_RE = re.compile(r"^(\d+)-(\d+)s$", re.IGNORECASE)

MIN_TOLERANCE_MINUTES = 3
TOLERANCE_FRACTION = 0.10
MIN_VIABLE_MINUTES = 5


def parse_time_reps(reps):
    """
    Seconds of work per set for a time token, or None for rep-based entries.

    "30s" -> 30, "30-45s" -> 37.5 (range midpoint).
    """
    if not isinstance(reps, str):
        return None

    text = reps.strip().replace(" ", "")
    single = SINGLE_TIME_RE.match(text)
    if single:
        return int(single.group(1))

    ranged = RANGE_TIME_RE.match(text)
    if ranged:
        return (int(ranged.group(1)) + int(ranged.group(2))) / 2

    return None


def _number(value, default=0):
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value
    return default


def estimate_exercise_minutes(exercise):
    """Work plus rest minutes for one exercise; no rest after the final set."""
    sets = _number(exercise.get("sets"))
    rest_seconds = _number(exercise.get("restSeconds"))

    time_seconds = parse_time_reps(exercise.get("reps"))
    if time_seconds is not None:
        work = sets * (time_seconds / 60)
    else:
        work = sets

    rest = max(0, sets - 1) * (rest_seconds / 60)
    return work + rest


def estimate_duration(plan):
    """Estimated total minutes for a plan's exercises."""
    return sum(estimate_exercise_minutes(exercise) for exercise in plan.get("exercises") or [])


def duration_tolerance(target_duration):
    """Allowed deviation in minutes: 10% of the target, never below 3."""
    return max(MIN_TOLERANCE_MINUTES, int(math.floor(target_duration * TOLERANCE_FRACTION + 0.5)))


def validate_duration(plan, target_duration):
    """
    Strict duration check with full diagnostics.

    Returns:
        dict with keys: is_valid, actual_duration, difference, tolerance, message
    """
    actual = estimate_duration(plan)
    difference = actual - target_duration
    tolerance = duration_tolerance(target_duration)
    is_valid = abs(difference) <= tolerance

    if is_valid:
        message = f"Duration valid: {actual:.1f} min (target: {target_duration}±{tolerance} min)"
    elif difference < 0:
        message = (
            f"Duration too short: {actual:.1f} min "
            f"(target: {target_duration} min, diff: {abs(difference):.1f} min)"
        )
    else:
        message = (
            f"Duration too long: {actual:.1f} min "
            f"(target: {target_duration} min, diff: {difference:.1f} min)"
        )

    return {
        "is_valid": is_valid,
        "actual_duration": actual,
        "difference": difference,
        "tolerance": tolerance,
        "message": message,
    }


def validate_and_adjust_duration(plan, target_duration):
    """
    Duration gate used by the generation loop.

    Always reports is_valid=True: the model's duration is trusted and the plan
    is never truncated or padded. The strict result is kept in
    within_tolerance and a variance is logged as a warning.
    """
    strict = validate_duration(plan, target_duration)

    if not strict["is_valid"]:
        logger.warning(
            f"Duration variance: {abs(strict['difference']):.1f} min "
            f"(target: {target_duration}±{strict['tolerance']} min, actual: {strict['actual_duration']:.1f} min)",
            extra={
                "event": "duration_variance",
                "target_duration": target_duration,
                "actual_duration": round(strict["actual_duration"], 1),
                "tolerance": strict["tolerance"],
            },
        )

    return {
        "is_valid": True,
        "within_tolerance": strict["is_valid"],
        "actual_duration": strict["actual_duration"],
        "difference": strict["difference"],
        "tolerance": strict["tolerance"],
        "message": strict["message"],
        "adjusted": False,
        "changes": [],
    }
