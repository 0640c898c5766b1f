"""
Adaptive difficulty: a per-user scalar nudged by feedback and completion.

State is a plain dict owned by the caller's persistence layer:
    {"difficultyScalar": 1.0, "lastFeedback": "easy" | "right" | "hard" | None,
     "recentCompletionRate": 0.85}
"""

import dataclasses
import logging


logger = logging.getLogger(__name__)

MIN_SCALAR = 0.6
MAX_SCALAR = 1.4
NEUTRAL_SCALAR = 1.0
DEFAULT_COMPLETION_RATE = 0.8
RECENT_LOOKBACK = 5

FEEDBACK_ADJUSTMENTS = {
    "easy": 0.10,
    "hard": -0.10,
    "right": 0.02,
}

FEEDBACK_TEXT = {
    "easy": "user rated last workout too easy",
    "hard": "user rated last workout too hard",
    "right": "user rated last workout just right",
}


def clamp_scalar(value):
    return max(MIN_SCALAR, min(MAX_SCALAR, value))


def compute_next_scalar(prev_scalar, signal, recent_completion=None):
    """
    Next difficulty scalar from a feedback signal and recent completion rate.

    Args:
        prev_scalar: Current scalar (1.0 = baseline).
        signal: "easy", "right" or "hard".
        recent_completion: Optional completion rate in [0, 1].

    Returns:
        Scalar clamped to [0.6, 1.4].
    """
    scalar = prev_scalar + FEEDBACK_ADJUSTMENTS.get(signal, 0)

    if recent_completion is not None:
        if recent_completion < 0.6:
            scalar -= 0.05
        elif recent_completion > 0.9:
            scalar += 0.05

    return clamp_scalar(scalar)


def completion_rate(workouts):
    """
    Share of logged sets actually completed across recent workouts.

    A set counts as completed when its logged weight is not None. Exercises
    without weight logs count every set as completed.
    """
    total_sets = 0
    completed_sets = 0

    for workout in workouts or []:
        for exercise in workout.get("exercises") or []:
            weights = exercise.get("weights")
            if isinstance(weights, dict):
                total_sets += exercise.get("sets") or len(weights)
                completed_sets += sum(1 for weight in weights.values() if weight is not None)
            else:
                total_sets += exercise.get("sets") or 0
                completed_sets += exercise.get("sets") or 0

    if total_sets == 0:
        return DEFAULT_COMPLETION_RATE

    return max(0.0, min(1.0, completed_sets / total_sets))


def progression_note(prev_scalar, new_scalar, feedback):
    """Short instruction describing how difficulty should move."""
    if not feedback:
        if new_scalar > NEUTRAL_SCALAR:
            return f"Increase difficulty ~{round((new_scalar - NEUTRAL_SCALAR) * 100)}% safely"
        if new_scalar < NEUTRAL_SCALAR:
            return f"Decrease difficulty ~{round((NEUTRAL_SCALAR - new_scalar) * 100)}% safely"
        return "Maintain baseline difficulty"

    feedback_text = FEEDBACK_TEXT.get(feedback, f"user rated last workout {feedback}")
    change = (new_scalar - prev_scalar) * 100

    if abs(change) < 1:
        return f"{feedback_text}; maintain current difficulty level"
    direction = "increase" if change > 0 else "decrease"
    return f"{feedback_text}; {direction} difficulty ~{round(abs(change))}% safely"


def update_state(state, signal, recent_completion):
    """New state dict after a feedback signal. The input dict is not modified."""
    prev_scalar = _scalar_from_state(state)
    if prev_scalar is None:
        prev_scalar = NEUTRAL_SCALAR
    new_scalar = compute_next_scalar(prev_scalar, signal, recent_completion)

    updated = dict(state or {})
    updated.update(
        {
            "difficultyScalar": new_scalar,
            "previousScalar": prev_scalar,
            "lastFeedback": signal,
            "recentCompletionRate": recent_completion,
        }
    )
    return updated


def _scalar_from_state(state):
    if not isinstance(state, dict):
        return None
    value = state.get("difficultyScalar")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return clamp_scalar(float(value))


def recent_completion(recent_workouts, lookback=RECENT_LOOKBACK):
    """Mean completion rate over the most recent sessions that report one, or None."""
    rates = [
        workout.completion_rate
        for workout in list(recent_workouts or ())[:lookback]
        if workout.completion_rate is not None
    ]
    if not rates:
        return None
    return sum(rates) / len(rates)


def state_from_history(recent_workouts):
    """
    Adaptive state derived from the request's own history.

    The most recent session's feedback moves a neutral scalar, biased by the
    recent completion rate. Returns None when that session carries no feedback.
    """
    if not recent_workouts or recent_workouts[0].feedback not in FEEDBACK_TEXT:
        return None
    return update_state({}, recent_workouts[0].feedback, recent_completion(recent_workouts))


def resolve_progression(request, state):
    """
    Fill a request's target intensity and progression note from adaptive state.

    Values already present on the request win. Without a stored state the
    request's recent workouts (newest first) supply one. A missing or
    malformed state leaves the request at neutral defaults.
    """
    if state is None:
        state = state_from_history(request.recent_workouts)

    scalar = _scalar_from_state(state)
    if scalar is None:
        if state is not None:
            logger.warning("Ignoring malformed personalization state", extra={"event": "personalization_fallback"})
        return request

    feedback = state.get("lastFeedback")
    if feedback not in FEEDBACK_TEXT:
        feedback = None

    previous = state.get("previousScalar")
    if isinstance(previous, bool) or not isinstance(previous, (int, float)):
        previous = NEUTRAL_SCALAR

    target_intensity = request.target_intensity
    if target_intensity is None:
        target_intensity = round(scalar, 2)

    note = request.progression_note or progression_note(previous, scalar, feedback)

    return dataclasses.replace(request, target_intensity=target_intensity, progression_note=note)
