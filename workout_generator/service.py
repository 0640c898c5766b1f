"""
Entry point used by the CLI and any HTTP wrapper.

Collaborators are duck-typed and optional:
    entitlements: reserve(user_id) raising QuotaExceededError, release(user_id)
    personalization: get_state(user_id) -> adaptive state dict or None
    store: save(user_id, document)
"""

import json
import logging
import os
import threading
from datetime import datetime

from workout_generator.errors import QuotaExceededError
from workout_generator.personalization import resolve_progression
from workout_generator.request_parser import parse_current_exercises, parse_exercise_to_replace, parse_workout_request


logger = logging.getLogger(__name__)


def short_user_id(user_id):
    return (user_id or "anonymous")[:8]


class QuotaTracker:
    """
    In-memory entitlement collaborator: a fixed number of generations per user.

    reserve() checks and takes a slot under one lock, so concurrent requests
    cannot both pass on the last slot. release() hands a slot back when the
    generation does not produce an accepted plan.
    """

    def __init__(self, max_generations=None):
        self.max_generations = max_generations
        self._counts = {}
        self._lock = threading.Lock()

    def used(self, user_id):
        with self._lock:
            return self._counts.get(user_id, 0)

    def reserve(self, user_id):
        with self._lock:
            used = self._counts.get(user_id, 0)
            if self.max_generations is not None and used >= self.max_generations:
                raise QuotaExceededError(
                    f"User {short_user_id(user_id)} has used all {self.max_generations} generations"
                )
            self._counts[user_id] = used + 1

    def release(self, user_id):
        with self._lock:
            if self._counts.get(user_id, 0) > 0:
                self._counts[user_id] -= 1


class FileStore:
    """Persistence collaborator that writes accepted documents to a folder."""

    def __init__(self, output_folder):
        self.output_folder = output_folder

    def save(self, user_id, document):
        return save_plan(document, self.output_folder, user_id=user_id)


def save_plan(document, output_folder, user_id=None):
    """
    Write an accepted workout document to a timestamped JSON file.

    Returns:
        Path of the written file.
    """
    os.makedirs(output_folder, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    prefix = f"workout_{short_user_id(user_id)}" if user_id else "workout"
    filepath = os.path.join(output_folder, f"{prefix}_{timestamp}.json")

    with open(filepath, "w") as f:
        json.dump(document, f, indent=2)

    logger.info(f"Saved workout plan to {filepath}", extra={"event": "plan_saved", "path": filepath})
    return filepath


def _personalization_state(personalization, user_id):
    if personalization is None:
        return None
    try:
        return personalization.get_state(user_id)
    except Exception as e:
        logger.warning(
            f"Personalization unavailable, using neutral defaults: {e}",
            extra={"event": "personalization_fallback", "user_id": short_user_id(user_id)},
        )
        return None


def generate_workout(payload, generator, user_id=None, entitlements=None, store=None, personalization=None):
    """
    Normalize a request, generate an accepted plan, and hand it to collaborators.

    Args:
        payload: Request body dict.
        generator: PlanGenerator (or anything with generate(request)).
        user_id: Optional authenticated user identifier.
        entitlements: Optional quota collaborator, consulted before any model call.
        store: Optional persistence collaborator, given accepted plans only.
        personalization: Optional adaptive-state collaborator.

    Returns:
        Accepted workout document.
    """
    request = parse_workout_request(payload)

    if entitlements is not None:
        entitlements.reserve(user_id)

    try:
        state = _personalization_state(personalization, user_id)
        request = resolve_progression(request, state)

        logger.info(
            f"Workout requested by {short_user_id(user_id)}",
            extra={"event": "workout_requested", "user_id": short_user_id(user_id)},
        )
        document = generator.generate(request)
    except Exception:
        if entitlements is not None:
            entitlements.release(user_id)
        raise

    if store is not None:
        store.save(user_id, document)

    return document


def add_exercise(payload, generator):
    """
    Generate one exercise to add to the workout in payload["currentWorkout"].

    Request fields (experience, goals, equipment, injuries, workoutType) are
    read from the same body.
    """
    request = parse_workout_request(payload)
    current = parse_current_exercises(payload)
    logger.info(
        f"Add exercise requested for a {len(current)}-exercise workout",
        extra={"event": "add_exercise_requested", "exercise_count": len(current)},
    )
    return generator.add_exercise(request, current)


def swap_exercise(payload, generator):
    """Generate a replacement for payload["exerciseToReplace"] within payload["currentWorkout"]."""
    request = parse_workout_request(payload)
    current = parse_current_exercises(payload)
    replaced = parse_exercise_to_replace(payload)
    logger.info(
        f"Swap requested for '{replaced['name']}'",
        extra={"event": "swap_exercise_requested", "exercise": replaced["name"]},
    )
    return generator.swap_exercise(request, current, replaced)
