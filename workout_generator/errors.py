"""
Error taxonomy for workout generation and the generic responses shown to callers.
"""


class WorkoutGeneratorError(Exception):
    """Base class for every error raised by the generation core."""


class ConfigError(WorkoutGeneratorError):
    """Configuration file or environment is unusable."""


class InvalidRequestError(WorkoutGeneratorError):
    """Inbound payload could not be normalized into a WorkoutRequest."""


class QuotaExceededError(WorkoutGeneratorError):
    """Entitlement collaborator refused the generation."""


class ModelClientError(WorkoutGeneratorError):
    """
    The model API failed in a way a repair prompt cannot fix.

    Raised for non-transient API errors (auth, bad request) and for transient
    errors that are still failing after the SDK's own retries.
    """

    def __init__(self, message, transient=False, status_code=None):
        super().__init__(message)
        self.transient = transient
        self.status_code = status_code


class GenerationRejectedError(WorkoutGeneratorError):
    """
    Terminal Rejected state: the repair budget ran out.

    Args:
        message: Short summary.
        violation_history: One list of violation strings per attempt.
        attempts: Number of model calls made.
    """

    def __init__(self, message, violation_history=None, attempts=0):
        super().__init__(message)
        self.violation_history = violation_history or []
        self.attempts = attempts

    def all_violations(self):
        flattened = []
        for attempt_violations in self.violation_history:
            flattened.extend(attempt_violations)
        return flattened


def public_error(exc):
    """
    Map an exception to an (http_status, body) pair safe to show end users.

    Bodies carry a generic message and a retryable flag only; violation text,
    API keys and stack traces stay in the logs.
    """
    if isinstance(exc, QuotaExceededError):
        return 402, {
            "error": "Quota exceeded",
            "details": "You have used all workouts available on your plan.",
            "retryable": False,
        }

    if isinstance(exc, InvalidRequestError):
        return 400, {
            "error": "Invalid request",
            "details": "The workout request could not be understood.",
            "retryable": False,
        }

    if isinstance(exc, ConfigError):
        return 502, {
            "error": "Service configuration error",
            "details": "Our AI service is temporarily unavailable. Please try again later.",
            "retryable": False,
        }

    if isinstance(exc, ModelClientError):
        if exc.status_code == 429:
            return 429, {
                "error": "Rate limited",
                "details": "Too many requests. Please wait a moment before trying again.",
                "retryable": True,
            }
        if exc.status_code in (401, 403):
            return 502, {
                "error": "Service unavailable",
                "details": "Our AI service is temporarily unavailable. Please try again later.",
                "retryable": False,
            }
        if exc.status_code == 408 or "timeout" in str(exc).lower():
            return 504, {
                "error": "Generation timeout",
                "details": "Workout generation took too long. Try a shorter duration or simpler workout type.",
                "retryable": True,
            }
        return 502, {
            "error": "Service error",
            "details": "AI service temporarily unavailable. Please try again.",
            "retryable": exc.transient,
        }

    return 500, {
        "error": "Generation failed",
        "details": "We could not generate a workout that met our quality standards. Please try again.",
        "retryable": True,
    }
