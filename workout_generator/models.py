"""
Value types passed between the generation pipeline stages.

Plans themselves stay plain dicts (they arrive as model JSON and leave as
JSON); everything the pipeline derives about them is an immutable value here.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional, Tuple


class Experience(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


@dataclass(frozen=True)
class RecentWorkout:
    """One prior session, used for variety guidance and completion signals."""

    workout_type: str
    exercise_names: Tuple[str, ...] = ()
    completion_rate: Optional[float] = None
    feedback: Optional[str] = None


@dataclass(frozen=True)
class WorkoutRequest:
    """Normalized generation request. Built once per call, never mutated."""

    experience: Experience
    goals: Tuple[str, ...]
    equipment: Tuple[str, ...]
    workout_type: str
    duration: int
    injuries: Tuple[str, ...] = ()
    injury_notes: str = ""
    recent_workouts: Tuple[RecentWorkout, ...] = ()
    target_intensity: Optional[float] = None
    progression_note: str = ""
    preference_notes: str = ""


@dataclass(frozen=True)
class ProgrammingContext:
    """Set/rep/rest ranges for a goal category after experience adjustment."""

    sets: Tuple[int, int]
    reps: Tuple[int, int]
    rest_seconds: Tuple[int, int]
    intensity: str
    category: str = "hypertrophy"

    @property
    def avg_sets(self):
        return (self.sets[0] + self.sets[1]) / 2

    @property
    def avg_rest_seconds(self):
        return (self.rest_seconds[0] + self.rest_seconds[1]) / 2


@dataclass(frozen=True)
class PromptBundle:
    """Prompt builder output."""

    system_message: str
    user_message: str
    min_exercise_count: int
    max_exercise_count: int
    output_schema: dict


class ValidationErrors:
    """
    Per-attempt accumulator of violations.

    Schema errors are structural, rule errors are domain/safety, and the
    duration message is kept apart because duration variance is advisory.
    """

    def __init__(self):
        self.schema_errors = []
        self.rule_errors = []
        self.duration_error = None
        self.warnings = []

    def add_schema_error(self, message):
        self.schema_errors.append(message)

    def add_rule_error(self, message):
        self.rule_errors.append(message)

    def add_warning(self, message):
        self.warnings.append(message)

    def has_errors(self):
        return bool(self.schema_errors or self.rule_errors or self.duration_error)

    def messages(self):
        collected = list(self.schema_errors) + list(self.rule_errors)
        if self.duration_error:
            collected.append(self.duration_error)
        return collected

    def __len__(self):
        return len(self.messages())


@dataclass(frozen=True)
class QualityScore:
    overall: int
    grade: str
    completeness: float
    safety: float
    programming: float
    personalization: float

    def to_dict(self):
        return {
            "overall": self.overall,
            "grade": self.grade,
            "breakdown": {
                "completeness": self.completeness,
                "safety": self.safety,
                "programming": self.programming,
                "personalization": self.personalization,
            },
        }


@dataclass(frozen=True)
class GenerationMetadata:
    """Attached only to accepted plans."""

    model: str
    temperature: float
    min_exercise_count: int
    max_exercise_count: int
    actual_duration: float
    target_duration: int
    duration_difference: float
    duration_within_tolerance: bool
    quality_score: QualityScore
    repair_attempts: int
    generated_at: str
    validation_warnings: Tuple[str, ...] = ()
    target_intensity: Optional[float] = None
    progression_note: str = ""

    def to_dict(self):
        return {
            "model": self.model,
            "temperature": self.temperature,
            "minExerciseCount": self.min_exercise_count,
            "maxExerciseCount": self.max_exercise_count,
            "actualDuration": round(self.actual_duration, 1),
            "targetDuration": self.target_duration,
            "durationDifference": round(self.duration_difference, 1),
            "durationWithinTolerance": self.duration_within_tolerance,
            "validationWarnings": list(self.validation_warnings),
            "qualityScore": self.quality_score.to_dict(),
            "repairAttempts": self.repair_attempts,
            "progression": {
                "targetIntensity": self.target_intensity,
                "progressionNote": self.progression_note,
            },
            "generatedAt": self.generated_at,
        }


@dataclass
class AttemptOutcome:
    """Result of one model call: a validated plan or the violations it produced."""

    attempt: int
    candidate: Optional[dict] = None
    errors: ValidationErrors = field(default_factory=ValidationErrors)
    raw_text: str = ""
    duration: Optional[dict] = None
    quality: Optional[QualityScore] = None
    failure: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def accepted(self):
        return self.candidate is not None and self.failure is None and not self.errors.has_errors()


def request_to_dict(request):
    """Plain-dict view of a WorkoutRequest (enum flattened to its value)."""
    data = asdict(request)
    data["experience"] = request.experience.value
    return data
