"""
Evidence-based set/rep/rest guidelines keyed by goal category.
"""

from workout_generator.models import Experience, ProgrammingContext


PROGRAMMING_GUIDELINES = {
    "strength": {
        "sets": (3, 6),
        "reps": (1, 6),
        "rest_seconds": (150, 300),
        "intensity": "85-100% 1RM",
    },
    "hypertrophy": {
        "sets": (3, 5),
        "reps": (6, 12),
        "rest_seconds": (75, 150),
        "intensity": "65-85% 1RM",
    },
    "endurance": {
        "sets": (2, 4),
        "reps": (12, 25),
        "rest_seconds": (45, 90),
        "intensity": "40-65% 1RM",
    },
}

# Keyword -> category, checked in order against the primary goal.
GOAL_CATEGORY_KEYWORDS = [
    ("strength", "strength"),
    ("muscle", "hypertrophy"),
    ("tone", "hypertrophy"),
    ("stamina", "endurance"),
    ("endurance", "endurance"),
]

DEFAULT_CATEGORY = "hypertrophy"

EXPERIENCE_ADJUSTMENTS = {
    Experience.BEGINNER: {
        "rest_adjustment": 30,
        "intensity_guidance": "Use lower end of intensity range (60-75% 1RM)",
        "complexity_guidance": (
            "Focus on bilateral, stable exercises. Prioritize machines and bodyweight. "
            "Avoid complex barbell movements."
        ),
        "form_emphasis": (
            "Emphasize proper setup, controlled tempo, and full range of motion. "
            "Include detailed breathing cues."
        ),
    },
    Experience.INTERMEDIATE: {
        "rest_adjustment": 0,
        "intensity_guidance": "Use mid-range intensity (70-85% 1RM)",
        "complexity_guidance": (
            "Include mix of bilateral and unilateral exercises. Free weights and cables. "
            "Moderate complexity barbell work."
        ),
        "form_emphasis": (
            "Focus on movement quality, tempo control, and mind-muscle connection. "
            "Include technique refinements."
        ),
    },
    Experience.ADVANCED: {
        "rest_adjustment": -15,
        "intensity_guidance": "Use full intensity range (75-95% 1RM)",
        "complexity_guidance": (
            "Include complex movements, advanced variations, and high-skill exercises. "
            "Olympic lifts and plyometrics appropriate."
        ),
        "form_emphasis": (
            "Emphasize advanced techniques, explosive power, and movement efficiency. "
            "Include performance optimization cues."
        ),
    },
}

MIN_REST_FLOOR = (45, 60)


def goal_category(goals):
    """Map the primary (first) goal to a guideline category."""
    primary = (goals[0] if goals else "").lower()
    for keyword, category in GOAL_CATEGORY_KEYWORDS:
        if keyword in primary:
            return category
    return DEFAULT_CATEGORY


def get_programming_context(goals, experience):
    """
    Look up the ProgrammingContext for a goal list and experience level.

    Rest ranges shift by the experience adjustment and never drop below
    MIN_REST_FLOOR.
    """
    category = goal_category(goals)
    base = PROGRAMMING_GUIDELINES[category]
    adjustment = EXPERIENCE_ADJUSTMENTS[experience]["rest_adjustment"]

    rest_seconds = (
        max(MIN_REST_FLOOR[0], base["rest_seconds"][0] + adjustment),
        max(MIN_REST_FLOOR[1], base["rest_seconds"][1] + adjustment),
    )

    return ProgrammingContext(
        sets=base["sets"],
        reps=base["reps"],
        rest_seconds=rest_seconds,
        intensity=base["intensity"],
        category=category,
    )


def experience_guidance(experience):
    adjustments = EXPERIENCE_ADJUSTMENTS[experience]
    rest = adjustments["rest_adjustment"]
    return (
        f"EXPERIENCE ({experience.value.upper()}):\n"
        f"- Intensity: {adjustments['intensity_guidance']}\n"
        f"- Exercise complexity: {adjustments['complexity_guidance']}\n"
        f"- Rest adjustment: {'+' if rest > 0 else ''}{rest} seconds\n"
        f"- Form emphasis: {adjustments['form_emphasis']}"
    )
