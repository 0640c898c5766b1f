"""
Exercise similarity: decide whether two exercise names are the same movement.

Names reduce to a movement key: lowercased, hyphens split, equipment and
angle/grip modifiers dropped, synonyms folded. Two exercises are similar when
their keys match. A minor variation is looser: one key's words are contained
in the other's ("Squat" vs "Jump Squat").
"""

import re

from workout_generator.exercise_rules import normalize_name


WORD_RE = re.compile(r"[a-z0-9]+")

# Words that change equipment, angle, stance or grip but not the movement.
MODIFIER_WORDS = frozenset(
    [
        "barbell",
        "dumbbell",
        "dumbbells",
        "kettlebell",
        "cable",
        "machine",
        "smith",
        "band",
        "banded",
        "resistance",
        "weighted",
        "bodyweight",
        "ez",
        "bar",
        "bench",
        "incline",
        "decline",
        "flat",
        "seated",
        "standing",
        "close",
        "wide",
        "narrow",
        "neutral",
        "grip",
        "single",
        "one",
        "arm",
        "alternating",
    ]
)

WORD_ALIASES = {
    "pushup": "push up",
    "pushups": "push up",
    "pullup": "pull up",
    "pullups": "pull up",
    "chinup": "chin up",
    "chinups": "chin up",
    "situp": "sit up",
    "situps": "sit up",
    "ups": "up",
    "flye": "fly",
    "flyes": "fly",
    "flies": "fly",
    "flys": "fly",
    "rows": "row",
    "squats": "squat",
    "lunges": "lunge",
    "crunches": "crunch",
    "curls": "curl",
    "deadlifts": "deadlift",
}

MOVEMENT_SYNONYMS = {
    "chest press": "press",
    "chin up": "pull up",
    "crunch": "sit up",
}


def _words(name):
    words = []
    for word in WORD_RE.findall(normalize_name(name)):
        words.extend(WORD_ALIASES.get(word, word).split())
    return words


def movement_key(name):
    """Movement identity of an exercise name, e.g. "Incline Dumbbell Press" -> "press"."""
    words = _words(name)
    kept = [word for word in words if word not in MODIFIER_WORDS] or words
    key = " ".join(kept)
    return MOVEMENT_SYNONYMS.get(key, key)


def is_similar_exercise(first, second):
    """True when two names describe the same movement pattern."""
    first_key = movement_key(first)
    second_key = movement_key(second)
    if not first_key or not second_key:
        return False
    return first_key == second_key


def is_minor_variation(original, replacement):
    """
    True when a replacement only tweaks the original movement.

    Stricter than is_similar_exercise: a key fully contained in the other
    ("Deadlift" inside "Romanian Deadlift") also counts.
    """
    if is_similar_exercise(original, replacement):
        return True
    original_words = set(movement_key(original).split())
    replacement_words = set(movement_key(replacement).split())
    if not original_words or not replacement_words:
        return False
    return original_words <= replacement_words or replacement_words <= original_words


def find_similar_exercises(exercises):
    """
    Pairs of similar exercises in a list of exercise dicts.

    Returns:
        list of (first_index, second_index, first_name, second_name), first_index < second_index.
    """
    names = [str((exercise or {}).get("name") or "") for exercise in exercises or []]
    pairs = []
    for i, first in enumerate(names):
        for j in range(i + 1, len(names)):
            if is_similar_exercise(first, names[j]):
                pairs.append((i, j, first, names[j]))
    return pairs
