"""
Closed-set rule tables shared by the prompt builder and the plan validator.

Keys are checked against the known workout types and families at import time.
Keyword detection inside exercise names and injury descriptions is substring
based on normalized text, so "Knee pain (left)" picks up the knee rules and
"Walking Lunges" matches "lunge".
"""

import re


WORKOUT_TYPES = (
    "Full Body",
    "Upper Body",
    "Lower Body",
    "Legs/Glutes",
    "Chest/Triceps",
    "Back/Biceps",
    "Shoulders",
    "Core Focus",
    "Abs",
    "Cardio",
    "HIIT",
    "Yoga",
    "Pilates",
)

DEFAULT_WORKOUT_TYPE = "Full Body"

TIME_BASED_WORKOUT_TYPES = frozenset(["Cardio", "Yoga", "Pilates", "Core Focus", "HIIT", "Abs"])

WORKOUT_TYPE_GUIDANCE = {
    "Full Body": "Total body with squat, hinge, push, pull, carry patterns. Example: Squats, deadlifts, push-ups, rows, lunges, planks.",
    "Upper Body": "Chest, back, shoulders, arms ONLY. Example: Bench press, rows, shoulder press, pull-ups, curls, tricep extensions.",
    "Lower Body": "Legs, glutes, calves ONLY. Example: Squats, deadlifts, lunges, leg press, calf raises, glute bridges.",
    "Legs/Glutes": "Hip-dominant glute work. Example: Hip thrusts, Romanian deadlifts, Bulgarian split squats, glute bridges.",
    "Chest/Triceps": "Chest pressing + tricep isolation. Example: Bench press, push-ups, chest flyes, tricep dips, overhead extensions.",
    "Back/Biceps": "Pulling movements + bicep work. Example: Pull-ups, rows, lat pulldowns, bicep curls, hammer curls.",
    "Shoulders": "All three deltoid heads. Example: Shoulder press, lateral raises, front raises, rear delt flyes, face pulls.",
    "Core Focus": "Anti-extension, anti-rotation, stability. Example: Planks, dead bugs, bird dogs, pallof press, Russian twists.",
    "Abs": "Abdominal strength and control. Example: Crunches, hollow holds, leg raises, planks, bicycle crunches.",
    "Cardio": "Cardiovascular endurance. Example: Jumping jacks, burpees, mountain climbers, high knees, jump rope.",
    "HIIT": "High-intensity intervals. Example: Burpees, jump squats, box jumps, sprint intervals, battle ropes, kettlebell swings.",
    "Yoga": "Flexibility, balance, breath. Example: Sun salutations, warrior poses, downward dog, tree pose, pigeon pose.",
    "Pilates": "Core strength and control. Example: Hundred, roll-ups, leg circles, single leg stretch, plank variations.",
}

# Muscle-group families whose name tokens are anatomically incompatible with
# some workout types.
MUSCLE_GROUP_FAMILIES = {
    "legs": (
        "squat",
        "lunge",
        "leg press",
        "leg curl",
        "leg extension",
        "calf raise",
        "step up",
        "hip thrust",
        "glute bridge",
        "box jump",
    ),
    "upper": (
        "bench press",
        "chest press",
        "chest fly",
        "bicep curl",
        "biceps curl",
        "hammer curl",
        "tricep",
        "lateral raise",
        "shoulder press",
        "overhead press",
        "lat pulldown",
        "pull up",
        "chin up",
        "push up",
    ),
}

WORKOUT_TYPE_EXCLUSIONS = {
    "Upper Body": ("legs",),
    "Chest/Triceps": ("legs",),
    "Back/Biceps": ("legs",),
    "Shoulders": ("legs",),
    "Lower Body": ("upper",),
    "Legs/Glutes": ("upper",),
}

# Equipment named in an exercise -> tokens that must appear in the allowed list.
EQUIPMENT_FAMILIES = {
    "cable": {
        "name_tokens": ("cable",),
        "equipment_tokens": ("cable",),
    },
    "barbell": {
        "name_tokens": ("barbell",),
        "equipment_tokens": ("barbell",),
    },
    "dumbbell": {
        "name_tokens": ("dumbbell",),
        "equipment_tokens": ("dumbbell",),
    },
    "machine": {
        "name_tokens": ("machine", "smith", "pec deck"),
        "equipment_tokens": ("machine",),
    },
}

# Whole equipment entries (normalized) that provide every family.
FULL_GYM_ENTRIES = frozenset(["gym", "full gym", "commercial gym", "gym access", "full gym access"])

WEIGHT_NAME_KEYWORDS = ("dumbbell", "barbell", "kettlebell", "weight", "plate", "cable", "machine", "smith")

INJURY_CONTRAINDICATIONS = {
    "knee": {
        "avoid": ("squat", "lunge", "jump", "plyometric", "burpee", "pistol"),
        "examples": (
            "squats (all variations including goblet, front, back, split)",
            "lunges (walking, reverse, jumping)",
            "jump squats",
            "box jumps",
            "burpees",
            "pistol squats",
            "plyometric drills",
        ),
        "alternatives": (
            "glute bridges",
            "hip thrusts",
            "wall sits (limited depth)",
            "seated leg extensions (light weight)",
            "hamstring curls",
            "clamshells",
            "side-lying leg raises",
        ),
    },
    "lower back": {
        "avoid": (
            "deadlift",
            "good morning",
            "bent over row",
            "overhead press",
            "sit up",
            "russian twist",
            "toe touch",
            "superman",
            "hyperextension",
        ),
        "examples": (
            "deadlifts (including Romanian)",
            "good mornings",
            "bent-over rows",
            "overhead press",
            "sit-ups",
            "Russian twists",
            "toe touches",
            "supermans",
            "hyperextensions",
        ),
        "alternatives": (
            "glute bridges",
            "bird dogs",
            "dead bugs",
            "planks",
            "side planks",
            "chest-supported rows",
            "pallof press",
        ),
    },
    "shoulder": {
        "avoid": (
            "overhead press",
            "military press",
            "behind neck",
            "upright row",
            "handstand",
            "lateral raise",
            "dip",
            "pull up",
        ),
        "examples": (
            "overhead press",
            "military press",
            "behind-the-neck press",
            "upright rows",
            "handstand push-ups",
            "lateral raises",
            "dips",
            "pull-ups",
        ),
        "alternatives": (
            "landmine press",
            "neutral grip dumbbell floor press",
            "face pulls",
            "band pull-aparts",
            "scapular wall slides",
        ),
    },
    "ankle": {
        "avoid": ("jump", "plyometric", "calf raise", "burpee", "running", "sprint", "agility"),
        "examples": (
            "jumping exercises",
            "box jumps",
            "calf raises",
            "burpees",
            "running",
            "sprints",
            "agility drills",
        ),
        "alternatives": (
            "glute bridges",
            "seated dumbbell press",
            "seated leg extensions",
            "dead bugs",
            "seated rows",
        ),
    },
    "wrist": {
        "avoid": ("push up", "plank", "handstand", "burpee", "mountain climber"),
        "examples": ("push-ups", "planks", "handstands", "burpees", "mountain climbers"),
        "alternatives": ("dead bugs", "glute bridges", "wall sits", "bird dogs"),
    },
    "neck": {
        "avoid": ("overhead press", "behind neck", "headstand", "neck bridge"),
        "examples": ("overhead press", "behind-the-neck press", "headstands", "neck bridges"),
        "alternatives": ("landmine press", "glute bridges", "bird dogs", "chest-supported rows"),
    },
}


def normalize_name(value):
    """Lowercase and collapse punctuation so "Push-Ups" reads as "push ups"."""
    return re.sub(r"[^a-z0-9]+", " ", (value or "").lower()).strip()


def canonical_workout_type(value):
    """Match a workout type case-insensitively to the known set, else keep it as given."""
    text = (value or "").strip()
    if not text:
        return DEFAULT_WORKOUT_TYPE
    for known in WORKOUT_TYPES:
        if normalize_name(known) == normalize_name(text):
            return known
    return text


def is_time_based(workout_type):
    return workout_type in TIME_BASED_WORKOUT_TYPES


def workout_type_guidance(workout_type):
    return WORKOUT_TYPE_GUIDANCE.get(workout_type, WORKOUT_TYPE_GUIDANCE[DEFAULT_WORKOUT_TYPE])


def matched_injury_rules(injuries):
    """
    Return (injury, rule_key, rule) for every table entry an injury mentions.

    Each rule key is reported once even when several injuries mention it.
    """
    matched = []
    seen = set()
    for injury in injuries or ():
        normalized = normalize_name(injury)
        for key, rule in INJURY_CONTRAINDICATIONS.items():
            if key in normalized and key not in seen:
                seen.add(key)
                matched.append((injury, key, rule))
    return matched


def contraindicated_token(exercise_name, rule):
    """First avoid-token found in the exercise name, or None."""
    normalized = normalize_name(exercise_name)
    for token in rule["avoid"]:
        if token in normalized:
            return token
    return None


def excluded_family(exercise_name, workout_type):
    """Name of the excluded muscle-group family the exercise belongs to, or None."""
    normalized = normalize_name(exercise_name)
    for family in WORKOUT_TYPE_EXCLUSIONS.get(workout_type, ()):
        if any(token in normalized for token in MUSCLE_GROUP_FAMILIES[family]):
            return family
    return None


def required_equipment(exercise_name):
    """Equipment families named by an exercise. Empty means bodyweight."""
    normalized = normalize_name(exercise_name)
    return [
        family
        for family, rules in EQUIPMENT_FAMILIES.items()
        if any(token in normalized for token in rules["name_tokens"])
    ]


def has_full_gym(equipment):
    """True only when an entry names a full gym outright, not "Gym Mat" or "Gymnastic Rings"."""
    return any(normalize_name(item) in FULL_GYM_ENTRIES for item in equipment or ())


def has_equipment(family, equipment):
    if has_full_gym(equipment):
        return True
    normalized_equipment = [normalize_name(item) for item in equipment or ()]
    tokens = EQUIPMENT_FAMILIES[family]["equipment_tokens"]
    return any(token in item for item in normalized_equipment for token in tokens)


def infer_uses_weight(exercise_name):
    normalized = normalize_name(exercise_name)
    return any(keyword in normalized for keyword in WEIGHT_NAME_KEYWORDS)


def validate_rule_tables():
    """Fail fast if a table references an unknown workout type or family."""
    for workout_type, families in WORKOUT_TYPE_EXCLUSIONS.items():
        if workout_type not in WORKOUT_TYPES:
            raise ValueError(f"Exclusion table references unknown workout type: {workout_type}")
        for family in families:
            if family not in MUSCLE_GROUP_FAMILIES:
                raise ValueError(f"Exclusion table references unknown family: {family}")

    for workout_type in WORKOUT_TYPES:
        if workout_type not in WORKOUT_TYPE_GUIDANCE:
            raise ValueError(f"Missing guidance for workout type: {workout_type}")

    for key, rule in INJURY_CONTRAINDICATIONS.items():
        for field_name in ("avoid", "examples", "alternatives"):
            if not rule.get(field_name):
                raise ValueError(f"Injury rule {key} is missing {field_name}")
        for alternative in rule["alternatives"]:
            if contraindicated_token(alternative, rule):
                raise ValueError(f"Alternative '{alternative}' trips its own {key} avoid list")


validate_rule_tables()
