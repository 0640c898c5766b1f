import copy
import unittest

from workout_generator.schema_validator import (
    backfill_uses_weight,
    build_output_schema,
    build_single_exercise_schema,
    is_valid_rep_shape,
    validate_single_exercise,
    validate_workout_json,
)
from workout_fixtures import make_exercise, make_plan


class SchemaValidatorTests(unittest.TestCase):
    def test_valid_plan_passes_without_warnings(self):
        result = validate_workout_json(make_plan(), 4, 6)
        self.assertTrue(result["valid"])
        self.assertEqual(result["errors"], [])
        self.assertEqual(result["warnings"], [])

    def test_case_insensitive_duplicate_reported_once(self):
        plan = make_plan(("Push-Up", "push-up", "Glute Bridge", "Inverted Row"))
        result = validate_workout_json(plan, 4, 6)
        duplicates = [e for e in result["errors"] if e.startswith("Duplicate exercise name")]
        self.assertEqual(len(duplicates), 1)
        self.assertFalse(result["valid"])

    def test_three_way_collision_is_one_violation(self):
        plan = make_plan(("Push-Up", "push-up", " PUSH-UP ", "Inverted Row"))
        result = validate_workout_json(plan, 4, 6)
        duplicates = [e for e in result["errors"] if e.startswith("Duplicate exercise name")]
        self.assertEqual(len(duplicates), 1)

    def test_missing_exercises_array_is_critical(self):
        result = validate_workout_json({"workoutSummary": {}}, 4, 6)
        self.assertFalse(result["valid"])
        self.assertIn("exercises", result["errors"][0])

    def test_non_object_candidate_is_critical(self):
        result = validate_workout_json(["not", "a", "plan"], 4, 6)
        self.assertFalse(result["valid"])

    def test_count_outside_bounds_is_critical(self):
        result = validate_workout_json(make_plan(), 5, 8)
        self.assertFalse(result["valid"])
        self.assertIn("outside the required range 5-8", result["errors"][0])

    def test_missing_required_field_is_critical(self):
        plan = make_plan()
        del plan["exercises"][1]["safetyTips"]
        result = validate_workout_json(plan, 4, 6)
        self.assertFalse(result["valid"])
        self.assertTrue(any("safetyTips" in e for e in result["errors"]))

    def test_wrong_type_is_critical(self):
        plan = make_plan()
        plan["exercises"][0]["sets"] = "three"
        result = validate_workout_json(plan, 4, 6)
        self.assertFalse(result["valid"])
        self.assertTrue(any("'sets' must be of type integer" in e for e in result["errors"]))

    def test_boolean_is_not_an_integer(self):
        plan = make_plan()
        plan["exercises"][0]["restSeconds"] = True
        result = validate_workout_json(plan, 4, 6)
        self.assertFalse(result["valid"])

    def test_non_positive_sets_is_critical(self):
        plan = make_plan()
        plan["exercises"][2]["sets"] = 0
        result = validate_workout_json(plan, 4, 6)
        self.assertFalse(result["valid"])
        self.assertIn("Exercise 3 (Glute Bridge): sets must be at least 1, got 0", result["errors"])

    def test_negative_rest_is_critical(self):
        plan = make_plan()
        plan["exercises"][0]["restSeconds"] = -30
        result = validate_workout_json(plan, 4, 6)
        self.assertFalse(result["valid"])
        self.assertTrue(any("restSeconds cannot be negative" in e for e in result["errors"]))

    def test_too_many_sets_is_a_warning(self):
        plan = make_plan()
        plan["exercises"][0]["sets"] = 12
        result = validate_workout_json(plan, 4, 6)
        self.assertTrue(result["valid"])
        self.assertTrue(any("outside 1-10" in w for w in result["warnings"]))

    def test_short_strings_are_warnings_only(self):
        plan = make_plan()
        plan["exercises"][0]["description"] = "Push."
        plan["exercises"][0]["formTips"] = ["Brace."]
        result = validate_workout_json(plan, 4, 6)
        self.assertTrue(result["valid"])
        self.assertEqual(len(result["warnings"]), 2)

    def test_missing_summary_is_a_warning(self):
        plan = make_plan()
        del plan["workoutSummary"]
        result = validate_workout_json(plan, 4, 6)
        self.assertTrue(result["valid"])
        self.assertIn("Workout plan is missing 'workoutSummary'", result["warnings"])

    def test_odd_rep_shape_is_a_warning(self):
        plan = make_plan()
        plan["exercises"][2]["reps"] = "AMRAP"
        result = validate_workout_json(plan, 4, 6)
        self.assertTrue(result["valid"])
        self.assertTrue(any("AMRAP" in w for w in result["warnings"]))

    def test_rep_shapes(self):
        for reps in (10, "10", "8-12", "8 - 12", "45s", "30-45s"):
            self.assertTrue(is_valid_rep_shape(reps), reps)
        for reps in ("AMRAP", "", 0, True, "to failure", None):
            self.assertFalse(is_valid_rep_shape(reps), reps)

    def test_backfill_uses_weight_does_not_mutate_input(self):
        plan = make_plan(("Dumbbell Row", "Push-Up", "Glute Bridge", "Plank Shoulder Tap"))
        for exercise in plan["exercises"]:
            del exercise["usesWeight"]
        original = copy.deepcopy(plan)

        filled = backfill_uses_weight(plan)

        self.assertEqual(plan, original)
        self.assertTrue(filled["exercises"][0]["usesWeight"])
        self.assertFalse(filled["exercises"][1]["usesWeight"])
        self.assertTrue(validate_workout_json(filled, 4, 6)["valid"])

    def test_output_schema_carries_count_bounds(self):
        schema = build_output_schema(5, 7)
        exercises = schema["properties"]["exercises"]
        self.assertEqual(exercises["minItems"], 5)
        self.assertEqual(exercises["maxItems"], 7)
        self.assertIn("usesWeight", exercises["items"]["required"])


class SingleExerciseSchemaTests(unittest.TestCase):
    def test_complete_exercise_passes(self):
        result = validate_single_exercise(make_exercise("Glute Bridge"))
        self.assertTrue(result["valid"])
        self.assertEqual(result["warnings"], [])

    def test_field_checks_match_the_plan_checks(self):
        result = validate_single_exercise(make_exercise("Glute Bridge", sets=0, formTips="Brace"))
        self.assertFalse(result["valid"])
        self.assertEqual(
            result["errors"],
            [
                "Exercise 1 (Glute Bridge): field 'formTips' must be of type string_list",
                "Exercise 1 (Glute Bridge): sets must be at least 1, got 0",
            ],
        )

    def test_non_object_is_critical(self):
        self.assertEqual(validate_single_exercise("Glute Bridge")["errors"], ["Exercise: must be a JSON object"])

    def test_single_exercise_schema_wraps_one_exercise(self):
        schema = build_single_exercise_schema()
        self.assertEqual(schema["required"], ["exercise"])
        self.assertIn("restSeconds", schema["properties"]["exercise"]["required"])


if __name__ == "__main__":
    unittest.main()
