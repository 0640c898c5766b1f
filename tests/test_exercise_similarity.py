import unittest

from workout_generator.exercise_similarity import (
    find_similar_exercises,
    is_minor_variation,
    is_similar_exercise,
    movement_key,
)


class SimilarExerciseTests(unittest.TestCase):
    def test_exact_match_ignores_case(self):
        self.assertTrue(is_similar_exercise("Bench Press", "bench press"))
        self.assertTrue(is_similar_exercise("SQUAT", "squat"))

    def test_synonyms(self):
        self.assertTrue(is_similar_exercise("Bench Press", "Chest Press"))
        self.assertTrue(is_similar_exercise("Pull-up", "Chin-up"))
        self.assertTrue(is_similar_exercise("Sit-up", "Crunch"))

    def test_equipment_variations(self):
        self.assertTrue(is_similar_exercise("Barbell Bench Press", "Dumbbell Bench Press"))
        self.assertTrue(is_similar_exercise("Barbell Row", "Dumbbell Row"))
        self.assertTrue(is_similar_exercise("Cable Fly", "Dumbbell Fly"))

    def test_angle_variations(self):
        self.assertTrue(is_similar_exercise("Incline Bench Press", "Decline Bench Press"))
        self.assertTrue(is_similar_exercise("Bench Press", "Incline Dumbbell Press"))

    def test_different_exercises(self):
        self.assertFalse(is_similar_exercise("Bench Press", "Squat"))
        self.assertFalse(is_similar_exercise("Deadlift", "Bicep Curl"))
        self.assertFalse(is_similar_exercise("Plank", "Running"))
        self.assertFalse(is_similar_exercise("Barbell Row", "Pull-up"))

    def test_different_movement_patterns(self):
        self.assertFalse(is_similar_exercise("Bench Press", "Dumbbell Fly"))
        self.assertFalse(is_similar_exercise("Squat", "Leg Press"))
        self.assertFalse(is_similar_exercise("Deadlift", "Romanian Deadlift"))
        self.assertFalse(is_similar_exercise("Leg Extension", "Leg Curl"))

    def test_plural_and_joined_spellings(self):
        self.assertEqual(movement_key("Pushups"), "push up")
        self.assertEqual(movement_key("Dumbbell Flyes"), "fly")

    def test_modifier_only_name_keeps_its_words(self):
        self.assertEqual(movement_key("Dumbbell"), "dumbbell")


class MinorVariationTests(unittest.TestCase):
    def test_contained_movement_is_a_minor_variation(self):
        self.assertTrue(is_minor_variation("Deadlift", "Romanian Deadlift"))
        self.assertTrue(is_minor_variation("Jump Squat", "Squat"))

    def test_similar_names_are_minor_variations(self):
        self.assertTrue(is_minor_variation("Barbell Row", "Dumbbell Row"))

    def test_new_movement_is_not(self):
        self.assertFalse(is_minor_variation("Barbell Row", "Pull-up"))
        self.assertFalse(is_minor_variation("Goblet Squat", "Walking Lunge"))


class FindSimilarExercisesTests(unittest.TestCase):
    def test_diverse_workout(self):
        exercises = [{"name": "Bench Press"}, {"name": "Squat"}, {"name": "Deadlift"}, {"name": "Pull-up"}]
        self.assertEqual(find_similar_exercises(exercises), [])

    def test_duplicate_pair_reports_indexes_and_names(self):
        exercises = [{"name": "Bench Press"}, {"name": "Squat"}, {"name": "bench press"}]
        self.assertEqual(find_similar_exercises(exercises), [(0, 2, "Bench Press", "bench press")])

    def test_multiple_pairs(self):
        exercises = [
            {"name": "Barbell Bench Press"},
            {"name": "Dumbbell Bench Press"},
            {"name": "Pull-up"},
            {"name": "Chin-up"},
        ]
        self.assertEqual(len(find_similar_exercises(exercises)), 2)

    def test_empty_and_single(self):
        self.assertEqual(find_similar_exercises([]), [])
        self.assertEqual(find_similar_exercises([{"name": "Bench Press"}]), [])


if __name__ == "__main__":
    unittest.main()
