import json
import os
import tempfile
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

from workout_generator.errors import GenerationRejectedError, InvalidRequestError, QuotaExceededError
from workout_generator.service import FileStore, QuotaTracker, add_exercise, generate_workout, save_plan, swap_exercise


DOCUMENT = {"exercises": [{"name": "Push-Up"}], "workoutSummary": {}, "metadata": {"repairAttempts": 0}}


class GenerateWorkoutTests(unittest.TestCase):
    def setUp(self):
        self.generator = MagicMock()
        self.generator.generate.return_value = DOCUMENT

    def test_accepted_plan_is_recorded_and_stored(self):
        entitlements = QuotaTracker(max_generations=3)
        store = MagicMock()

        document = generate_workout(
            {"duration": 30}, self.generator, user_id="user-123456789", entitlements=entitlements, store=store
        )

        self.assertEqual(document, DOCUMENT)
        self.assertEqual(entitlements.used("user-123456789"), 1)
        store.save.assert_called_once_with("user-123456789", DOCUMENT)

    def test_quota_checked_before_any_model_call(self):
        entitlements = QuotaTracker(max_generations=0)

        with self.assertRaises(QuotaExceededError):
            generate_workout({}, self.generator, user_id="user-1", entitlements=entitlements)
        self.generator.generate.assert_not_called()

    def test_rejected_plan_is_never_stored_or_counted(self):
        self.generator.generate.side_effect = GenerationRejectedError("rejected", [["x"]], 2)
        entitlements = QuotaTracker(max_generations=3)
        store = MagicMock()

        with self.assertRaises(GenerationRejectedError):
            generate_workout({}, self.generator, user_id="user-1", entitlements=entitlements, store=store)

        store.save.assert_not_called()
        self.assertEqual(entitlements.used("user-1"), 0)

    def test_personalization_failure_degrades_to_neutral(self):
        personalization = MagicMock()
        personalization.get_state.side_effect = RuntimeError("store offline")

        with self.assertLogs("workout_generator.service", level="WARNING"):
            generate_workout({}, self.generator, user_id="user-1", personalization=personalization)

        request = self.generator.generate.call_args.args[0]
        self.assertIsNone(request.target_intensity)
        self.assertEqual(request.progression_note, "")

    def test_personalization_state_reaches_the_request(self):
        personalization = MagicMock()
        personalization.get_state.return_value = {"difficultyScalar": 0.9, "lastFeedback": "hard"}

        generate_workout({}, self.generator, user_id="user-1", personalization=personalization)

        request = self.generator.generate.call_args.args[0]
        self.assertEqual(request.target_intensity, 0.9)
        self.assertIn("too hard", request.progression_note)

    def test_slot_is_held_while_generation_is_in_flight(self):
        entitlements = QuotaTracker(max_generations=1)
        overlapping = []

        def generate(request):
            with self.assertRaises(QuotaExceededError):
                generate_workout({}, MagicMock(), user_id="user-1", entitlements=entitlements)
            overlapping.append(True)
            return DOCUMENT

        self.generator.generate.side_effect = generate
        generate_workout({}, self.generator, user_id="user-1", entitlements=entitlements)

        self.assertEqual(overlapping, [True])
        self.assertEqual(entitlements.used("user-1"), 1)

    def test_concurrent_requests_never_exceed_quota(self):
        entitlements = QuotaTracker(max_generations=3)
        outcomes = []

        def request_once():
            try:
                generate_workout({}, self.generator, user_id="user-1", entitlements=entitlements)
                outcomes.append("ok")
            except QuotaExceededError:
                outcomes.append("quota")

        with ThreadPoolExecutor(max_workers=8) as pool:
            for _ in range(10):
                pool.submit(request_once)

        self.assertEqual(outcomes.count("ok"), 3)
        self.assertEqual(outcomes.count("quota"), 7)
        self.assertEqual(entitlements.used("user-1"), 3)

    def test_unlimited_quota(self):
        tracker = QuotaTracker()
        for _ in range(5):
            tracker.reserve("user-1")
        self.assertEqual(tracker.used("user-1"), 5)
        tracker.release("user-1")
        self.assertEqual(tracker.used("user-1"), 4)


class ExerciseEditTests(unittest.TestCase):
    def setUp(self):
        self.generator = MagicMock()
        self.payload = {
            "workoutType": "Upper Body",
            "equipment": ["Dumbbells"],
            "currentWorkout": {"exercises": [{"name": "Push-Up"}, {"name": "Dumbbell Row"}]},
            "exerciseToReplace": {"name": "Dumbbell Row", "sets": 3},
        }

    def test_add_passes_request_and_current_exercises(self):
        add_exercise(self.payload, self.generator)

        request, current = self.generator.add_exercise.call_args[0]
        self.assertEqual(request.workout_type, "Upper Body")
        self.assertEqual(request.equipment, ("Dumbbells",))
        self.assertEqual([e["name"] for e in current], ["Push-Up", "Dumbbell Row"])

    def test_swap_passes_the_exercise_to_replace(self):
        swap_exercise(self.payload, self.generator)

        _, _, replaced = self.generator.swap_exercise.call_args[0]
        self.assertEqual(replaced, {"name": "Dumbbell Row", "sets": 3})

    def test_swap_without_target_never_calls_the_model(self):
        del self.payload["exerciseToReplace"]

        with self.assertRaises(InvalidRequestError):
            swap_exercise(self.payload, self.generator)
        self.generator.swap_exercise.assert_not_called()


class SavePlanTests(unittest.TestCase):
    def test_save_plan_writes_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            folder = os.path.join(tmpdir, "output")
            path = save_plan(DOCUMENT, folder, user_id="abcdefghijkl")

            self.assertTrue(os.path.basename(path).startswith("workout_abcdefgh_"))
            with open(path, "r") as f:
                self.assertEqual(json.load(f), DOCUMENT)

    def test_file_store_delegates_to_save_plan(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = FileStore(tmpdir).save(None, DOCUMENT)
            self.assertTrue(os.path.exists(path))
            self.assertTrue(os.path.basename(path).startswith("workout_"))


if __name__ == "__main__":
    unittest.main()
