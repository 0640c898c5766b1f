import unittest

from workout_generator.personalization import (
    completion_rate,
    compute_next_scalar,
    progression_note,
    recent_completion,
    resolve_progression,
    update_state,
)
from workout_generator.models import RecentWorkout
from workout_fixtures import make_request


class ScalarTests(unittest.TestCase):
    def test_feedback_adjustments(self):
        self.assertAlmostEqual(compute_next_scalar(1.0, "easy"), 1.1)
        self.assertAlmostEqual(compute_next_scalar(1.0, "hard"), 0.9)
        self.assertAlmostEqual(compute_next_scalar(1.0, "right"), 1.02)

    def test_completion_bias(self):
        self.assertAlmostEqual(compute_next_scalar(1.0, "right", 0.5), 0.97)
        self.assertAlmostEqual(compute_next_scalar(1.0, "right", 0.95), 1.07)
        self.assertAlmostEqual(compute_next_scalar(1.0, "right", 0.75), 1.02)

    def test_scalar_is_clamped(self):
        self.assertEqual(compute_next_scalar(1.38, "easy", 0.95), 1.4)
        self.assertEqual(compute_next_scalar(0.62, "hard", 0.2), 0.6)

    def test_completion_rate_from_logged_weights(self):
        workouts = [
            {"exercises": [{"sets": 3, "weights": {"1": 20, "2": None, "3": None}}]},
            {"exercises": [{"sets": 2}]},
        ]
        self.assertAlmostEqual(completion_rate(workouts), 3 / 5)

    def test_completion_rate_defaults_without_data(self):
        self.assertEqual(completion_rate([]), 0.8)
        self.assertEqual(completion_rate([{"exercises": []}]), 0.8)


class ProgressionNoteTests(unittest.TestCase):
    def test_without_feedback(self):
        self.assertEqual(progression_note(1.0, 1.1, None), "Increase difficulty ~10% safely")
        self.assertEqual(progression_note(1.0, 0.9, None), "Decrease difficulty ~10% safely")
        self.assertEqual(progression_note(1.0, 1.0, None), "Maintain baseline difficulty")

    def test_with_feedback(self):
        self.assertEqual(
            progression_note(1.0, 1.1, "easy"),
            "user rated last workout too easy; increase difficulty ~10% safely",
        )
        self.assertEqual(
            progression_note(1.0, 1.005, "right"),
            "user rated last workout just right; maintain current difficulty level",
        )


class ResolveProgressionTests(unittest.TestCase):
    def test_missing_state_is_neutral(self):
        request = make_request()
        self.assertIs(resolve_progression(request, None), request)

    def test_malformed_state_is_neutral(self):
        request = make_request()
        with self.assertLogs("workout_generator.personalization", level="WARNING"):
            resolved = resolve_progression(request, {"difficultyScalar": "high"})
        self.assertIs(resolved, request)

    def test_state_fills_intensity_and_note(self):
        state = update_state({"difficultyScalar": 1.0}, "easy", 0.8)
        resolved = resolve_progression(make_request(), state)
        self.assertEqual(resolved.target_intensity, 1.1)
        self.assertEqual(resolved.progression_note, "user rated last workout too easy; increase difficulty ~10% safely")

    def test_request_values_win(self):
        request = make_request(target_intensity=0.9, progression_note="Keep it light")
        resolved = resolve_progression(request, {"difficultyScalar": 1.3, "lastFeedback": "easy"})
        self.assertEqual(resolved.target_intensity, 0.9)
        self.assertEqual(resolved.progression_note, "Keep it light")

    def test_latest_feedback_drives_scalar_without_stored_state(self):
        recent = (
            RecentWorkout("Full Body", ("Push-Up",), completion_rate=0.95, feedback="easy"),
            RecentWorkout("Full Body", ("Glute Bridge",), completion_rate=0.95, feedback="hard"),
        )
        resolved = resolve_progression(make_request(recent_workouts=recent), None)

        self.assertEqual(resolved.target_intensity, 1.15)
        self.assertEqual(resolved.progression_note, "user rated last workout too easy; increase difficulty ~15% safely")

    def test_low_completion_biases_history_scalar_down(self):
        recent = (RecentWorkout("Full Body", completion_rate=0.5, feedback="right"),)
        resolved = resolve_progression(make_request(recent_workouts=recent), None)
        self.assertEqual(resolved.target_intensity, 0.97)

    def test_stored_state_wins_over_history(self):
        recent = (RecentWorkout("Full Body", feedback="easy"),)
        resolved = resolve_progression(make_request(recent_workouts=recent), {"difficultyScalar": 0.8})
        self.assertEqual(resolved.target_intensity, 0.8)

    def test_history_without_feedback_stays_neutral(self):
        request = make_request(recent_workouts=(RecentWorkout("Full Body", completion_rate=0.3),))
        self.assertIs(resolve_progression(request, None), request)

    def test_recent_completion_averages_reported_rates(self):
        recent = [RecentWorkout("Full Body", completion_rate=rate) for rate in (0.5, None, 1.0)]
        self.assertAlmostEqual(recent_completion(recent), 0.75)
        self.assertIsNone(recent_completion([RecentWorkout("Full Body")]))

    def test_update_state_does_not_mutate_input(self):
        state = {"difficultyScalar": 1.0}
        updated = update_state(state, "hard", 0.5)
        self.assertEqual(state, {"difficultyScalar": 1.0})
        self.assertAlmostEqual(updated["difficultyScalar"], 0.85)
        self.assertEqual(updated["lastFeedback"], "hard")


if __name__ == "__main__":
    unittest.main()
