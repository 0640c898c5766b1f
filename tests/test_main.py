import io
import json
import os
import sqlite3
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

import main
from workout_fixtures import make_config, make_plan


class MainTests(unittest.TestCase):
    def setUp(self):
        patchers = [
            patch("main.load_config", return_value=make_config()),
            patch("main.logging.basicConfig"),
            patch("main.logger"),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    def write_request(self, tmpdir, payload):
        path = os.path.join(tmpdir, "request.json")
        with open(path, "w") as f:
            json.dump(payload, f)
        return path

    def test_prints_accepted_document(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self.write_request(tmpdir, {"duration": 30, "goals": ["Build Muscle"]})
            stdout = io.StringIO()
            with patch("main.PlanGenerator") as generator_class:
                generator_class.return_value.generate.return_value = {"exercises": make_plan()["exercises"]}
                with redirect_stdout(stdout):
                    code = main.main([path, "--no-cache", "--no-save"])

        self.assertEqual(code, 0)
        self.assertEqual(len(json.loads(stdout.getvalue())["exercises"]), 4)

    def test_invalid_request_prints_generic_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self.write_request(tmpdir, {"experience": "Olympian"})
            stderr = io.StringIO()
            with patch("main.PlanGenerator"), redirect_stderr(stderr):
                code = main.main([path, "--no-cache", "--no-save"])

        self.assertEqual(code, 1)
        body = json.loads(stderr.getvalue())
        self.assertEqual(body["status"], 400)
        self.assertNotIn("Olympian", stderr.getvalue())

    def test_unexpected_error_prints_generic_body_without_traceback(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self.write_request(tmpdir, {"duration": 30})
            stderr = io.StringIO()
            with patch("main.PlanGenerator") as generator_class, redirect_stderr(stderr):
                generator_class.return_value.generate.side_effect = sqlite3.OperationalError("database is locked")
                code = main.main([path, "--no-cache", "--no-save"])

        self.assertEqual(code, 1)
        body = json.loads(stderr.getvalue())
        self.assertEqual(body["status"], 500)
        self.assertNotIn("database is locked", stderr.getvalue())
        self.assertNotIn("Traceback", stderr.getvalue())
        main.logger.exception.assert_called_once()

    def test_add_operation_prints_the_new_exercise(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self.write_request(tmpdir, {"currentWorkout": {"exercises": [{"name": "Push-Up"}]}})
            stdout = io.StringIO()
            with patch("main.PlanGenerator") as generator_class, redirect_stdout(stdout):
                generator_class.return_value.add_exercise.return_value = {"exercise": {"name": "Glute Bridge"}}
                code = main.main([path, "--operation", "add"])

        self.assertEqual(code, 0)
        self.assertEqual(json.loads(stdout.getvalue())["exercise"]["name"], "Glute Bridge")
        generator_class.return_value.generate.assert_not_called()

    def test_swap_without_target_is_a_bad_request(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self.write_request(tmpdir, {"currentWorkout": {"exercises": [{"name": "Push-Up"}]}})
            stderr = io.StringIO()
            with patch("main.PlanGenerator"), redirect_stderr(stderr):
                code = main.main([path, "--operation", "swap"])

        self.assertEqual(code, 1)
        self.assertEqual(json.loads(stderr.getvalue())["status"], 400)

    def test_unreadable_request_file(self):
        stderr = io.StringIO()
        with patch("main.PlanGenerator"), redirect_stderr(stderr):
            code = main.main(["/nonexistent/request.json", "--no-cache", "--no-save"])

        self.assertEqual(code, 1)
        self.assertEqual(json.loads(stderr.getvalue())["status"], 400)


if __name__ == "__main__":
    unittest.main()
