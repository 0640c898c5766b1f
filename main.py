#!/usr/bin/env python3
"""
Workout Generator
Command-line entry point: generate one validated workout from a request file,
or add/swap a single exercise in an existing one.
"""

import argparse
import json
import logging
import sys

from workout_generator.config import load_config
from workout_generator.errors import InvalidRequestError, WorkoutGeneratorError, public_error
from workout_generator.plan_generator import PlanGenerator
from workout_generator.result_cache import build_cache
from workout_generator.service import FileStore, QuotaTracker, add_exercise, generate_workout, swap_exercise


logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate a validated workout plan with Claude.")
    parser.add_argument("request", help="Path to a JSON workout request.")
    parser.add_argument(
        "--operation",
        choices=["generate", "add", "swap"],
        default="generate",
        help="generate a full workout (default), add one exercise, or swap one exercise.",
    )
    parser.add_argument("--user-id", type=str, default=None, help="Optional user identifier.")
    parser.add_argument("--no-cache", action="store_true", help="Skip the result cache.")
    parser.add_argument("--no-save", action="store_true", help="Do not write the plan to the output folder.")
    parser.add_argument("--config", type=str, default=None, help="Path to an alternate config.yaml.")
    return parser.parse_args(argv)


def load_request(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidRequestError(f"Could not read request file {path}: {e}") from e


def run_operation(args, config, payload):
    if args.operation == "add":
        return add_exercise(payload, PlanGenerator(config))
    if args.operation == "swap":
        return swap_exercise(payload, PlanGenerator(config))

    cache = None if args.no_cache else build_cache(config)
    generator = PlanGenerator(config, cache=cache)
    store = None if args.no_save else FileStore(config["output"]["folder"])
    entitlements = QuotaTracker(config["entitlements"]["max_generations_per_user"])

    return generate_workout(
        payload,
        generator,
        user_id=args.user_id,
        entitlements=entitlements,
        store=store,
    )


def main(argv=None):
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except WorkoutGeneratorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=config["logging"]["level"].upper(),
        format=config["logging"]["format"],
    )

    try:
        payload = load_request(args.request)
        document = run_operation(args, config, payload)
    except WorkoutGeneratorError as e:
        logger.error(f"Generation failed: {e}", extra={"event": "generation_failed"})
        print_public_error(e)
        return 1
    except Exception as e:
        # Anything outside the taxonomy still reaches the caller as a generic body.
        logger.exception(f"Unexpected generation error: {type(e).__name__}", extra={"event": "generation_failed"})
        print_public_error(e)
        return 1

    print(json.dumps(document, indent=2))
    return 0


def print_public_error(exc):
    status, body = public_error(exc)
    print(json.dumps({"status": status, **body}, indent=2), file=sys.stderr)


if __name__ == "__main__":
    sys.exit(main())
