"""
Configuration loading: config.yaml over built-in defaults, secrets from .env.
"""

import copy
import os

import yaml
from dotenv import load_dotenv

from workout_generator.errors import ConfigError


DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "config.yaml")

DEFAULT_CONFIG = {
    "model": {
        "name": "claude-sonnet-4-5",
        "api_key_env": "ANTHROPIC_API_KEY",
        "temperature": 0.3,
        "top_p": None,
        "max_tokens": 6000,
        "request_timeout_seconds": 60,
        "timeout_seconds": 90,
        "max_retries": 2,
    },
    "generation": {
        "max_repair_attempts": 1,
        "excellent_score": 92,
        "min_acceptable_score": 82,
        "request_budget_seconds": 120,
        "single_exercise_max_tokens": 800,
        "duration_tiers": [],
    },
    "cache": {
        "enabled": True,
        "backend": "memory",
        "path": "data/workout_cache.db",
        "ttl_hours": 48,
    },
    "entitlements": {
        "max_generations_per_user": None,
    },
    "output": {
        "folder": "output",
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
    },
}


def _merge(base, override):
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def validate_config(config):
    """Raise ConfigError when settings contradict each other."""
    model = config["model"]
    generation = config["generation"]

    if model["timeout_seconds"] >= generation["request_budget_seconds"]:
        raise ConfigError(
            "model.timeout_seconds must be shorter than generation.request_budget_seconds "
            f"({model['timeout_seconds']} >= {generation['request_budget_seconds']})"
        )

    if generation["max_repair_attempts"] < 0:
        raise ConfigError("generation.max_repair_attempts cannot be negative")

    minimum = generation["min_acceptable_score"]
    excellent = generation["excellent_score"]
    if not 0 <= minimum <= excellent <= 100:
        raise ConfigError(
            "Expected 0 <= generation.min_acceptable_score <= generation.excellent_score <= 100"
        )

    if config["cache"]["ttl_hours"] <= 0:
        raise ConfigError("cache.ttl_hours must be positive")

    if config["cache"]["backend"] not in ("memory", "sqlite"):
        raise ConfigError(f"Unknown cache.backend: {config['cache']['backend']}")

    for tier in generation.get("duration_tiers") or []:
        if "min_duration" not in tier:
            raise ConfigError("Each generation.duration_tiers entry needs a min_duration")


def load_config(path=None):
    """
    Load configuration from config.yaml merged over DEFAULT_CONFIG.

    Args:
        path: Optional config file path (defaults to config.yaml beside the package).

    Returns:
        Validated configuration dictionary.
    """
    load_dotenv()

    config_path = path or DEFAULT_CONFIG_PATH
    file_config = {}
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            file_config = yaml.safe_load(f) or {}
    elif path:
        raise ConfigError(f"Config file not found: {path}")

    config = _merge(DEFAULT_CONFIG, file_config)

    if os.getenv("WORKOUT_MODEL"):
        config["model"]["name"] = os.getenv("WORKOUT_MODEL")
    if os.getenv("WORKOUT_LOG_LEVEL"):
        config["logging"]["level"] = os.getenv("WORKOUT_LOG_LEVEL")

    validate_config(config)
    return config


def get_api_key(config):
    """Read the model API key from the environment variable named in config."""
    return os.getenv(config["model"]["api_key_env"])


def generation_params_for_duration(config, duration):
    """
    Resolve model parameters and repair budget for a workout duration.

    The highest duration tier whose min_duration <= duration overrides the
    base values.
    """
    params = {
        "temperature": config["model"]["temperature"],
        "top_p": config["model"].get("top_p"),
        "max_tokens": config["model"]["max_tokens"],
        "max_repair_attempts": config["generation"]["max_repair_attempts"],
    }

    tiers = sorted(
        config["generation"].get("duration_tiers") or [],
        key=lambda tier: tier["min_duration"],
    )
    for tier in tiers:
        if duration >= tier["min_duration"]:
            for key in ("temperature", "max_tokens", "max_repair_attempts"):
                if tier.get(key) is not None:
                    params[key] = tier[key]

    return params
