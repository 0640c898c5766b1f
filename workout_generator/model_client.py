"""
Anthropic client adapter for workout generation.

Transient failures (429, 5xx, connection errors) are retried with exponential
backoff by the SDK itself (max_retries). This adapter adds a hard wall-clock
timeout per call and reduces every content problem to a ModelResponse with no
parsed object, so the generation loop decides what happens next.
"""

import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import dataclass
from typing import Any, Optional

import anthropic

from workout_generator.config import get_api_key
from workout_generator.errors import ConfigError, ModelClientError


logger = logging.getLogger(__name__)

TOOL_NAME = "submit_workout"
TRANSIENT_STATUS_CODES = (408, 409, 429)

EMPTY = "empty"
MALFORMED = "malformed"
TIMEOUT = "timeout"
TRANSIENT = "transient"


@dataclass
class ModelResponse:
    """One model call's result: a parsed object, or the reason there is none."""

    parsed: Any = None
    raw_text: str = ""
    failure: Optional[str] = None
    detail: str = ""
    status_code: Optional[int] = None

    @property
    def ok(self):
        return self.failure is None

    @property
    def infrastructure_failure(self):
        return self.failure in (TIMEOUT, TRANSIENT)


def strip_code_fences(text):
    text = (text or "").strip()
    if text.startswith("```"):
        text = re.sub(r"^```\w*\n?", "", text)
        text = re.sub(r"\n?```$", "", text)
        text = text.strip()
    return text


def parse_message(message):
    """
    Extract the plan object from an Anthropic message.

    Prefers the forced tool call's input; falls back to JSON in text blocks.
    """
    texts = []
    for block in getattr(message, "content", None) or []:
        block_type = getattr(block, "type", None)
        if block_type == "tool_use" and getattr(block, "name", TOOL_NAME) == TOOL_NAME:
            payload = block.input
            return ModelResponse(parsed=payload, raw_text=json.dumps(payload))
        if block_type == "text" and getattr(block, "text", None):
            texts.append(block.text)

    text = strip_code_fences("\n".join(texts))
    if not text:
        return ModelResponse(failure=EMPTY, detail="Model returned an empty response")

    try:
        return ModelResponse(parsed=json.loads(text), raw_text=text)
    except json.JSONDecodeError as e:
        return ModelResponse(raw_text=text, failure=MALFORMED, detail=f"Response is not valid JSON: {e.msg}")


class ModelClient:
    """Calls Claude with a schema-constrained tool and a hard timeout."""

    def __init__(self, config, client=None):
        """
        Args:
            config: Full configuration dictionary.
            client: Optional pre-built anthropic.Anthropic (tests inject a mock).
        """
        model_config = config["model"]
        if client is None:
            api_key = get_api_key(config)
            if not api_key:
                raise ConfigError(f"{model_config['api_key_env']} is not set")
            client = anthropic.Anthropic(
                api_key=api_key,
                timeout=model_config["request_timeout_seconds"],
                max_retries=model_config["max_retries"],
            )
        self.client = client
        self.model = model_config["name"]
        self.timeout_seconds = model_config["timeout_seconds"]

    def _request_kwargs(self, system_message, messages, output_schema, params):
        kwargs = {
            "model": self.model,
            "max_tokens": params["max_tokens"],
            "temperature": params["temperature"],
            "system": system_message,
            "messages": messages,
            "tools": [
                {
                    "name": TOOL_NAME,
                    "description": "Submit the complete workout plan.",
                    "input_schema": output_schema,
                }
            ],
            "tool_choice": {"type": "tool", "name": TOOL_NAME},
        }
        if params.get("top_p") is not None:
            kwargs["top_p"] = params["top_p"]
        return kwargs

    def generate(self, system_message, messages, output_schema, params):
        """
        Make one model call.

        Args:
            system_message: System prompt.
            messages: Conversation list (user/assistant turns).
            output_schema: JSON Schema for the plan tool.
            params: dict with temperature, top_p, max_tokens.

        Returns:
            ModelResponse

        Raises:
            ModelClientError: non-transient API failure (auth, bad request).
        """
        kwargs = self._request_kwargs(system_message, messages, output_schema, params)

        pool = ThreadPoolExecutor(max_workers=1)
        future = pool.submit(self.client.messages.create, **kwargs)
        try:
            message = future.result(timeout=self.timeout_seconds)
        except FuturesTimeout:
            # The in-flight request is abandoned, not cancelled.
            logger.warning(
                f"Model call exceeded {self.timeout_seconds}s",
                extra={"event": "model_timeout", "timeout_seconds": self.timeout_seconds},
            )
            return ModelResponse(failure=TIMEOUT, detail=f"Model call timed out after {self.timeout_seconds}s")
        except anthropic.APITimeoutError as e:
            return self._transient(e, status_code=408)
        except anthropic.APIConnectionError as e:
            return self._transient(e)
        except anthropic.APIStatusError as e:
            if e.status_code in TRANSIENT_STATUS_CODES or e.status_code >= 500:
                return self._transient(e, status_code=e.status_code)
            raise ModelClientError(
                f"Model API error ({e.status_code})", transient=False, status_code=e.status_code
            ) from e
        finally:
            pool.shutdown(wait=False)

        return parse_message(message)

    def _transient(self, error, status_code=None):
        logger.warning(
            f"Transient model error after retries: {type(error).__name__}",
            extra={"event": "transient_model_error", "status_code": status_code},
        )
        return ModelResponse(
            failure=TIMEOUT if status_code == 408 else TRANSIENT,
            detail=type(error).__name__,
            status_code=status_code,
        )
