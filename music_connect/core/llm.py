"""Client utilities for the schema-constrained generation endpoint."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, MutableMapping, Optional

import httpx


DEFAULT_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
DEFAULT_BASE_URL = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta")
_TEMPERATURE_ENV = os.getenv("LLM_TEMPERATURE")
DEFAULT_TEMPERATURE: Optional[float] = float(_TEMPERATURE_ENV) if _TEMPERATURE_ENV else None
DEFAULT_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60"))


_LOGGER = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """Raised when the endpoint fails or returns an unusable payload."""


class ConfigurationError(GenerationError):
    """Raised before any request when the generation credential is missing."""


def _api_key_from_env() -> Optional[str]:
    return os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")


def _clean_dict(payload: MutableMapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


@dataclass
class LLMClient:
    """A small wrapper around the ``generateContent`` REST API."""

    model: str = DEFAULT_MODEL
    temperature: Optional[float] = DEFAULT_TEMPERATURE
    timeout: Optional[float] = DEFAULT_TIMEOUT
    api_key: Optional[str] = field(default_factory=_api_key_from_env)
    base_url: str = DEFAULT_BASE_URL

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def generate(
        self,
        *,
        prompt: str,
        response_schema: Mapping[str, Any],
        prompt_version: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Request a strict JSON completion and return the raw response body."""

        if not self.api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY environment variable is not set; generation is unavailable"
            )

        model_name = model or self.model
        generation_config = _clean_dict(
            {
                "responseMimeType": "application/json",
                "responseSchema": dict(response_schema),
                "temperature": temperature if temperature is not None else self.temperature,
            }
        )
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }

        _LOGGER.debug(
            "Calling generateContent model %s [prompt_version=%s]",
            model_name,
            prompt_version,
        )

        request_timeout = timeout if timeout is not None else self.timeout
        request_kwargs: Dict[str, Any] = {}
        if request_timeout is not None:
            request_kwargs["timeout"] = request_timeout

        response = httpx.post(
            f"{self.base_url.rstrip('/')}/models/{model_name}:generateContent",
            json=payload,
            headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key},
            **request_kwargs,
        )
        response.raise_for_status()
        return response.json()

    @staticmethod
    def extract_text(response: Mapping[str, Any]) -> str:
        """Concatenate the text parts of the first candidate."""

        if not isinstance(response, Mapping):
            raise GenerationError("Generation response body was not a JSON object")
        candidates = response.get("candidates")
        if not candidates or not isinstance(candidates, list):
            raise GenerationError("Generation response did not contain any candidates")
        candidate = candidates[0]
        if not isinstance(candidate, Mapping):
            raise GenerationError("Generation response candidate was not a JSON object")
        content = candidate.get("content") or {}
        if not isinstance(content, Mapping):
            raise GenerationError("Generation response content was not a JSON object")
        parts = content.get("parts") or []
        if not isinstance(parts, list) or not all(isinstance(part, Mapping) for part in parts):
            raise GenerationError("Generation response parts were malformed")
        text = "".join(str(part.get("text") or "") for part in parts)
        if not text.strip():
            raise GenerationError("Generation response did not contain any text")
        return text


_default_client = LLMClient()


def get_default_client() -> LLMClient:
    return _default_client


def llm_json(
    prompt: str,
    response_schema: Mapping[str, Any],
    model: Optional[str],
    prompt_version: str,
    *,
    client: Optional[LLMClient] = None,
) -> Any:
    """Call the generation endpoint and parse its JSON payload.

    Transport failures, empty text and malformed JSON all surface as
    :class:`GenerationError`. Nothing is retried.
    """

    active = client or _default_client
    try:
        response = active.generate(
            prompt=prompt,
            response_schema=response_schema,
            prompt_version=prompt_version,
            model=model,
        )
    except httpx.TimeoutException as exc:
        raise GenerationError(f"Generation request timed out: {exc}") from exc
    except httpx.HTTPError as exc:
        raise GenerationError(f"Generation request failed: {exc}") from exc
    except ValueError as exc:
        raise GenerationError(f"Generation endpoint returned a malformed body: {exc}") from exc

    content = active.extract_text(response)
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise GenerationError(f"Generation response was not valid JSON: {exc}") from exc


__all__ = [
    "ConfigurationError",
    "GenerationError",
    "LLMClient",
    "get_default_client",
    "llm_json",
]
