"""Recycling guidance provider boundary.

The workflow only needs `await client.get_guidance(description)`. Two clients
implement it: one talks to Google Gemini directly (used by the FastAPI
backend, which owns the API key) and one talks to our own backend (used by the
Streamlit front end).
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Literal, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

import config

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GuidanceFetchError(RuntimeError):
    """Guidance could not be obtained. `cause` keeps the underlying error for diagnostics."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class ItemAnalysis(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    summary: str = Field(min_length=1)
    primary_material: Optional[str] = None
    recyclable: Literal["yes", "no", "depends"] = "depends"
    hazards: List[str] = Field(default_factory=list)

    @field_validator("recyclable", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class Guidance(BaseModel):
    """Disposal guidance for one described item."""

    model_config = ConfigDict(str_strip_whitespace=True)

    item_analysis: ItemAnalysis
    disposal_method: str = Field(min_length=1)
    instructions: List[str] = Field(min_length=1)
    preparation_tips: List[str] = Field(default_factory=list)
    alternatives: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    environmental_impact: Optional[str] = None


_RESPONSE_SHAPE = {
    "item_analysis": {
        "summary": "one or two sentences describing the item and its materials",
        "primary_material": "main material, or null",
        "recyclable": "yes | no | depends",
        "hazards": ["hazard the user should know about"],
    },
    "disposal_method": "short label, e.g. Curbside recycling, Drop-off center, Household hazardous waste, Trash",
    "instructions": ["ordered disposal step"],
    "preparation_tips": ["cleaning or disassembly tip"],
    "alternatives": ["reuse, repair, donation or take-back option"],
    "warnings": ["what not to do"],
    "environmental_impact": "one sentence on why proper disposal matters, or null",
}


def build_prompt(description: str) -> str:
    return (
        "You are a recycling and waste-disposal assistant for households.\n"
        "A user described an item they want to get rid of:\n\n"
        f"{description}\n\n"
        "Respond with ONLY a single JSON object (no markdown, no commentary) with this shape:\n"
        f"{json.dumps(_RESPONSE_SHAPE, indent=2)}\n\n"
        "Rules: keep language clear for the public; be factual; give at least one instruction; "
        "if the answer depends on local rules and a location is given, say what to check locally."
    )


_JSON_DECODER = json.JSONDecoder()


def _extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse the first JSON object found in model output, tolerating code fences.

    Decoding stops at the end of that object, so trailing prose or a second
    object after it is ignored.
    """
    stripped = (text or "").strip()
    start = stripped.find("{")
    while start != -1:
        try:
            data, _ = _JSON_DECODER.raw_decode(stripped, start)
        except ValueError:
            start = stripped.find("{", start + 1)
            continue
        return data
    return None


def validate_guidance(data: Any) -> Guidance:
    if not isinstance(data, dict):
        raise GuidanceFetchError("Guidance response is not a JSON object.")
    try:
        return Guidance.model_validate(data)
    except ValidationError as exc:
        raise GuidanceFetchError("Response lacks a recognizable guidance payload.", cause=exc) from exc


def parse_gemini_response(body: Dict[str, Any]) -> Guidance:
    """Turn a Gemini generateContent response body into Guidance."""
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        block_reason = (body.get("promptFeedback") or {}).get("blockReason") if isinstance(body, dict) else None
        detail = f" (blocked: {block_reason})" if block_reason else ""
        raise GuidanceFetchError(f"Gemini response has no candidate text{detail}.", cause=exc) from exc

    data = _extract_json_object(text)
    if data is None:
        raise GuidanceFetchError("Gemini response did not contain a JSON object.")
    return validate_guidance(data)


class GuidanceClient:
    """Base for guidance clients: blocking `fetch_guidance`, async `get_guidance`."""

    def fetch_guidance(self, description: str) -> Guidance:
        raise NotImplementedError

    async def get_guidance(self, description: str) -> Guidance:
        # The HTTP call blocks, so keep it off the event loop.
        return await asyncio.to_thread(self.fetch_guidance, description)

    @staticmethod
    def _require_description(description: str) -> str:
        text = (description or "").strip()
        if not text:
            raise GuidanceFetchError("Cannot request guidance for an empty description.")
        return text

    @staticmethod
    def _post_json(
        session: requests.Session,
        url: str,
        payload: Dict[str, Any],
        timeout: float,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        try:
            response = session.post(url, json=payload, headers=headers, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise GuidanceFetchError(f"Guidance request failed: {exc}", cause=exc) from exc
        except ValueError as exc:
            raise GuidanceFetchError("Guidance provider returned a non-JSON response.", cause=exc) from exc


class GeminiGuidanceClient(GuidanceClient):
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or config.GEMINI_MODEL
        self.timeout = config.GEMINI_TIMEOUT_SECONDS if timeout is None else timeout
        self.session = session or requests.Session()

    def fetch_guidance(self, description: str) -> Guidance:
        text = self._require_description(description)
        if not self.api_key:
            raise GuidanceFetchError("GEMINI_API_KEY is not configured.")

        payload = {
            "contents": [{"parts": [{"text": build_prompt(text)}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        logger.info("Requesting guidance from %s (%d chars)", self.model, len(text))
        body = self._post_json(
            self.session,
            GEMINI_URL.format(model=self.model),
            payload,
            self.timeout,
            headers={"x-goog-api-key": self.api_key},
        )
        return parse_gemini_response(body)


class ApiGuidanceClient(GuidanceClient):
    """Fetch guidance through the EzRecycle FastAPI backend."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 40.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url or config.API_BASE_DEFAULT
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_guidance(self, description: str) -> Guidance:
        text = self._require_description(description)
        body = self._post_json(
            self.session,
            f"{self.base_url.rstrip('/')}/guidance",
            {"description": text},
            self.timeout,
        )
        return validate_guidance(body)
