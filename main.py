"""FastAPI backend for EzRecycle Guide."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

import config
from guidance import GeminiGuidanceClient, Guidance, GuidanceClient, GuidanceFetchError
from item_form import (
    CONDITION_OPTIONS,
    MATERIAL_OPTIONS,
    SIZE_OPTIONS,
    ItemDescription,
    build_description,
    can_submit,
)
from map_view import MapDirective, map_directive
from workflow import FETCH_FAILED_MESSAGE, WIZARD_STEPS

logger = logging.getLogger(__name__)

app = FastAPI(title="EzRecycle Guide API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class GuidanceRequest(BaseModel):
    description: str = Field(min_length=1)


class DescriptionResult(BaseModel):
    description: str


class ItemGuidanceResult(BaseModel):
    description: str
    guidance: Guidance


_gemini_client: Optional[GeminiGuidanceClient] = None


def get_guidance_client() -> GuidanceClient:
    """One shared Gemini handle for the process; tests override this dependency."""
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = GeminiGuidanceClient()
    return _gemini_client


def _describe_or_400(item: ItemDescription) -> str:
    check = can_submit(item)
    if not check.ok:
        raise HTTPException(status_code=400, detail=check.message)
    return build_description(item)


async def _fetch_or_502(client: GuidanceClient, description: str) -> Guidance:
    try:
        return await client.get_guidance(description)
    except GuidanceFetchError as exc:
        logger.warning("Guidance provider failed: %s (cause: %r)", exc, exc.cause)
        raise HTTPException(status_code=502, detail=FETCH_FAILED_MESSAGE) from exc


@app.on_event("startup")
def on_startup() -> None:
    config.configure_logging()


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/options")
def get_options() -> Dict[str, List[Any]]:
    return {
        "materials": list(MATERIAL_OPTIONS),
        "sizes": list(SIZE_OPTIONS),
        "conditions": list(CONDITION_OPTIONS),
        "steps": [
            {"number": number, "key": step.key, "title": step.title, "fields": list(step.fields)}
            for number, step in enumerate(WIZARD_STEPS, start=1)
        ],
    }


@app.post("/describe", response_model=DescriptionResult)
def describe_item(item: ItemDescription) -> DescriptionResult:
    return DescriptionResult(description=_describe_or_400(item))


@app.post("/guidance", response_model=Guidance)
async def guidance_for_description(
    request: GuidanceRequest,
    client: GuidanceClient = Depends(get_guidance_client),
) -> Guidance:
    if not request.description.strip():
        raise HTTPException(status_code=400, detail="Description must not be blank.")
    return await _fetch_or_502(client, request.description)


@app.post("/guidance/item", response_model=ItemGuidanceResult)
async def guidance_for_item(
    item: ItemDescription,
    client: GuidanceClient = Depends(get_guidance_client),
) -> ItemGuidanceResult:
    description = _describe_or_400(item)
    guidance = await _fetch_or_502(client, description)
    return ItemGuidanceResult(description=description, guidance=guidance)


@app.get("/map", response_model=Optional[MapDirective])
def get_map(location: str = Query(default="", max_length=200)) -> Optional[MapDirective]:
    return map_directive(location, config.GOOGLE_MAPS_API_KEY)
