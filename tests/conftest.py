"""
Pytest configuration and fixtures for EzRecycle Guide tests
"""
import asyncio
import os
import sys

import pytest
from fastapi.testclient import TestClient

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from guidance import Guidance, GuidanceFetchError
from item_form import ItemDescription
from main import app, get_guidance_client


SAMPLE_GUIDANCE = {
    "item_analysis": {
        "summary": "A clear PET plastic drink bottle.",
        "primary_material": "PET plastic",
        "recyclable": "yes",
        "hazards": [],
    },
    "disposal_method": "Curbside recycling",
    "instructions": ["Empty the bottle", "Put the cap back on", "Place it in the recycling bin"],
    "preparation_tips": ["Rinse out any residue"],
    "alternatives": ["Reuse it as a watering can"],
    "warnings": ["Do not bag recyclables"],
    "environmental_impact": "Recycled PET keeps new plastic out of production.",
}


class FakeGuidanceClient:
    """Test double for the guidance provider boundary."""

    def __init__(self, guidance=None, error=None):
        self.guidance = guidance
        self.error = error
        self.descriptions = []

    async def get_guidance(self, description):
        self.descriptions.append(description)
        if self.error is not None:
            raise self.error
        return self.guidance


class GatedGuidanceClient:
    """Holds every request open until the test releases it."""

    def __init__(self, guidance=None, error=None):
        self.guidance = guidance
        self.error = error
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0

    async def get_guidance(self, description):
        self.calls += 1
        self.started.set()
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.guidance


@pytest.fixture
def sample_guidance():
    return Guidance.model_validate(SAMPLE_GUIDANCE)


@pytest.fixture
def sample_item():
    return ItemDescription(item_name="Bottle", materials=("Plastic",), user_location="10001")


@pytest.fixture
def fake_client(sample_guidance):
    return FakeGuidanceClient(guidance=sample_guidance)


@pytest.fixture
def failing_client():
    return FakeGuidanceClient(error=GuidanceFetchError("provider down", cause=ConnectionError("boom")))


@pytest.fixture
def api_client(fake_client):
    """FastAPI test client with the Gemini dependency replaced"""
    app.dependency_overrides[get_guidance_client] = lambda: fake_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
