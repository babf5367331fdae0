"""
Shared pytest fixtures.

No test talks to Gemini or Open Food Facts: network collaborators are
patched per test, and settings get a dummy key with retries disabled.
"""
from __future__ import annotations

import httpx
import pytest

from nutriscan.core.config import settings
from nutriscan.core.images import ImagePayload


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(settings, "GEMINI_MODEL", "gemini-test")
    monkeypatch.setattr(settings, "GEMINI_MAX_RETRIES", 0)
    monkeypatch.setattr(settings, "OFF_BASE_URL", "https://off.test")
    yield settings


@pytest.fixture
def image() -> ImagePayload:
    return ImagePayload(data=b"\xff\xd8\xff\xe0fake-jpeg", mime_type="image/jpeg")


@pytest.fixture
def ai_payload() -> dict:
    return {
        "product": {
            "name": "Choco Bar",
            "brand": "Acme",
            "category": "Snacks",
            "description": "Milk chocolate bar with hazelnuts",
        },
        "ui_content": {
            "status": {"message": "Identified a chocolate bar", "type": "info"},
            "details_title": "About this snack",
            "nutrition_title": "Nutrition",
            "disclaimer": {
                "message": "AI-generated, please verify with the packaging.",
                "source": "OpenFoodFacts",
                "action_steps": {
                    "brand_url": "https://acme.example",
                    "shopping_links": ["https://shop.example/choco"],
                    "additional_info": None,
                },
            },
        },
    }


@pytest.fixture
def off_record() -> dict:
    return {
        "code": "1234567890123",
        "product_name": "Acme Choco Bar",
        "brands": "Acme",
        "quantity": "45 g",
        "categories": "Snacks, Sweet snacks, Chocolates",
        "nutrition_grades": "e",
        "ingredients_text": "sugar, cocoa butter, hazelnuts, milk powder",
        "image_url": "https://images.off.test/acme-choco.jpg",
        "stores": "Big Mart",
        "packaging": "Plastic wrapper",
        "generic_name": "Chocolate bar",
        "nutriments": {
            "energy-kcal_100g": 540,
            "proteins_100g": 7.1,
            "carbohydrates_100g": 56,
            "fat_100g": 31,
            "fiber_100g": 3.2,
            "sugars_100g": 50,
            "saturated-fat_100g": 18,
            "energy-kcal_serving": 243,
            "proteins_serving": 3.2,
            "carbohydrates_serving": 25.2,
            "fat_serving": 14,
        },
    }


@pytest.fixture
def mock_http(monkeypatch):
    """
    Route every httpx.AsyncClient created by the code under test through
    a MockTransport. Returns the list of captured requests.
    """
    def install(handler):
        captured = []
        real_client = httpx.AsyncClient

        def recording_handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return handler(request)

        def factory(*args, **kwargs):
            kwargs["transport"] = httpx.MockTransport(recording_handler)
            return real_client(*args, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", factory)
        return captured

    return install
