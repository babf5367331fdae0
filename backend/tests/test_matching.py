"""
Tests for core/matching.py: visual re-ranking and its first-candidate fallback.
"""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from nutriscan.core import gemini, matching
from nutriscan.core.gemini import GeminiRequestError
from nutriscan.core.images import ImagePayload
from nutriscan.schemas.catalog import CatalogProduct


def product(name: str, image_url=None) -> CatalogProduct:
    return CatalogProduct(product_name=name, image_url=image_url)


@pytest.fixture
def fetch(monkeypatch):
    mock = AsyncMock(side_effect=lambda url: ImagePayload(url.encode(), "image/jpeg"))
    monkeypatch.setattr(matching, "fetch_image", mock)
    return mock


@pytest.fixture
def model_reply(monkeypatch):
    def install(text=None, side_effect=None):
        mock = AsyncMock(return_value=text, side_effect=side_effect)
        monkeypatch.setattr(gemini, "generate_content", mock)
        return mock
    return install


@pytest.mark.asyncio
class TestChooseBestMatch:
    async def test_no_images_returns_first_without_model_call(self, image, fetch, model_reply):
        generate = model_reply("1")
        candidates = [product("A"), product("B")]

        best = await matching.choose_best_match(image, candidates)

        assert best is candidates[0]
        generate.assert_not_awaited()
        fetch.assert_not_awaited()

    async def test_model_pick_is_used(self, image, fetch, model_reply):
        model_reply("1")
        candidates = [product("A", "https://img/a"), product("B", "https://img/b")]

        best = await matching.choose_best_match(image, candidates)

        assert best is candidates[1]

    async def test_index_refers_to_candidates_with_images(self, image, fetch, model_reply):
        model_reply("1")
        candidates = [product("A"), product("B", "https://img/b"), product("C", "https://img/c")]

        best = await matching.choose_best_match(image, candidates)

        assert best is candidates[2]

    async def test_unparseable_reply_falls_back_to_first(self, image, fetch, model_reply):
        model_reply("not a number")
        candidates = [product("A", "https://img/a"), product("B", "https://img/b")]

        assert await matching.choose_best_match(image, candidates) is candidates[0]

    async def test_out_of_range_reply_falls_back_to_first(self, image, fetch, model_reply):
        model_reply("7")
        candidates = [product("A", "https://img/a"), product("B", "https://img/b")]

        assert await matching.choose_best_match(image, candidates) is candidates[0]

    async def test_model_error_falls_back_to_first(self, image, fetch, model_reply):
        model_reply(side_effect=GeminiRequestError("Gemini request failed: 500", status_code=500))
        candidates = [product("A", "https://img/a"), product("B", "https://img/b")]

        assert await matching.choose_best_match(image, candidates) is candidates[0]

    async def test_undownloadable_images_are_skipped(self, image, monkeypatch, model_reply):
        monkeypatch.setattr(
            matching, "fetch_image", AsyncMock(side_effect=[None, ImagePayload(b"c", "image/png")])
        )
        generate = model_reply("0")
        candidates = [product("A", "https://img/a"), product("B", "https://img/b")]

        best = await matching.choose_best_match(image, candidates)

        assert best is candidates[1]
        generate.assert_awaited_once()

    async def test_no_downloadable_images_returns_first(self, image, monkeypatch, model_reply):
        monkeypatch.setattr(matching, "fetch_image", AsyncMock(return_value=None))
        generate = model_reply("0")
        candidates = [product("A", "https://img/a"), product("B", "https://img/b")]

        assert await matching.choose_best_match(image, candidates) is candidates[0]
        generate.assert_not_awaited()

    async def test_empty_candidates_is_an_error(self, image):
        with pytest.raises(ValueError):
            await matching.choose_best_match(image, [])
