import asyncio
import json
import logging
import random
import re
from typing import Any, Dict, List, Optional

import httpx

from nutriscan.core.config import settings
from nutriscan.core.errors import UpstreamAnalysisError
from nutriscan.core.images import ImagePayload
from nutriscan.schemas.analyze import AIAnalysis

logger = logging.getLogger(__name__)

# Service endpoint for Gemini API (v1beta)
API_BASE = "https://generativelanguage.googleapis.com/v1beta"

ANALYSIS_SYSTEM_PROMPT = """Analyze the food product image and describe it as JSON matching the provided schema.

CRITICAL REQUIREMENTS:
1. The disclaimer message MUST always warn that:
   - AI-generated content may contain errors or inaccuracies
   - Users should verify information with the product packaging
   - This is an experimental tool and should not be the sole source of information
   - Official sources should be consulted for critical information (allergies, diet)

2. Status type should be:
   - "success" when nutritional info is available
   - "info" when the product is identified but no nutritional info is known
   - "warning" when the product cannot be identified with confidence

3. For action_steps, provide:
   - The official brand website, if you know it
   - Major e-commerce sites that likely sell this product
   - Additional verification steps users can take

Be concise but clear in all messages, prioritizing user safety and awareness of AI limitations.
Return ONLY valid JSON. No markdown. No code fences. No extra text.
"""

ANALYSIS_USER_PROMPT = "Analyze this product and provide detailed information."

RERANK_SYSTEM_PROMPT = (
    "Compare the uploaded product image with the database product images. "
    "Return the index (0-based) of the most visually similar product. "
    "Consider packaging design, colors, and overall appearance. "
    "Products can look alike yet differ in variant or flavor, so compare carefully. "
    "Return only the number."
)


class GeminiRequestError(Exception):
    """Non-2xx or malformed reply from generateContent. Never carries the API key."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


def _redact_key(s: str) -> str:
    """
    Redact 'key=...' in URLs or text so we never leak API keys in logs/responses.
    """
    if not s:
        return s
    return re.sub(r"(key=)([^&\s]+)", r"\1REDACTED", s)


def _get_api_key() -> str:
    key = (settings.GEMINI_API_KEY or "").strip()
    if not key:
        raise GeminiRequestError("GEMINI_API_KEY is not set")
    return key


def _model_path() -> str:
    name = (settings.GEMINI_MODEL or "").strip()
    return name if name.startswith("models/") else f"models/{name}"


def _analysis_schema() -> Dict[str, Any]:
    """
    JSON Schema for the analysis reply (mirrors AIAnalysis).
    Used by Gemini Structured Output.
    """
    nullable_str = {"type": ["string", "null"]}
    return {
        "type": "object",
        "properties": {
            "product": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "brand": {"type": "string"},
                    "category": {"type": "string"},
                    "description": {"type": "string"},
                },
                "required": ["name", "brand", "category", "description"],
            },
            "ui_content": {
                "type": "object",
                "properties": {
                    "status": {
                        "type": "object",
                        "properties": {
                            "message": {"type": "string"},
                            "type": {"type": "string", "enum": ["success", "info", "warning"]},
                        },
                        "required": ["message", "type"],
                    },
                    "details_title": {"type": "string"},
                    "nutrition_title": {"type": "string"},
                    "disclaimer": {
                        "type": "object",
                        "properties": {
                            "message": {"type": "string"},
                            "source": {"type": "string", "enum": ["catalog", "AI"]},
                            "action_steps": {
                                "type": "object",
                                "properties": {
                                    "brand_url": nullable_str,
                                    "shopping_links": {"type": ["array", "null"], "items": {"type": "string"}},
                                    "additional_info": nullable_str,
                                },
                            },
                        },
                        "required": ["message", "source"],
                    },
                },
                "required": ["status", "disclaimer"],
            },
        },
        "required": ["product", "ui_content"],
    }


def _extract_json_best_effort(text: str) -> Dict[str, Any]:
    """
    Robust JSON extraction (handles fenced blocks, extra text, etc.).
    Returns the first valid JSON object found.
    """
    # 1) Prefer fenced ```json ... ```
    fenced = re.search(r"```json\s*(\{.*?\})\s*```", text, re.DOTALL | re.IGNORECASE)
    if fenced:
        return json.loads(fenced.group(1).strip())

    # 2) Greedy outermost object (the analysis JSON is nested)
    m = re.search(r"\{.*\}", text, re.DOTALL)
    if not m:
        raise ValueError("No JSON object found in model output")
    return json.loads(m.group(0))


def _parse_reply_json(text: str) -> Dict[str, Any]:
    try:
        obj = json.loads(text)
    except ValueError:
        obj = _extract_json_best_effort(text)
    if not isinstance(obj, dict):
        raise ValueError("Model output is not a JSON object")
    return obj


def parse_index(text: Optional[str]) -> Optional[int]:
    """Leading integer of the reply (" 2." -> 2), or None."""
    m = re.match(r"\s*([+-]?\d+)", text or "")
    if not m:
        return None
    return int(m.group(1))


async def _sleep_for_retry(resp: httpx.Response, attempt: int) -> None:
    """
    Respect Retry-After header when present; otherwise exponential backoff with jitter.
    """
    max_backoff = settings.GEMINI_MAX_BACKOFF_SECONDS
    retry_after = resp.headers.get("retry-after")
    if retry_after:
        try:
            wait = max(0.5, min(float(retry_after), max_backoff))
        except ValueError:
            wait = None
        if wait is not None:
            await asyncio.sleep(wait)
            return

    base = min(max_backoff, (2 ** attempt))
    jitter = random.uniform(0.0, 0.5)
    await asyncio.sleep(base + jitter)


async def _post_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Dict[str, Any],
    json_payload: Dict[str, Any],
    max_retries: Optional[int] = None,
) -> httpx.Response:
    """
    POST with retries for 429/503. Attempts are strictly sequential.
    """
    if max_retries is None:
        max_retries = settings.GEMINI_MAX_RETRIES

    attempt = 0
    while True:
        resp = await client.post(url, params=params, json=json_payload)
        if resp.status_code in (429, 503) and attempt < max_retries:
            logger.warning("Gemini returned %s, retrying (attempt %d/%d)", resp.status_code, attempt + 1, max_retries)
            await _sleep_for_retry(resp, attempt)
            attempt += 1
            continue
        return resp


def _reply_text(data: Dict[str, Any]) -> str:
    try:
        parts = data["candidates"][0]["content"]["parts"]
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    except (KeyError, IndexError, TypeError, AttributeError):
        raise GeminiRequestError(f"Unexpected Gemini response shape; raw={json.dumps(data)[:2000]}")
    if not text.strip():
        raise GeminiRequestError("Gemini returned an empty reply")
    return text


async def generate_content(
    parts: List[Dict[str, Any]],
    *,
    system_prompt: str,
    generation_config: Dict[str, Any],
) -> str:
    """
    One generateContent call; returns the reply text.

    Raises GeminiRequestError with the key redacted from URL and body.
    """
    api_key = _get_api_key()
    url = f"{API_BASE}/{_model_path()}:generateContent"
    payload = {
        "system_instruction": {"parts": [{"text": system_prompt}]},
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": generation_config,
    }

    try:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
            r = await _post_with_retry(client, url, params={"key": api_key}, json_payload=payload)
    except httpx.HTTPError as e:
        raise GeminiRequestError(f"Gemini request failed: {_redact_key(str(e))}")

    if r.status_code >= 400:
        safe_body = _redact_key(r.text)[:2000]
        raise GeminiRequestError(
            f"Gemini request failed: {r.status_code}",
            status_code=r.status_code,
            body=safe_body,
        )

    try:
        data = r.json()
    except ValueError:
        raise GeminiRequestError("Gemini returned a non-JSON envelope", status_code=r.status_code, body=r.text[:2000])

    return _reply_text(data)


def _inline(image: ImagePayload) -> Dict[str, Any]:
    return {"inline_data": {"mime_type": image.mime_type, "data": image.b64}}


async def analyze_product_image(image: ImagePayload) -> AIAnalysis:
    """
    Ask Gemini to identify the product in `image`.

    - Uses Structured Output (response_mime_type + response_json_schema)
    - Requires a `product` object in the reply, even on HTTP 200
    - Normalizes the reply once, so every optional field is populated
    - Raises UpstreamAnalysisError on any failure
    """
    try:
        text = await generate_content(
            [{"text": ANALYSIS_USER_PROMPT}, _inline(image)],
            system_prompt=ANALYSIS_SYSTEM_PROMPT,
            generation_config={
                "response_mime_type": "application/json",
                "response_json_schema": _analysis_schema(),
                "max_output_tokens": settings.GEMINI_MAX_OUTPUT_TOKENS,
                "temperature": 0.2,
            },
        )
    except GeminiRequestError as e:
        logger.error("AI analysis failed: %s (status=%s)", e.message, e.status_code)
        raise UpstreamAnalysisError(e.message, upstream_status=e.status_code, body=e.body) from e

    try:
        obj = _parse_reply_json(text)
    except ValueError as e:
        logger.error("AI analysis returned unusable JSON: %s", text[:300])
        raise UpstreamAnalysisError(f"Could not parse model output: {e}", body=text[:2000]) from e

    if not isinstance(obj.get("product"), dict):
        raise UpstreamAnalysisError("AI analysis returned incomplete data", body=text[:2000])

    return AIAnalysis.from_payload(obj)


async def rank_by_similarity(image: ImagePayload, candidates: List[ImagePayload]) -> Optional[int]:
    """
    Index (0-based) of the candidate image closest to `image`.

    Returns None when the reply is not a number or is out of range.
    Transport errors raise GeminiRequestError; the caller decides the fallback.
    """
    if not candidates:
        return None

    parts: List[Dict[str, Any]] = [
        {
            "text": (
                "Which of these database product images "
                f"(numbered 0 to {len(candidates) - 1}) most closely matches the uploaded product image? "
                "The first image is the uploaded one."
            )
        },
        _inline(image),
    ]
    parts.extend(_inline(c) for c in candidates)

    text = await generate_content(
        parts,
        system_prompt=RERANK_SYSTEM_PROMPT,
        generation_config={
            "max_output_tokens": settings.GEMINI_RERANK_MAX_OUTPUT_TOKENS,
            "temperature": 0,
        },
    )

    index = parse_index(text)
    if index is None or not 0 <= index < len(candidates):
        logger.info("Re-ranking reply %r is not a usable index", text[:50])
        return None
    return index
