import base64
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import UploadFile

from nutriscan.core.config import settings
from nutriscan.core.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes plus the MIME type we tell the model about."""
    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")


def resolve_mime_type(content_type: Optional[str]) -> str:
    """Keep declared image/* types, strip parameters, default to JPEG."""
    if not content_type:
        return DEFAULT_MIME_TYPE
    mime = content_type.split(";", 1)[0].strip().lower()
    if not mime.startswith("image/"):
        return DEFAULT_MIME_TYPE
    return mime


async def read_upload(upload: Optional[UploadFile]) -> ImagePayload:
    """
    Turn the multipart `image` field into an ImagePayload.

    Raises ValidationError when no file (or an empty one) was sent.
    """
    if upload is None or isinstance(upload, str):
        raise ValidationError("No image provided")

    data = await upload.read()
    if not data:
        raise ValidationError("No image provided")

    return ImagePayload(data=data, mime_type=resolve_mime_type(upload.content_type))


async def fetch_image(url: str) -> Optional[ImagePayload]:
    """
    Download a catalog image so it can be sent inline.

    Best-effort: returns None (and logs) on any failure.
    """
    try:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS, follow_redirects=True) as client:
            r = await client.get(url, headers={"User-Agent": settings.OFF_USER_AGENT})
            r.raise_for_status()
            data = r.content
            content_type = r.headers.get("content-type")
    except Exception as e:
        logger.warning("Could not download candidate image %s: %s", url, e)
        return None

    if not data:
        logger.warning("Candidate image %s was empty", url)
        return None

    return ImagePayload(data=data, mime_type=resolve_mime_type(content_type))
