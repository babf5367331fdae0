from typing import Any, Dict, Optional


class NutriScanError(Exception):
    """
    Base for every error the API turns into a JSON body.

    `message` becomes the "error" field, `details` (when present) the
    "details" field.
    """
    status_code: int = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message if details is None else f"{message}: {details}")
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(NutriScanError):
    """The request itself is unusable (e.g. no image)."""
    status_code = 400


class UpstreamAnalysisError(NutriScanError):
    """The vision model call failed or returned unusable JSON."""
    status_code = 500

    def __init__(
        self,
        details: str,
        *,
        upstream_status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__("AI analysis failed", details)
        self.upstream_status = upstream_status
        self.body = body


class ProcessingError(NutriScanError):
    """Anything unexpected that escaped the local fallbacks."""
    status_code = 500

    def __init__(self, details: str):
        super().__init__("Failed to process image", details)
