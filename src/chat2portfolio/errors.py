"""Error taxonomy surfaced at the operation boundary."""

from typing import Any, Optional


class PortfolioError(Exception):
    """Base class for every error a controller may surface to a caller."""

    kind: str = "PortfolioError"
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.raw_text = raw_text

    def to_dict(self) -> dict[str, Any]:
        """Structured error body returned to HTTP callers."""
        body: dict[str, Any] = {
            "kind": self.kind,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.raw_text is not None:
            body["rawText"] = self.raw_text
        return body


class ValidationError(PortfolioError):
    """Malformed inbound request. Nothing was mutated."""

    kind = "ValidationError"
    status_code = 400


class ProviderError(PortfolioError):
    """Generator unreachable, rate-limited or timed out."""

    kind = "ProviderError"
    status_code = 500
    retryable = True


class EnvelopeInvalid(PortfolioError):
    """Generator answered, but the answer failed parse or shape validation."""

    kind = "EnvelopeInvalid"
    status_code = 500


class ImageAnalysisError(PortfolioError):
    """Analysis of a single image failed. Recorded as a sentinel, never surfaced."""

    kind = "ImageAnalysisError"
    status_code = 500


class StoreIOError(PortfolioError):
    """Persistence read or write failure."""

    kind = "StoreIOError"
    status_code = 500


class DocumentNotFound(StoreIOError):
    """Requested key has never been committed."""

    kind = "DocumentNotFound"
    status_code = 404


class StoreConflictError(PortfolioError):
    """A concurrent commit changed a document after this operation read it."""

    kind = "StoreConflictError"
    status_code = 409
    retryable = True


class InternalError(PortfolioError):
    """Unexpected failure inside the service. Reported in the same structured form."""

    kind = "InternalError"
    status_code = 500
