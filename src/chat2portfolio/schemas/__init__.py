"""Schemas for documents and generator envelopes."""

from chat2portfolio.schemas.documents import (
    ANALYSIS_FAILED,
    DEFAULT_PROFILE,
    PLACEHOLDER_CODE,
    SITE_FILENAMES,
    ConversationTurn,
    ImageRecord,
    Profile,
    SiteCode,
    default_profile,
)
from chat2portfolio.schemas.envelopes import (
    ChatEnvelope,
    EnvelopeKind,
    GenerationResult,
    ProfileAndCodeEnvelope,
    ValidationResult,
    VisionDescription,
)

__all__ = [
    "ANALYSIS_FAILED",
    "DEFAULT_PROFILE",
    "PLACEHOLDER_CODE",
    "SITE_FILENAMES",
    "ConversationTurn",
    "ImageRecord",
    "Profile",
    "SiteCode",
    "default_profile",
    "ChatEnvelope",
    "EnvelopeKind",
    "GenerationResult",
    "ProfileAndCodeEnvelope",
    "ValidationResult",
    "VisionDescription",
]
