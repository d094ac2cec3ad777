"""Schemas for generator envelopes and orchestrator results."""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from chat2portfolio.schemas.documents import Profile, SiteCode


class EnvelopeKind(str, Enum):
    """Response contract expected from the generator for each operation."""

    CHAT = "chatEnvelope"
    PROFILE_AND_CODE = "profileAndCodeEnvelope"
    VISION = "visionDescription"


class ChatEnvelope(BaseModel):
    """Answer to a chat turn."""

    next_question: str = Field(alias="nextQuestion")
    updated_profile: Profile = Field(alias="updatedUserProfile")


class ProfileAndCodeEnvelope(BaseModel):
    """Answer to a site regeneration."""

    updated_profile: Profile = Field(alias="updatedUserProfile")
    updated_code: SiteCode = Field(alias="updatedCode")


class VisionDescription(BaseModel):
    """Answer to an image description request."""

    description: str


class ValidationResult(BaseModel):
    """Outcome of validating raw generator text against an envelope kind."""

    kind: EnvelopeKind
    valid: bool
    envelope: Optional[Any] = None
    reason: Optional[str] = None
    raw_text: str = ""


class GenerationResult(BaseModel):
    """
    Outcome of one orchestrator call.

    - valid: the generator answered and the envelope passed validation
    - invalid: the generator answered, the answer failed validation
    - provider_error: the generator could not be reached or timed out
    """

    status: Literal["valid", "invalid", "provider_error"]
    envelope: Optional[Any] = None
    reason: Optional[str] = None
    raw_text: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == "valid"
