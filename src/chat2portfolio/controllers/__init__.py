"""Controllers driving chat turns, site regeneration and image ingestion."""

from chat2portfolio.controllers.base import BaseController
from chat2portfolio.controllers.conversation import ChatOutcome, ConversationController
from chat2portfolio.controllers.images import ImageBatchOutcome, ImageIngestionController, UploadedImage
from chat2portfolio.controllers.regeneration import RegenerationController, RegenerationOutcome

__all__ = [
    "BaseController",
    "ChatOutcome",
    "ConversationController",
    "ImageBatchOutcome",
    "ImageIngestionController",
    "UploadedImage",
    "RegenerationController",
    "RegenerationOutcome",
]
