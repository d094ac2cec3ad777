"""Utility modules for chat2portfolio."""

from chat2portfolio.utils.file_utils import is_image_mime, unique_blob_name
from chat2portfolio.utils.llm_client import OpenAIGenerator
from chat2portfolio.utils.logging_setup import setup_logging
from chat2portfolio.utils.retry import with_retry

__all__ = [
    "OpenAIGenerator",
    "is_image_mime",
    "setup_logging",
    "unique_blob_name",
    "with_retry",
]
