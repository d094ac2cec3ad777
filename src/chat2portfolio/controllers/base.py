"""Base controller: concurrency discipline and result handling shared by all operations."""

from contextlib import contextmanager, nullcontext
from typing import Any, Callable, Iterator

import structlog

from chat2portfolio.config import Settings
from chat2portfolio.errors import EnvelopeInvalid, ProviderError
from chat2portfolio.orchestrator import GenerationOrchestrator
from chat2portfolio.schemas.envelopes import GenerationResult
from chat2portfolio.store import DocumentStore
from chat2portfolio.utils.retry import with_retry

logger = structlog.get_logger(__name__)


class BaseController:
    """
    Drives one kind of operation against the store.

    Concurrency modes (settings.concurrency_mode):
    - pessimistic: the operation holds its keys from the first read to the
      commit, generator call included; concurrent operations queue up
    - optimistic: the generator runs on an unheld snapshot; the commit takes
      the hold and is refused if any key changed since the snapshot

    In both modes the commit passes the snapshot versions, so a concurrent
    committed update is always detected, never overwritten.
    """

    operation: str = "base"

    def __init__(self, store: DocumentStore, orchestrator: GenerationOrchestrator, settings: Settings):
        self.store = store
        self.orchestrator = orchestrator
        self.settings = settings

    @property
    def optimistic(self) -> bool:
        return self.settings.concurrency_mode == "optimistic"

    @contextmanager
    def _operation_hold(self, *keys: str) -> Iterator[None]:
        """Hold spanning the whole operation (pessimistic mode only)."""
        with nullcontext() if self.optimistic else self.store.hold(*keys):
            yield

    @contextmanager
    def _commit_hold(self, *keys: str) -> Iterator[None]:
        """Hold spanning only the commit (optimistic mode only)."""
        with self.store.hold(*keys) if self.optimistic else nullcontext():
            yield

    def _generate(self, request: Callable[..., GenerationResult], *args: Any) -> GenerationResult:
        """Run an orchestrator request under the configured retry policy."""
        policy = with_retry(
            max_retries=self.settings.provider_retries,
            delay_seconds=self.settings.provider_retry_delay,
        )
        return policy(request)(*args)

    def _raise_for_result(self, result: GenerationResult) -> None:
        """Turn a non-valid result into the matching operation error."""
        if result.status == "provider_error":
            logger.error("Operation failed, generator unavailable", operation=self.operation, reason=result.reason)
            raise ProviderError(result.reason or "Generator unavailable")
        if result.status == "invalid":
            logger.error("Operation failed, invalid generator answer", operation=self.operation, reason=result.reason)
            raise EnvelopeInvalid(
                f"Generator returned an invalid answer: {result.reason}",
                raw_text=result.raw_text,
            )

    def _warn_dropped_fields(self, before: dict[str, Any], after: dict[str, Any]) -> None:
        """The updated profile replaces the old one whole; log fields it leaves out."""
        dropped = sorted(set(before) - set(after))
        if dropped:
            logger.warning("Profile update drops existing fields", operation=self.operation, fields=dropped)
