"""Conversation/profile controller: one chat turn as one logical unit."""

from typing import Any

import structlog
from pydantic import BaseModel

from chat2portfolio.controllers.base import BaseController
from chat2portfolio.errors import ValidationError
from chat2portfolio.schemas.documents import ConversationTurn, default_profile
from chat2portfolio.store import HISTORY, PROFILE

logger = structlog.get_logger(__name__)


class ChatOutcome(BaseModel):
    """Committed result of a chat turn."""

    reply: str
    chat_history: list[dict[str, Any]]
    user_profile: dict[str, Any]


class ConversationController(BaseController):
    """
    Chat turn lifecycle:

    Received -> HistoryAppended -> GeneratorInvoked -> Validated -> Committed
                                                    -> Invalid   -> RolledBack

    The appended turn lives only in memory until the commit. History and
    profile are committed together; on any failure neither changes.

    The generator's profile replaces the stored profile whole. It is not
    merged: a field the generator leaves out is gone.
    """

    operation = "chat"

    def chat(self, message: Any) -> ChatOutcome:
        """
        Run one chat turn.

        Args:
            message: The user's message; must be a non-empty string

        Returns:
            ChatOutcome with the bot reply and the committed documents

        Raises:
            ValidationError: message missing, not a string, or blank
            ProviderError: generator unreachable or timed out
            EnvelopeInvalid: generator answer failed validation
            StoreIOError / StoreConflictError: commit failed or was refused
        """
        if not isinstance(message, str) or not message.strip():
            raise ValidationError("'message' must be a non-empty string")

        with self._operation_hold(HISTORY, PROFILE):
            snapshot = self.store.snapshot(HISTORY, PROFILE)
            profile = snapshot[PROFILE]

            # HistoryAppended (uncommitted)
            history = list(snapshot[HISTORY])
            history.append(ConversationTurn(user=message).model_dump())

            result = self._generate(self.orchestrator.request_chat_turn, history, profile)
            self._raise_for_result(result)

            envelope = result.envelope
            history[-1]["bot"] = envelope.next_question
            self._warn_dropped_fields(profile, envelope.updated_profile)

            with self._commit_hold(HISTORY, PROFILE):
                self.store.put_batch(
                    {HISTORY: history, PROFILE: envelope.updated_profile},
                    expected_versions=snapshot.versions,
                )

        logger.info("Chat turn committed", turns=len(history), reply_length=len(envelope.next_question))
        return ChatOutcome(
            reply=envelope.next_question,
            chat_history=history,
            user_profile=envelope.updated_profile,
        )

    def reset(self) -> None:
        """Restore an empty history and the canonical default profile. Idempotent."""
        with self.store.hold(HISTORY, PROFILE):
            self.store.put_batch({HISTORY: [], PROFILE: default_profile()})
        logger.info("History and profile reset")

    def history(self) -> list[dict[str, Any]]:
        return self.store.get(HISTORY)

    def profile(self) -> dict[str, Any]:
        return self.store.get(PROFILE)
