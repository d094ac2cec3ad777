"""Code regeneration controller: rebuild the three-file site from profile and history."""

import structlog
from pydantic import BaseModel

from chat2portfolio.controllers.base import BaseController
from chat2portfolio.schemas.documents import PLACEHOLDER_CODE, SiteCode
from chat2portfolio.store import CODE, HISTORY, PROFILE

logger = structlog.get_logger(__name__)

PREVIEW_URL = "/portfolio/index.html"


class RegenerationOutcome(BaseModel):
    """Committed result of a site regeneration."""

    message: str
    preview_url: str
    code: SiteCode


class RegenerationController(BaseController):
    """
    Full-site regeneration.

    The updated profile and all three site files are committed as one batch,
    so a reader of the site never sees markup from one generation next to a
    script from another. On failure the previous site stays servable.
    """

    operation = "regenerate"

    def ensure_code(self) -> dict[str, str]:
        """Bootstrap the placeholder site if none is stored. No-op otherwise."""
        return self.store.ensure(CODE, PLACEHOLDER_CODE.model_dump)

    def regenerate(self) -> RegenerationOutcome:
        """
        Regenerate the site.

        Raises:
            ProviderError: generator unreachable or timed out
            EnvelopeInvalid: generator answer failed validation
            StoreIOError / StoreConflictError: commit failed or was refused
        """
        self.ensure_code()

        with self._operation_hold(HISTORY, PROFILE, CODE):
            snapshot = self.store.snapshot(PROFILE, HISTORY, CODE)

            result = self._generate(
                self.orchestrator.request_regeneration,
                snapshot[PROFILE],
                snapshot[HISTORY],
                snapshot[CODE],
            )
            self._raise_for_result(result)

            envelope = result.envelope
            self._warn_dropped_fields(snapshot[PROFILE], envelope.updated_profile)

            with self._commit_hold(HISTORY, PROFILE, CODE):
                self.store.put_batch(
                    {
                        PROFILE: envelope.updated_profile,
                        CODE: envelope.updated_code.model_dump(),
                    },
                    expected_versions=snapshot.versions,
                )

        logger.info(
            "Site regenerated",
            markup_length=len(envelope.updated_code.markup),
            style_length=len(envelope.updated_code.style),
            script_length=len(envelope.updated_code.script),
        )
        return RegenerationOutcome(
            message="Portfolio updated successfully",
            preview_url=PREVIEW_URL,
            code=envelope.updated_code,
        )

    def site_code(self) -> SiteCode:
        """The current three files, read together."""
        self.ensure_code()
        return SiteCode.model_validate(self.store.get(CODE))
