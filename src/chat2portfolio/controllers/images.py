"""Image ingestion pipeline: persist, analyze, and record a batch of uploaded images."""

from typing import Any, Optional

import structlog
from pydantic import BaseModel

from chat2portfolio.controllers.base import BaseController
from chat2portfolio.errors import ImageAnalysisError, ValidationError
from chat2portfolio.schemas.documents import ANALYSIS_FAILED, ConversationTurn, ImageRecord
from chat2portfolio.store import HISTORY, PROFILE
from chat2portfolio.utils.file_utils import is_image_mime, unique_blob_name

logger = structlog.get_logger(__name__)

UPLOADS_URL_PREFIX = "/uploads"


class UploadedImage(BaseModel):
    """One image of an inbound batch."""

    original_name: str
    mime_type: str
    data: bytes


class ImageBatchOutcome(BaseModel):
    """Committed result of an image batch."""

    success: bool = True
    images: list[dict[str, Any]]
    message: str


class ImageIngestionController(BaseController):
    """
    Batch of 0-5 images plus optional text, committed as one unit.

    Each image is stored and analyzed independently; a failed analysis is
    recorded as "analysis failed" and the batch goes on. Afterwards every
    image becomes one ImageRecord in Profile.images and the whole batch
    becomes exactly one conversation turn.

    Analysis runs without any hold. The commit re-reads history and profile
    under the hold and appends to them, so it never works from stale data.
    """

    operation = "upload-image"

    def ingest(self, images: list[UploadedImage], text: Optional[str] = None) -> ImageBatchOutcome:
        """
        Ingest one batch.

        Args:
            images: 0-5 uploaded images
            text: Optional free text sent with the batch

        Raises:
            ValidationError: empty batch, too many images, or a non-image file
            StoreIOError / StoreConflictError: persistence failed; blobs of
                this batch are removed again
        """
        note = (text or "").strip()
        self._validate_batch(images, note)

        saved: list[str] = []
        try:
            records = []
            for image in images:
                filename = unique_blob_name(image.original_name, image.mime_type)
                self.store.save_blob(filename, image.data)
                saved.append(filename)

                records.append(
                    ImageRecord(
                        filename=filename,
                        original_name=image.original_name,
                        url=f"{UPLOADS_URL_PREFIX}/{filename}",
                        description=note,
                        ai_analysis=self._analyze_or_sentinel(image),
                    )
                )

            turn = self._summary_turn(records, note)
            self._commit(records, turn)
        except Exception:
            self._discard_blobs(saved)
            raise

        failed = sum(1 for record in records if record.analysis_failed)
        logger.info("Image batch committed", images=len(records), analysis_failed=failed, has_text=bool(note))
        return ImageBatchOutcome(
            images=[record.to_document() for record in records],
            message=self._outcome_message(len(records), failed),
        )

    def _validate_batch(self, images: list[UploadedImage], note: str) -> None:
        if not images and not note:
            raise ValidationError("Upload at least one image or provide some text")

        limit = self.settings.max_images_per_batch
        if len(images) > limit:
            raise ValidationError(f"At most {limit} images per upload (got {len(images)})")

        for image in images:
            if not is_image_mime(image.mime_type):
                raise ValidationError(f"'{image.original_name}' is not an image ({image.mime_type})")
            if not image.data:
                raise ValidationError(f"'{image.original_name}' is empty")
            if len(image.data) > self.settings.max_image_bytes:
                raise ValidationError(
                    f"'{image.original_name}' exceeds {self.settings.max_image_bytes} bytes"
                )

    def _analyze(self, image: UploadedImage) -> str:
        result = self._generate(self.orchestrator.request_image_description, image.data, image.mime_type)
        if not result.ok:
            raise ImageAnalysisError(
                f"Analysis of '{image.original_name}' failed: {result.reason}",
                raw_text=result.raw_text,
            )
        return result.envelope.description

    def _analyze_or_sentinel(self, image: UploadedImage) -> str:
        try:
            return self._analyze(image)
        except ImageAnalysisError as e:
            logger.warning("Image analysis failed", image=image.original_name, reason=e.message)
        except Exception as e:
            # A broken generator must not cost the rest of the batch
            logger.exception("Image analysis crashed", image=image.original_name, error=str(e))
        return ANALYSIS_FAILED

    @staticmethod
    def _summary_turn(records: list[ImageRecord], note: str) -> ConversationTurn:
        if not records:
            return ConversationTurn(user=note, bot="Thanks, I've noted that.")

        names = ", ".join(record.original_name for record in records)
        user = f"Uploaded {len(records)} image(s): {names}"
        if note:
            user += f"\n{note}"
        bot = "\n\n".join(f"{record.original_name}: {record.ai_analysis}" for record in records)
        return ConversationTurn(user=user, bot=bot)

    def _commit(self, records: list[ImageRecord], turn: ConversationTurn) -> None:
        with self.store.hold(HISTORY, PROFILE):
            snapshot = self.store.snapshot(HISTORY, PROFILE)

            profile = snapshot[PROFILE]
            existing = profile.get("images")
            if not isinstance(existing, list):
                if existing is not None:
                    logger.warning("Profile 'images' is not a list, starting a new one", found=type(existing).__name__)
                existing = []
            profile["images"] = existing + [record.to_document() for record in records]

            history = snapshot[HISTORY] + [turn.model_dump()]

            self.store.put_batch(
                {HISTORY: history, PROFILE: profile},
                expected_versions=snapshot.versions,
            )

    def _discard_blobs(self, filenames: list[str]) -> None:
        for filename in filenames:
            try:
                self.store.delete_blob(filename)
            except Exception as e:
                logger.error("Failed to remove blob of failed batch", filename=filename, error=str(e))

    @staticmethod
    def _outcome_message(total: int, failed: int) -> str:
        if total == 0:
            return "Message recorded"
        if failed:
            return f"Uploaded {total} image(s); {failed} could not be analyzed"
        return f"Uploaded and analyzed {total} image(s)"
