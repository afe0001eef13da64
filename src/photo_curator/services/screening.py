"""Content and quality screening before scoring."""

import logging
from dataclasses import dataclass

from photo_curator.domain.photos import Photo
from photo_curator.domain.scores import ScreeningResult
from photo_curator.services.prompts import SCREENING_PROMPT
from photo_curator.services.retry import RetryExecutor
from photo_curator.services.vision import (
    VisionClient,
    parse_vision_payload,
    strict_schema,
    to_data_url,
)

_logger = logging.getLogger(__name__)

ACCEPTED = "none"


@dataclass
class ImageScreener:
    """Rejects photos that should never be curated (nudity, receipts, blur...)."""

    client: VisionClient
    retry: RetryExecutor
    model: str
    reasoning_effort: str | None
    store: bool

    async def screen(self, photo: Photo, image_bytes: bytes) -> str:
        """Return the rejection reason, or "none" when the photo is acceptable."""
        schema = strict_schema(ScreeningResult)
        data_url = to_data_url(image_bytes)
        raw = await self.retry.run(
            lambda: self.client.extract(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                image_data_url=data_url,
                schema=schema,
                prompt=SCREENING_PROMPT,
            ),
            action="vision:screening",
        )
        result = parse_vision_payload(raw, ScreeningResult)
        reason = result.rejection_reason or ACCEPTED
        _logger.info(
            "Screening result for %s: %s%s",
            photo.file_name,
            reason,
            f" ({result.quality_issue})" if result.quality_issue else "",
        )
        return reason
