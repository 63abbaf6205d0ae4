# Events router: extract events from free text.
# Created: 2026-10-06

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from smartcal.api.deps import get_extraction_service
from smartcal.api.v1.schemas.events import (
    ExtractBatchRequest,
    ExtractBatchResponse,
    ExtractRequest,
    ExtractResponse,
)
from smartcal.extraction.service import EventExtractionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Events"])


@router.post("/events/extract", response_model=ExtractResponse)
async def extract_events(
    body: ExtractRequest,
    service: EventExtractionService = Depends(get_extraction_service),
):
    """Extract calendar events from text (e.g. '明天下午3点开会')."""
    result = await service.extract_events(body.text)
    return result.to_dict()


@router.post("/events/extract/batch", response_model=ExtractBatchResponse)
async def extract_events_batch(
    body: ExtractBatchRequest,
    service: EventExtractionService = Depends(get_extraction_service),
):
    """Extract from several texts and deduplicate across all of them."""
    result = await service.extract_events_batch(body.texts)
    logger.debug("Batch extraction: %d unique of %d", result.unique, result.total)
    return result.to_dict()
