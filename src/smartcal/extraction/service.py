# Event extraction service: free text to structured calendar events.
# Created: 2026-10-03
# Updated: 2026-10-09 - Added get_extraction_stats() and string-aware JSON
#   span detection for AI replies (braces inside titles no longer break parsing).
#
# Two strategies:
#   - rules: line-by-line keyword gate, date/time recognition, title cleanup,
#     type/priority inference, deduplication. Always available, no I/O.
#   - ai: delegate to a chat collaborator and pull a JSON object out of its
#     reply. Used whenever an AI client is configured.

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from smartcal.config import Settings, get_settings
from smartcal.events.models import (
    BatchExtractionResult,
    Event,
    ExtractionResult,
    ExtractionStats,
)
from smartcal.extraction.ai_client import ChatClientProtocol
from smartcal.extraction.dates import (
    DATE_PATTERN,
    TIME_PATTERN,
    calculate_end_date,
    combine_date_time,
    parse_date,
    parse_time,
)
from smartcal.extraction.inference import (
    extract_title,
    has_event_keyword,
    infer_event_type,
    infer_priority,
)
from smartcal.extraction.prompts import EXTRACTION_PROMPT

logger = logging.getLogger(__name__)

_REMINDER_KEYS = ("reminder_minutes", "reminderMinutes", "reminderTime")


def find_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span in *text*, or None.

    Braces inside JSON string literals are ignored.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


class EventExtractionService:
    """Extracts calendar events from conversation text.

    Construct one per host application and pass it where needed::

        service = EventExtractionService(settings)
        result = await service.extract_events("明天下午3点开会")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        ai_client: ChatClientProtocol | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.settings = settings or get_settings()
        self.ai_client = ai_client
        self._clock = clock or datetime.now

    def set_ai_client(self, ai_client: ChatClientProtocol | None) -> None:
        """Enable (or with None, disable) the AI extraction path."""
        self.ai_client = ai_client

    # =========================================================================
    # Public API
    # =========================================================================

    async def extract_events(self, text: str) -> ExtractionResult:
        """Extract events from *text*. Never raises."""
        logger.debug("Extracting events from %d chars", len(text or ""))
        source = "ai" if self.ai_client is not None else "rules"
        try:
            if self.ai_client is not None:
                return await self.extract_with_ai(text)
            return self.extract_with_rules(text)
        except Exception as e:
            logger.error(f"Event extraction failed: {e}", exc_info=True)
            return ExtractionResult(
                success=False, events=[], confidence=0.0, source=source, error=str(e)
            )

    async def extract_events_batch(self, texts: list[str]) -> BatchExtractionResult:
        """Extract from each text, then deduplicate across the whole batch."""
        logger.info("Batch extraction over %d texts", len(texts))

        all_events: list[Event] = []
        success_count = 0

        for text in texts:
            try:
                result = await self.extract_events(text)
            except Exception as e:
                logger.error(f"Failed to extract events from one text: {e}")
                continue
            if result.success:
                all_events.extend(result.events)
                success_count += 1

        unique_events = self.deduplicate_events(all_events)

        return BatchExtractionResult(
            success=success_count > 0,
            events=unique_events,
            total=len(all_events),
            unique=len(unique_events),
            duplicates=len(all_events) - len(unique_events),
        )

    async def get_extraction_stats(self, texts: list[str]) -> ExtractionStats:
        """Summarize how well extraction performs over *texts*."""
        stats = ExtractionStats(total_conversations=len(texts))
        if not texts:
            return stats

        all_events: list[Event] = []
        confidences: list[float] = []
        successes = 0

        for text in texts:
            result = await self.extract_events(text)
            stats.source_distribution[result.source] = (
                stats.source_distribution.get(result.source, 0) + 1
            )
            if result.success:
                successes += 1
                confidences.append(result.confidence)
                all_events.extend(result.events)

        stats.extracted_events = len(self.deduplicate_events(all_events))
        stats.success_rate = round(successes / len(texts) * 100, 1)
        stats.average_confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return stats

    # =========================================================================
    # Rule engine
    # =========================================================================

    def extract_with_rules(self, text: str) -> ExtractionResult:
        """Run the rule engine over every line of *text*."""
        events: list[Event] = []
        for line in (text or "").split("\n"):
            event = self.extract_from_line(line)
            if event is not None:
                events.append(event)

        return ExtractionResult(
            success=True,
            events=self.deduplicate_events(events),
            confidence=self.settings.rules_confidence,
            source="rules",
        )

    def extract_from_line(self, line: str) -> Event | None:
        """Build an event from one line, or None if it has no keyword or valid date."""
        trimmed = line.strip()
        if not trimmed or not has_event_keyword(trimmed):
            return None

        today = self._clock().date()
        date_match, extracted_date = None, None
        for candidate in DATE_PATTERN.finditer(trimmed):
            extracted_date = parse_date(candidate, today)
            if extracted_date is not None:
                date_match = candidate
                break
        if extracted_date is None:
            return None

        time_match = TIME_PATTERN.search(trimmed)
        extracted_time = parse_time(time_match)

        start_date = combine_date_time(extracted_date, extracted_time)
        end_date = calculate_end_date(
            start_date, duration_minutes=self.settings.default_event_duration_minutes
        )

        return Event(
            title=extract_title(trimmed, date_match, time_match),
            start_date=start_date,
            end_date=end_date,
            description=trimmed,
            priority=infer_priority(trimmed),
            type=infer_event_type(trimmed),
            reminder_minutes=self.settings.default_reminder_minutes,
            reminder_methods=["popup"],
        )

    @staticmethod
    def deduplicate_events(events: list[Event]) -> list[Event]:
        """Drop events sharing title + start date. First occurrence wins."""
        seen: set[tuple[str, str]] = set()
        unique: list[Event] = []
        for event in events:
            key = (event.title, event.start_date)
            if key not in seen:
                seen.add(key)
                unique.append(event)
        return unique

    # =========================================================================
    # AI path
    # =========================================================================

    async def extract_with_ai(self, text: str) -> ExtractionResult:
        """Ask the AI collaborator for events. Failures degrade to success=False."""
        if self.ai_client is None:
            return ExtractionResult(
                success=False, confidence=0.0, source="ai", error="AI client not configured"
            )

        try:
            prompt = EXTRACTION_PROMPT.format(conversation=text)
            response = await self.ai_client.send_message(prompt)
            raw_events, confidence = self.parse_ai_response(response)
            events = self._normalize_ai_events(raw_events)

            if events:
                return ExtractionResult(
                    success=True,
                    events=events,
                    confidence=confidence,
                    source="ai",
                    raw_response=response,
                )

            return ExtractionResult(
                success=False,
                confidence=0.0,
                source="ai",
                message="AI未能提取到事件信息",
                raw_response=response,
            )
        except Exception as e:
            logger.error(f"AI extraction failed: {e}")
            return ExtractionResult(success=False, confidence=0.0, source="ai", error=str(e))

    def parse_ai_response(self, response: str) -> tuple[list[dict[str, Any]], float]:
        """Pull ``{"events": [...], "confidence": x}`` out of a free-text reply.

        Returns ``([], 0.0)`` when no well-formed object is found.
        """
        span = find_json_object(response or "")
        if span is None:
            logger.warning("AI reply contained no JSON object")
            return [], 0.0

        try:
            parsed = json.loads(span)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse AI reply JSON: %s", e)
            return [], 0.0

        events = parsed.get("events") if isinstance(parsed, dict) else None
        if not isinstance(events, list):
            logger.warning("AI reply JSON has no 'events' list")
            return [], 0.0

        confidence = parsed.get("confidence") or self.settings.ai_confidence
        try:
            confidence = float(confidence)
        except (TypeError, ValueError):
            confidence = self.settings.ai_confidence

        return [e for e in events if isinstance(e, dict)], confidence

    def _normalize_ai_events(self, raw_events: list[dict[str, Any]]) -> list[Event]:
        events: list[Event] = []
        for raw in raw_events:
            event = Event.from_dict(raw)
            if not any(key in raw for key in _REMINDER_KEYS):
                event.reminder_minutes = self.settings.default_reminder_minutes
            if event.start_date and not event.end_date:
                end_date = calculate_end_date(
                    event.start_date,
                    duration_minutes=self.settings.default_event_duration_minutes,
                )
                if end_date is None:
                    logger.debug("AI event has unparseable start date: %s", event.start_date)
                event.end_date = end_date or ""
            events.append(event)
        return self.deduplicate_events(events)
