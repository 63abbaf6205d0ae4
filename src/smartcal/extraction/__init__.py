# Text-to-event extraction.
# Created: 2026-10-03

from smartcal.extraction.ai_client import ChatClientProtocol, OllamaChatClient
from smartcal.extraction.dates import calculate_end_date, combine_date_time
from smartcal.extraction.service import EventExtractionService

__all__ = [
    "ChatClientProtocol",
    "EventExtractionService",
    "OllamaChatClient",
    "calculate_end_date",
    "combine_date_time",
]
