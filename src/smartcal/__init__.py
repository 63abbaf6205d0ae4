"""SmartCal: natural-language event extraction and reminder scheduling."""

__version__ = "0.3.0"
