"""Transaction extraction package."""

from finance_assistant.extraction.media import (
    MediaError,
    MediaPayload,
    audio_mime_type,
    image_mime_type,
    load_audio,
    load_image,
)
from finance_assistant.extraction.validator import (
    ExtractionParseError,
    ExtractionValidator,
    parse_float,
)

__all__ = [
    # Validation
    "ExtractionValidator",
    "parse_float",
    # Media
    "MediaPayload",
    "audio_mime_type",
    "image_mime_type",
    "load_audio",
    "load_image",
    # Exceptions
    "ExtractionParseError",
    "MediaError",
]
