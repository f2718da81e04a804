"""
Media loading for AI requests.

Images and voice notes are read fully into memory and base64-encoded;
the gateway has no streaming upload. The MIME type is inferred from the
file suffix, matching what the mobile recorder and camera produce.
"""

import base64
from pathlib import Path
from typing import NamedTuple, Union
from urllib.parse import unquote, urlparse


class MediaError(Exception):
    """A media file could not be read."""
    pass


class MediaPayload(NamedTuple):
    data: str
    mime_type: str


def image_mime_type(path: Union[str, Path]) -> str:
    return "image/png" if str(path).lower().endswith(".png") else "image/jpeg"


def audio_mime_type(path: Union[str, Path]) -> str:
    lowered = str(path).lower()
    if lowered.endswith(".m4a"):
        return "audio/m4a"
    if lowered.endswith(".mp3"):
        return "audio/mp3"
    # expo-av records webm by default
    return "audio/webm"


def _local_path(uri: Union[str, Path]) -> Path:
    if isinstance(uri, Path):
        return uri
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(uri)


def _read_base64(uri: Union[str, Path]) -> str:
    path = _local_path(uri)
    try:
        return base64.b64encode(path.read_bytes()).decode("ascii")
    except OSError as e:
        raise MediaError(f"Could not read media file {path}: {e}") from e


def load_image(uri: Union[str, Path]) -> MediaPayload:
    """Read an image file (path or file:// URI) as base64."""
    return MediaPayload(_read_base64(uri), image_mime_type(uri))


def load_audio(uri: Union[str, Path]) -> MediaPayload:
    """Read an audio file (path or file:// URI) as base64."""
    return MediaPayload(_read_base64(uri), audio_mime_type(uri))
