"""MIME type helpers shared by storage and decoding."""

from typing import Dict, Tuple

PCM_MIME_TYPE = "audio/pcm"
WAV_MIME_TYPE = "audio/wav"


def split_mime_type(mime_type: str) -> Tuple[str, Dict[str, str]]:
    """Split ``'audio/webm;codecs=opus'`` into ``('audio/webm', {'codecs': 'opus'})``."""
    parts = [part.strip() for part in (mime_type or "").split(";")]
    base = parts[0].lower()
    params: Dict[str, str] = {}
    for part in parts[1:]:
        if "=" in part:
            key, value = part.split("=", 1)
            params[key.strip().lower()] = value.strip().strip('"')
    return base, params


def extension_for(mime_type: str) -> str:
    """File extension for a MIME type: its subtype, or 'dat' if there is none."""
    base, _ = split_mime_type(mime_type)
    if "/" in base:
        subtype = base.split("/", 1)[1].strip()
        if subtype:
            return subtype
    return "dat"


def pcm_mime_type(sample_rate: int, channels: int) -> str:
    """MIME type for raw signed 16-bit little-endian PCM fragments."""
    return f"{PCM_MIME_TYPE};rate={sample_rate};channels={channels}"


def is_same_container(mime_type: str, other: str) -> bool:
    return split_mime_type(mime_type)[0] == split_mime_type(other)[0]


def mime_type_for_extension(ext: str) -> str:
    """Best guess at an audio MIME type from a file extension."""
    return f"audio/{ext.lstrip('.').lower()}"
