"""Channel audio format negotiation."""

import logging
import re

from ..agi.channel import AgiChannel
from ..tts.models import AudioFormatSpec

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = AudioFormatSpec("sln", 8000)

# Ordered, first match wins
NATIVE_FORMATS: list[tuple[re.Pattern[str], AudioFormatSpec]] = [
    (re.compile(r"(silk|sln)12"), AudioFormatSpec("sln12", 12000)),
    (
        re.compile(r"(speex|slin|silk)16|g722|siren7"),
        AudioFormatSpec("sln16", 16000),
    ),
    (re.compile(r"(speex|slin|celt)32|siren14"), AudioFormatSpec("sln32", 32000)),
    (re.compile(r"(celt|slin)44"), AudioFormatSpec("sln44", 44100)),
    (re.compile(r"(celt|slin)48"), AudioFormatSpec("sln48", 48000)),
]

SUPPORTED_RATES: dict[int, AudioFormatSpec] = {
    spec.rate: spec for _, spec in NATIVE_FORMATS
}


def format_for_native(native_format: str | None) -> AudioFormatSpec:
    """Map an ``audionativeformat`` value to the raw format to play."""
    if native_format:
        for pattern, spec in NATIVE_FORMATS:
            if pattern.search(native_format):
                return spec
    return DEFAULT_FORMAT


def format_for_rate(sample_rate: int) -> AudioFormatSpec:
    """Map an explicit sample rate, falling back to 8 kHz for unsupported ones."""
    return SUPPORTED_RATES.get(sample_rate, DEFAULT_FORMAT)


def resolve_format(
    channel: AgiChannel, sample_rate: int | None = None
) -> AudioFormatSpec:
    """Resolve the session's audio format once.

    An explicit rate wins; otherwise the channel is asked for its native
    format.

    Raises:
        ProtocolError: If the channel query fails
    """
    if sample_rate is not None:
        spec = format_for_rate(sample_rate)
        logger.debug(f"Explicit sample rate {sample_rate} resolved to {spec}")
        return spec

    native = channel.get_full_variable("CHANNEL(audionativeformat)")
    spec = format_for_native(native)
    logger.debug(f"Native format {native!r} resolved to {spec}")
    return spec
