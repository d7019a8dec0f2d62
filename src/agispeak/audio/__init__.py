"""Audio format negotiation and transcoding for agispeak."""

from .formats import DEFAULT_FORMAT, resolve_format
from .transcoder import AudioTranscoder, ResamplerDialect, probe_resampler_dialect

__all__ = [
    "DEFAULT_FORMAT",
    "AudioTranscoder",
    "ResamplerDialect",
    "probe_resampler_dialect",
    "resolve_format",
]
