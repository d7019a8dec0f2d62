"""Core functionality for agispeak - sets up and runs one speech session."""

import logging

import httpx

from .agi.channel import AgiChannel
from .audio.formats import resolve_format
from .audio.transcoder import AudioTranscoder, probe_resampler_dialect
from .cache.manager import CacheStore
from .cancellation import CancellationToken
from .config import SessionConfig
from .tts.client import SynthesisClient
from .tts.errors import AgiSpeakError
from .tts.models import SessionResult
from .tts.pipeline import PlaybackController, report_fatal
from .tts.segments import sanitize, split_segments
from .tts.token import TokenManager

logger = logging.getLogger(__name__)


def run_session(
    text: str,
    config: SessionConfig,
    channel: AgiChannel,
    cancellation: CancellationToken | None = None,
    http_client: httpx.Client | None = None,
) -> SessionResult:
    """Speak ``text`` on the channel.

    Answers the channel if needed, resolves the audio format and the sox
    dialect once, then hands the segments to the PlaybackController.

    Args:
        text: Raw text from the AGI arguments
        config: Resolved session configuration
        channel: AGI channel, environment already read
        cancellation: Token cancelled by hangup/termination signals
        http_client: Optional pre-built client (tests inject a mock transport)

    Returns:
        Terminal SessionResult
    """
    cancellation = cancellation or CancellationToken()

    cleaned = sanitize(text)
    if not cleaned:
        logger.debug("No text to speak")
        if config.debug:
            channel.noop("agispeak: no text to speak")
        return SessionResult.COMPLETED

    owns_client = http_client is None
    if http_client is None:
        http_client = httpx.Client(timeout=config.service.timeout)

    try:
        try:
            channel.ensure_answered()
            audio_format = resolve_format(channel, config.sample_rate)
            dialect = probe_resampler_dialect(config.paths.sox)
            cache = CacheStore(
                config.cache.directory, audio_format, enabled=config.cache.enabled
            )
            if config.debug:
                channel.noop(
                    f"agispeak: format {audio_format.tag}/{audio_format.rate}, "
                    f"cache {'on' if cache.enabled else 'off'}, sox {dialect.value}"
                )
        except AgiSpeakError as e:
            report_fatal(channel, e)
            return SessionResult.ABORTED

        controller = PlaybackController(
            config=config,
            channel=channel,
            audio_format=audio_format,
            cache=cache,
            tokens=TokenManager(
                config.service,
                config.paths.token_file,
                http_client,
                cancellation=cancellation,
            ),
            client=SynthesisClient(config.service, http_client, cancellation),
            transcoder=AudioTranscoder(
                config.paths.mpg123,
                config.paths.sox,
                dialect,
                speed=config.speed,
                cancellation=cancellation,
            ),
            cancellation=cancellation,
        )
        return controller.run(split_segments(cleaned))
    finally:
        if owns_client:
            http_client.close()
