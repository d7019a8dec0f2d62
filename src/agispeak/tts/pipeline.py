"""Playback controller for agispeak.

Coordinates CacheStore, TokenManager, SynthesisClient, AudioTranscoder and
the AGI channel to speak a sequence of text segments, one at a time and in
order.

Per segment::

    cache check --hit--> stream
                --miss-> token -> synthesize -> transcode -> stream -> commit

An interrupt key ends the session after redirecting the dialplan to the
extension named by the key. Any error aborts the whole session.
"""

import logging
import tempfile
from collections.abc import Iterable
from pathlib import Path

from ..agi.channel import AgiChannel
from ..audio.transcoder import AudioTranscoder
from ..cache.manager import CacheStore, cache_key
from ..cancellation import CancellationToken
from ..config import SessionConfig
from .client import SynthesisClient
from .errors import AgiSpeakError, ProtocolError, SessionCancelled, TokenError
from .models import AudioFormatSpec, PlaybackOutcome, PlaybackStatus, SessionResult
from .token import TokenManager

logger = logging.getLogger(__name__)


def report_fatal(channel: AgiChannel, error: AgiSpeakError) -> None:
    """Log a fatal session error and echo it into the channel trace.

    The channel echo is skipped on cancellation and its own failure is only
    logged.
    """
    logger.error(f"{type(error).__name__}: {error}")
    if isinstance(error, SessionCancelled):
        return
    try:
        channel.noop(f"agispeak: {error}")
    except AgiSpeakError as e:
        logger.debug(f"Could not report error to channel: {e}")


class PlaybackController:
    """Speaks text segments on an AGI channel.

    Example:
        controller = PlaybackController(config, channel, audio_format, cache,
                                        tokens, client, transcoder)
        result = controller.run(split_segments("Hello. Press 1 for sales."))
        # SessionResult.COMPLETED, INTERRUPTED_EARLY or ABORTED
    """

    def __init__(
        self,
        config: SessionConfig,
        channel: AgiChannel,
        audio_format: AudioFormatSpec,
        cache: CacheStore,
        tokens: TokenManager,
        client: SynthesisClient,
        transcoder: AudioTranscoder,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.config = config
        self.channel = channel
        self.audio_format = audio_format
        self.cache = cache
        self.tokens = tokens
        self.client = client
        self.transcoder = transcoder
        self.cancellation = cancellation or CancellationToken()
        self.error: AgiSpeakError | None = None
        self.interrupt_key: str | None = None

    def run(self, segments: Iterable[str]) -> SessionResult:
        """Play every segment in order until done, interrupted or failed.

        Returns:
            Terminal SessionResult; on ABORTED the cause is kept in ``error``
        """
        try:
            for index, segment in enumerate(segments):
                self._diagnose(f"Segment {index}: {segment[:50]}")
                outcome = self.play_segment(segment)

                if outcome.status is PlaybackStatus.FAILED:
                    raise ProtocolError(f"Failed to stream segment {index}")
                if outcome.status is PlaybackStatus.INTERRUPTED:
                    self._redirect(outcome.key)
                    return SessionResult.INTERRUPTED_EARLY
        except AgiSpeakError as e:
            self.error = e
            report_fatal(self.channel, e)
            return SessionResult.ABORTED
        except OSError as e:
            self.error = AgiSpeakError(f"File operation failed: {e}", e)
            report_fatal(self.channel, self.error)
            return SessionResult.ABORTED

        return SessionResult.COMPLETED

    def play_segment(self, segment: str) -> PlaybackOutcome:
        """Stream one segment, synthesizing and caching it on a cache miss.

        All temporary files of the segment live in one directory that is
        removed on every exit path, including cancellation.

        Raises:
            TokenError: If no access token could be obtained
            FetchError: If synthesis fails
            TranscodeError: If mpg123 or sox fails
            ProtocolError: If the channel misbehaves
            SessionCancelled: If the session was cancelled
        """
        key = cache_key(segment, self.config.language, self.config.speed)

        cached = self.cache.lookup(key)
        if cached is not None:
            self._diagnose(f"Cache hit for {key}")
            return self._stream(cached)

        with tempfile.TemporaryDirectory(
            prefix="agispeak-", dir=self.config.paths.tmp_dir
        ) as workdir:
            token = self.tokens.get_token()
            if not token:
                raise TokenError("No usable access token")

            audio = self.client.synthesize(segment, self.config.language, token)
            compressed = Path(workdir) / f"{key}.mp3"
            compressed.write_bytes(audio)

            raw = self.transcoder.transcode(compressed, self.audio_format)
            outcome = self._stream(raw)

            if outcome.status is not PlaybackStatus.FAILED and self.cache.enabled:
                self._commit(raw, key)
            return outcome

    def _stream(self, path: Path) -> PlaybackOutcome:
        # STREAM FILE takes the name without the format extension
        response = self.channel.stream_file(
            path.with_suffix(""), self.config.interrupt_keys
        )
        if response.result < 0:
            return PlaybackOutcome.failed()
        key = response.interrupt_key()
        if key is not None:
            self._diagnose(f"Interrupted by key {key}")
            return PlaybackOutcome.interrupted(key)
        return PlaybackOutcome.continued()

    def _commit(self, raw: Path, key: str) -> None:
        try:
            self.cache.commit(raw, key)
        except OSError as e:
            logger.warning(f"Failed to cache audio: {e}. Continuing without caching.")

    def _redirect(self, key: str | None) -> None:
        if key is None:
            return
        self.interrupt_key = key
        self.channel.set_extension(key)
        self.channel.set_priority(1)

    def _diagnose(self, message: str) -> None:
        logger.debug(message)
        if self.config.debug:
            self.channel.noop(message)
