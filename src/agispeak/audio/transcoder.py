"""Compressed-to-raw audio transcoding with mpg123 and sox."""

import logging
import re
import subprocess
from enum import Enum
from pathlib import Path

from ..cancellation import CancellationToken
from ..tts.errors import ConfigurationError, TranscodeError
from ..tts.models import AudioFormatSpec

logger = logging.getLogger(__name__)

# First sox release with the "tempo" effect
TEMPO_MIN_VERSION = (14, 3)

_VERSION_RE = re.compile(r"v(\d+)\.(\d+)")


class ResamplerDialect(Enum):
    """How sox is told to change the speaking speed."""

    TEMPO = "tempo"
    STRETCH = "stretch"

    def speed_effect(self, speed: float) -> list[str]:
        """Return the sox effect arguments for ``speed``; none at unity."""
        if speed == 1.0:
            return []
        if self is ResamplerDialect.TEMPO:
            return ["tempo", "-s", f"{speed:g}"]
        return ["stretch", f"{1 / speed:g}", "80"]


def probe_resampler_dialect(sox: str) -> ResamplerDialect:
    """Pick the speed effect dialect from ``sox --version``.

    Unparseable version strings are assumed to be modern.

    Raises:
        ConfigurationError: If sox cannot be executed
    """
    try:
        result = subprocess.run(
            [sox, "--version"], capture_output=True, text=True, check=True
        )
    except (OSError, subprocess.CalledProcessError) as e:
        raise ConfigurationError(f"Failed to run {sox} --version: {e}", e) from e

    match = _VERSION_RE.search(result.stdout + result.stderr)
    if match is None:
        logger.warning(f"Unrecognised sox version output: {result.stdout.strip()!r}")
        return ResamplerDialect.TEMPO

    version = (int(match.group(1)), int(match.group(2)))
    dialect = (
        ResamplerDialect.TEMPO
        if version >= TEMPO_MIN_VERSION
        else ResamplerDialect.STRETCH
    )
    logger.debug(f"sox {version[0]}.{version[1]} uses the {dialect.value} effect")
    return dialect


class AudioTranscoder:
    """Two-step transcoder: mpg123 decodes, sox resamples to raw slin.

    Example:
        transcoder = AudioTranscoder("/usr/bin/mpg123", "/usr/bin/sox",
                                     ResamplerDialect.TEMPO, speed=1.2)
        raw = transcoder.transcode(Path("/tmp/x/abc.mp3"), SLN16)
        # raw == Path("/tmp/x/abc.sln16")
    """

    def __init__(
        self,
        mpg123: str,
        sox: str,
        dialect: ResamplerDialect,
        speed: float = 1.0,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.mpg123 = mpg123
        self.sox = sox
        self.dialect = dialect
        self.speed = speed
        self._cancellation = cancellation

    def transcode(self, compressed: Path, audio_format: AudioFormatSpec) -> Path:
        """Convert a compressed file into raw audio next to it.

        The intermediate wav file is removed whether or not sox succeeds.

        Args:
            compressed: Path of the mp3 returned by the speech service
            audio_format: Target raw format

        Returns:
            Path of the raw file, named ``<stem>.<format tag>``

        Raises:
            TranscodeError: If either tool exits non-zero
        """
        wav = compressed.with_suffix(".wav")
        raw = compressed.with_suffix(f".{audio_format.tag}")
        try:
            self._run(
                [self.mpg123, "-q", "-m", "-w", str(wav), str(compressed)], "mpg123"
            )
            self._run(
                [
                    self.sox,
                    "-q",
                    str(wav),
                    "-r",
                    str(audio_format.rate),
                    "-c",
                    "1",
                    "-e",
                    "signed-integer",
                    "-b",
                    "16",
                    "-t",
                    "raw",
                    str(raw),
                    *self.dialect.speed_effect(self.speed),
                ],
                "sox",
            )
        finally:
            wav.unlink(missing_ok=True)
        return raw

    def _run(self, cmd: list[str], tool: str) -> None:
        if self._cancellation is not None:
            self._cancellation.raise_if_cancelled()
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise TranscodeError(f"Failed to run {tool}: {e}", None, e) from e
        if result.returncode != 0:
            raise TranscodeError(
                f"{tool} failed with code {result.returncode}: {result.stderr.strip()}",
                result.returncode,
            )
