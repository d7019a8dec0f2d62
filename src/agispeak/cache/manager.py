"""Filesystem cache of transcoded segment audio.

Entries are raw audio files named ``<key>.<format tag>`` and are never
modified or evicted once committed. Commits go through a hidden staging
name in the cache directory so readers never see a partial file.
"""

import hashlib
import logging
import os
import shutil
from pathlib import Path

from ..tts.models import AudioFormatSpec

logger = logging.getLogger(__name__)

HASH_LENGTH = 64
# PATH_MAX on Linux, minus room for the separator and the staging prefix
CACHE_PATH_LIMIT = 4096 - 32


def cache_key(text: str, language: str, speed: float) -> str:
    """Derive the deterministic cache key for a segment.

    Args:
        text: Segment text
        language: Language code
        speed: Speed factor

    Returns:
        64-character SHA-256 hex digest
    """
    if text is None or language is None or speed is None:
        raise ValueError("All parameters (text, language, speed) must be non-None")
    input_string = f"{text}\x00{language}\x00{float(speed)!r}"
    return hashlib.sha256(input_string.encode("utf-8")).hexdigest()


class CacheStore:
    """Unbounded audio cache in a single directory.

    Caching switches itself off for the whole session when the directory
    path is too long or cannot be created; lookups then always miss and
    commits are refused.

    Example:
        store = CacheStore(Path("/srv/tts"), AudioFormatSpec("sln16", 16000))
        key = cache_key("Hello.", "en-US", 1.0)
        if store.lookup(key) is None:
            store.commit(raw_path, key)
    """

    def __init__(
        self, directory: Path, audio_format: AudioFormatSpec, enabled: bool = True
    ) -> None:
        self.directory = directory
        self.audio_format = audio_format
        self.enabled = enabled and self._prepare()

    def _prepare(self) -> bool:
        path_length = (
            len(str(self.directory)) + HASH_LENGTH + len(self.audio_format.tag) + 2
        )
        if path_length >= CACHE_PATH_LIMIT:
            logger.warning(
                f"Cache path size exceeds limit ({path_length} >= "
                f"{CACHE_PATH_LIMIT}). Disabling cache."
            )
            return False
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(
                f"Cannot create cache directory {self.directory}: {e}. "
                "Disabling cache."
            )
            return False
        if not os.access(self.directory, os.W_OK):
            logger.warning(
                f"Cache directory {self.directory} is not writable. Disabling cache."
            )
            return False
        return True

    def path_for(self, key: str) -> Path:
        """Return the final on-disk path of an entry."""
        return self.directory / f"{key}.{self.audio_format.tag}"

    def lookup(self, key: str) -> Path | None:
        """Return the cached file for ``key``, or None on a miss."""
        if not self.enabled:
            return None
        path = self.path_for(key)
        if path.is_file() and os.access(path, os.R_OK):
            logger.debug(f"Cache hit: {path}")
            return path
        logger.debug(f"Cache miss: {key}")
        return None

    def commit(self, temp_path: Path, key: str) -> Path:
        """Move a finished raw file into the cache under ``key``.

        The file is first moved to a staging name inside the cache
        directory, then renamed over the final name. Concurrent sessions
        committing the same key simply replace each other's identical
        content.

        Args:
            temp_path: Completed raw audio file; consumed by this call
            key: Cache key for the entry

        Returns:
            Final path of the committed entry

        Raises:
            RuntimeError: If caching is disabled
            OSError: If the move fails; the staging file is removed on
                any failure, including cancellation
        """
        if not self.enabled:
            raise RuntimeError("Cache is disabled for this session")

        final_path = self.path_for(key)
        staging = self.directory / f".{final_path.name}.{os.getpid()}.part"
        committed = False
        try:
            shutil.move(str(temp_path), str(staging))
            os.replace(staging, final_path)
            committed = True
        finally:
            if not committed:
                staging.unlink(missing_ok=True)

        logger.debug(f"Cached audio as {final_path}")
        return final_path
