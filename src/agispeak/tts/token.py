"""Access token lifecycle for the speech service.

The token is persisted in a host-wide scratch file so that consecutive and
concurrent AGI sessions reuse it until shortly before it expires. The file
holds two lines::

    expire:<unix timestamp>
    token:<url-encoded bearer value>

The whole read-check-refresh-write sequence runs under an flock on a
sibling ``.lock`` file. If the scratch location is unusable the manager
keeps the token in memory for the session only.
"""

import fcntl
import logging
import os
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path

import httpx

from ..cancellation import CancellationToken
from ..config import ServiceConfig
from .errors import TokenError
from .models import TOKEN_SAFETY_MARGIN, AccessToken

logger = logging.getLogger(__name__)


@contextmanager
def token_lock(lock_path: Path) -> Generator[bool]:
    """Context manager for the exclusive token refresh lock.

    Blocks until the lock is held. Yields False instead of raising when
    the lock file cannot be opened, so callers can run without it.

    Args:
        lock_path: Path of the lock file

    Yields:
        True if lock acquired, False if running unlocked
    """
    lock_fd: int | None = None
    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        lock_fd = os.open(str(lock_path), os.O_CREAT | os.O_RDWR, 0o600)
    except OSError as e:
        logger.debug(f"Token lock unavailable ({e}), continuing unlocked")

    if lock_fd is None:
        yield False
        return

    try:
        fcntl.flock(lock_fd, fcntl.LOCK_EX)
        yield True
    finally:
        # Closing the descriptor releases the lock
        os.close(lock_fd)


def parse_token_record(content: str) -> AccessToken | None:
    """Parse a persisted token record, returning None if it is unusable."""
    fields: dict[str, str] = {}
    for line in content.splitlines():
        name, sep, value = line.partition(":")
        if sep:
            fields[name.strip()] = value.strip()
    try:
        return AccessToken.from_encoded(fields["token"], float(fields["expire"]))
    except (KeyError, ValueError):
        return None


def format_token_record(token: AccessToken) -> str:
    return f"expire:{int(token.expires_at)}\ntoken:{token.encoded}\n"


class TokenManager:
    """Obtains, persists and refreshes the speech service bearer token.

    Example:
        with httpx.Client() as http:
            tokens = TokenManager(config.service, config.paths.token_file, http)
            bearer = tokens.get_token()
            if not bearer:
                ...  # no usable token, the session cannot continue
    """

    def __init__(
        self,
        service: ServiceConfig,
        token_file: Path | None,
        http_client: httpx.Client,
        clock: Callable[[], float] = time.time,
        margin: float = TOKEN_SAFETY_MARGIN,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self._service = service
        self.token_file = token_file
        self._http = http_client
        self._clock = clock
        self._margin = margin
        self._cancellation = cancellation
        self._memory: AccessToken | None = None

    def get_token(self) -> str:
        """Return a usable bearer value, refreshing it if needed.

        Returns:
            Bearer value ("Bearer <token>"), or "" if none could be obtained
        """
        if self._memory is not None and self._is_usable(self._memory):
            return self._memory.bearer

        if self.token_file is None:
            return self._refresh_in_memory()

        with token_lock(self.token_file.with_name(self.token_file.name + ".lock")):
            stored = self._read()
            if stored is not None and self._is_usable(stored):
                logger.debug("Reusing persisted access token")
                self._memory = stored
                return stored.bearer

            token = self._refresh_in_memory()
            if token and self._memory is not None:
                self._write(self._memory)
            return token

    def _is_usable(self, token: AccessToken) -> bool:
        return token.is_valid(now=self._clock(), margin=self._margin)

    def _refresh_in_memory(self) -> str:
        try:
            self._memory = self.exchange()
        except TokenError as e:
            logger.warning(f"Failed to obtain access token: {e}")
            return ""
        return self._memory.bearer

    def exchange(self) -> AccessToken:
        """Run the client-credentials exchange against the token endpoint.

        Raises:
            TokenError: If the request fails or the response is unusable
            SessionCancelled: If the session was cancelled
        """
        if self._cancellation is not None:
            self._cancellation.raise_if_cancelled()

        logger.debug(f"Requesting access token from {self._service.token_url}")
        try:
            response = self._http.post(
                self._service.token_url,
                data={
                    "client_id": self._service.client_id,
                    "client_secret": self._service.client_secret,
                    "scope": self._service.scope,
                    "grant_type": "client_credentials",
                },
                timeout=self._service.timeout,
            )
        except httpx.HTTPError as e:
            raise TokenError(f"Token request failed: {e}", e) from e

        if not response.is_success:
            raise TokenError(
                f"Token request failed with status {response.status_code}"
            )

        try:
            body = response.json()
            access_token = body["access_token"]
            expires_in = int(body["expires_in"])
            return AccessToken(access_token, self._clock() + expires_in)
        except (ValueError, KeyError, TypeError) as e:
            raise TokenError(f"Unparseable token response: {e}", e) from e

    def _read(self) -> AccessToken | None:
        try:
            content = self.token_file.read_text()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug(f"Cannot read token file {self.token_file}: {e}")
            return None
        return parse_token_record(content)

    def _write(self, token: AccessToken) -> None:
        staging = self.token_file.with_name(f".{self.token_file.name}.{os.getpid()}")
        try:
            self.token_file.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
            fd = os.open(str(staging), os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as f:
                f.write(format_token_record(token))
            os.replace(staging, self.token_file)
        except OSError as e:
            logger.debug(f"Cannot persist token to {self.token_file}: {e}")
            try:
                staging.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.debug(f"Failed to remove {staging}: {cleanup_error}")
