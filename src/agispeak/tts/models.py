"""Session data models."""

import time
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote, unquote

# Tokens this close to expiry are refreshed before use
TOKEN_SAFETY_MARGIN = 30


@dataclass(frozen=True)
class AccessToken:
    """Bearer credential for the speech service.

    Args:
        value: Raw access token as returned by the token endpoint
        expires_at: Absolute unix timestamp after which the token is dead
    """

    value: str
    expires_at: float

    def __post_init__(self) -> None:
        """Validate token."""
        if not self.value or not self.value.strip():
            raise ValueError("token value cannot be empty")

    @property
    def bearer(self) -> str:
        """Token in the scheme the speech endpoint expects."""
        return f"Bearer {self.value}"

    @property
    def encoded(self) -> str:
        """URL-encoded bearer value, as persisted in the token file."""
        return quote(self.bearer, safe="")

    @classmethod
    def from_encoded(cls, encoded: str, expires_at: float) -> "AccessToken":
        """Rebuild a token from its persisted, URL-encoded bearer form."""
        bearer = unquote(encoded)
        return cls(value=bearer.removeprefix("Bearer "), expires_at=expires_at)

    def is_valid(
        self, now: float | None = None, margin: float = TOKEN_SAFETY_MARGIN
    ) -> bool:
        """Return True while now < expires_at - margin."""
        if now is None:
            now = time.time()
        return now < self.expires_at - margin


@dataclass(frozen=True)
class AudioFormatSpec:
    """Raw audio format the channel plays natively.

    Args:
        tag: Asterisk file extension naming the encoding (e.g. "sln16")
        rate: Sample rate in Hz
    """

    tag: str
    rate: int


class PlaybackStatus(Enum):
    """Result of streaming one segment."""

    CONTINUE = "continue"
    INTERRUPTED = "interrupted"
    FAILED = "failed"


@dataclass(frozen=True)
class PlaybackOutcome:
    """Outcome of streaming one segment, with the pressed key if interrupted."""

    status: PlaybackStatus
    key: str | None = None

    @classmethod
    def continued(cls) -> "PlaybackOutcome":
        return cls(PlaybackStatus.CONTINUE)

    @classmethod
    def interrupted(cls, key: str) -> "PlaybackOutcome":
        return cls(PlaybackStatus.INTERRUPTED, key)

    @classmethod
    def failed(cls) -> "PlaybackOutcome":
        return cls(PlaybackStatus.FAILED)


class SessionResult(Enum):
    """Terminal state of a speech session."""

    COMPLETED = "completed"
    INTERRUPTED_EARLY = "interrupted_early"
    ABORTED = "aborted"
