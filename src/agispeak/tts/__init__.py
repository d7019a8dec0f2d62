"""Speech synthesis package for agispeak.

Holds the error hierarchy, the session data models, text segmentation,
the token manager, the speech client and the playback controller. Only
the dependency-free parts are re-exported here so that importing the
package never pulls in configuration or HTTP modules.
"""

from .errors import (
    AgiSpeakError,
    ConfigurationError,
    FetchError,
    ProtocolError,
    SessionCancelled,
    TokenError,
    TranscodeError,
)
from .models import AccessToken, AudioFormatSpec, PlaybackOutcome, SessionResult

__all__ = [
    "AccessToken",
    "AgiSpeakError",
    "AudioFormatSpec",
    "ConfigurationError",
    "FetchError",
    "PlaybackOutcome",
    "ProtocolError",
    "SessionCancelled",
    "SessionResult",
    "TokenError",
    "TranscodeError",
]
