"""Speech service client."""

import logging

import httpx

from ..cancellation import CancellationToken
from ..config import ServiceConfig
from .errors import FetchError

logger = logging.getLogger(__name__)


class SynthesisClient:
    """Client for the remote text-to-speech endpoint.

    One blocking GET per segment; the response body is the compressed audio.
    """

    def __init__(
        self,
        service: ServiceConfig,
        http_client: httpx.Client,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self._service = service
        self._http = http_client
        self._cancellation = cancellation

    def synthesize(self, text: str, language: str, token: str) -> bytes:
        """Convert text to compressed audio bytes.

        Args:
            text: Segment text
            language: Language code
            token: Bearer value from the TokenManager

        Returns:
            Audio data as bytes (format set by service.audio_format)

        Raises:
            FetchError: If the request fails, times out or returns no audio
            ValueError: If text is empty
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")
        if self._cancellation is not None:
            self._cancellation.raise_if_cancelled()

        params = {
            "text": text,
            "language": language,
            "format": self._service.audio_format,
            "options": self._service.quality,
            "appid": token,
        }
        try:
            response = self._http.get(
                self._service.speech_url,
                params=params,
                timeout=self._service.timeout,
            )
        except httpx.TimeoutException as e:
            raise FetchError(
                f"Speech request timed out after {self._service.timeout}s", None, e
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Speech request failed: {e}", None, e) from e

        if response.status_code in (401, 403):
            raise FetchError(
                f"Authentication failed: {response.status_code}", response.status_code
            )
        if not response.is_success:
            raise FetchError(
                f"Speech request failed with status {response.status_code}",
                response.status_code,
            )
        if not response.content:
            raise FetchError("No audio data received from API", response.status_code)

        logger.debug(f"Received {len(response.content)} bytes of audio")
        return response.content
