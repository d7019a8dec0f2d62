"""Custom agispeak exceptions."""


class AgiSpeakError(Exception):
    """Base exception for every fatal session condition."""

    def __init__(
        self, message: str, original_error: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.original_error = original_error


class ConfigurationError(AgiSpeakError):
    """Exception raised when the session cannot be configured.

    This typically occurs when:
    - Client credentials for the speech service are missing
    - mpg123 or sox cannot be found
    - Language or speed arguments are invalid
    """

    pass


class ProtocolError(AgiSpeakError):
    """Exception raised for unexpected AGI channel responses.

    Usually means the channel has been torn down, so it is never retried.
    """

    def __init__(
        self,
        message: str,
        response: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.response = response


class FetchError(AgiSpeakError):
    """Exception raised when the speech request fails.

    This typically occurs when:
    - The service answers with a non-success status (401, 5xx, ...)
    - The request times out
    - The response carries no audio
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.status_code = status_code


class TokenError(AgiSpeakError):
    """Exception raised when the credential exchange fails or is unparseable."""

    pass


class TranscodeError(AgiSpeakError):
    """Exception raised when mpg123 or sox exits with a non-zero status."""

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.returncode = returncode


class SessionCancelled(AgiSpeakError):
    """Exception raised when a hangup or termination signal aborts the session."""

    pass
