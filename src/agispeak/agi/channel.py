"""Line-oriented AGI command channel.

Every command is one line on stdout, answered by one ``200 result=<int>``
line on stdin. The channel is blocking and has no timeouts; Asterisk closes
stdin when the call goes away.
"""

import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from ..cancellation import CancellationToken
from ..tts.errors import ProtocolError

logger = logging.getLogger(__name__)

_RESPONSE_RE = re.compile(r"^200 result=(-?\d+)\s?(.*)$")

# Asterisk answers some malformed commands with a multi-line 520 usage
# message. Only this shape is known to carry one trailing line; it is read
# so the next command sees its own response.
RESYNC_PREFIX = "520-Invalid"

CHANNEL_UP = 4
INTERRUPT_SYMBOLS = "*#"


@dataclass(frozen=True)
class AgiResponse:
    """Parsed ``200 result=<int> <payload>`` line."""

    result: int
    data: str = ""

    @property
    def value(self) -> str:
        """Payload with the surrounding parentheses Asterisk adds removed."""
        data = self.data.strip()
        if data.startswith("(") and data.endswith(")"):
            return data[1:-1]
        return data

    def interrupt_key(self) -> str | None:
        """Map a STREAM FILE result to the key pressed, if any."""
        if self.result < 32:
            return None
        key = chr(self.result)
        if key.isalnum() or key in INTERRUPT_SYMBOLS:
            return key
        return None


class AgiChannel:
    """AGI command channel over a pair of text streams.

    Example:
        channel = AgiChannel(sys.stdin, sys.stdout)
        env = channel.read_environment()
        channel.ensure_answered()
        response = channel.stream_file("/var/lib/asterisk/sounds/tts/abc", "#")
    """

    def __init__(
        self,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self._stdin = stdin if stdin is not None else sys.stdin
        self._stdout = stdout if stdout is not None else sys.stdout
        self._cancellation = cancellation
        self.environment: dict[str, str] = {}

    def read_environment(self) -> dict[str, str]:
        """Read the ``agi_<name>: <value>`` block Asterisk sends on startup."""
        env: dict[str, str] = {}
        while True:
            line = self._stdin.readline()
            if not line or not line.strip():
                break
            name, sep, value = line.rstrip("\n").partition(":")
            if sep and name.startswith("agi_"):
                env[name[4:]] = value.strip()
        self.environment = env
        logger.debug(f"AGI environment: {env}")
        return env

    def command(self, line: str) -> AgiResponse:
        """Send one command and read its response.

        Raises:
            ProtocolError: If the channel is gone or the response is malformed
            SessionCancelled: If the session was cancelled
        """
        if self._cancellation is not None:
            self._cancellation.raise_if_cancelled()
        logger.debug(f"AGI command: {line}")
        try:
            self._stdout.write(line + "\n")
            self._stdout.flush()
        except OSError as e:
            raise ProtocolError(f"Failed to send {line!r}: {e}", None, e) from e
        return self._read_response()

    def _read_response(self) -> AgiResponse:
        line = self._stdin.readline()
        if not line:
            raise ProtocolError("Channel closed while waiting for a response")
        line = line.rstrip("\r\n")
        match = _RESPONSE_RE.match(line)
        if match:
            logger.debug(f"AGI response: {line}")
            return AgiResponse(int(match.group(1)), match.group(2))
        if line.startswith(RESYNC_PREFIX):
            line += " " + self._stdin.readline().rstrip("\r\n")
        raise ProtocolError(f"Unexpected result: {line}", line)

    def channel_status(self) -> int:
        return self.command("CHANNEL STATUS").result

    def answer(self) -> None:
        response = self.command("ANSWER")
        if response.result != 0:
            raise ProtocolError("Failed to answer channel", response.data)

    def ensure_answered(self) -> None:
        """Answer the channel unless it is already up."""
        if self.channel_status() != CHANNEL_UP:
            self.answer()

    def stream_file(self, path: str | Path, interrupt_keys: str = "") -> AgiResponse:
        """Play a sound file, given without its format extension."""
        return self.command(f'STREAM FILE {path} "{interrupt_keys}"')

    def set_extension(self, extension: str) -> AgiResponse:
        return self.command(f"SET EXTENSION {extension}")

    def set_priority(self, priority: int = 1) -> AgiResponse:
        return self.command(f"SET PRIORITY {priority}")

    def get_full_variable(self, name: str) -> str | None:
        """Evaluate a channel variable expression such as ``CHANNEL(language)``.

        Returns:
            The variable value, or None if Asterisk reports it as unset
        """
        response = self.command(f"GET FULL VARIABLE ${{{name}}}")
        if response.result != 1:
            return None
        return response.value

    def noop(self, message: str) -> AgiResponse:
        """Print a diagnostic message in the channel's verbose trace."""
        message = message.replace('"', "'").replace("\n", " ")
        return self.command(f'NOOP "{message}"')
