"""Session cancellation on hangup and termination signals."""

import logging
import signal
import threading
from collections.abc import Generator
from contextlib import contextmanager

from .tts.errors import SessionCancelled

logger = logging.getLogger(__name__)

CANCEL_SIGNALS = (signal.SIGHUP, signal.SIGTERM, signal.SIGINT)


class CancellationToken:
    """Flag observed before every blocking call of a session.

    Components call ``raise_if_cancelled()`` before talking to the channel,
    the speech service or an external tool. The flag never resets.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        """Mark the session as cancelled. The first reason wins."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise SessionCancelled if the token has been cancelled."""
        if self._event.is_set():
            raise SessionCancelled(f"Session cancelled: {self.reason}")


@contextmanager
def cancel_on_signals(
    token: CancellationToken, signals: tuple[signal.Signals, ...] = CANCEL_SIGNALS
) -> Generator[CancellationToken]:
    """Cancel ``token`` and abort the blocking call when a signal arrives.

    The handler raises SessionCancelled in the main thread so that the
    in-flight call unwinds through the caller's context managers, which
    remove temporary files. Previous handlers are restored on exit.

    Args:
        token: Token to cancel
        signals: Signals that abort the session

    Yields:
        The same token
    """

    def _handler(signum: int, frame: object) -> None:
        name = signal.Signals(signum).name
        logger.debug(f"Received {name}, cancelling session")
        token.cancel(name)
        raise SessionCancelled(f"Session cancelled: {name}")

    previous = {}
    for sig in signals:
        previous[sig] = signal.signal(sig, _handler)
    try:
        yield token
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
