"""Unit tests for cancellation tokens and signal handling."""

import os
import signal
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from agispeak.cancellation import CancellationToken, cancel_on_signals
from agispeak.tts.errors import SessionCancelled


class TestCancellationToken:
    def test_initially_not_cancelled(self) -> None:
        token = CancellationToken()
        assert token.cancelled is False
        token.raise_if_cancelled()

    def test_cancel_raises_with_first_reason(self) -> None:
        token = CancellationToken()
        token.cancel("SIGHUP")
        token.cancel("SIGTERM")
        assert token.cancelled is True
        with pytest.raises(SessionCancelled, match="SIGHUP"):
            token.raise_if_cancelled()


class TestCancelOnSignals:
    def test_signal_cancels_and_aborts(self) -> None:
        token = CancellationToken()
        with pytest.raises(SessionCancelled, match="SIGHUP"):
            with cancel_on_signals(token, (signal.SIGHUP,)):
                os.kill(os.getpid(), signal.SIGHUP)
        assert token.cancelled
        assert token.reason == "SIGHUP"

    def test_previous_handlers_restored(self) -> None:
        before = signal.getsignal(signal.SIGTERM)
        with cancel_on_signals(CancellationToken(), (signal.SIGTERM,)):
            assert signal.getsignal(signal.SIGTERM) is not before
        assert signal.getsignal(signal.SIGTERM) is before
