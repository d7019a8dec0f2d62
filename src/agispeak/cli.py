"""Typer CLI definition for agispeak.

Asterisk runs the program from the dialplan, for example::

    exten => 1,n,AGI(agispeak,"Welcome to our company",en-US,any,1.0)

Arguments are positional so they line up with AGI(...) parameters.
"""

import logging
import sys
from pathlib import Path

import typer

from .agi.channel import AgiChannel
from .cancellation import CancellationToken, cancel_on_signals
from .config import build_session_config
from .core import run_session
from .tts.errors import AgiSpeakError, ConfigurationError
from .tts.models import SessionResult

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Speak text on an Asterisk channel using a remote TTS service",
    add_completion=False,
)


@app.command()
def speak(
    text: str = typer.Argument(..., help="Text to speak"),
    language: str = typer.Argument("en-US", help="Language code, e.g. en-US"),
    interrupt_keys: str = typer.Argument(
        "", help='Keys that interrupt playback, or "any"'
    ),
    speed: str = typer.Argument("1", help="Speed factor (0.1-10)"),
    sample_rate: str = typer.Argument(
        "", help="Explicit sample rate; detected from the channel if omitted"
    ),
    config_file: Path | None = typer.Option(
        None,
        "-c",
        "--config",
        help="Config file (default ~/.config/agispeak/config.toml)",
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Log to stderr and echo diagnostics into the channel"
    ),
) -> None:
    """Convert text to speech and stream it on the current AGI channel."""
    # stdout carries the AGI protocol, so logs go to stderr
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            stream=sys.stderr,
        )

    cancellation = CancellationToken()
    channel = AgiChannel(sys.stdin, sys.stdout, cancellation)

    with cancel_on_signals(cancellation):
        try:
            channel.read_environment()
            config = build_session_config(
                language=language,
                interrupt_keys=interrupt_keys,
                speed=speed,
                sample_rate=sample_rate,
                debug=debug,
                path=config_file,
            )
            result = run_session(text, config, channel, cancellation)
        except ConfigurationError as e:
            typer.echo(f"Error: {e}", err=True)
            _report_to_channel(channel, e)
            raise typer.Exit(1) from None
        except AgiSpeakError as e:
            if debug:
                typer.echo(f"Debug - Session error: {e!r}", err=True)
            else:
                typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from None

    if result is SessionResult.ABORTED:
        raise typer.Exit(1)
    logger.debug(f"Session finished: {result.value}")


def _report_to_channel(channel: AgiChannel, error: AgiSpeakError) -> None:
    try:
        channel.noop(f"agispeak: {error}")
    except AgiSpeakError as e:
        logger.debug(f"Could not report error to channel: {e}")
