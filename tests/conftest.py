"""Pytest configuration and fixtures for agispeak tests."""

import sys
from pathlib import Path

import pytest

# Add src and the tests directory (for test_helpers) to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from agispeak.config import CacheConfig, PathsConfig, ServiceConfig, SessionConfig
from test_helpers import SPEECH_URL, TOKEN_URL, FakeSpeechService


@pytest.fixture
def speech_service() -> FakeSpeechService:
    """Fresh fake token/speech endpoint pair."""
    return FakeSpeechService()


@pytest.fixture
def service_config() -> ServiceConfig:
    return ServiceConfig(
        client_id="client-id",
        client_secret="s3cret/+=",
        token_url=TOKEN_URL,
        speech_url=SPEECH_URL,
        scope="http://api.microsofttranslator.com",
        audio_format="audio/mp3",
        quality="MaxQuality",
        timeout=5.0,
    )


@pytest.fixture
def session_config(tmp_path: Path, service_config: ServiceConfig) -> SessionConfig:
    """Session config rooted in tmp_path, with cache enabled."""
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    return SessionConfig(
        service=service_config,
        cache=CacheConfig(enabled=True, directory=tmp_path / "cache"),
        paths=PathsConfig(
            tmp_dir=scratch,
            token_file=tmp_path / "run" / "token",
            mpg123="/usr/bin/mpg123",
            sox="/usr/bin/sox",
        ),
        language="en-US",
        speed=1.0,
        interrupt_keys="0123456789#*",
        sample_rate=None,
    )
