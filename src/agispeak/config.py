"""Configuration management for agispeak.

Loads optional configuration from ~/.config/agispeak/config.toml.
Priority chain: AGI arguments > env vars > config file > defaults.

The resolved SessionConfig is immutable and handed to every component;
nothing reads the environment after it has been built.
"""

import os
import re
import shutil
import tempfile
import tomllib
from dataclasses import dataclass
from pathlib import Path

from .paths import get_config_dir, get_token_path
from .tts.errors import ConfigurationError

DEFAULT_TOKEN_URL = "https://datamarket.accesscontrol.windows.net/v2/OAuth2-13/"
DEFAULT_SPEECH_URL = "https://api.microsofttranslator.com/V2/Http.svc/Speak"
DEFAULT_SCOPE = "http://api.microsofttranslator.com"
DEFAULT_CACHE_DIR = Path("/var/lib/asterisk/sounds/tts")

DEFAULT_LANGUAGE = "en-US"
ALL_INTERRUPT_KEYS = "0123456789#*"
MIN_SPEED = 0.1
MAX_SPEED = 10.0

_LANGUAGE_RE = re.compile(r"^[a-zA-Z]{2}(-[a-zA-Z]{2,})?$")


@dataclass(frozen=True)
class ServiceConfig:
    """Remote speech service configuration."""

    client_id: str
    client_secret: str
    token_url: str
    speech_url: str
    scope: str
    audio_format: str
    quality: str
    timeout: float


@dataclass(frozen=True)
class CacheConfig:
    """Audio cache configuration."""

    enabled: bool
    directory: Path


@dataclass(frozen=True)
class PathsConfig:
    """Scratch locations and external tool paths."""

    tmp_dir: Path
    token_file: Path
    mpg123: str
    sox: str


@dataclass(frozen=True)
class SessionConfig:
    """Everything one speech session needs, resolved once at startup."""

    service: ServiceConfig
    cache: CacheConfig
    paths: PathsConfig
    language: str
    speed: float
    interrupt_keys: str
    sample_rate: int | None
    debug: bool = False


def config_path() -> Path:
    """Return the location of the optional config file."""
    return get_config_dir() / "config.toml"


def load_config_file(path: Path | None = None) -> dict:
    """Read the TOML config file, returning an empty mapping if absent.

    Raises:
        ConfigurationError: If the file exists but is not valid TOML.
    """
    path = path or config_path()
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Failed to read config file {path}: {e}", e) from e


def _env_bool(key: str, default: bool) -> bool:
    v = os.getenv(key)
    if v is None or v.strip() == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


def parse_language(value: str | None) -> str:
    """Validate a language code such as ``en`` or ``en-GB``."""
    if not value:
        return DEFAULT_LANGUAGE
    if not _LANGUAGE_RE.match(value):
        raise ConfigurationError(f"Invalid language setting: {value!r}")
    return value


def parse_speed(value: str | float | None) -> float:
    """Validate the speech speed factor."""
    if value is None or value == "":
        return 1.0
    try:
        speed = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid speed setting: {value!r}", e) from e
    if not MIN_SPEED <= speed <= MAX_SPEED:
        raise ConfigurationError(
            f"speed must be between {MIN_SPEED} and {MAX_SPEED}, got {speed}"
        )
    return speed


def parse_interrupt_keys(value: str | None) -> str:
    """Expand ``any`` and drop characters that are not DTMF keys."""
    if not value:
        return ""
    if value.strip().lower() == "any":
        return ALL_INTERRUPT_KEYS
    return "".join(c for c in value if c in ALL_INTERRUPT_KEYS)


def parse_sample_rate(value: str | int | None) -> int | None:
    """Parse an optional explicit sample rate; anything non-numeric means none."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _resolve_tool(name: str, configured: str | None) -> str:
    path = shutil.which(configured or name)
    if not path:
        raise ConfigurationError(f"{name} not found. Install it or set paths.{name}")
    return path


def _resolve_tmp_dir(configured: str) -> Path:
    path = Path(configured) if configured else Path(tempfile.gettempdir())
    if not path.is_dir() or not os.access(path, os.W_OK | os.X_OK):
        raise ConfigurationError(
            f"Scratch directory {path} is not a writable directory"
        )
    return path


def build_session_config(
    language: str | None = None,
    interrupt_keys: str | None = None,
    speed: str | float | None = None,
    sample_rate: str | int | None = None,
    debug: bool = False,
    path: Path | None = None,
) -> SessionConfig:
    """Resolve the immutable session configuration.

    Args:
        language: Language code from the AGI arguments
        interrupt_keys: Interrupt-eligible keys, or "any"
        speed: Speech speed factor
        sample_rate: Optional explicit channel sample rate
        debug: Mirror diagnostics to the channel
        path: Config file override

    Returns:
        Fully validated SessionConfig.

    Raises:
        ConfigurationError: If credentials, tools or the scratch directory
            are missing or an argument is invalid.
    """
    data = load_config_file(path)
    service = data.get("service", {})
    cache = data.get("cache", {})
    paths = data.get("paths", {})

    client_id = os.getenv("AGISPEAK_CLIENT_ID", service.get("client_id", ""))
    client_secret = os.getenv(
        "AGISPEAK_CLIENT_SECRET", service.get("client_secret", "")
    )
    missing = []
    if not client_id:
        missing.append("client_id")
    if not client_secret:
        missing.append("client_secret")
    if missing:
        raise ConfigurationError(
            f"Missing speech service credentials: {', '.join(missing)}. Set "
            "AGISPEAK_CLIENT_ID and AGISPEAK_CLIENT_SECRET or edit "
            f"{path or config_path()}"
        )

    try:
        timeout = float(service.get("timeout", 10))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid service.timeout: {e}", e) from e

    cache_dir = os.getenv("AGISPEAK_CACHE_DIR", cache.get("directory", ""))
    tmp_dir = os.getenv("AGISPEAK_TMP_DIR", paths.get("tmp_dir", ""))
    token_file = os.getenv("AGISPEAK_TOKEN_FILE", paths.get("token_file", ""))

    return SessionConfig(
        service=ServiceConfig(
            client_id=client_id,
            client_secret=client_secret,
            token_url=service.get("token_url", DEFAULT_TOKEN_URL),
            speech_url=service.get("speech_url", DEFAULT_SPEECH_URL),
            scope=service.get("scope", DEFAULT_SCOPE),
            audio_format=service.get("audio_format", "audio/mp3"),
            quality=service.get("quality", "MaxQuality"),
            timeout=timeout,
        ),
        cache=CacheConfig(
            enabled=_env_bool("AGISPEAK_CACHE", cache.get("enabled", True)),
            directory=Path(cache_dir) if cache_dir else DEFAULT_CACHE_DIR,
        ),
        paths=PathsConfig(
            tmp_dir=_resolve_tmp_dir(tmp_dir),
            token_file=Path(token_file) if token_file else get_token_path(),
            mpg123=_resolve_tool("mpg123", paths.get("mpg123")),
            sox=_resolve_tool("sox", paths.get("sox")),
        ),
        language=parse_language(language),
        speed=parse_speed(speed),
        interrupt_keys=parse_interrupt_keys(interrupt_keys),
        sample_rate=parse_sample_rate(sample_rate),
        debug=debug or _env_bool("AGISPEAK_DEBUG", False),
    )
