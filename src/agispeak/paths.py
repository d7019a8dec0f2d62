"""XDG-compliant directory paths for agispeak."""

import os
import tempfile
from pathlib import Path


def get_runtime_dir() -> Path:
    """Get the host-scoped scratch directory for the token file.

    Priority:
    1. $XDG_RUNTIME_DIR/agispeak/ (auto-cleaned on logout)
    2. /dev/shm/agispeak-{uid}/ (memory backed, survives between calls)
    3. {tempdir}/agispeak-{uid}/ (last resort)

    The directory is not created here; callers that persist state create it
    and fall back to memory when that fails.

    Returns:
        Path to runtime directory
    """
    uid = os.getuid()

    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        return Path(runtime_dir) / "agispeak"

    shm = Path("/dev/shm")
    if shm.is_dir() and os.access(shm, os.W_OK):
        return shm / f"agispeak-{uid}"

    return Path(tempfile.gettempdir()) / f"agispeak-{uid}"


def get_token_path() -> Path:
    """Get the default token cache file path."""
    return get_runtime_dir() / "token"


def get_config_dir() -> Path:
    """Get XDG-compliant configuration directory.

    Priority:
    1. $XDG_CONFIG_HOME/agispeak/
    2. ~/.config/agispeak/

    Returns:
        Path to configuration directory
    """
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "agispeak"
    return Path.home() / ".config" / "agispeak"
