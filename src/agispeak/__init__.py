"""agispeak - Asterisk AGI text-to-speech bridge using a remote speech service."""

__version__ = "0.1.0"
__all__ = ["speak"]


def __getattr__(name: str):  # type: ignore[no-untyped-def]
    if name == "speak":
        from .core import run_session

        return run_session
    raise AttributeError(f"module 'agispeak' has no attribute {name!r}")
