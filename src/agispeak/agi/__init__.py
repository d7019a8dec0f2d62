"""Asterisk Gateway Interface channel adapter for agispeak."""

from .channel import AgiChannel, AgiResponse

__all__ = ["AgiChannel", "AgiResponse"]
