"""Key-addressed audio cache for agispeak."""

from .manager import CacheStore, cache_key

__all__ = ["CacheStore", "cache_key"]
