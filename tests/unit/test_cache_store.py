"""Unit tests for CacheStore and cache key derivation."""

import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from agispeak.cache.manager import CACHE_PATH_LIMIT, HASH_LENGTH, CacheStore, cache_key
from agispeak.tts.errors import SessionCancelled
from agispeak.tts.models import AudioFormatSpec

SLN16 = AudioFormatSpec("sln16", 16000)


class TestCacheKey:
    """Test cache key derivation."""

    def test_key_deterministic(self) -> None:
        """Test that same inputs always produce same key."""
        key1 = cache_key("Hello world.", "en-US", 1.0)
        key2 = cache_key("Hello world.", "en-US", 1.0)
        assert key1 == key2
        assert len(key1) == HASH_LENGTH
        assert all(c in "0123456789abcdef" for c in key1)

    def test_key_differs_by_each_input(self) -> None:
        base = cache_key("Hello world.", "en-US", 1.0)
        assert cache_key("Goodbye world.", "en-US", 1.0) != base
        assert cache_key("Hello world.", "de-DE", 1.0) != base
        assert cache_key("Hello world.", "en-US", 1.5) != base

    def test_int_and_float_speed_agree(self) -> None:
        assert cache_key("Hi.", "en", 1) == cache_key("Hi.", "en", 1.0)

    def test_none_inputs_rejected(self) -> None:
        with pytest.raises(ValueError, match="must be non-None"):
            cache_key(None, "en", 1.0)


class TestCacheStore:
    """Test lookup and commit."""

    def test_lookup_miss(self, tmp_path: Path) -> None:
        store = CacheStore(tmp_path / "cache", SLN16)
        assert store.enabled
        assert store.lookup(cache_key("x.", "en", 1.0)) is None

    def test_commit_then_lookup(self, tmp_path: Path) -> None:
        store = CacheStore(tmp_path / "cache", SLN16)
        key = cache_key("Hello.", "en-US", 1.0)
        temp = tmp_path / "work.sln16"
        temp.write_bytes(b"\x01\x02raw-audio")

        final = store.commit(temp, key)

        assert final == tmp_path / "cache" / f"{key}.sln16"
        assert store.lookup(key) == final
        assert final.read_bytes() == b"\x01\x02raw-audio"
        assert not temp.exists()

    def test_commit_leaves_no_staging_files(self, tmp_path: Path) -> None:
        store = CacheStore(tmp_path / "cache", SLN16)
        temp = tmp_path / "work.sln16"
        temp.write_bytes(b"data")
        store.commit(temp, "k" * HASH_LENGTH)
        assert sorted(p.name for p in (tmp_path / "cache").iterdir()) == [
            f"{'k' * HASH_LENGTH}.sln16"
        ]

    def test_commit_replaces_existing_entry(self, tmp_path: Path) -> None:
        store = CacheStore(tmp_path / "cache", SLN16)
        for payload in (b"first", b"second"):
            temp = tmp_path / "work.sln16"
            temp.write_bytes(payload)
            store.commit(temp, "key")
        assert store.path_for("key").read_bytes() == b"second"

    def test_failed_rename_removes_staging_file(self, tmp_path: Path) -> None:
        store = CacheStore(tmp_path / "cache", SLN16)
        temp = tmp_path / "work.sln16"
        temp.write_bytes(b"data")

        with patch("agispeak.cache.manager.os.replace", side_effect=OSError("disk")):
            with pytest.raises(OSError, match="disk"):
                store.commit(temp, "key")

        assert list((tmp_path / "cache").iterdir()) == []
        assert store.lookup("key") is None

    def test_cancelled_move_removes_staging_file(self, tmp_path: Path) -> None:
        store = CacheStore(tmp_path / "cache", SLN16)
        temp = tmp_path / "work.sln16"
        temp.write_bytes(b"data")

        def interrupted_move(src: str, dst: str) -> None:
            # Cross-device move copies first, then the hangup arrives
            Path(dst).write_bytes(Path(src).read_bytes())
            raise SessionCancelled("Session cancelled: SIGHUP")

        with patch(
            "agispeak.cache.manager.shutil.move", side_effect=interrupted_move
        ):
            with pytest.raises(SessionCancelled):
                store.commit(temp, "key")

        assert list((tmp_path / "cache").iterdir()) == []

    def test_lookup_uses_format_tag(self, tmp_path: Path) -> None:
        cache_dir = tmp_path / "cache"
        cache_dir.mkdir()
        (cache_dir / "key.sln").write_bytes(b"8k audio")
        assert CacheStore(cache_dir, SLN16).lookup("key") is None


class TestCacheDegradation:
    """Test that unusable cache locations disable caching instead of failing."""

    def test_path_ceiling_disables_cache(self, tmp_path: Path) -> None:
        long_dir = tmp_path / ("d" * CACHE_PATH_LIMIT)
        store = CacheStore(long_dir, SLN16)
        assert store.enabled is False
        assert store.lookup("key") is None

    def test_disabled_store_refuses_commit(self, tmp_path: Path) -> None:
        store = CacheStore(tmp_path / "cache", SLN16, enabled=False)
        temp = tmp_path / "work.sln16"
        temp.write_bytes(b"data")
        with pytest.raises(RuntimeError, match="Cache is disabled"):
            store.commit(temp, "key")
        assert temp.exists()

    def test_uncreatable_directory_disables_cache(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = CacheStore(blocker / "cache", SLN16)
        assert store.enabled is False

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores permissions")
    def test_read_only_directory_disables_cache(self, tmp_path: Path) -> None:
        cache_dir = tmp_path / "cache"
        cache_dir.mkdir(mode=0o500)
        try:
            assert CacheStore(cache_dir, SLN16).enabled is False
        finally:
            cache_dir.chmod(0o700)
