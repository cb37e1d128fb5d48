"""Tests for configuration module."""

import dataclasses

import pytest

from src.globsync.config import SyncConfig, WatchOptions
from src.globsync.file_ops import CopyOptions, copy_file, remove_file


class TestSyncConfig:
    """Tests for SyncConfig class."""

    def test_defaults(self):
        config = SyncConfig()
        assert config.debounce_ms == 100
        assert config.max_retries == 10
        assert config.max_concurrency == 5
        assert config.retry_delay_ms == 50
        assert config.join_timeout_s == 5.0

    def test_from_env_defaults(self):
        assert SyncConfig.from_env({}) == SyncConfig()

    def test_from_env_overrides(self):
        config = SyncConfig.from_env({
            "GLOBSYNC_DEBOUNCE_MS": "250",
            "GLOBSYNC_MAX_RETRIES": "3",
            "GLOBSYNC_MAX_CONCURRENCY": "8",
            "GLOBSYNC_RETRY_DELAY_MS": "0",
        })
        assert config.debounce_ms == 250
        assert config.max_retries == 3
        assert config.max_concurrency == 8
        assert config.retry_delay_ms == 0

    def test_from_env_ignores_invalid(self):
        config = SyncConfig.from_env({"GLOBSYNC_DEBOUNCE_MS": "soon"})
        assert config.debounce_ms == 100

    def test_from_env_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("GLOBSYNC_MAX_RETRIES", "2")
        assert SyncConfig.from_env().max_retries == 2


class TestWatchOptions:
    """Tests for WatchOptions class."""

    def test_from_glob(self, workdir):
        options = WatchOptions.from_glob("./a/**/*.txt", "b/")

        assert options.source == "a/**/*.txt"
        assert options.base_dir == "a"
        assert options.out_dir == "b"
        assert options.initial_copy is True
        assert options.dereference is False
        assert options.include_empty_dirs is False
        assert options.copy is copy_file
        assert options.remove.func is remove_file
        assert options.remove.keywords == {"root": "b"}
        assert options.copy_options == CopyOptions()

    def test_translate_built(self, workdir):
        options = WatchOptions.from_glob("a/**/*.txt", "b")
        assert options.translate("a/b/new.txt") == "b/b/new.txt"

    def test_absolute_source(self, workdir):
        options = WatchOptions.from_glob(str(workdir / "src" / "*.js"), "dist")
        assert options.source == "src/*.js"
        assert options.base_dir == "src"

    def test_copy_options(self, workdir):
        def transform(path, content):
            return content

        options = WatchOptions.from_glob("a/*.txt", "b", update=True, preserve=True, transforms=[transform])

        assert options.copy_options == CopyOptions(update=True, preserve=True, transforms=(transform,))

    def test_custom_remove_kept(self, workdir):
        def remove(path):
            return None

        options = WatchOptions.from_glob("a/*.txt", "b", remove=remove)
        assert options.remove is remove

    def test_explicit_translate_kept(self):
        options = WatchOptions(source="a/*.txt", base_dir="a", out_dir="b", translate=str.upper)
        assert options.translate("a/x.txt") == "A/X.TXT"

    def test_frozen(self, workdir):
        options = WatchOptions.from_glob("a/*.txt", "b")
        with pytest.raises(dataclasses.FrozenInstanceError):
            options.source = "c/*.txt"

    @pytest.mark.parametrize("source,out_dir", [
        ("", "b"),
        ("   ", "b"),
        ("a/*.txt", ""),
        (None, "b"),
    ])
    def test_invalid(self, source, out_dir):
        with pytest.raises(ValueError):
            WatchOptions.from_glob(source, out_dir)
