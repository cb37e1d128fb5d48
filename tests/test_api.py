"""Tests for the watch() and clean_destination() entry points."""

import errno
import time

import pytest

from src.globsync import api
from src.globsync.api import clean_destination, watch
from src.globsync.config import SyncConfig, WatchOptions
from src.globsync.exceptions import CleanError
from src.globsync.models import EventType, WatcherState


def wait_for(predicate, timeout=5.0, interval=0.02):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def trees(workdir):
    """Source a/ and a stale destination b/."""
    (workdir / "a" / "sub").mkdir(parents=True)
    (workdir / "a" / "hello.txt").write_text("Hello")
    (workdir / "b" / "sub").mkdir(parents=True)
    (workdir / "b" / "stale.txt").write_text("stale")
    (workdir / "b" / "sub" / "old.txt").write_text("old")
    (workdir / "b" / "keep.dat").write_text("keep")
    return workdir


class TestCleanDestination:
    """Tests for clean_destination."""

    def test_removes_matching_files(self, trees):
        options = WatchOptions.from_glob("a/**/*.txt", "b")

        removed = clean_destination(options)

        assert sorted(removed) == ["b/stale.txt", "b/sub/old.txt"]
        assert not (trees / "b" / "stale.txt").exists()
        assert not (trees / "b" / "sub").exists()
        assert (trees / "b" / "keep.dat").exists()

    def test_missing_destination(self, workdir):
        (workdir / "a").mkdir()
        options = WatchOptions.from_glob("a/*.txt", "b")

        assert clean_destination(options) == []

    def test_removes_directories_when_mirrored(self, workdir):
        (workdir / "a").mkdir()
        (workdir / "b" / "empty" / "nested").mkdir(parents=True)
        options = WatchOptions.from_glob("a/**", "b", include_empty_dirs=True)

        clean_destination(options)

        assert not (workdir / "b" / "empty").exists()

    def test_keeps_directories_by_default(self, workdir):
        (workdir / "a").mkdir()
        (workdir / "b" / "empty").mkdir(parents=True)
        options = WatchOptions.from_glob("a/**", "b")

        clean_destination(options)

        assert (workdir / "b" / "empty").is_dir()

    def test_failure_raises_clean_error(self, trees):
        def failing_remove(path):
            raise PermissionError(errno.EACCES, "Permission denied", path)

        options = WatchOptions.from_glob("a/**/*.txt", "b", remove=failing_remove)

        with pytest.raises(CleanError):
            clean_destination(options)


class TestWatch:
    """Tests for watch()."""

    def test_opens_and_copies(self, trees):
        ready = []
        watcher = watch(
            "a/**/*.txt",
            "b",
            listeners={"watch-ready": ready.append},
            config=SyncConfig(debounce_ms=50),
        )
        try:
            assert watcher.wait_ready(5.0)
            assert (trees / "b" / "hello.txt").read_text() == "Hello"
            assert (trees / "b" / "stale.txt").exists()
            assert wait_for(lambda: ready == [None])
        finally:
            watcher.close()

    def test_clean_before_watch(self, trees):
        watcher = watch("a/**/*.txt", "b", clean=True, config=SyncConfig(debounce_ms=50))
        try:
            assert watcher.wait_ready(5.0)
            assert (trees / "b" / "hello.txt").exists()
            assert not (trees / "b" / "stale.txt").exists()
            assert (trees / "b" / "keep.dat").exists()
        finally:
            watcher.close()

    def test_clean_failure_does_not_open(self, trees, monkeypatch):
        opened = []

        def failing_clean(options):
            raise CleanError("cannot clean")

        monkeypatch.setattr(api, "clean_destination", failing_clean)
        monkeypatch.setattr(api.Watcher, "open", lambda self: opened.append(self))

        with pytest.raises(CleanError):
            watch("a/**/*.txt", "b", clean=True)

        assert opened == []

    def test_config_from_environment(self, trees, monkeypatch):
        monkeypatch.setenv("GLOBSYNC_DEBOUNCE_MS", "25")
        watcher = watch("a/**/*.txt", "b")
        try:
            assert watcher.config.debounce_ms == 25
            assert watcher.wait_ready(5.0)
        finally:
            watcher.close()

    def test_listener_by_enum(self, trees):
        copies = []
        watcher = watch(
            "a/**/*.txt",
            "b",
            listeners={EventType.COPY: copies.append},
            config=SyncConfig(debounce_ms=50),
        )
        try:
            assert wait_for(lambda: len(copies) == 1)
            assert copies[0].dst_path == "b/hello.txt"
        finally:
            watcher.close()
        assert watcher.state is WatcherState.CLOSED

    @pytest.mark.parametrize("source,out_dir", [("", "b"), ("a/*.txt", ""), ("  ", "b")])
    def test_invalid_arguments(self, workdir, source, out_dir):
        with pytest.raises(ValueError):
            watch(source, out_dir)
