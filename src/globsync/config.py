"""Configuration for the globsync package."""

import logging
import os
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Optional, Sequence

from .file_ops import CopyOptions, Transform, copy_file, remove_file
from .paths import glob_base, make_translator, normalize_path

logger = logging.getLogger(__name__)


@dataclass
class SyncConfig:
    """
    Tunables for the watch-and-synchronize engine.

    Attributes:
        debounce_ms: Quiet period before the pending queue is drained
        max_retries: Consecutive transient failures tolerated per path
        max_concurrency: Copy/remove operations allowed in flight at once
        retry_delay_ms: Pause before re-draining when a round queued retries
        join_timeout_s: How long close() waits for the observer thread
    """
    debounce_ms: int = 100
    max_retries: int = 10
    max_concurrency: int = 5
    retry_delay_ms: int = 50
    join_timeout_s: float = 5.0

    ENV_PREFIX = "GLOBSYNC_"

    @classmethod
    def from_env(cls, environ=None) -> "SyncConfig":
        """
        Build a config from ``GLOBSYNC_*`` environment variables.

        Unset variables keep their defaults; malformed values are logged and
        ignored.
        """
        environ = os.environ if environ is None else environ
        config = cls()
        for name in ("debounce_ms", "max_retries", "max_concurrency", "retry_delay_ms"):
            raw = environ.get(cls.ENV_PREFIX + name.upper())
            if raw is None:
                continue
            try:
                setattr(config, name, int(raw))
            except ValueError:
                logger.warning(f"Ignoring invalid {cls.ENV_PREFIX + name.upper()}={raw!r}")
        return config


@dataclass(frozen=True)
class WatchOptions:
    """
    Immutable options of one watch.

    Attributes:
        source: Normalized glob pattern of the source files
        base_dir: Non-wildcard prefix of ``source``; the watched root
        out_dir: Destination directory
        dereference: Follow symbolic links into linked directories
        include_empty_dirs: Mirror matched directories, not only files
        initial_copy: Copy already existing files when the watch opens
        translate: Maps a normalized source path to its destination path
        copy: Copy collaborator ``copy(source, destination, copy_options)``
        remove: Remove collaborator ``remove(destination)``; the default
            prunes emptied directories up to ``out_dir``
        copy_options: Passed through to ``copy``
    """
    source: str
    base_dir: str
    out_dir: str
    dereference: bool = False
    include_empty_dirs: bool = False
    initial_copy: bool = True
    translate: Optional[Callable[[str], str]] = None
    copy: Callable[..., object] = copy_file
    remove: Callable[[str], object] = remove_file
    copy_options: CopyOptions = field(default_factory=CopyOptions)

    def __post_init__(self):
        if self.translate is None:
            object.__setattr__(self, "translate", make_translator(self.base_dir, self.out_dir))
        if self.remove is remove_file:
            object.__setattr__(self, "remove", partial(remove_file, root=normalize_path(self.out_dir)))

    @classmethod
    def from_glob(
        cls,
        source: str,
        out_dir: str,
        *,
        dereference: bool = False,
        include_empty_dirs: bool = False,
        initial_copy: bool = True,
        preserve: bool = False,
        update: bool = False,
        transforms: Sequence[Transform] = (),
        copy: Callable[..., object] = copy_file,
        remove: Callable[[str], object] = remove_file,
    ) -> "WatchOptions":
        """
        Create options from a glob pattern and a destination directory.

        Raises:
            ValueError: If source or out_dir is empty
        """
        if not isinstance(source, str) or not source.strip():
            raise ValueError("'source' should be a non-empty string")
        if not isinstance(out_dir, str) or not out_dir.strip():
            raise ValueError("'out_dir' should be a non-empty string")

        normalized_source = normalize_path(source)
        return cls(
            source=normalized_source,
            base_dir=glob_base(normalized_source),
            out_dir=normalize_path(out_dir),
            dereference=dereference,
            include_empty_dirs=include_empty_dirs,
            initial_copy=initial_copy,
            copy=copy,
            remove=remove,
            copy_options=CopyOptions(
                update=update,
                preserve=preserve,
                transforms=tuple(transforms),
            ),
        )
