"""Entry points: clean a destination and start watching."""

import logging
from typing import Dict, List, Optional, Sequence, Union

from .config import SyncConfig, WatchOptions
from .emitter import Listener
from .exceptions import CleanError
from .file_ops import Transform
from .matcher import PathMatcher
from .models import EventType
from .walker import walk
from .watcher import Watcher

logger = logging.getLogger(__name__)


def clean_destination(options: WatchOptions) -> List[str]:
    """
    Remove the destination counterparts of everything the glob can match.

    The glob is translated to the destination tree; files it matches are
    removed (and directories, when ``include_empty_dirs`` is set), deepest
    first. Emptied parent directories are removed along the way.

    Args:
        options: Watch options

    Returns:
        The removed destination paths

    Raises:
        CleanError: If any removal fails
    """
    pattern = options.translate(options.source)
    if pattern == options.source:
        return []

    base = options.translate(options.base_dir)
    matcher = PathMatcher(pattern)
    files: List[str] = []
    directories: List[str] = []

    try:
        for _, snapshot in walk(base, options.dereference):
            for path in sorted(snapshot):
                if not matcher.matches(path):
                    continue
                if snapshot[path].is_directory:
                    directories.append(path)
                else:
                    files.append(path)

        removed = []
        for path in files:
            options.remove(path)
            removed.append(path)
        if options.include_empty_dirs:
            for path in reversed(directories):
                options.remove(path)
                removed.append(path)
    except OSError as e:
        raise CleanError(f"Cannot clean {base}: {e}") from e

    logger.info(f"Cleaned {len(removed)} path(s) from {base}")
    return removed


def watch(
    source: str,
    out_dir: str,
    *,
    clean: bool = False,
    dereference: bool = False,
    include_empty_dirs: bool = False,
    initial_copy: bool = True,
    preserve: bool = False,
    update: bool = False,
    transforms: Sequence[Transform] = (),
    listeners: Optional[Dict[Union[EventType, str], Listener]] = None,
    config: Optional[SyncConfig] = None,
) -> Watcher:
    """
    Mirror the files matching a glob into a directory and keep them in sync.

    Args:
        source: Glob pattern of the source files
        out_dir: Destination directory
        clean: Remove matching destination files before watching
        dereference: Follow symbolic links into linked directories
        include_empty_dirs: Mirror matched directories too
        initial_copy: Copy the files that already exist
        preserve: Copy owner, group and timestamps too
        update: Do not overwrite newer destination files
        transforms: Content transforms applied on copy
        listeners: Event name -> listener, subscribed before opening
        config: Engine tunables (defaults from the environment)

    Returns:
        The opened watcher; call ``close()`` to stop it

    Raises:
        ValueError: If source or out_dir is empty
        CleanError: If cleaning failed; the watcher is not opened
        WatchSetupError: If the base directory cannot be walked
    """
    options = WatchOptions.from_glob(
        source,
        out_dir,
        dereference=dereference,
        include_empty_dirs=include_empty_dirs,
        initial_copy=initial_copy,
        preserve=preserve,
        update=update,
        transforms=transforms,
    )
    watcher = Watcher(options, config or SyncConfig.from_env())
    for event, listener in (listeners or {}).items():
        watcher.on(event, listener)

    if clean:
        try:
            clean_destination(options)
        except CleanError:
            watcher.close()
            raise

    return watcher.open()
