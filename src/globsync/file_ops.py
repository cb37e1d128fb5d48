"""Copy and remove operations applied to the destination tree."""

import errno
import logging
import os
import shutil
import stat
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)

# (source_path, content) -> new content
Transform = Callable[[str, bytes], bytes]

_NOT_EMPTY_ERRNOS = frozenset({errno.ENOTEMPTY, errno.EEXIST})


@dataclass(frozen=True)
class CopyOptions:
    """
    Options of the copy operation.

    Attributes:
        update: Do not overwrite a destination that is newer than the source
        preserve: Also copy owner, group and timestamps
        transforms: Content transforms applied in order
    """
    update: bool = False
    preserve: bool = False
    transforms: Tuple[Transform, ...] = ()


def copy_file(source: str, destination: str, options: Optional[CopyOptions] = None) -> bool:
    """
    Copy one file or directory entry to the destination.

    Missing parent directories are created. A directory source only creates
    the destination directory.

    Args:
        source: Source path
        destination: Destination path
        options: Copy options

    Returns:
        True if the destination was written, False if ``update`` skipped it

    Raises:
        OSError: If reading the source or writing the destination fails
    """
    options = options or CopyOptions()
    src_stat = os.stat(source)

    if options.update:
        try:
            dst_stat = os.stat(destination)
        except FileNotFoundError:
            pass
        else:
            if dst_stat.st_mtime_ns > src_stat.st_mtime_ns:
                logger.debug(f"Skipping {destination}: destination is newer")
                return False

    if stat.S_ISDIR(src_stat.st_mode):
        os.makedirs(destination, exist_ok=True)
    else:
        parent = os.path.dirname(destination)
        if parent:
            os.makedirs(parent, exist_ok=True)
        if options.transforms:
            with open(source, "rb") as f:
                content = f.read()
            for transform in options.transforms:
                content = transform(source, content)
            with open(destination, "wb") as f:
                f.write(content)
        else:
            shutil.copyfile(source, destination)

    os.chmod(destination, stat.S_IMODE(src_stat.st_mode))

    if options.preserve:
        if hasattr(os, "chown"):
            os.chown(destination, src_stat.st_uid, src_stat.st_gid)
        os.utime(destination, ns=(src_stat.st_atime_ns, src_stat.st_mtime_ns))

    return True


def _within(path: str, root: str) -> bool:
    if root == ".":
        return not os.path.isabs(path) and not path.startswith("..")
    return path == root or path.startswith(root.rstrip("/") + "/")


def remove_file(target: str, root: Optional[str] = None) -> Optional[str]:
    """
    Remove a destination file or empty directory, then its emptied parents.

    A missing target and a directory that is not empty are not errors.
    Without ``root`` only the immediate parent is tried. With ``root``,
    pruning continues upward until a directory is not empty or ``root``
    itself has been tried.

    Args:
        target: Destination path
        root: Destination root; nothing outside it is removed

    Returns:
        The target path if a file was unlinked, None otherwise

    Raises:
        OSError: On any other failure
    """
    removed = None
    try:
        if os.path.isdir(target) and not os.path.islink(target):
            os.rmdir(target)
        else:
            os.unlink(target)
            removed = target
    except FileNotFoundError:
        pass
    except OSError as e:
        if e.errno not in _NOT_EMPTY_ERRNOS:
            raise

    parent = os.path.dirname(target)
    while parent and parent != ".":
        if root is not None and not _within(parent, root):
            break
        try:
            os.rmdir(parent)
        except FileNotFoundError:
            pass
        except OSError as e:
            if e.errno not in _NOT_EMPTY_ERRNOS:
                raise
            break
        if root is None or parent == root:
            break
        parent = os.path.dirname(parent)

    return removed
