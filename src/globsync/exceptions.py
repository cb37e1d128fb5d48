"""Custom exceptions for the globsync package."""


class GlobSyncError(Exception):
    """Base exception for all globsync errors."""
    pass


class WatcherError(GlobSyncError):
    """Error related to the watcher lifecycle."""
    pass


class WatcherClosedError(WatcherError):
    """Watcher has been closed and cannot be reopened."""
    pass


class WatcherAlreadyOpenError(WatcherError):
    """Watcher has already been opened."""
    pass


class WatchSetupError(WatcherError):
    """The initial walk of the base directory failed."""
    pass


class WatchInstallError(WatcherError):
    """A watch could not be installed on a directory."""
    pass


class DestinationError(GlobSyncError):
    """The destination path of a source file could not be computed."""
    pass


class CleanError(GlobSyncError):
    """Cleaning the destination before watching failed."""
    pass
