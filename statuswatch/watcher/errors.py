"""
Watcher error hierarchy.

All errors are non-fatal to the hosting process. They abort the current cycle
(or refuse startup) but the service keeps running and the next scheduled cycle
retries.
"""


class WatcherError(Exception):
    """Base exception for watcher failures."""

    pass


class ConfigurationMissingError(WatcherError):
    """Monitored import/failed paths are not configured."""

    def __init__(self, missing: list):
        self.missing = list(missing)
        super().__init__(
            f"Monitored paths are not configured: {', '.join(self.missing)}"
        )


class DirectoryInaccessibleError(WatcherError):
    """A monitored directory does not exist or cannot be read."""

    def __init__(self, label: str, path: str, reason: str):
        self.label = label
        self.path = path
        self.reason = reason
        super().__init__(f"{label} directory is not accessible: {path} ({reason})")


class InvalidStateTransitionError(WatcherError):
    """Raised when attempting an illegal file status transition."""

    def __init__(self, name: str, current_state: str, target_state: str):
        self.name = name
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            f"Invalid file status transition for {name}: "
            f"{current_state} -> {target_state}"
        )
