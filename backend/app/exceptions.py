"""Scout error types."""


class ScoutError(Exception):
    """Base class for Scout orchestration and retention errors."""
    pass


class SpawnError(ScoutError):
    """The scraper process could not be started."""

    def __init__(self, message: str, argv: list[str] | None = None):
        super().__init__(message)
        self.argv = argv or []


class RunTimeoutError(ScoutError):
    """A test run exceeded its wall-clock budget and was killed."""

    def __init__(self, timeout: float):
        super().__init__(f"Test run exceeded {timeout:g}s")
        self.timeout = timeout


class PreviewParseError(ScoutError):
    """Preview marker found but its payload is not a JSON object."""
    pass


class StorageError(ScoutError):
    """A data store operation failed."""
    pass


class AssetDeleteError(ScoutError):
    """A stored asset could not be removed."""
    pass


class RunTransitionError(ScoutError):
    """A report tried to move a finished run to a different status."""

    def __init__(self, run_id: str, current: str, requested: str):
        super().__init__(f"Run {run_id} is already {current}; refusing {requested}")
        self.run_id = run_id
        self.current = current
        self.requested = requested
