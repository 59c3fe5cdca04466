"""Domain errors for pgcontainer."""


class SnapshotError(RuntimeError):
    """Raised when the snapshot pipeline cannot continue."""


class ConnectionURLError(SnapshotError):
    """The connection URL is malformed or does not name a database."""


class DumpToolError(SnapshotError):
    """pg_dump is missing, could not start or exited with an error."""


class PackingError(SnapshotError):
    """The build context archive could not be written."""


class EngineError(SnapshotError):
    """The Docker engine reported a failure."""


class EngineUnknownError(EngineError):
    """The Docker engine returned no error but also no build output."""
