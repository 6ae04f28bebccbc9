"""Exceptions raised by the vehicle loader."""


class ResourceNotFoundError(FileNotFoundError):
    """Raised when a CSV location resolves to neither a bundled resource nor a readable file."""

    def __init__(self, location: str, detail: str | None = None):
        message = f"CSV file not found or not readable: {location}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.location = location


class ChunkWriteError(RuntimeError):
    """Raised when the transaction for one chunk of rows fails.

    Chunks committed before the failing one stay applied.
    """

    def __init__(self, chunk_index: int, records_committed: int, cause: BaseException):
        # DBAPI errors wrap the driver exception; its text omits the statement and parameters
        detail = getattr(cause, "orig", None) or cause
        super().__init__(f"Error loading batch {chunk_index + 1} after {records_committed} committed records: {detail}")
        self.chunk_index = chunk_index
        self.records_committed = records_committed
