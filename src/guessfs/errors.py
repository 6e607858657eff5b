"""
Error taxonomy for GuessFS.

Every deviation from the happy path of a core operation is reported with one of
the exception types below so callers can tell the failure modes apart.
"""


class GuessFSError(Exception):
    """Base class for all GuessFS core errors."""
    pass


class IoError(GuessFSError):
    """Raised when the index root is missing, not a directory, or unreadable."""
    pass


class InvalidOptionsError(GuessFSError):
    """Raised when index options are contradictory or select nothing."""
    pass


class InsufficientEntriesError(GuessFSError):
    """
    Raised when an index holds fewer eligible entries than a game needs.

    Attributes:
        available: Number of eligible entries in the index
        requested: Number of levels requested by the settings
    """

    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(
            f"Index has {available} eligible entries but {requested} levels were requested"
        )


class InvalidStateError(GuessFSError):
    """Raised when an operation is not valid for the current session state."""
    pass


class HintExhaustedError(GuessFSError):
    """Raised when no hints remain for the current level."""
    pass
