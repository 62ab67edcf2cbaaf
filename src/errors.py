"""Error taxonomy shared by every board component."""


class BoardError(Exception):
    """Base exception for board errors."""
    pass


class NotFoundError(BoardError):
    """Raised when a referenced id does not exist."""
    pass


class InvalidInputError(BoardError):
    """Raised for bad enum values or out-of-range numbers."""
    pass


class ConflictError(BoardError):
    """Raised when the storage layer rejects a write (uniqueness, constraints)."""
    pass


class AlreadyActiveError(BoardError):
    """Raised when starting a session while another one is active."""
    pass


class StateError(BoardError):
    """Raised when an operation does not fit the current lifecycle state."""
    pass
