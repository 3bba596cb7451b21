"""FitTrack exceptions."""


class FitTrackError(Exception):
    """Base exception for FitTrack errors."""
    pass


class StorageError(FitTrackError):
    """Raised when the durable store cannot be read or written."""
    pass


class FinalizationError(FitTrackError):
    """Raised when a finished workout could not be persisted."""

    def __init__(self, message: str, attempts: int = 1):
        super().__init__(message)
        self.attempts = attempts


class NotFoundError(FitTrackError):
    """Raised when a stored record does not exist."""
    pass


class SessionNotFoundError(NotFoundError):
    """Raised when a session handle is unknown or already finished."""
    pass


class ResumeRequiredError(FitTrackError):
    """Raised when a fresh start would overwrite a resumable snapshot."""
    pass


class SessionConflictError(FitTrackError):
    """Raised when a client already has a live session for a program."""
    pass
