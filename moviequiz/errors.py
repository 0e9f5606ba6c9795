"""
Exception hierarchy for the movie quiz engine.
"""


class QuizError(Exception):
    """Base exception for quiz errors."""
    pass


class ConfigurationError(QuizError):
    """Raised when a session is constructed with invalid settings."""
    pass


class InvalidStateError(QuizError):
    """Raised when an operation is invoked in a state that does not allow it."""
    pass


class InvalidArgumentError(QuizError):
    """Raised when statistics are stored with malformed arguments."""
    pass


class SourceFailure(QuizError):
    """Raised when questions or their backing data could not be loaded."""
    pass
