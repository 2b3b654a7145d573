import logging


# Library logger - no configuration, user controls output
logger = logging.getLogger(__name__)


class DircolBaseError(Exception):
    """
    Base class for all dircol-specific errors.

    All dircol exceptions inherit from this class, allowing users to catch
    any transcription error with a single except clause.

    Args:
        message: The error message describing what went wrong
        context: Optional additional context about where the error occurred
    """

    def __init__(self, message: str, context: str | None = None) -> None:
        self.message = message
        self.context = context

        # Library logs at DEBUG level - user can promote if needed
        logger.debug("dircol exception: %s", self._format_message())
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with optional context."""
        if self.context:
            return f"{self.message} (Context: {self.context})"
        return self.message


class ConfigurationError(DircolBaseError):
    """
    Raised when the problem or solver configuration cannot be transcribed.

    This exception reports a violated precondition in user input. It is raised
    while the transcription is constructed, before any symbolic expression is
    built.

    Examples:
        - Mesh not strictly increasing or not spanning [0, 1]
        - Unknown transcription scheme or invalid polynomial degree
        - Constraint derivatives requested with the trapezoidal scheme
        - Interpolated control points without interpolation constraints
    """

    pass


class DataIntegrityError(DircolBaseError):
    """
    Raised when an internal invariant of the transcription is violated.

    This indicates a bug in dircol (or in a scheme implementation) rather than
    a user error. It is never retried.

    Examples:
        - Flattened vector length differs from the precomputed total
        - Mesh indicator sum differs from the number of mesh points
        - A scheme returns a matrix with the wrong shape
    """

    pass


class SolutionExtractionError(DircolBaseError):
    """
    Raised when the NLP solver output cannot be expanded into a Solution.
    """

    pass
