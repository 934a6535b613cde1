"""Error types shared across the categorization core."""


class CategorizerError(Exception):
    """Base class for categorization errors."""


class InvalidPatternError(CategorizerError, ValueError):
    """A pattern failed authoring-time validation.

    Matching never raises this; a malformed regex simply never matches.
    """


class RecategorizationError(CategorizerError):
    """Persisting a bulk re-categorization failed part way through.

    ``processed`` is the number of transactions already written before the
    failure, so the caller can resume from there instead of starting over.
    """

    def __init__(self, message: str, processed: int) -> None:
        super().__init__(message)
        self.processed = processed


class RecategorizationInProgressError(CategorizerError):
    """A bulk re-categorization is already running on this manager."""


class RuleNotFoundError(CategorizerError, LookupError):
    """No rule with the requested category name exists."""
