"""Exception hierarchy shared by the services, agents and workers."""


class FinanceTrackerError(RuntimeError):
    """Base class for errors raised by the Finance Tracker."""


class StorageError(FinanceTrackerError):
    """Object storage could not persist or return a blob."""


class ExtractionError(FinanceTrackerError):
    """A statement transcript could not be produced."""


class LLMError(FinanceTrackerError):
    """The language model call failed or returned an unusable payload."""
