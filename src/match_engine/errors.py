"""Domain exceptions raised by the engine.

The API layer translates these into HTTP responses; everything below the
request boundary raises them directly.
"""


class MatchEngineError(Exception):
    """Base class for all engine errors."""


class InvalidArgumentError(MatchEngineError):
    """A request was malformed (self-swipe, non-positive limit, ...)."""


class ConfigurationError(MatchEngineError):
    """The matching configuration is invalid and must not be served."""


class NotFoundError(MatchEngineError):
    """A referenced user does not exist."""


class ServiceUnavailableError(MatchEngineError):
    """An upstream collaborator (usually the database) failed."""


class RankingTimeoutError(MatchEngineError):
    """Scoring did not finish within the ranking timeout."""


class StaleModelError(MatchEngineError):
    """A preference model was replaced by another writer since it was read."""
