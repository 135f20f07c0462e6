"""Error taxonomy for the attempt engine.

Every error is a per-request failure. The engine raises them; the routes turn
them into HTTP responses using ``status_code``. Structural errors are raised
before any state is touched, so a failed call never leaves a partial write.
"""


class JourneyError(Exception):
    """Base class for all engine errors."""

    status_code = 400


class NotFound(JourneyError):
    """Journey or attempt id is unknown."""

    status_code = 404


class NotAuthorized(JourneyError):
    """The caller is not the learner who owns the attempt."""

    status_code = 403


class InvalidChapter(JourneyError):
    """Chapter number does not exist in the journey definition."""

    status_code = 422


class InvalidOption(JourneyError):
    """Decision or option index is out of range for the chapter."""

    status_code = 422


class InvalidDiscoveryIndex(JourneyError):
    status_code = 422


class InvalidChallengeIndex(JourneyError):
    status_code = 422


class InvalidState(JourneyError):
    """Mutation attempted on a completed attempt."""

    status_code = 409


class StaleOperation(JourneyError):
    """The attempt has moved on and the request's position no longer holds."""

    status_code = 409


class InvalidDefinition(JourneyError):
    """A published journey definition is malformed (dangling chapter link etc.)."""

    status_code = 500


class UnsupportedChallengeType(InvalidDefinition):
    """The definition uses a challenge type the evaluator cannot handle."""


class RewardLedgerUnavailable(JourneyError):
    """The reward ledger could not be reached or answered garbage.

    Never fails a completion: the engine records the attempt as completed and
    flags its rewards as pending.
    """

    status_code = 503
