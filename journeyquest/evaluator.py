"""Challenge evaluation.

evaluate(challenge, submission) is pure: no storage, no clock. The engine's
record_challenge_result is the only place its answer is persisted.

Submission shapes:
  decode-message      str: compared after trim + casefold
  map-navigate        int: index into locations[], correct iff is_correct
  timeline-order      int: must equal correct_answer
  artifact-identify   int: must equal correct_answer

A submission of the wrong shape is a failed answer, not an error. A challenge
type outside the union raises UnsupportedChallengeType.
"""

from typing import Any

from journeyquest.errors import UnsupportedChallengeType
from journeyquest.models import (
    ArtifactIdentifyChallenge,
    Challenge,
    DecodeMessageChallenge,
    MapNavigateChallenge,
    TimelineOrderChallenge,
)


def _as_index(submission: Any) -> int | None:
    # bool is an int subclass; True must not select option 1
    if isinstance(submission, bool) or not isinstance(submission, int):
        return None
    return submission


def _normalise(text: str) -> str:
    return text.strip().casefold()


def evaluate(challenge: Challenge, submission: Any) -> bool:
    """Return True if the submission solves the challenge."""
    if isinstance(challenge, DecodeMessageChallenge):
        if not isinstance(submission, str):
            return False
        return _normalise(submission) == _normalise(challenge.interactive_element.decoded_message)

    if isinstance(challenge, MapNavigateChallenge):
        index = _as_index(submission)
        locations = challenge.interactive_element.locations
        if index is None or not 0 <= index < len(locations):
            return False
        return locations[index].is_correct is True

    if isinstance(challenge, (TimelineOrderChallenge, ArtifactIdentifyChallenge)):
        index = _as_index(submission)
        return index is not None and index == challenge.interactive_element.correct_answer

    ctype = getattr(challenge, "type", type(challenge).__name__)
    raise UnsupportedChallengeType(f"Unsupported challenge type: {ctype!r}")
