"""Journey attempt files (one JSON document per attempt)."""

import uuid
from pathlib import Path

from journeyquest.models import JourneyAttempt

from .core import attempts_dir, is_attempt_id


def new_attempt_id() -> str:
    return uuid.uuid4().hex


def _attempt_path(attempt_id: str) -> Path:
    return attempts_dir() / f"{attempt_id}.json"


def attempt_exists(attempt_id: str) -> bool:
    return is_attempt_id(attempt_id) and _attempt_path(attempt_id).is_file()


def get_attempt(attempt_id: str) -> JourneyAttempt | None:
    if not is_attempt_id(attempt_id):
        return None
    path = _attempt_path(attempt_id)
    if not path.is_file():
        return None
    return JourneyAttempt.model_validate_json(path.read_text())


def save_attempt(attempt: JourneyAttempt) -> None:
    """Write the whole attempt. Callers validate before calling."""
    path = _attempt_path(attempt.id)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(attempt.model_dump_json(indent=2))
    tmp.replace(path)


def list_attempts(
    learner_id: str | None = None, journey_id: str | None = None
) -> list[JourneyAttempt]:
    """List attempts, newest first, optionally filtered by learner and journey."""
    results = []
    for path in attempts_dir().glob("*.json"):
        attempt = JourneyAttempt.model_validate_json(path.read_text())
        if learner_id is not None and attempt.learner_id != learner_id:
            continue
        if journey_id is not None and attempt.journey_id != journey_id:
            continue
        results.append(attempt)
    results.sort(key=lambda a: (a.started_at, a.id), reverse=True)
    return results


def find_active_attempt(journey_id: str, learner_id: str) -> JourneyAttempt | None:
    """Return the learner's in-progress attempt on a journey, if any."""
    for attempt in list_attempts(learner_id=learner_id, journey_id=journey_id):
        if attempt.status == "in_progress":
            return attempt
    return None
