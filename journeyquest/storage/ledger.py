"""Local reward ledger accounts (one JSON file per learner)."""

import hashlib
import json
from pathlib import Path
from typing import Any

from .core import ledger_dir


def _account_path(learner_id: str) -> Path:
    # Learner ids are opaque strings; the digest keeps distinct ids in distinct files
    digest = hashlib.sha256(learner_id.encode("utf-8")).hexdigest()
    return ledger_dir() / f"{digest}.json"


def new_account(learner_id: str) -> dict[str, Any]:
    return {
        "learner_id": learner_id,
        "total_points": 0,
        "level": 1,
        "journeys_completed": 0,
        "streaks": {"current": 0, "longest": 0, "last_activity_date": None},
        "badges": [],
    }


def get_ledger_account(learner_id: str) -> dict[str, Any] | None:
    """Load a learner's account. Returns None if the learner has none yet."""
    path = _account_path(learner_id)
    if not path.is_file():
        return None
    return json.loads(path.read_text())


def save_ledger_account(account: dict[str, Any]) -> None:
    _account_path(account["learner_id"]).write_text(json.dumps(account, indent=2))
