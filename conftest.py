import shutil
from pathlib import Path

import pytest

from journeyquest import storage
from journeyquest.errors import RewardLedgerUnavailable
from journeyquest.models import Badge, LedgerUpdate

TEST_DATA_DIR = Path("data-tests")
PRESETS_DIR = Path(__file__).parent / "presets"


@pytest.fixture(autouse=True)
def clean_test_data():
    """Wipe and re-init data-tests/ before every test."""
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    storage.init_storage(TEST_DATA_DIR, presets_dir=PRESETS_DIR)
    yield
    # leave data-tests around after tests for inspection; CI can ignore it


@pytest.fixture
def journey_data() -> dict:
    """Three chapters. Chapter 1 branches to 2 (accurate, 10 pts) or 3 (5 pts).

    Chapter 2 ends the journey on an accurate choice, chapter 3 on an
    inaccurate one. Estimated duration is 5 minutes.
    """
    return {
        "id": "crossing-the-delaware",
        "title": "Crossing the Delaware",
        "era": "American Revolution",
        "grade": "5",
        "estimated_duration": 5,
        "chapters": [
            {
                "chapter_number": 1,
                "title": "McConkey's Ferry",
                "discoveries": [
                    {"type": "letter", "name": "Orders", "content": "Cross at night.", "year": 1776}
                ],
                "challenges": [
                    {
                        "type": "decode-message",
                        "description": "Decode the password.",
                        "reward_points": 20,
                        "interactive_element": {"encoded_message": "OLEHUWB", "decoded_message": "LIBERTY"},
                        "on_success": {"narrative": "The sentry waves you through.", "reward": "Codebreaker"},
                        "on_failure": {"narrative": "The sentry frowns.", "hint": "Shift back three."},
                    }
                ],
                "decisions": [
                    {
                        "prompt": "Cross tonight?",
                        "options": [
                            {
                                "text": "Cross in the storm",
                                "consequence": "The boats push into the ice.",
                                "points_awarded": 10,
                                "next_chapter": 2,
                                "historical_accuracy": True,
                                "learning_point": "Washington crossed on the night of 25 December 1776.",
                            },
                            {
                                "text": "Wait for spring",
                                "consequence": "The army waits.",
                                "points_awarded": 5,
                                "next_chapter": 3,
                                "historical_accuracy": False,
                            },
                        ],
                    }
                ],
            },
            {
                "chapter_number": 2,
                "title": "Trenton",
                "discoveries": [
                    {"type": "artifact", "name": "Hessian drum", "content": "Captured at dawn."}
                ],
                "challenges": [
                    {
                        "type": "map-navigate",
                        "description": "Where did the army land?",
                        "reward_points": 15,
                        "interactive_element": {
                            "locations": [
                                {"name": "Philadelphia", "is_correct": False},
                                {"name": "Johnson's Ferry", "is_correct": True},
                            ]
                        },
                    }
                ],
                "decisions": [
                    {
                        "prompt": "Attack at dawn?",
                        "options": [
                            {
                                "text": "Attack",
                                "consequence": "Trenton falls.",
                                "points_awarded": 10,
                                "next_chapter": None,
                                "historical_accuracy": True,
                            }
                        ],
                    }
                ],
            },
            {
                "chapter_number": 3,
                "title": "Winter Camp",
                "challenges": [
                    {
                        "type": "timeline-order",
                        "description": "Which came first?",
                        "reward_points": 5,
                        "interactive_element": {
                            "options": ["Declaration of Independence", "Battle of Trenton"],
                            "correct_answer": 0,
                        },
                        "on_failure": {"narrative": "No.", "retry_allowed": False},
                    }
                ],
                "decisions": [
                    {
                        "prompt": "Go home?",
                        "options": [
                            {
                                "text": "Go home",
                                "consequence": "The war goes on without you.",
                                "points_awarded": 0,
                                "next_chapter": None,
                                "historical_accuracy": False,
                            }
                        ],
                    }
                ],
            },
        ],
    }


@pytest.fixture
def journey(journey_data):
    return storage.publish_journey(journey_data)


class StubLedger:
    """Records calls and answers like a healthy reward ledger."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, int]] = []

    async def apply_journey_completion(self, learner_id: str, points_earned: int) -> LedgerUpdate:
        self.calls.append((learner_id, points_earned))
        return LedgerUpdate(
            total_points=1000 + points_earned,
            level=7,
            current_streak=3,
            longest_streak=9,
            new_badges=[Badge(id="first_journey", name="Time Traveller")],
        )


class BrokenLedger:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error or RewardLedgerUnavailable("ledger down")

    async def apply_journey_completion(self, learner_id: str, points_earned: int) -> LedgerUpdate:
        raise self.error


@pytest.fixture
def ledger() -> StubLedger:
    return StubLedger()


@pytest.fixture
def broken_ledger() -> BrokenLedger:
    return BrokenLedger()
