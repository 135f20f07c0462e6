"""Create demo journeys and attempts for development/testing."""

import shutil

from journeyquest import engine, storage

DEMO_LEARNER = "demo-learner"

DEMO_JOURNEY = {
    "id": "the-printing-press",
    "title": "The Printing Press",
    "era": "Renaissance Europe",
    "grade": "6",
    "difficulty": "easy",
    "estimated_duration": 10,
    "introduction": {
        "title": "Mainz, 1450",
        "narrative": "Books are copied by hand and cost a fortune. A goldsmith named "
        "Johannes Gutenberg thinks there is a faster way.",
        "setting": "Gutenberg's workshop",
        "character_role": "An apprentice",
    },
    "chapters": [
        {
            "chapter_number": 1,
            "title": "The Workshop",
            "narrative": "Metal letters lie sorted in wooden cases. Gutenberg is testing a new ink.",
            "scene": {"location": "Mainz", "time_of_day": "morning", "atmosphere": "busy"},
            "characters": [
                {"name": "Johannes Gutenberg", "role": "Inventor", "dialogue": "Ink must stick to metal, not run off it."}
            ],
            "discoveries": [
                {
                    "type": "artifact",
                    "name": "Movable type",
                    "content": "A single cast-metal letter, reusable in any page.",
                    "year": 1450,
                }
            ],
            "challenges": [
                {
                    "type": "artifact-identify",
                    "description": "What was Gutenberg's ink based on?",
                    "reward_points": 10,
                    "interactive_element": {"options": ["Water", "Oil", "Milk"], "correct_answer": 1},
                    "on_success": {"narrative": "Oil-based ink clung to the metal type."},
                    "on_failure": {"narrative": "That would run right off.", "hint": "Painters used it too."},
                }
            ],
            "decisions": [
                {
                    "prompt": "Which book should the press print first?",
                    "options": [
                        {
                            "text": "The Bible",
                            "consequence": "The Gutenberg Bible becomes the press's masterpiece.",
                            "points_awarded": 10,
                            "next_chapter": 2,
                            "historical_accuracy": True,
                            "learning_point": "About 180 copies of the Gutenberg Bible were printed.",
                        },
                        {
                            "text": "A cookbook",
                            "consequence": "Tasty, but not how history went.",
                            "points_awarded": 2,
                            "next_chapter": 2,
                            "historical_accuracy": False,
                        },
                    ],
                }
            ],
        },
        {
            "chapter_number": 2,
            "title": "The First Pages",
            "narrative": "The first printed sheets come off the press, crisp and even.",
            "discoveries": [
                {"type": "document", "name": "Printed page", "content": "Forty-two lines of Latin text."}
            ],
            "decisions": [
                {
                    "prompt": "A merchant offers to sell the books across Europe.",
                    "options": [
                        {
                            "text": "Accept",
                            "consequence": "Printing spreads to over 200 cities within fifty years.",
                            "points_awarded": 10,
                            "next_chapter": None,
                            "historical_accuracy": True,
                        },
                        {
                            "text": "Refuse",
                            "consequence": "The books stay in Mainz, for now.",
                            "points_awarded": 0,
                            "next_chapter": None,
                            "historical_accuracy": False,
                        },
                    ],
                }
            ],
        },
    ],
}


def create_demo_data() -> None:
    """Wipe existing journeys/attempts/ledger and create fresh demo data."""
    for directory in (storage.journeys_dir(), storage.attempts_dir(), storage.ledger_dir()):
        if directory.exists():
            shutil.rmtree(directory)
        directory.mkdir(parents=True, exist_ok=True)

    journey = storage.publish_journey(DEMO_JOURNEY)

    # One attempt part-way through so resume is visible out of the box
    attempt = engine.start_attempt(journey.id, DEMO_LEARNER)
    engine.visit_chapter(attempt.id, 1, 45)
    engine.record_discovery(attempt.id, 1, 0)
    engine.submit_challenge(attempt.id, 1, 0, 1, time_spent_seconds=20)

    print(f"Created demo journey '{journey.title}' + 1 in-progress attempt for {DEMO_LEARNER}.")
