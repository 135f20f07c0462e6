"""Completion scoring and journey statistics.

score_attempt() runs once, inside complete, and is deterministic given the
finished attempt, its definition and the scoring config:

  decision_points   sum of points over decisions_record
  challenge_points  reward_points of the first success per (chapter, challenge);
                    later successes re-confirm and never pay again
  completion_bonus  fixed award iff the learner reached the end of the path taken
  accuracy_bonus    fixed award iff historical_accuracy_rate >= threshold
  engagement_score  0-100 blend of discoveries collected, challenges attempted
                    and time spent (capped), over the chapters actually visited

Gamification is not computed here; the reward ledger owns level and streaks.
"""

from __future__ import annotations

import statistics
from typing import Any

from pydantic import BaseModel

from journeyquest.models import (
    ChallengeResult,
    ChapterVisit,
    DecisionRecord,
    JourneyAttempt,
    JourneyDefinition,
    ScoreBreakdown,
)


class ScoreCard(BaseModel):
    breakdown: ScoreBreakdown
    total_points: int
    total_time_taken_seconds: int
    historical_accuracy_rate: float
    engagement_score: int
    narrative_path: list[int]


class JourneyStats(BaseModel):
    journey_id: str
    times_played: int
    times_completed: int
    completion_rate: float
    average_completion_time: float
    average_engagement_score: float


def narrative_path(visits: list[ChapterVisit]) -> list[int]:
    """Distinct chapter numbers in first-visit order."""
    path: list[int] = []
    for visit in visits:
        if visit.chapter_number not in path:
            path.append(visit.chapter_number)
    return path


def historical_accuracy_rate(decisions: list[DecisionRecord]) -> float:
    if not decisions:
        return 0.0
    accurate = sum(1 for d in decisions if d.was_historically_accurate)
    return accurate / len(decisions) * 100


def challenge_points(results: list[ChallengeResult], definition: JourneyDefinition) -> int:
    paid: set[tuple[int, int]] = set()
    total = 0
    for result in results:
        key = (result.chapter_number, result.challenge_index)
        if not result.success or key in paid:
            continue
        paid.add(key)
        chapter = definition.chapter(result.chapter_number)
        if chapter is not None and result.challenge_index < len(chapter.challenges):
            total += chapter.challenges[result.challenge_index].reward_points
    return total


def reached_journey_end(attempt: JourneyAttempt, definition: JourneyDefinition) -> bool:
    """True when every chapter on the decision path was visited and the path ended.

    The path ends at a decision whose option has no next chapter, or at a
    chapter with no decisions left to make.
    """
    visited = {v.chapter_number for v in attempt.chapters_visited}
    path = [definition.first_chapter.chapter_number]
    path.extend(d.next_chapter for d in attempt.decisions_record if d.next_chapter is not None)
    if not set(path) <= visited:
        return False
    if attempt.decisions_record and attempt.decisions_record[-1].next_chapter is None:
        return True
    current = definition.chapter(attempt.current_chapter)
    return current is not None and not current.decisions


def engagement_score(
    attempt: JourneyAttempt,
    definition: JourneyDefinition,
    weights: dict[str, float],
    default_seconds_per_chapter: int,
) -> int:
    path = narrative_path(attempt.chapters_visited)
    chapters = [c for c in (definition.chapter(n) for n in path) if c is not None]
    if not chapters:
        return 0

    available_discoveries = {
        (c.chapter_number, i) for c in chapters for i in range(len(c.discoveries))
    }
    collected = {
        (d.chapter_number, d.discovery_index) for d in attempt.discoveries_collected
    } & available_discoveries
    available_challenges = {
        (c.chapter_number, i) for c in chapters for i in range(len(c.challenges))
    }
    attempted = {
        (r.chapter_number, r.challenge_index) for r in attempt.challenge_results
    } & available_challenges

    # Nothing to collect counts as fully collected
    discovery_ratio = len(collected) / len(available_discoveries) if available_discoveries else 1.0
    challenge_ratio = len(attempted) / len(available_challenges) if available_challenges else 1.0

    if definition.estimated_duration:
        expected_seconds = definition.estimated_duration * 60
    else:
        expected_seconds = default_seconds_per_chapter * len(chapters)
    spent = sum(v.time_spent_seconds for v in attempt.chapters_visited)
    time_ratio = min(1.0, spent / expected_seconds) if expected_seconds > 0 else 1.0

    w_discoveries = weights.get("discoveries", 0)
    w_challenges = weights.get("challenges", 0)
    w_time = weights.get("time", 0)
    total_weight = w_discoveries + w_challenges + w_time
    if total_weight <= 0:
        return 0
    blended = (
        w_discoveries * discovery_ratio
        + w_challenges * challenge_ratio
        + w_time * time_ratio
    ) / total_weight
    return max(0, min(100, round(blended * 100)))


def score_attempt(
    attempt: JourneyAttempt, definition: JourneyDefinition, scoring: dict[str, Any]
) -> ScoreCard:
    """Compute every terminal score field for a finished attempt."""
    accuracy = historical_accuracy_rate(attempt.decisions_record)
    breakdown = ScoreBreakdown(
        decision_points=sum(d.points_awarded for d in attempt.decisions_record),
        challenge_points=challenge_points(attempt.challenge_results, definition),
        completion_bonus=(
            scoring["completion_bonus"] if reached_journey_end(attempt, definition) else 0
        ),
        accuracy_bonus=(
            scoring["accuracy_bonus"] if accuracy >= scoring["accuracy_threshold"] else 0
        ),
    )
    return ScoreCard(
        breakdown=breakdown,
        total_points=(
            breakdown.decision_points
            + breakdown.challenge_points
            + breakdown.completion_bonus
            + breakdown.accuracy_bonus
        ),
        total_time_taken_seconds=sum(v.time_spent_seconds for v in attempt.chapters_visited),
        historical_accuracy_rate=accuracy,
        engagement_score=engagement_score(
            attempt,
            definition,
            scoring["engagement_weights"],
            scoring["default_seconds_per_chapter"],
        ),
        narrative_path=narrative_path(attempt.chapters_visited),
    )


def summarize_journey(journey_id: str, attempts: list[JourneyAttempt]) -> JourneyStats:
    """Play statistics for one journey, computed from its attempts."""
    completed = [a for a in attempts if a.status == "completed"]
    times = [a.total_time_taken_seconds or 0 for a in completed]
    engagement = [a.engagement_score or 0 for a in completed]
    return JourneyStats(
        journey_id=journey_id,
        times_played=len(attempts),
        times_completed=len(completed),
        completion_rate=len(completed) / len(attempts) if attempts else 0.0,
        average_completion_time=statistics.fmean(times) if times else 0.0,
        average_engagement_score=statistics.fmean(engagement) if engagement else 0.0,
    )
