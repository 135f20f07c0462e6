"""Attempt state machine: start, progression events, completion.

Every mutating call follows the same order of checks, all before anything is
written:

  1. the attempt exists                        (NotFound)
  2. the caller owns it, if a learner is given (NotAuthorized)
  3. it is still in progress                   (InvalidState)
  4. the referenced chapter/index exists       (InvalidChapter, InvalidOption, ...)
  5. the attempt's position still allows it    (StaleOperation)

Then the change is applied to the in-memory model and the attempt is saved
once. Mutations on one attempt are serialized by a per-attempt lock. The
HTTP routes call the synchronous operations from FastAPI's threadpool, so
the lock is what keeps concurrent requests for one attempt apart. Locks are
only created for attempts that exist and are dropped once they complete.

complete_attempt() is the only coroutine: it persists the completed attempt
with rewards pending *before* awaiting the reward ledger, so any request that
arrives while the ledger call is in flight already sees a completed attempt.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any

from journeyquest import storage
from journeyquest.errors import (
    InvalidChallengeIndex,
    InvalidChapter,
    InvalidDiscoveryIndex,
    InvalidOption,
    InvalidState,
    NotAuthorized,
    NotFound,
    StaleOperation,
)
from journeyquest.evaluator import evaluate
from journeyquest.ledger import RewardLedger
from journeyquest.models import (
    Challenge,
    ChallengeOutcome,
    ChallengeResult,
    Chapter,
    ChapterVisit,
    CollectedDiscovery,
    CompletionResult,
    DecisionOutcome,
    DecisionRecord,
    DiscoveryOutcome,
    JourneyAttempt,
    JourneyDefinition,
)
from journeyquest.scoring import JourneyStats, score_attempt, summarize_journey

logger = logging.getLogger(__name__)

_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(attempt_id: str) -> threading.Lock:
    """Lock for an attempt that exists on disk. Raises NotFound otherwise."""
    if not storage.attempt_exists(attempt_id):
        raise NotFound(f"Attempt {attempt_id!r} not found")
    with _locks_guard:
        lock = _locks.get(attempt_id)
        if lock is None:
            lock = _locks[attempt_id] = threading.Lock()
        return lock


def _drop_lock(attempt_id: str) -> None:
    # Completed attempts never change again
    with _locks_guard:
        _locks.pop(attempt_id, None)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def _definition(journey_id: str) -> JourneyDefinition:
    definition = storage.get_journey(journey_id)
    if definition is None:
        raise NotFound(f"Journey {journey_id!r} not found")
    return definition


def _load(attempt_id: str, learner_id: str | None) -> JourneyAttempt:
    attempt = storage.get_attempt(attempt_id)
    if attempt is None:
        raise NotFound(f"Attempt {attempt_id!r} not found")
    if learner_id is not None and attempt.learner_id != learner_id:
        raise NotAuthorized("Attempt belongs to another learner")
    return attempt


def _load_in_progress(attempt_id: str, learner_id: str | None) -> JourneyAttempt:
    attempt = _load(attempt_id, learner_id)
    if attempt.status != "in_progress":
        _drop_lock(attempt_id)
        raise InvalidState(f"Attempt {attempt_id} is already completed")
    return attempt


def _chapter(definition: JourneyDefinition, chapter_number: int) -> Chapter:
    chapter = definition.chapter(chapter_number)
    if chapter is None:
        raise InvalidChapter(f"Chapter {chapter_number} does not exist in {definition.id}")
    return chapter


def _challenge(chapter: Chapter, challenge_index: int) -> Challenge:
    if not 0 <= challenge_index < len(chapter.challenges):
        raise InvalidChallengeIndex(
            f"Chapter {chapter.chapter_number} has no challenge {challenge_index}"
        )
    return chapter.challenges[challenge_index]


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_attempt(attempt_id: str, learner_id: str | None = None) -> JourneyAttempt:
    """Pure read used for resume. has_started=False means show the introduction."""
    return _load(attempt_id, learner_id)


def list_attempts(learner_id: str) -> list[JourneyAttempt]:
    """A learner's attempts across all journeys, newest first."""
    return storage.list_attempts(learner_id=learner_id)


def journey_stats(journey_id: str) -> JourneyStats:
    _definition(journey_id)
    return summarize_journey(journey_id, storage.list_attempts(journey_id=journey_id))


# ---------------------------------------------------------------------------
# Progression
# ---------------------------------------------------------------------------

def start_attempt(journey_id: str, learner_id: str, *, resume: bool = False) -> JourneyAttempt:
    """Create a new attempt positioned at the journey's first chapter.

    With resume=True the learner's existing in-progress attempt on the same
    journey is returned instead, if there is one.
    """
    definition = _definition(journey_id)
    if resume:
        existing = storage.find_active_attempt(journey_id, learner_id)
        if existing is not None:
            logger.info(f"Resuming attempt {existing.id} on {journey_id} for {learner_id}")
            return existing

    attempt = JourneyAttempt(
        id=storage.new_attempt_id(),
        journey_id=journey_id,
        learner_id=learner_id,
        current_chapter=definition.first_chapter.chapter_number,
        started_at=_now(),
    )
    storage.save_attempt(attempt)
    logger.info(f"Started attempt {attempt.id} on {journey_id} for {learner_id}")
    return attempt


def visit_chapter(
    attempt_id: str,
    chapter_number: int,
    time_spent_seconds: int = 0,
    *,
    learner_id: str | None = None,
) -> JourneyAttempt:
    with _lock_for(attempt_id):
        attempt = _load_in_progress(attempt_id, learner_id)
        _chapter(_definition(attempt.journey_id), chapter_number)
        if chapter_number != attempt.current_chapter:
            raise StaleOperation(
                f"Cannot visit chapter {chapter_number}; attempt is at chapter {attempt.current_chapter}"
            )

        attempt.chapters_visited.append(
            ChapterVisit(
                chapter_number=chapter_number,
                time_spent_seconds=time_spent_seconds,
                visited_at=_now(),
            )
        )
        attempt.has_started = True
        storage.save_attempt(attempt)
    logger.debug(f"Attempt {attempt_id}: visited chapter {chapter_number} ({time_spent_seconds}s)")
    return attempt


def record_discovery(
    attempt_id: str,
    chapter_number: int,
    discovery_index: int,
    *,
    learner_id: str | None = None,
) -> DiscoveryOutcome:
    """Collect a discovery. Collecting the same one again changes nothing."""
    with _lock_for(attempt_id):
        attempt = _load_in_progress(attempt_id, learner_id)
        chapter = _chapter(_definition(attempt.journey_id), chapter_number)
        if not 0 <= discovery_index < len(chapter.discoveries):
            raise InvalidDiscoveryIndex(
                f"Chapter {chapter_number} has no discovery {discovery_index}"
            )
        discovery = chapter.discoveries[discovery_index]

        for collected in attempt.discoveries_collected:
            if (collected.chapter_number, collected.discovery_index) == (chapter_number, discovery_index):
                return DiscoveryOutcome(discovery=discovery, already_collected=True)

        attempt.discoveries_collected.append(
            CollectedDiscovery(
                chapter_number=chapter_number,
                discovery_index=discovery_index,
                collected_at=_now(),
            )
        )
        storage.save_attempt(attempt)
    logger.debug(f"Attempt {attempt_id}: collected discovery {chapter_number}/{discovery_index}")
    return DiscoveryOutcome(discovery=discovery, already_collected=False)


def record_decision(
    attempt_id: str,
    chapter_number: int,
    decision_index: int,
    option_index: int,
    time_spent_seconds: int = 0,
    *,
    learner_id: str | None = None,
) -> DecisionOutcome:
    """Record a choice and route the attempt to the option's next chapter.

    An option without a next chapter ends the journey: current_chapter stays
    put and the attempt waits for complete. No further decisions are accepted.
    """
    with _lock_for(attempt_id):
        attempt = _load_in_progress(attempt_id, learner_id)
        chapter = _chapter(_definition(attempt.journey_id), chapter_number)
        if not 0 <= decision_index < len(chapter.decisions):
            raise InvalidOption(f"Chapter {chapter_number} has no decision {decision_index}")
        decision = chapter.decisions[decision_index]
        if not 0 <= option_index < len(decision.options):
            raise InvalidOption(
                f"Decision {decision_index} in chapter {chapter_number} has no option {option_index}"
            )
        option = decision.options[option_index]

        if chapter_number != attempt.current_chapter:
            raise StaleOperation(
                f"Attempt has moved past chapter {chapter_number} (now at {attempt.current_chapter})"
            )
        if any(d.next_chapter is None for d in attempt.decisions_record):
            raise StaleOperation("The journey has already ended; complete the attempt")

        attempt.decisions_record.append(
            DecisionRecord(
                chapter_number=chapter_number,
                decision_index=decision_index,
                option_chosen=option_index,
                points_awarded=option.points_awarded,
                was_historically_accurate=option.historical_accuracy,
                next_chapter=option.next_chapter,
                time_spent_seconds=time_spent_seconds,
                timestamp=_now(),
            )
        )
        attempt.total_points += option.points_awarded
        if option.next_chapter is not None:
            attempt.current_chapter = option.next_chapter
        storage.save_attempt(attempt)

    logger.debug(
        f"Attempt {attempt_id}: decision {chapter_number}/{decision_index} -> option {option_index}, "
        f"next chapter {option.next_chapter}"
    )
    return DecisionOutcome(
        consequence=option.consequence,
        learning_point=option.learning_point,
        points_awarded=option.points_awarded,
        next_chapter=option.next_chapter,
        journey_ended=option.next_chapter is None,
    )


def _apply_challenge_result(
    attempt: JourneyAttempt,
    challenge: Challenge,
    chapter_number: int,
    challenge_index: int,
    success: bool,
    time_spent_seconds: int,
    attempts_count: int,
) -> ChallengeOutcome:
    earlier = [
        r for r in attempt.challenge_results
        if (r.chapter_number, r.challenge_index) == (chapter_number, challenge_index)
    ]
    if earlier and not challenge.on_failure.retry_allowed:
        raise StaleOperation(
            f"Challenge {chapter_number}/{challenge_index} does not allow another attempt"
        )

    # Only the first success pays; later ones re-confirm
    already_paid = any(r.success for r in earlier)
    points = challenge.reward_points if success and not already_paid else 0

    attempt.challenge_results.append(
        ChallengeResult(
            chapter_number=chapter_number,
            challenge_index=challenge_index,
            challenge_type=challenge.type,
            success=success,
            time_spent_seconds=time_spent_seconds,
            attempts=attempts_count,
            points_awarded=points,
        )
    )
    attempt.total_points += points
    storage.save_attempt(attempt)
    logger.debug(
        f"Attempt {attempt.id}: challenge {chapter_number}/{challenge_index} "
        f"{'solved' if success else 'failed'}, +{points}"
    )

    if success:
        return ChallengeOutcome(
            success=True,
            points_earned=points,
            narrative=challenge.on_success.narrative,
            reward=challenge.on_success.reward,
        )
    return ChallengeOutcome(
        success=False,
        points_earned=0,
        narrative=challenge.on_failure.narrative,
        hint=challenge.on_failure.hint,
    )


def record_challenge_result(
    attempt_id: str,
    chapter_number: int,
    challenge_index: int,
    success: bool,
    time_spent_seconds: int = 0,
    attempts_count: int = 1,
    *,
    learner_id: str | None = None,
) -> ChallengeOutcome:
    """Record an already-evaluated challenge result."""
    with _lock_for(attempt_id):
        attempt = _load_in_progress(attempt_id, learner_id)
        chapter = _chapter(_definition(attempt.journey_id), chapter_number)
        challenge = _challenge(chapter, challenge_index)
        return _apply_challenge_result(
            attempt, challenge, chapter_number, challenge_index,
            success, time_spent_seconds, attempts_count,
        )


def submit_challenge(
    attempt_id: str,
    chapter_number: int,
    challenge_index: int,
    submission: Any,
    time_spent_seconds: int = 0,
    attempts_count: int = 1,
    *,
    learner_id: str | None = None,
) -> ChallengeOutcome:
    """Evaluate a learner's answer and record the result."""
    with _lock_for(attempt_id):
        attempt = _load_in_progress(attempt_id, learner_id)
        chapter = _chapter(_definition(attempt.journey_id), chapter_number)
        challenge = _challenge(chapter, challenge_index)
        success = evaluate(challenge, submission)
        return _apply_challenge_result(
            attempt, challenge, chapter_number, challenge_index,
            success, time_spent_seconds, attempts_count,
        )


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

async def complete_attempt(
    attempt_id: str,
    *,
    ledger: RewardLedger,
    learner_id: str | None = None,
    scoring: dict[str, Any] | None = None,
) -> CompletionResult:
    """Score the attempt, freeze it, then report the points to the reward ledger.

    A ledger failure never undoes the completion: the attempt stays completed
    with rewards_pending=True and the result carries a notice.
    """
    with _lock_for(attempt_id):
        attempt = _load_in_progress(attempt_id, learner_id)
        definition = _definition(attempt.journey_id)
        card = score_attempt(attempt, definition, scoring or storage.get_config()["scoring"])

        attempt.status = "completed"
        attempt.completed_at = _now()
        attempt.total_points = card.total_points
        attempt.total_time_taken_seconds = card.total_time_taken_seconds
        attempt.engagement_score = card.engagement_score
        attempt.historical_accuracy_rate = card.historical_accuracy_rate
        attempt.breakdown = card.breakdown
        attempt.narrative_path = card.narrative_path
        attempt.rewards_pending = True
        storage.save_attempt(attempt)

    logger.info(
        f"Completed attempt {attempt_id}: {card.total_points} points, "
        f"engagement {card.engagement_score}, accuracy {card.historical_accuracy_rate:.0f}%"
    )

    try:
        update = await ledger.apply_journey_completion(attempt.learner_id, card.total_points)
    except Exception as e:
        # Progress is already saved; rewards can be reconciled later
        logger.warning(f"Reward ledger unavailable for attempt {attempt_id}: {e}")
        _drop_lock(attempt_id)
        return CompletionResult(
            attempt=attempt, rewards_pending=True, notice="RewardLedgerUnavailable"
        )

    with _lock_for(attempt_id):
        attempt.gamification_rewards = update
        attempt.rewards_pending = False
        storage.save_attempt(attempt)
    _drop_lock(attempt_id)
    return CompletionResult(attempt=attempt)
