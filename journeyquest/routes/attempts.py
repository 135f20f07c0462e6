"""Attempt lifecycle endpoints: start, visit, discovery, decision, challenge, complete.

Engine errors propagate to the JourneyError handler registered in app.py,
which answers with {"detail": ..., "error": <ErrorName>} and the error's status.

Progression handlers are plain functions so FastAPI runs them in its
threadpool; the engine's per-attempt lock serializes them. Only complete is
a coroutine, since it awaits the reward ledger.
"""

from fastapi import APIRouter, Depends, Header, HTTPException

from journeyquest import engine, storage
from journeyquest.ledger import RewardLedger, ledger_from_config

from .models import ChallengeBody, DecisionBody, DiscoveryBody, StartAttemptBody, VisitBody

router = APIRouter()


def current_learner(x_learner_id: str | None = Header(None)) -> str:
    """The authenticated learner, as forwarded by the upstream auth layer."""
    if not x_learner_id:
        raise HTTPException(401, "Missing X-Learner-Id header")
    return x_learner_id


def get_ledger() -> RewardLedger:
    """Reward ledger for completions. Tests override this dependency."""
    return ledger_from_config(storage.get_config())


@router.post("/attempts", status_code=201)
def start_attempt(body: StartAttemptBody, learner: str = Depends(current_learner)):
    """Start a journey (or resume the learner's in-progress attempt if resume=true)."""
    return engine.start_attempt(body.journey_id, learner, resume=body.resume)


@router.get("/attempts/{attempt_id}")
def get_attempt(attempt_id: str, learner: str = Depends(current_learner)):
    """Get an attempt. has_started=false means the client shows the introduction."""
    return engine.get_attempt(attempt_id, learner_id=learner)


@router.post("/attempts/{attempt_id}/visit")
def visit_chapter(attempt_id: str, body: VisitBody, learner: str = Depends(current_learner)):
    """Record a visit to the attempt's current chapter."""
    return engine.visit_chapter(
        attempt_id, body.chapter_number, body.time_spent_seconds, learner_id=learner
    )


@router.post("/attempts/{attempt_id}/discovery")
def record_discovery(
    attempt_id: str, body: DiscoveryBody, learner: str = Depends(current_learner)
):
    """Collect a discovery (idempotent)."""
    return engine.record_discovery(
        attempt_id, body.chapter_number, body.discovery_index, learner_id=learner
    )


@router.post("/attempts/{attempt_id}/decision")
def record_decision(
    attempt_id: str, body: DecisionBody, learner: str = Depends(current_learner)
):
    """Make a decision; routes the attempt to the chosen option's next chapter."""
    return engine.record_decision(
        attempt_id,
        body.chapter_number,
        body.decision_index,
        body.option_index,
        body.time_spent_seconds,
        learner_id=learner,
    )


@router.post("/attempts/{attempt_id}/challenge")
def submit_challenge(
    attempt_id: str, body: ChallengeBody, learner: str = Depends(current_learner)
):
    """Evaluate a challenge answer and record the result."""
    return engine.submit_challenge(
        attempt_id,
        body.chapter_number,
        body.challenge_index,
        body.submission,
        body.time_spent_seconds,
        body.attempts_count,
        learner_id=learner,
    )


@router.post("/attempts/{attempt_id}/complete")
async def complete_attempt(
    attempt_id: str,
    learner: str = Depends(current_learner),
    ledger: RewardLedger = Depends(get_ledger),
):
    """Score and freeze the attempt, then report points to the reward ledger."""
    return await engine.complete_attempt(attempt_id, ledger=ledger, learner_id=learner)


@router.get("/learners/{learner_id}/attempts")
def list_learner_attempts(learner_id: str, learner: str = Depends(current_learner)):
    """A learner's attempt history, newest first. Only visible to that learner."""
    if learner_id != learner:
        raise HTTPException(403, "Cannot read another learner's attempts")
    return engine.list_attempts(learner_id)
