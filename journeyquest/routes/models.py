"""Pydantic request models for API endpoints."""

from pydantic import BaseModel, Field


class StartAttemptBody(BaseModel):
    journey_id: str
    resume: bool = False


class VisitBody(BaseModel):
    chapter_number: int
    time_spent_seconds: int = Field(0, ge=0)


class DecisionBody(BaseModel):
    chapter_number: int
    decision_index: int
    option_index: int
    time_spent_seconds: int = Field(0, ge=0)


class DiscoveryBody(BaseModel):
    chapter_number: int
    discovery_index: int


class ChallengeBody(BaseModel):
    chapter_number: int
    challenge_index: int
    submission: int | str
    time_spent_seconds: int = Field(0, ge=0)
    attempts_count: int = Field(1, ge=1)


class CheckLedgerBody(BaseModel):
    url: str
    api_key: str = ""
