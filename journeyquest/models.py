"""Core domain models.

Journey definitions are immutable, arena-style graphs: chapters are addressed
by ``chapter_number`` and decision options point at other chapters by number,
so an attempt only ever stores integers and never references into the
definition. Pydantic validates every definition when it is loaded and every
attempt when it is read from or written to storage.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from journeyquest.errors import InvalidDefinition, UnsupportedChallengeType

DiscoveryType = Literal["artifact", "letter", "scroll", "document", "photograph"]
AttemptStatus = Literal["in_progress", "completed"]

CHALLENGE_TYPES = ("timeline-order", "artifact-identify", "map-navigate", "decode-message")


# ---------------------------------------------------------------------------
# Journey definition
# ---------------------------------------------------------------------------

class Scene(BaseModel):
    location: str = ""
    time_of_day: str = ""
    atmosphere: str = ""


class Character(BaseModel):
    """Someone the learner meets in a chapter."""

    name: str
    role: str = ""
    dialogue: str = ""


class Discovery(BaseModel):
    """A collectible artifact attached to a chapter."""

    type: DiscoveryType
    name: str
    content: str
    significance: str | None = None
    year: int | None = None


class ChallengeSuccess(BaseModel):
    narrative: str = ""
    reward: str | None = None


class ChallengeFailure(BaseModel):
    narrative: str = ""
    hint: str | None = None
    retry_allowed: bool = True


class _ChallengeBase(BaseModel):
    description: str
    reward_points: int = Field(0, ge=0)
    on_success: ChallengeSuccess = Field(default_factory=ChallengeSuccess)
    on_failure: ChallengeFailure = Field(default_factory=ChallengeFailure)


class ChoiceElement(BaseModel):
    """Pick-one element shared by timeline-order and artifact-identify."""

    options: list[str] = Field(default_factory=list)
    correct_answer: int = Field(ge=0)


class MapLocation(BaseModel):
    name: str
    is_correct: bool = False


class MapElement(BaseModel):
    locations: list[MapLocation] = Field(min_length=1)


class DecodeElement(BaseModel):
    encoded_message: str = ""
    decoded_message: str
    hint: str | None = None


class TimelineOrderChallenge(_ChallengeBase):
    type: Literal["timeline-order"]
    interactive_element: ChoiceElement


class ArtifactIdentifyChallenge(_ChallengeBase):
    type: Literal["artifact-identify"]
    interactive_element: ChoiceElement


class MapNavigateChallenge(_ChallengeBase):
    type: Literal["map-navigate"]
    interactive_element: MapElement


class DecodeMessageChallenge(_ChallengeBase):
    type: Literal["decode-message"]
    interactive_element: DecodeElement


Challenge = Annotated[
    Union[
        TimelineOrderChallenge,
        ArtifactIdentifyChallenge,
        MapNavigateChallenge,
        DecodeMessageChallenge,
    ],
    Field(discriminator="type"),
]


class Option(BaseModel):
    text: str
    consequence: str = ""
    points_awarded: int = Field(0, ge=0)
    next_chapter: int | None = None  # None ends the journey after this decision
    historical_accuracy: bool = False
    learning_point: str | None = None


class Decision(BaseModel):
    prompt: str
    options: list[Option] = Field(min_length=1)


class Chapter(BaseModel):
    chapter_number: int = Field(ge=1)
    title: str = ""
    narrative: str = ""
    scene: Scene = Field(default_factory=Scene)
    characters: list[Character] = Field(default_factory=list)
    discoveries: list[Discovery] = Field(default_factory=list)
    challenges: list[Challenge] = Field(default_factory=list)
    decisions: list[Decision] = Field(default_factory=list)


class Introduction(BaseModel):
    title: str = ""
    narrative: str = ""
    setting: str = ""
    character_role: str = ""


class JourneyDefinition(BaseModel):
    """A published journey. Read-only to the engine."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    era: str = ""
    grade: str = ""
    subject: str = "History"
    difficulty: str | None = None
    estimated_duration: int | None = Field(None, ge=1)  # minutes
    is_active: bool = True
    introduction: Introduction = Field(default_factory=Introduction)
    chapters: list[Chapter] = Field(min_length=1)

    @model_validator(mode="after")
    def _validate_graph(self) -> JourneyDefinition:
        numbers: set[int] = set()
        for chapter in self.chapters:
            if chapter.chapter_number in numbers:
                raise ValueError(f"duplicate chapter_number {chapter.chapter_number}")
            numbers.add(chapter.chapter_number)
        for chapter in self.chapters:
            for d_idx, decision in enumerate(chapter.decisions):
                for o_idx, option in enumerate(decision.options):
                    if option.next_chapter is not None and option.next_chapter not in numbers:
                        raise ValueError(
                            f"chapter {chapter.chapter_number} decision {d_idx} option {o_idx} "
                            f"points at missing chapter {option.next_chapter}"
                        )
        return self

    @property
    def first_chapter(self) -> Chapter:
        return self.chapters[0]

    def chapter(self, chapter_number: int) -> Chapter | None:
        for chapter in self.chapters:
            if chapter.chapter_number == chapter_number:
                return chapter
        return None


def parse_journey(data: dict[str, Any]) -> JourneyDefinition:
    """Validate raw definition data.

    Raises UnsupportedChallengeType for challenge types outside the known
    vocabulary and InvalidDefinition for every other structural problem.
    """
    chapters = data.get("chapters") if isinstance(data, dict) else None
    for chapter in chapters if isinstance(chapters, list) else []:
        challenges = chapter.get("challenges") if isinstance(chapter, dict) else None
        for challenge in challenges if isinstance(challenges, list) else []:
            ctype = challenge.get("type") if isinstance(challenge, dict) else None
            if ctype not in CHALLENGE_TYPES:
                raise UnsupportedChallengeType(f"Unsupported challenge type: {ctype!r}")
    try:
        return JourneyDefinition.model_validate(data)
    except ValidationError as e:
        raise InvalidDefinition(f"Invalid journey definition: {e}") from e


# ---------------------------------------------------------------------------
# Journey attempt
# ---------------------------------------------------------------------------

class ChapterVisit(BaseModel):
    chapter_number: int
    time_spent_seconds: int = 0
    visited_at: str


class CollectedDiscovery(BaseModel):
    chapter_number: int
    discovery_index: int
    collected_at: str


class DecisionRecord(BaseModel):
    chapter_number: int
    decision_index: int
    option_chosen: int
    points_awarded: int
    was_historically_accurate: bool
    next_chapter: int | None
    time_spent_seconds: int = 0
    timestamp: str


class ChallengeResult(BaseModel):
    chapter_number: int
    challenge_index: int
    challenge_type: str
    success: bool
    time_spent_seconds: int = 0
    attempts: int = 1
    points_awarded: int = 0


class ScoreBreakdown(BaseModel):
    decision_points: int = 0
    challenge_points: int = 0
    completion_bonus: int = 0
    accuracy_bonus: int = 0


class Badge(BaseModel):
    id: str
    name: str
    description: str = ""


class LedgerUpdate(BaseModel):
    """What the reward ledger reports back after a completion."""

    total_points: int
    level: int
    current_streak: int
    longest_streak: int
    new_badges: list[Badge] = Field(default_factory=list)


class JourneyAttempt(BaseModel):
    """One learner's traversal of one journey."""

    id: str
    journey_id: str
    learner_id: str
    status: AttemptStatus = "in_progress"
    current_chapter: int
    has_started: bool = False  # False → client shows the introduction
    started_at: str
    completed_at: str | None = None

    chapters_visited: list[ChapterVisit] = Field(default_factory=list)
    discoveries_collected: list[CollectedDiscovery] = Field(default_factory=list)
    decisions_record: list[DecisionRecord] = Field(default_factory=list)
    challenge_results: list[ChallengeResult] = Field(default_factory=list)
    total_points: int = 0

    # Set once, at completion
    total_time_taken_seconds: int | None = None
    engagement_score: int | None = None
    historical_accuracy_rate: float | None = None
    breakdown: ScoreBreakdown | None = None
    narrative_path: list[int] | None = None
    gamification_rewards: LedgerUpdate | None = None
    rewards_pending: bool = False


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------

class DiscoveryOutcome(BaseModel):
    discovery: Discovery
    already_collected: bool


class DecisionOutcome(BaseModel):
    consequence: str
    learning_point: str | None = None
    points_awarded: int
    next_chapter: int | None
    journey_ended: bool


class ChallengeOutcome(BaseModel):
    success: bool
    points_earned: int
    narrative: str = ""
    reward: str | None = None
    hint: str | None = None


class CompletionResult(BaseModel):
    attempt: JourneyAttempt
    rewards_pending: bool = False
    notice: str | None = None  # "RewardLedgerUnavailable" when rewards are pending
