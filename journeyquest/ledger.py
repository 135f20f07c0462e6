"""Reward ledger: the learner's cross-activity points/level/streak/badge store.

Journeys, quizzes and games all feed the same ledger, so the engine never
computes level or streak itself; it passes the ledger's answer through. Every
implementation matches the protocol:

    async def apply_journey_completion(self, learner_id: str, points_earned: int) -> LedgerUpdate: ...

Two implementations are provided:

    HttpRewardLedger   production adapter for the shared ledger service.
    LocalRewardLedger  file-backed ledger under the data dir; used when no
                       ledger URL is configured (development, demos, tests).

Both raise RewardLedgerUnavailable for every failure, which the
engine turns into "rewards pending" instead of failing the completion.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from journeyquest import storage
from journeyquest.errors import RewardLedgerUnavailable
from journeyquest.models import Badge, LedgerUpdate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Port: the engine only sees this
# ---------------------------------------------------------------------------

class RewardLedger(Protocol):
    async def apply_journey_completion(
        self, learner_id: str, points_earned: int
    ) -> LedgerUpdate: ...


# ---------------------------------------------------------------------------
# HttpRewardLedger: shared ledger service over HTTP
# ---------------------------------------------------------------------------

class HttpRewardLedger:
    """Async HTTP client for the reward ledger service.

    Wire format:
      POST {base_url}/api/ledger/journey-completion
           {"learner_id": ..., "points_earned": ...}
      Response: {"total_points", "level", "current_streak",
                 "longest_streak", "new_badges": [{"id", "name", ...}]}

    Args:
        base_url:  Base URL of the ledger service.
        api_key:   Bearer token, or empty string if not required.
        timeout:   HTTP timeout in seconds. Defaults to 10.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def apply_journey_completion(
        self, learner_id: str, points_earned: int
    ) -> LedgerUpdate:
        url = f"{self._base_url}/api/ledger/journey-completion"
        body = {"learner_id": learner_id, "points_earned": points_earned}
        logger.debug(f"Ledger call for {learner_id}: +{points_earned} -> {url}")

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise RewardLedgerUnavailable(
                f"Cannot connect to reward ledger at {self._base_url}"
            ) from e
        except httpx.HTTPStatusError as e:
            raise RewardLedgerUnavailable(
                f"Reward ledger returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise RewardLedgerUnavailable(
                f"Reward ledger timed out after {self._timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise RewardLedgerUnavailable(
                f"Reward ledger request failed: {type(e).__name__}: {e}"
            ) from e

        try:
            return LedgerUpdate.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise RewardLedgerUnavailable("Unexpected response format from reward ledger") from e


# ---------------------------------------------------------------------------
# LocalRewardLedger: accounts under data/ledger/
# ---------------------------------------------------------------------------

# (minimum total points, level), highest first
LEVEL_THRESHOLDS: list[tuple[int, int]] = [
    (10000, 10),
    (5000, 9),
    (2500, 8),
    (1000, 7),
    (500, 6),
    (250, 5),
    (100, 4),
    (50, 3),
    (20, 2),
]

BADGES: dict[str, Badge] = {
    "first_journey": Badge(
        id="first_journey", name="Time Traveller", description="Completed your first journey"
    ),
    "five_streak": Badge(id="five_streak", name="On Fire", description="5-day activity streak"),
    "ten_streak": Badge(id="ten_streak", name="Unstoppable", description="10-day activity streak"),
    "thirty_streak": Badge(id="thirty_streak", name="Legend", description="30-day activity streak"),
}

_STREAK_BADGES = [(5, "five_streak"), (10, "ten_streak"), (30, "thirty_streak")]


def level_for_points(total_points: int) -> int:
    for minimum, level in LEVEL_THRESHOLDS:
        if total_points >= minimum:
            return level
    return 1


def _advance_streak(streaks: dict[str, Any], today: date) -> None:
    last = streaks.get("last_activity_date")
    last_day = date.fromisoformat(last) if last else None
    if last_day is None:
        streaks["current"] = 1
    elif (today - last_day).days == 0:
        pass  # same day, streak unchanged
    elif (today - last_day).days == 1:
        streaks["current"] += 1
    else:
        streaks["current"] = 1
    streaks["longest"] = max(streaks.get("longest", 0), streaks["current"])
    streaks["last_activity_date"] = today.isoformat()


class LocalRewardLedger:
    """Ledger kept in data/ledger/, one account per learner.

    Args:
        clock: Returns the current UTC datetime. Injected by tests to drive
               streaks across days.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def apply_journey_completion(
        self, learner_id: str, points_earned: int
    ) -> LedgerUpdate:
        try:
            account = storage.get_ledger_account(learner_id) or storage.new_account(learner_id)
            account["total_points"] += points_earned
            account["journeys_completed"] += 1
            account["level"] = max(account["level"], level_for_points(account["total_points"]))
            _advance_streak(account["streaks"], self._clock().date())

            owned = {b["id"] for b in account["badges"]}
            earned: list[Badge] = []
            if account["journeys_completed"] >= 1:
                earned.append(BADGES["first_journey"])
            for minimum, badge_id in _STREAK_BADGES:
                if account["streaks"]["current"] >= minimum:
                    earned.append(BADGES[badge_id])
            new_badges = [b for b in earned if b.id not in owned]
            now = self._clock().isoformat()
            for badge in new_badges:
                account["badges"].append({**badge.model_dump(), "earned_at": now})

            storage.save_ledger_account(account)
        except (OSError, ValueError, KeyError) as e:
            raise RewardLedgerUnavailable(f"Local reward ledger failed: {e}") from e

        return LedgerUpdate(
            total_points=account["total_points"],
            level=account["level"],
            current_streak=account["streaks"]["current"],
            longest_streak=account["streaks"]["longest"],
            new_badges=new_badges,
        )


def ledger_from_config(config: dict[str, Any]) -> RewardLedger:
    """Pick the ledger adapter. REWARD_LEDGER_URL / _API_KEY override config."""
    settings = config.get("reward_ledger", {})
    url = os.getenv("REWARD_LEDGER_URL") or settings.get("url", "")
    if not url:
        return LocalRewardLedger()
    return HttpRewardLedger(
        url,
        api_key=os.getenv("REWARD_LEDGER_API_KEY") or settings.get("api_key", ""),
        timeout=float(settings.get("timeout", 10)),
    )
