"""FastAPI API endpoints under /api.

Endpoint groups: journeys (catalogue + stats), attempts (start, progression
events, completion, learner history), settings (health, config, reward
ledger check). Attempt endpoints are scoped to the learner named in the
X-Learner-Id header; authentication itself happens upstream.
"""

from fastapi import APIRouter

from .attempts import router as attempts_router
from .journeys import router as journeys_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(journeys_router)
router.include_router(attempts_router)
