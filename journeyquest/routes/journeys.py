"""Journey catalogue and play statistics endpoints."""

from fastapi import APIRouter, HTTPException

from journeyquest import engine, storage

router = APIRouter()


@router.get("/journeys")
async def list_journeys(grade: str | None = None):
    """List active journeys (presets merged with published), optionally by grade."""
    return [
        {
            "id": j.id,
            "title": j.title,
            "era": j.era,
            "grade": j.grade,
            "subject": j.subject,
            "difficulty": j.difficulty,
            "estimated_duration": j.estimated_duration,
            "chapters": len(j.chapters),
        }
        for j in storage.list_journeys(grade=grade)
    ]


@router.get("/journeys/{journey_id}")
async def get_journey(journey_id: str):
    """Get a full journey definition."""
    journey = storage.get_journey(journey_id)
    if not journey:
        raise HTTPException(404, "Journey not found")
    return journey


@router.get("/journeys/{journey_id}/stats")
async def journey_stats(journey_id: str):
    """Times played, completion rate, average time and engagement."""
    return engine.journey_stats(journey_id)
