"""Journey definition provider (merged presets + published definitions).

Definitions are immutable once published, so parsed models are cached by
file path and modification time. Published definitions in data/journeys/
win over presets with the same id.
"""

import json
import logging
from pathlib import Path
from typing import Any

from journeyquest.errors import InvalidDefinition
from journeyquest.models import JourneyDefinition, parse_journey

from .core import is_journey_id, journeys_dir, preset_journeys_dir

logger = logging.getLogger(__name__)

_cache: dict[Path, tuple[float, JourneyDefinition]] = {}


def _load(path: Path) -> JourneyDefinition:
    mtime = path.stat().st_mtime
    cached = _cache.get(path)
    if cached is not None and cached[0] == mtime:
        return cached[1]
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise InvalidDefinition(f"Journey file {path.name} is not valid JSON: {e}") from e
    if isinstance(data, dict):
        data.setdefault("id", path.stem)
    definition = parse_journey(data)
    if definition.id != path.stem:
        raise InvalidDefinition(f"Journey file {path.name} declares id {definition.id!r}")
    _cache[path] = (mtime, definition)
    return definition


def _journey_path(journey_id: str) -> Path | None:
    user_path = journeys_dir() / f"{journey_id}.json"
    if user_path.is_file():
        return user_path
    preset_path = preset_journeys_dir() / f"{journey_id}.json"
    if preset_path.is_file():
        return preset_path
    return None


def get_journey(journey_id: str) -> JourneyDefinition | None:
    """Return a journey by id, or None if unknown.

    A malformed definition raises InvalidDefinition rather than being hidden.
    """
    if not is_journey_id(journey_id):
        return None
    path = _journey_path(journey_id)
    if path is None:
        return None
    return _load(path)


def list_journeys(grade: str | None = None) -> list[JourneyDefinition]:
    """List active journeys, optionally filtered by grade.

    Broken definitions are skipped with a warning so one bad file does not
    take down the catalogue.
    """
    paths: dict[str, Path] = {}
    # Presets first (lower priority)
    if preset_journeys_dir().is_dir():
        for path in sorted(preset_journeys_dir().glob("*.json")):
            paths[path.stem] = path
    for path in sorted(journeys_dir().glob("*.json")):
        paths[path.stem] = path

    results = []
    for journey_id, path in sorted(paths.items()):
        try:
            definition = _load(path)
        except InvalidDefinition as e:
            logger.warning(f"Skipping journey {journey_id}: {e}")
            continue
        if not definition.is_active:
            continue
        if grade is not None and definition.grade != grade:
            continue
        results.append(definition)
    return results


def publish_journey(data: dict[str, Any]) -> JourneyDefinition:
    """Validate and store a definition produced by the content service.

    Ids are never reused: attempts refer to chapters by number, so a changed
    definition must be published under a new id. Raises InvalidDefinition if
    the id is already published or taken by a preset.
    """
    definition = parse_journey(data)
    if not is_journey_id(definition.id):
        raise InvalidDefinition(f"Journey id {definition.id!r} is not a slug")
    if _journey_path(definition.id) is not None:
        raise InvalidDefinition(f"Journey {definition.id!r} is already published")
    path = journeys_dir() / f"{definition.id}.json"
    path.write_text(definition.model_dump_json(indent=2))
    _cache.pop(path, None)
    logger.info(f"Published journey {definition.id} ({len(definition.chapters)} chapters)")
    return definition
