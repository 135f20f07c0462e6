"""Storage initialization, path helpers, and slug utilities."""

import re
import unicodedata
from pathlib import Path

_data_dir: Path | None = None
_presets_dir: Path | None = None

_ATTEMPT_ID_RE = re.compile(r"[0-9a-f]{32}")


def slugify(title: str) -> str:
    """Convert a title to a filesystem-safe slug.

    "The Freedom Trail" → "the-freedom-trail"
    """
    text = unicodedata.normalize("NFKD", title)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"['\"]", "", text)  # strip apostrophes/quotes before hyphenation
    text = re.sub(r"[^a-z0-9]+", "-", text)
    text = text.strip("-")
    return text or "untitled"


def is_journey_id(value: str) -> bool:
    """Journey ids are slugs; anything else never touches the filesystem."""
    return bool(value) and slugify(value) == value


def is_attempt_id(value: str) -> bool:
    return bool(_ATTEMPT_ID_RE.fullmatch(value))


def init_storage(data_dir: Path, presets_dir: Path | None = None) -> None:
    global _data_dir, _presets_dir
    from . import journeys as _journeys_mod

    _data_dir = data_dir
    _data_dir.mkdir(parents=True, exist_ok=True)
    journeys_dir().mkdir(exist_ok=True)
    attempts_dir().mkdir(exist_ok=True)
    ledger_dir().mkdir(exist_ok=True)
    if presets_dir is None:
        # Default: repo_root/presets
        presets_dir = Path(__file__).parent.parent.parent / "presets"
    _presets_dir = presets_dir
    _journeys_mod._cache.clear()  # definitions may differ between data dirs


def data_dir() -> Path:
    assert _data_dir is not None, "Call init_storage() before using storage"
    return _data_dir


def presets_dir() -> Path:
    assert _presets_dir is not None, "Call init_storage() before using storage"
    return _presets_dir


def journeys_dir() -> Path:
    return data_dir() / "journeys"


def attempts_dir() -> Path:
    return data_dir() / "attempts"


def ledger_dir() -> Path:
    return data_dir() / "ledger"


def preset_journeys_dir() -> Path:
    return presets_dir() / "journeys"
