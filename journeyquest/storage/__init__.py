"""File-based JSON storage.

Data layout:
  data/
    journeys/            Published journey definitions (override presets by id)
      <id>.json
    attempts/            One file per journey attempt
      <attempt_id>.json
    ledger/              Local reward ledger accounts
      <sha256(learner_id)>.json
    config.json          App settings (scoring constants, reward ledger connection)
  presets/
    journeys/            Built-in read-only journey definitions

Preset merging: list_journeys() and get_journey() merge preset + published
definitions; published wins on id collision. Definitions are cached per file
and modification time; init_storage() clears the cache.

Config: get_config() returns defaults merged with stored values.
update_config() merges sections key-by-key and ignores unknown keys.
"""

# Re-export all public symbols so `from journeyquest import storage` keeps working.

from .core import (  # noqa: F401
    attempts_dir,
    data_dir,
    init_storage,
    is_attempt_id,
    is_journey_id,
    journeys_dir,
    ledger_dir,
    preset_journeys_dir,
    presets_dir,
    slugify,
)

from .journeys import (  # noqa: F401
    get_journey,
    list_journeys,
    publish_journey,
)

from .attempts import (  # noqa: F401
    attempt_exists,
    find_active_attempt,
    get_attempt,
    list_attempts,
    new_attempt_id,
    save_attempt,
)

from .ledger import (  # noqa: F401
    get_ledger_account,
    new_account,
    save_ledger_account,
)

from .config import (  # noqa: F401
    get_config,
    update_config,
)
