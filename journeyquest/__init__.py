"""journeyquest: branching narrative learning journeys.

Packages:
  storage/   flat JSON storage (journey definitions, attempts, ledger accounts, config)
  routes/    FastAPI endpoints mounted under /api

Modules:
  models     pydantic definition + attempt types
  errors     error taxonomy shared by the engine and the routes
  evaluator  pure challenge evaluation
  scoring    completion scoring and journey statistics
  ledger     reward ledger port and adapters
  engine     attempt state machine
  app        FastAPI app factory
  demo       demo journey + attempt for development
"""
