"""Presence Sync Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - engine/: Config, models, OAuth, timezone normalization, window decisions
  - graph/: Graph client pagination, calendar and directory queries, presence
- integration/: Full passes against an in-memory Graph tenant

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/engine/

    # With coverage
    pytest --cov=presence_sync --cov-report=term-missing
"""
