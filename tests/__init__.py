"""
Nexium Frontier Test Suite
==========================

Test Organization
-----------------
- tests/unit/          : Engines, domain models and infrastructure with scripted
                         randomness and in-memory fakes (no database)
- tests/integration/   : GameService, repositories and the container against a
                         SQLite file; PostgreSQL via testcontainers (``database``)

Markers
-------
- unit, domain, integration, database (see pyproject.toml)

Run ``pytest -m "not database"`` when Docker is unavailable.
"""
