"""
Hafez Quraan Backend — Application Package Initializer
=======================================================

What: Marks the `hafez_api` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend keeps a layered structure:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Services (Identity, Progress,      │  ← Validation, upserts,
    │  Activity, Analytics, Mail)         │    state reconciliation
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Only the Identity service is shared: Progress and Activity both resolve
    the user through it. Everything else is called from exactly one route.
"""

__version__ = "1.0.0"
