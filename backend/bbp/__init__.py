"""
Best Bike Paths Backend - Application Package
==============================================

What: Community bike-path service: shared paths built from reusable road
      segments, crowd hazard reports, and the path-health engine that turns
      those reports into segment and path statuses.

Layout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Orchestration)    │  ← reads, engine calls, writes
    ├─────────────────────────────────────┤
    │      Engine (pure health logic)     │  ← chain, signals, aggregation, search
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

The engine package never touches the database or HTTP: it receives records
fetched by the services and returns plain values.
"""

__version__ = "1.0.0"
