"""
DevConnect Backend: Application Package
=========================================

Layered architecture:

    ┌─────────────────────────────────────┐
    │    Routes + validation (API layer)  │  ← HTTP concerns, envelopes
    ├─────────────────────────────────────┤
    │   Services (business logic)         │  ← ServiceResult, never raise
    ├─────────────────────────────────────┤
    │   Models & Schemas (data)           │  ← SQLAlchemy ORM + Pydantic + JSON Schema
    ├─────────────────────────────────────┤
    │   Store (persistence)               │  ← async sessions with RLS scoping
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
