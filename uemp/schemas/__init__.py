"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (user input, API responses)
    - JSON bodies use camelCase keys; Python attributes stay snake_case

Design Decisions:
    - Separate from core/documents.py: schemas are API contracts, documents are persistence
"""
