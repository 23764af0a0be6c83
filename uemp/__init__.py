"""UEMP Application Package — product identity, registration and recycler-matching engine.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
