"""Infrastructure Layer — IO adapters: database, document store, outbound HTTP, logging.

Invariants:
    - Every adapter maps its library's exceptions to UempError subclasses
"""
