"""Services Layer — async orchestration of core rules around the injected store and clients.

Invariants:
    - Services receive their DocumentStore and outbound clients through __init__
    - Services raise UempError subclasses; the API layer turns them into responses
"""
