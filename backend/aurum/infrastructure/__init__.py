"""Infrastructure Layer — database, clock, external API clients, logging.

Invariants:
    - Infrastructure never imports from services/ or api/
    - All external calls wrapped with retry/timeout/error mapping
"""
