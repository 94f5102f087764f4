"""Core Layer — pure protocol logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic given their inputs (clock and
      randomness are passed in or isolated in a single call site)

Design Decisions:
    - Functional core separated from imperative shell: signing, quantity rules,
      merge rules and verification tagging are tested without a database
"""
