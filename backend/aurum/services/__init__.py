"""Service Layer — imperative shell around core/ for the purchase protocol.

Invariants:
    - Services own their unit of work: each public method either commits once or
      rolls back completely before raising
    - Services never build HTTP responses (routes do)
"""
