"""Pydantic Schemas — request/response validation for both HTTP surfaces.

Invariants:
    - Schemas validate at the system boundary; quantity range rules live in
      core/pricing.py so services enforce them even when called directly
"""
