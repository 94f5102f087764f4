"""Aurum — session-mediated digital gold purchase protocol.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Two ASGI apps (advisory, settlement) ship from one package and share one database
"""
