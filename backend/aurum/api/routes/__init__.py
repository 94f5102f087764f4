"""Route Modules — one file per resource/concern.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - advisory routes mount on the advisory app only; purchase,
      session and portfolio routes mount on the settlement app only
"""
