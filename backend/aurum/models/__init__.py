"""ORM Models — SQLAlchemy declarative models for the purchase protocol.

Invariants:
    - All models inherit from Base (db/base.py)
    - Every table is imported here so Base.metadata is complete for
      create_all (tests) and Alembic autogenerate

Design Decisions:
    - One file per entity for locality
"""

from aurum.models.user import User  # noqa: F401
from aurum.models.purchase_session import PurchaseSession  # noqa: F401
from aurum.models.transaction import Transaction  # noqa: F401
from aurum.models.analytics_event import AnalyticsEvent  # noqa: F401
from aurum.models.price_record import PriceRecord  # noqa: F401
from aurum.models.conversation import Conversation  # noqa: F401
