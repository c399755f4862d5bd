"""Ordering bounded context: Shopping Cart and Order Management.

Handles per-user carts, the checkout flow that snapshots a cart into an
order, and the order lifecycle (status transitions, refunds, returns).
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
