"""Human-readable order numbers: ``LUX`` + YYMMDD + 4-digit daily sequence.

Each UTC calendar day owns an ``OrderSequence`` aggregate keyed by its
``YYMMDD`` stamp. Allocating a number advances that counter and stages it in
the current unit of work, so the counter and the new order commit together.
"""

from datetime import datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from ordering import settings
from ordering.domain import ordering
from ordering.utils.clock import utcnow

logger = structlog.get_logger(__name__)


@ordering.aggregate
class OrderSequence:
    day = Identifier(identifier=True)  # YYMMDD
    last_sequence = Integer(default=0, min_value=0)

    def advance(self) -> int:
        self.last_sequence = (self.last_sequence or 0) + 1
        return self.last_sequence


def day_stamp(moment: datetime) -> str:
    return moment.strftime("%y%m%d")


def format_order_number(day: str, sequence: int) -> str:
    return f"{settings.ORDER_NUMBER_PREFIX}{day}{sequence:04d}"


def next_order_number(moment: datetime | None = None) -> str:
    """Allocate the next order number for the day of ``moment`` (default: now)."""
    day = day_stamp(moment or utcnow())
    repo = current_domain.repository_for(OrderSequence)
    try:
        counter = repo.get(day)
    except ObjectNotFoundError:
        counter = OrderSequence(day=day)

    sequence = counter.advance()
    repo.add(counter)

    number = format_order_number(day, sequence)
    logger.debug("order_number_allocated", order_number=number, day=day, sequence=sequence)
    return number
