"""Order numbers: ``<prefix><YYMMDD><4-digit daily sequence>``.

Each day has one OrderSequence record. Numbers are drawn like a database
sequence: every draw commits on its own, outside the checkout's unit of
work, so a failed checkout leaves a gap rather than handing its number out
twice. A draw saves the record expecting the version it read; a concurrent
draw makes the save fail with ``ExpectedVersionError`` and the draw is
retried. The record is seeded at zero by a create-only insert, which never
claims a number and never replaces a record that already exists.
"""

from datetime import UTC, datetime

from protean.exceptions import ExpectedVersionError, ValidationError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import OrderNumberUnavailable
from storefront.utils.logging import get_logger
from storefront.utils.settings import setting

logger = get_logger(__name__)


@storefront.aggregate
class OrderSequence:
    day = String(identifier=True, max_length=6)  # YYMMDD
    last_value = Integer(default=0, min_value=0)


@storefront.repository(part_of=OrderSequence)
class OrderSequenceRepository:
    def current(self, day) -> OrderSequence | None:
        """Return the committed record for ``day``, or None before it is seeded."""
        sequences = self._dao.outside_uow().query.filter(day=day).all().items
        return sequences[0] if sequences else None

    def seed(self, day) -> None:
        """Insert the day's record at zero unless another checkout already did."""
        try:
            self._dao.outside_uow().save(OrderSequence(day=day, last_value=0))
        except ValidationError:
            # The identifier is unique, so an existing record rejects the insert
            logger.info("order_sequence_already_seeded", day=day)

    def next_value(self, day) -> int:
        retries = int(setting("ORDER_SEQUENCE_RETRIES"))

        for _ in range(retries):
            sequence = self.current(day)
            if sequence is None:
                self.seed(day)
                sequence = self.current(day)

            observed = sequence.last_value or 0
            sequence.last_value = observed + 1
            try:
                self._dao.outside_uow().save(sequence)
            except ExpectedVersionError:
                logger.info("order_sequence_conflict", day=day, observed=observed)
                continue
            return observed + 1

        raise OrderNumberUnavailable({"order_number": [f"Could not allocate an order number for {day}, try again"]})


def next_order_number(now=None) -> str:
    now = now or datetime.now(UTC)
    day = f"{now:%y%m%d}"
    sequence = current_domain.repository_for(OrderSequence).next_value(day)
    return f"{setting('ORDER_NUMBER_PREFIX')}{day}{sequence:04d}"
