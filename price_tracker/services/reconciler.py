"""Merge a freshly extracted record into persisted product state.

Nothing in here touches the database: ``reconcile`` computes the next
product record and the observation to append, and the store applies both in
one transaction via ``Database.save_reconciliation``.
"""
import math
import uuid
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from price_tracker.models.schemas import ExtractedRecord, PriceObservation, ProductRecord

logger = logging.getLogger('reconciler')


@dataclass(frozen=True)
class ReconcileResult:
    product: ProductRecord
    observation: PriceObservation
    created: bool


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
    return str(uuid.uuid4())


def reconcile(
    existing: Optional[ProductRecord],
    extracted: ExtractedRecord,
    now: datetime,
    url: Optional[str] = None,
) -> ReconcileResult:
    """Compute the next product state and the observation recording it.

    ``url`` is required when ``existing`` is None, since a new product is
    keyed by the page it was extracted from.
    """
    price = extracted.price

    if existing is None:
        if not url:
            raise ValueError("A URL is required to create a new product")
        product = ProductRecord(
            id=_new_id(),
            url=url,
            title=extracted.title,
            current_price=price,
            image_url=extracted.image_url,
            last_checked=now,
            created_at=now,
            highest_price=price,
            lowest_price=price,
        )
        created = True
    else:
        prior_high = existing.highest_price if existing.highest_price is not None else -math.inf
        # Any first real price becomes the lowest when none was recorded
        prior_low = existing.lowest_price if existing.lowest_price is not None else math.inf
        product = existing.model_copy(update={
            "title": extracted.title or existing.title,
            "current_price": price,
            "image_url": extracted.image_url or existing.image_url,
            "last_checked": now,
            "highest_price": max(prior_high, price),
            "lowest_price": min(prior_low, price),
        })
        created = False

    observation = PriceObservation(
        id=_new_id(),
        product_id=product.id,
        price=price,
        timestamp=now,
    )

    logger.debug(
        f"Reconciled {product.id}: price={price} high={product.highest_price} "
        f"low={product.lowest_price} created={created}"
    )
    return ReconcileResult(product=product, observation=observation, created=created)


def price_change(observations: Sequence[PriceObservation]) -> Optional[float]:
    """Latest price minus the previous one, for observations in chronological order."""
    if len(observations) < 2:
        return None
    return observations[-1].price - observations[-2].price
