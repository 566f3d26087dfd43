"""Back-in-stock subscription tracker.

Records shopper subscriptions and moves them through their lifecycle:
PENDING -> NOTIFIED or PENDING -> ERROR, both terminal. Sending the actual
email or SMS is somebody else's job; `notify_restock` only drives a
`Notifier` and records the outcome.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Protocol

from fastapi import Depends
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session, storage_errors
from core.errors import InvalidTransitionError, NotFoundError, ValidationError
from core.models.base import utcnow
from patterns.repository import BaseRepository
from patterns.workflow_states import ensure_transition, sources_for
from verticals.storefront.identifiers import validate_product_id, validate_shop
from verticals.storefront.models.db_models import BackInStockSubscription
from verticals.storefront.models.domain import Subscription, SubscriptionStatus

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _clean_optional(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class Notifier(Protocol):
    """Delivers one restock message. Raises on failure."""

    async def send(self, subscription: Subscription) -> None: ...


@dataclass
class RestockReport:
    """Outcome of one restock batch."""

    notified: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    # settled by a concurrent batch before this one could record an outcome
    skipped: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.notified) + len(self.failed)


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------

class SubscriptionTracker(BaseRepository[BackInStockSubscription]):
    """Repository and lifecycle for back-in-stock subscriptions."""

    model = BackInStockSubscription

    async def subscribe(
        self,
        shop: str,
        product_id: str,
        email: str,
        name: str | None = None,
        phone: str | None = None,
    ) -> Subscription:
        """Create a PENDING subscription.

        Existing subscriptions for the same email and product are not
        checked; every call adds a row.
        """
        shop = validate_shop(shop)
        product_id = validate_product_id(product_id)
        email = (email or "").strip()
        if not EMAIL_RE.match(email):
            raise ValidationError(f"Invalid email address: {email!r}")

        row = BackInStockSubscription(
            shop=shop,
            product_id=product_id,
            customer_email=email,
            customer_name=_clean_optional(name),
            customer_phone=_clean_optional(phone),
            subscribed_at=utcnow(),
            status=SubscriptionStatus.PENDING.value,
        )
        self.session.add(row)
        async with storage_errors("subscribe"):
            await self.session.flush()

        logger.info("New back-in-stock subscription %s for %s on %s", row.id, product_id, shop)
        return row.to_domain()

    async def list_pending(self, shop: str, product_id: str) -> list[Subscription]:
        """Pending subscriptions for a product, earliest first."""
        shop = validate_shop(shop)
        product_id = validate_product_id(product_id)
        stmt = (
            self.scoped(shop)
            .where(
                BackInStockSubscription.product_id == product_id,
                BackInStockSubscription.status == SubscriptionStatus.PENDING.value,
            )
            .order_by(BackInStockSubscription.subscribed_at, BackInStockSubscription.id)
        )
        async with storage_errors("list pending subscriptions"):
            result = await self.session.execute(stmt)
        return [row.to_domain() for row in result.scalars().all()]

    async def list_for_email(self, shop: str, email: str) -> list[Subscription]:
        """Every subscription a shopper holds in this shop, newest first."""
        shop = validate_shop(shop)
        stmt = (
            self.scoped(shop)
            .where(BackInStockSubscription.customer_email == email.strip())
            .order_by(BackInStockSubscription.subscribed_at.desc(), BackInStockSubscription.id.desc())
        )
        async with storage_errors("list subscriptions for email"):
            result = await self.session.execute(stmt)
        return [row.to_domain() for row in result.scalars().all()]

    # -- Transitions --

    async def _transition(
        self, shop: str, subscription_id: int, to_state: SubscriptionStatus
    ) -> Subscription:
        shop = validate_shop(shop)
        row = await self.get_row(shop, subscription_id)
        if row is None:
            raise NotFoundError(f"Subscription {subscription_id} not found")

        ensure_transition(SubscriptionStatus(row.status), to_state)

        values: dict = {"status": to_state.value}
        if to_state is SubscriptionStatus.NOTIFIED:
            values["notified_at"] = utcnow()

        # conditional on the source state so concurrent markers cannot both win
        stmt = (
            update(BackInStockSubscription)
            .where(
                BackInStockSubscription.id == subscription_id,
                BackInStockSubscription.shop == shop,
                BackInStockSubscription.status.in_([s.value for s in sources_for(to_state)]),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        async with storage_errors(f"mark subscription {to_state.value}"):
            result = await self.session.execute(stmt)
            await self.session.refresh(row)

        if result.rowcount == 0:
            raise InvalidTransitionError(
                f"Cannot transition from {row.status} to {to_state.value}"
            )

        logger.info("Subscription %s on %s marked %s", subscription_id, shop, to_state.value)
        return row.to_domain()

    async def mark_notified(self, shop: str, subscription_id: int) -> Subscription:
        return await self._transition(shop, subscription_id, SubscriptionStatus.NOTIFIED)

    async def mark_error(self, shop: str, subscription_id: int) -> Subscription:
        return await self._transition(shop, subscription_id, SubscriptionStatus.ERROR)

    # -- Batch --

    async def notify_restock(
        self, shop: str, product_id: str, notifier: Notifier
    ) -> RestockReport:
        """Notify every pending subscriber of a product, earliest first.

        A failed send marks that subscription ERROR and the batch carries on.
        A subscription another batch has already moved out of PENDING is
        skipped.
        """
        report = RestockReport()
        for subscription in await self.list_pending(shop, product_id):
            try:
                await notifier.send(subscription)
            except Exception:
                logger.exception(
                    "Restock notification %s to %s failed",
                    subscription.id,
                    subscription.customer_email,
                )
                outcome, mark = report.failed, self.mark_error
            else:
                outcome, mark = report.notified, self.mark_notified

            try:
                await mark(shop, subscription.id)
            except (InvalidTransitionError, NotFoundError) as exc:
                logger.warning(
                    "Subscription %s already settled elsewhere: %s", subscription.id, exc.message
                )
                report.skipped.append(subscription.id)
            else:
                outcome.append(subscription.id)

        logger.info(
            "Restock batch for %s on %s: %d notified, %d failed, %d skipped",
            product_id,
            shop,
            len(report.notified),
            len(report.failed),
            len(report.skipped),
        )
        return report


# ---------------------------------------------------------------------------
# FastAPI dependency factory
# ---------------------------------------------------------------------------

def get_subscription_tracker(
    session: AsyncSession = Depends(get_session),
) -> SubscriptionTracker:
    """FastAPI dependency for SubscriptionTracker."""
    return SubscriptionTracker(session)
