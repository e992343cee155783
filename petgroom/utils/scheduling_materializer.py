import logging
from collections import OrderedDict
from datetime import datetime, timedelta

from flask import current_app

from petgroom.models import ClientSubscription
from petgroom.utils.pickup_dates import pickup_dates, midnight
from petgroom.utils.pricing import aggregate_pricing, to_money, REASON_MULTI_PET_DISCOUNT, REASON_OTHER
from petgroom.utils.scheduling_book import SchedulingBook

logger = logging.getLogger(__name__)


def group_by_config(subscriptions):
    """Active subscriptions keyed by (pickup weekday, recurrence), in submission order."""
    groups = OrderedDict()
    for subscription in subscriptions:
        if not subscription.is_active:
            continue
        groups.setdefault(subscription.config_key, []).append(subscription)
    return groups


def active_subscriptions_by_pet(client_id):
    subscriptions = ClientSubscription.query.filter_by(client_id=client_id, is_active=True).all()
    return {subscription.pet_id: subscription for subscription in subscriptions}


def starts_by(subscription, pickup_date):
    """Whether ``subscription`` is already running on ``pickup_date``."""
    if not subscription.next_pickup_date:
        return True
    return midnight(subscription.next_pickup_date) <= pickup_date


def reprice(scheduling, subscriptions_by_pet):
    """Recompute an appointment's aggregate price from its members' subscriptions.

    Returns True when any stored value changed.
    """
    members = [subscriptions_by_pet[row.pet_id] for row in scheduling.scheduling_pets
               if row.pet_id in subscriptions_by_pet]
    base_total = sum((to_money(s.base_price) for s in members), to_money(0))
    final_total = sum((to_money(s.final_price) for s in members), to_money(0))
    aggregate = aggregate_pricing(base_total, final_total)

    reasons = {s.adjustment_reason for s in members if s.adjustment_reason}
    if REASON_MULTI_PET_DISCOUNT in reasons:
        reason = REASON_MULTI_PET_DISCOUNT
    elif len(reasons) == 1:
        reason = reasons.pop()
    elif aggregate.adjustment_value != 0:
        reason = REASON_OTHER
    else:
        reason = None

    changed = False
    for field_name, value in (('base_price', aggregate.base_price),
                              ('final_price', aggregate.final_price),
                              ('adjustment_value', aggregate.adjustment_value),
                              ('adjustment_percentage', aggregate.adjustment_percentage)):
        current = getattr(scheduling, field_name)
        if current is None or to_money(current) != value:
            setattr(scheduling, field_name, value)
            changed = True
    if scheduling.adjustment_reason != reason:
        scheduling.adjustment_reason = reason
        changed = True
    return changed


class SchedulingMaterializer:
    """Turns recurring subscriptions into concrete appointments over a bounded horizon."""

    def __init__(self, horizon_days=None, lead_days=None):
        config = current_app.config
        self.horizon_days = horizon_days if horizon_days is not None else config.get('SCHEDULING_HORIZON_DAYS', 30)
        self.lead_days = lead_days if lead_days is not None else config.get('DEFAULT_PICKUP_LEAD_DAYS', 7)

    def materialize(self, client_id, subscriptions, now=None):
        now = now or datetime.now()
        book = SchedulingBook.load(client_id, now)
        touched = self.place(book, subscriptions)

        subscriptions_by_pet = active_subscriptions_by_pet(client_id)
        for scheduling in touched:
            if reprice(scheduling, subscriptions_by_pet):
                book.report.repriced += 1

        logger.info("Materialized %d subscriptions for client %s: %s",
                    len(subscriptions), client_id, book.report.to_dict())
        return book.report

    def anchor_for(self, members, now):
        dates = [s.next_pickup_date for s in members if s.next_pickup_date]
        if dates:
            return min(dates)
        return now + timedelta(days=self.lead_days)

    def place(self, book, subscriptions, ensure_first=False):
        """Attach each subscription's pet to every occurrence in the horizon.

        A pet only joins occurrences on or after its own next pickup date, so
        a plan that starts later than its group's earliest member is never
        billed early. With ``ensure_first`` each pet keeps its first
        occurrence even when it falls past the horizon, so a pet that is
        moved never loses its next visit. Returns the appointments that were
        touched, without duplicates.
        """
        until = book.now + timedelta(days=self.horizon_days)
        touched = OrderedDict()

        for (pickup_day_of_week, recurrence), members in group_by_config(subscriptions).items():
            anchor = self.anchor_for(members, book.now)
            pickup_time = min((s.pickup_time for s in members if s.pickup_time), default=None)

            last = until
            if ensure_first:
                last = max([until] + [midnight(s.next_pickup_date) for s in members if s.next_pickup_date])

            placed = set()
            for pickup_date in pickup_dates(anchor, recurrence, last, include_anchor=ensure_first):
                due = [s for s in members if starts_by(s, pickup_date)]
                if pickup_date > until:
                    due = [s for s in due if s.pet_id not in placed]
                if not due:
                    continue

                scheduling = book.find_slot(pickup_date, recurrence)
                if scheduling is None:
                    scheduling = book.open(pickup_date, pickup_time)
                for subscription in due:
                    book.attach(scheduling, subscription.pet_id, subscription.package_price_id)
                    placed.add(subscription.pet_id)
                touched[scheduling.id] = scheduling

            logger.debug("Placed group day=%s recurrence=%s (%d pets) from %s",
                         pickup_day_of_week, recurrence, len(members), anchor)

        return list(touched.values())
