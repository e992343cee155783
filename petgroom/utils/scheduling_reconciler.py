"""Keeps a client's future appointments aligned with their subscriptions.

A reconciliation pass runs inside the caller's transaction, after the edited
pets and subscriptions have been added to the session:

1. rows of pets whose subscription moved to another weekday or recurrence
   are detached and the pets are placed again under their new configuration;
2. rows of pets that no longer hold an active subscription are detached;
3. new or reactivated subscriptions are materialized;
4. appointments left without pets are deleted;
5. configuration groups spread over several appointments in the same
   occurrence are merged onto the earliest one;
6. every subscription-derived appointment is repriced.

Running a second pass without intervening edits changes nothing.
"""
import logging
from collections import OrderedDict
from datetime import datetime

from petgroom.errors import NotFoundError
from petgroom.models import Client
from petgroom.utils.pickup_dates import cadence_weeks
from petgroom.utils.scheduling_book import SchedulingBook, recurrences_of, weekday_of, sort_key
from petgroom.utils.scheduling_materializer import (
    SchedulingMaterializer, group_by_config, active_subscriptions_by_pet, reprice,
)

logger = logging.getLogger(__name__)


def occurrence_buckets(schedulings, recurrence):
    """Split same-weekday appointments into occurrences of one cadence each."""
    window_days = cadence_weeks(recurrence) * 7
    buckets = []
    for scheduling in sorted(schedulings, key=sort_key):
        if buckets and (scheduling.pickup_date - buckets[-1][0].pickup_date).days < window_days:
            buckets[-1].append(scheduling)
        else:
            buckets.append([scheduling])
    return buckets


class SchedulingReconciler:

    def __init__(self, materializer=None):
        self.materializer = materializer or SchedulingMaterializer()

    def reconcile(self, client_id, pet_ids=None, new_subscriptions=(), now=None):
        now = now or datetime.now()

        client = Client.query.filter_by(id=client_id).with_for_update().first()
        if not client:
            raise NotFoundError('Client not found')

        book = SchedulingBook.load(client_id, now)
        subscriptions_by_pet = active_subscriptions_by_pet(client_id)

        divergent = self.detach_divergent(book, subscriptions_by_pet, pet_ids)
        if divergent:
            self.materializer.place(book, list(divergent.values()), ensure_first=True)

        attending = set()
        for scheduling in book:
            attending |= {row.pet_id for row in scheduling.scheduling_pets if row.package_price_id}
        unplaced = [s for s in new_subscriptions
                    if s.is_active and s.pet_id not in attending and s.pet_id not in divergent]
        if unplaced:
            self.materializer.place(book, unplaced)

        book.drop_empty()
        self.merge_groups(book, subscriptions_by_pet)

        for scheduling in book:
            if scheduling.is_from_subscription and reprice(scheduling, subscriptions_by_pet):
                book.report.repriced += 1

        if book.report.is_noop:
            logger.debug("Reconciliation for client %s made no changes", client_id)
        else:
            logger.info("Reconciled client %s: %s", client_id, book.report.to_dict())
        return book.report

    def detach_divergent(self, book, subscriptions_by_pet, pet_ids=None):
        """Detach rows whose pet now follows another configuration.

        Returns the moved pets' subscriptions keyed by pet id. Rows of pets
        without an active subscription are detached and not returned.
        """
        divergent = OrderedDict()
        for scheduling in book:
            for row in list(scheduling.scheduling_pets):
                if not row.package_price_id:
                    continue
                if pet_ids is not None and row.pet_id not in pet_ids:
                    continue

                subscription = subscriptions_by_pet.get(row.pet_id)
                if subscription is None:
                    book.detach(scheduling, row)
                    continue

                recorded_recurrence = row.package_price.recurrence if row.package_price else None
                if (weekday_of(scheduling) != subscription.pickup_day_of_week
                        or recorded_recurrence != subscription.recurrence):
                    book.detach(scheduling, row)
                    divergent.setdefault(row.pet_id, subscription)
                elif row.package_price_id != subscription.package_price_id:
                    # Same recurrence under another tier: the row follows the subscription
                    row.package_price = subscription.package_price
                    row.package_price_id = subscription.package_price_id
                    book.report.repriced += 1

        if divergent:
            logger.info("Pets %s changed pickup configuration", list(divergent))
        return divergent

    def merge_groups(self, book, subscriptions_by_pet):
        """Collapse a configuration group onto one appointment per occurrence.

        A group with several pets keeps one future appointment per
        occurrence window (one cadence wide), not one appointment overall:
        the horizon holds several consecutive occurrences, and those are
        never folded onto the earliest. Within a window the earliest
        appointment is canonical and the others' rows move onto it.
        """
        groups = group_by_config(subscriptions_by_pet.values())
        for (pickup_day_of_week, recurrence), members in groups.items():
            if len(members) < 2:
                continue
            member_pets = {s.pet_id for s in members}
            candidates = [
                s for s in book.holding(member_pets)
                if weekday_of(s) == pickup_day_of_week and recurrences_of(s) == {recurrence}
            ]
            for bucket in occurrence_buckets(candidates, recurrence):
                if len(bucket) < 2:
                    continue
                canonical, others = bucket[0], bucket[1:]
                for other in others:
                    for row in list(other.scheduling_pets):
                        subscription = subscriptions_by_pet.get(row.pet_id)
                        moved = book.move(row, other, canonical)
                        if moved is not None and subscription is not None:
                            moved.package_price = subscription.package_price
                            moved.package_price_id = subscription.package_price_id
                    if not other.scheduling_pets:
                        book.drop(other)
                    book.report.merged += 1
                logger.info("Merged %d appointments into %s (day=%s, recurrence=%s)",
                            len(others), canonical.id, pickup_day_of_week, recurrence)
