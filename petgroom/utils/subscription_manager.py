import logging
from datetime import datetime

from petgroom import db
from petgroom.errors import NotFoundError, ConflictError
from petgroom.models import Client, Package, PackagePrice, ClientSubscription
from petgroom.utils.pickup_dates import calculate_next_pickup_date
from petgroom.utils.pricing import (
    calculate_subscription_pricing, multi_pet_discount, apply_adjustment, clamp_price,
    to_decimal, to_money, REASON_MULTI_PET_DISCOUNT, REASON_OTHER,
)

logger = logging.getLogger(__name__)

SUBSCRIPTION_FIELDS = ('pickup_day_of_week', 'pickup_time', 'start_date', 'end_date', 'notes')


class SubscriptionManager:
    """Writes recurring subscriptions with their prices and next pickup date."""

    @staticmethod
    def resolve_package_price(owner_id, package_price_id):
        package_price = (
            PackagePrice.query
            .join(Package, PackagePrice.package_id == Package.id)
            .filter(PackagePrice.id == package_price_id, Package.user_id == owner_id)
            .first()
        )
        if not package_price:
            raise NotFoundError('Package price not found')
        return package_price

    @staticmethod
    def choose_discount_target(client, pet_ids_with_subscription):
        """Pet that carries the multi-pet discount for this client.

        The stored target survives edits for as long as that pet still holds a
        subscription; otherwise the first pet in submission order takes over.
        """
        if client.discount_pet_id in pet_ids_with_subscription:
            return client.discount_pet_id
        target = pet_ids_with_subscription[0] if pet_ids_with_subscription else None
        if target != client.discount_pet_id:
            logger.info("Client %s discount target changed from %s to %s",
                        client.id, client.discount_pet_id, target)
        client.discount_pet_id = target
        return target

    @staticmethod
    def price_subscription(subscription, package_price, data, pet_count, is_discount_target):
        pricing = calculate_subscription_pricing(
            package_price.price,
            adjustment_percentage=data.get('adjustment_percentage'),
            adjustment_reason=data.get('adjustment_reason'),
            pet_count=pet_count,
            is_discount_target=is_discount_target,
            recorded_pet_count=subscription.discount_pet_count,
        )
        subscription.base_price = pricing.base_price
        subscription.final_price = pricing.final_price
        subscription.adjustment_value = pricing.adjustment_value
        subscription.adjustment_percentage = pricing.adjustment_percentage
        subscription.adjustment_reason = pricing.adjustment_reason
        subscription.discount_pet_count = pet_count if pricing.automatic_percentage < 0 else None
        return pricing

    @staticmethod
    def create_subscription(client, pet, data, pet_count=1, is_discount_target=False, now=None):
        """Insert a subscription for ``pet``. The caller commits."""
        if pet.client_id != client.id:
            raise NotFoundError('Pet not found')
        if pet.active_subscription is not None:
            raise ConflictError(f"Pet '{pet.name}' already has an active subscription")

        package_price = SubscriptionManager.resolve_package_price(client.user_id, data['package_price_id'])

        subscription = ClientSubscription(
            client=client,
            pet=pet,
            package_price=package_price,
            pickup_day_of_week=data['pickup_day_of_week'],
            pickup_time=data.get('pickup_time'),
            start_date=data.get('start_date') or now or datetime.now(),
            end_date=data.get('end_date'),
            notes=data.get('notes'),
            is_active=True,
        )
        SubscriptionManager.price_subscription(subscription, package_price, data, pet_count, is_discount_target)
        subscription.next_pickup_date = calculate_next_pickup_date(
            subscription.start_date, package_price.recurrence, subscription.pickup_day_of_week, now=now
        )
        db.session.add(subscription)

        logger.info("Created subscription for pet %s (price %s, next pickup %s)",
                    pet.id, subscription.final_price, subscription.next_pickup_date)
        return subscription

    @staticmethod
    def update_subscription(subscription, data, pet_count=1, is_discount_target=False, now=None):
        """Apply ``data`` to an existing subscription.

        Returns True when the subscription was inactive and has been switched
        back on, so the caller can materialize it like a new one.
        """
        client = subscription.client
        package_price_id = data.get('package_price_id') or subscription.package_price_id
        package_price = SubscriptionManager.resolve_package_price(client.user_id, package_price_id)

        start_date = subscription.start_date
        reactivated = not subscription.is_active
        if reactivated and any(s.is_active for s in subscription.pet.subscriptions if s is not subscription):
            raise ConflictError(f"Pet '{subscription.pet.name}' already has an active subscription")

        subscription.package_price = package_price
        for field_name in SUBSCRIPTION_FIELDS:
            if field_name in data:
                setattr(subscription, field_name, data[field_name])
        # A cleared start date keeps the stored one
        if 'start_date' in data and data['start_date'] is None:
            subscription.start_date = start_date
        subscription.is_active = True
        if reactivated:
            subscription.end_date = data.get('end_date')

        # Without new adjustment fields the stored manual adjustment is kept
        pricing_data = {
            'adjustment_percentage': data.get('adjustment_percentage', subscription.adjustment_percentage),
            'adjustment_reason': data.get('adjustment_reason', subscription.adjustment_reason),
        }
        SubscriptionManager.price_subscription(subscription, package_price, pricing_data, pet_count,
                                               is_discount_target)
        subscription.next_pickup_date = calculate_next_pickup_date(
            subscription.start_date, package_price.recurrence, subscription.pickup_day_of_week, now=now
        )

        logger.info("Updated subscription %s (price %s, next pickup %s)",
                    subscription.id, subscription.final_price, subscription.next_pickup_date)
        return reactivated

    @staticmethod
    def deactivate_subscription(subscription, now=None):
        if not subscription.is_active:
            return subscription
        subscription.is_active = False
        subscription.end_date = now or datetime.now()
        logger.info("Deactivated subscription %s", subscription.id)
        return subscription

    @staticmethod
    def quote_price(owner_id, client_id, package_price_id, manual_adjustment_percentage=None):
        """Price a prospective subscription without writing anything."""
        client = Client.query.filter_by(id=client_id, user_id=owner_id).first()
        if not client:
            raise NotFoundError('Client not found')

        package_price = SubscriptionManager.resolve_package_price(owner_id, package_price_id)

        active_count = ClientSubscription.query.filter_by(client_id=client.id, is_active=True).count()
        total_after = active_count + 1
        automatic = multi_pet_discount(total_after)

        if manual_adjustment_percentage is not None:
            percentage = to_decimal(manual_adjustment_percentage)
        else:
            percentage = to_decimal(automatic)

        base_price = to_money(package_price.price)
        adjustment_value, final_price = apply_adjustment(base_price, percentage)

        reason = None
        if percentage != 0:
            if manual_adjustment_percentage is not None:
                reason = REASON_OTHER
            elif automatic < 0:
                reason = REASON_MULTI_PET_DISCOUNT

        return {
            'base_price': float(base_price),
            'final_price': float(clamp_price(final_price)),
            'adjustment_value': float(adjustment_value),
            'adjustment_percentage': float(percentage),
            'adjustment_reason': reason,
            'calculations': {
                'active_subscriptions_count': active_count,
                'total_subscriptions_after': total_after,
                'multi_pet_discount_applied': automatic,
                'custom_adjustment_applied': (float(manual_adjustment_percentage)
                                              if manual_adjustment_percentage is not None else None),
            }
        }
