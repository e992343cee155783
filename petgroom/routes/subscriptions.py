from datetime import datetime

from flask import Blueprint, request, jsonify

from petgroom import db
from petgroom.errors import NotFoundError
from petgroom.models import Client, ClientSubscription, Pet
from petgroom.schemas.subscription import (
    SubscriptionCreateSchema, SubscriptionUpdateSchema, CalculatePriceSchema, SubscriptionSchema
)
from petgroom.utils.auth import owner_required, current_owner_id
from petgroom.utils.client_service import ClientService
from petgroom.utils.scheduling_reconciler import SchedulingReconciler
from petgroom.utils.subscription_manager import SubscriptionManager

subscriptions_bp = Blueprint('subscriptions', __name__)


def get_owned_subscription(subscription_id):
    subscription = (ClientSubscription.query
                    .join(Client, ClientSubscription.client_id == Client.id)
                    .filter(ClientSubscription.id == subscription_id, Client.user_id == current_owner_id())
                    .first())
    if not subscription:
        raise NotFoundError('Subscription not found')
    return subscription


def batch_for(client, pet):
    """Pet count and discount flag for a single subscription write."""
    pet_ids = [s.pet_id for s in sorted(client.active_subscriptions(), key=lambda s: s.created_at or datetime.min)]
    if pet.id not in pet_ids:
        pet_ids.append(pet.id)
    target = SubscriptionManager.choose_discount_target(client, pet_ids)
    return len(pet_ids), pet.id == target


@subscriptions_bp.route('', methods=['GET'])
@owner_required
def list_subscriptions():
    query = (ClientSubscription.query
             .join(Client, ClientSubscription.client_id == Client.id)
             .filter(Client.user_id == current_owner_id()))
    if request.args.get('client_id'):
        query = query.filter(ClientSubscription.client_id == request.args['client_id'])
    if request.args.get('include_inactive', '').lower() != 'true':
        query = query.filter(ClientSubscription.is_active.is_(True))
    subscriptions = query.order_by(ClientSubscription.created_at.desc()).all()
    return jsonify(SubscriptionSchema(many=True).dump(subscriptions)), 200


@subscriptions_bp.route('/<subscription_id>', methods=['GET'])
@owner_required
def get_subscription(subscription_id):
    return jsonify(SubscriptionSchema().dump(get_owned_subscription(subscription_id))), 200


@subscriptions_bp.route('', methods=['POST'])
@owner_required
def create_subscription():
    data = SubscriptionCreateSchema().load(request.get_json() or {})
    client = ClientService.get_owned_client(current_owner_id(), data['client_id'])
    pet = Pet.query.filter_by(id=data['pet_id'], client_id=client.id).first()
    if not pet:
        raise NotFoundError('Pet not found')

    now = datetime.now()
    try:
        pet_count, is_target = batch_for(client, pet)
        subscription = SubscriptionManager.create_subscription(
            client, pet, data, pet_count=pet_count, is_discount_target=is_target, now=now
        )
        db.session.flush()
        SchedulingReconciler().reconcile(client.id, new_subscriptions=[subscription], now=now)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(SubscriptionSchema().dump(subscription)), 201


@subscriptions_bp.route('/<subscription_id>', methods=['PUT'])
@owner_required
def update_subscription(subscription_id):
    subscription = get_owned_subscription(subscription_id)
    data = SubscriptionUpdateSchema().load(request.get_json() or {})
    client = subscription.client

    now = datetime.now()
    try:
        pet_count, is_target = batch_for(client, subscription.pet)
        SubscriptionManager.update_subscription(
            subscription, data, pet_count=pet_count, is_discount_target=is_target, now=now
        )
        db.session.flush()
        SchedulingReconciler().reconcile(client.id, new_subscriptions=[subscription], now=now)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(SubscriptionSchema().dump(subscription)), 200


@subscriptions_bp.route('/<subscription_id>', methods=['DELETE'])
@owner_required
def deactivate_subscription(subscription_id):
    """Subscriptions are deactivated, never removed, so their history stays queryable."""
    subscription = get_owned_subscription(subscription_id)
    now = datetime.now()
    try:
        SubscriptionManager.deactivate_subscription(subscription, now=now)
        db.session.flush()
        SchedulingReconciler().reconcile(subscription.client_id, now=now)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(SubscriptionSchema().dump(subscription)), 200


@subscriptions_bp.route('/calculate-price', methods=['POST'])
@owner_required
def calculate_price():
    data = CalculatePriceSchema().load(request.get_json() or {})
    quote = SubscriptionManager.quote_price(
        current_owner_id(),
        data['client_id'],
        data['package_price_id'],
        data.get('custom_adjustment_percentage'),
    )
    return jsonify(quote), 200
