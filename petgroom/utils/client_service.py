import logging
from datetime import datetime

from petgroom import db
from petgroom.errors import NotFoundError, ForbiddenError
from petgroom.models import Client, Pet
from petgroom.utils.subscription_manager import SubscriptionManager
from petgroom.utils.scheduling_materializer import SchedulingMaterializer
from petgroom.utils.scheduling_reconciler import SchedulingReconciler

logger = logging.getLogger(__name__)

CLIENT_FIELDS = ('name', 'email', 'phone', 'address', 'notes', 'is_active')
PET_FIELDS = ('name', 'breed', 'size', 'weight', 'notes')


class ClientService:
    """Client writes that span pets, subscriptions and appointments.

    Each public method is one transaction: it commits on success and rolls
    back everything on any error.
    """

    @staticmethod
    def get_owned_client(owner_id, client_id):
        client = db.session.get(Client, client_id)
        if not client:
            raise NotFoundError('Client not found')
        if client.user_id != owner_id:
            raise ForbiddenError('You do not have access to this client')
        return client

    @staticmethod
    def list_clients(owner_id, search=None, is_active=None):
        query = Client.query.filter_by(user_id=owner_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(db.or_(Client.name.ilike(pattern),
                                        Client.email.ilike(pattern),
                                        Client.phone.ilike(pattern)))
        if is_active is not None:
            query = query.filter(Client.is_active == is_active)
        return query.order_by(Client.name).all()

    @staticmethod
    def create_client_with_pets_and_subscriptions(owner_id, data, now=None):
        now = now or datetime.now()
        try:
            client = Client(user_id=owner_id)
            apply_fields(client, data, CLIENT_FIELDS)
            db.session.add(client)

            batch = []
            for pet_data in data.get('pets') or []:
                pet = Pet()
                apply_fields(pet, pet_data, PET_FIELDS)
                client.pets.append(pet)
                if pet_data.get('subscription'):
                    batch.append((pet, pet_data['subscription']))
            db.session.flush()

            target = SubscriptionManager.choose_discount_target(client, [pet.id for pet, _ in batch])
            subscriptions = [
                SubscriptionManager.create_subscription(
                    client, pet, subscription_data,
                    pet_count=len(batch),
                    is_discount_target=pet.id == target,
                    now=now,
                )
                for pet, subscription_data in batch
            ]
            db.session.flush()

            report = SchedulingMaterializer().materialize(client.id, subscriptions, now=now)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info("Created client %s with %d pets and %d subscriptions (%d appointments)",
                    client.id, len(client.pets), len(subscriptions), report.created)
        return client, report

    @staticmethod
    def update_client_with_pets_and_subscriptions(owner_id, client_id, patch, now=None):
        """Apply a full client edit and reconcile future appointments.

        Pets listed with an ``id`` are updated, pets without one are created
        and existing pets missing from ``pets`` are deleted. A pet entry
        without a ``subscription`` deactivates the pet's current plan.
        """
        now = now or datetime.now()
        client = ClientService.get_owned_client(owner_id, client_id)
        try:
            client = Client.query.filter_by(id=client.id).with_for_update().populate_existing().one()
            apply_fields(client, patch, CLIENT_FIELDS)

            changed = []
            if 'pets' in patch:
                changed = ClientService._sync_pets(client, patch['pets'] or [], now)
            db.session.flush()

            report = SchedulingReconciler().reconcile(client.id, new_subscriptions=changed, now=now)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info("Updated client %s: %s", client.id, report.to_dict())
        return client, report

    @staticmethod
    def _sync_pets(client, pets_data, now):
        existing = {pet.id: pet for pet in client.pets}
        kept_ids = {p['id'] for p in pets_data if p.get('id')}
        unknown = kept_ids - set(existing)
        if unknown:
            raise NotFoundError('Pet not found')

        for pet_id, pet in existing.items():
            if pet_id not in kept_ids:
                logger.info("Deleting pet %s of client %s", pet_id, client.id)
                client.pets.remove(pet)
                db.session.delete(pet)
                if client.discount_pet_id == pet_id:
                    client.discount_pet_id = None

        entries = []
        for pet_data in pets_data:
            pet = existing.get(pet_data.get('id')) if pet_data.get('id') else None
            if pet is None:
                pet = Pet()
                client.pets.append(pet)
            apply_fields(pet, pet_data, PET_FIELDS)
            entries.append((pet, pet_data.get('subscription')))
        db.session.flush()

        with_subscription = [pet.id for pet, subscription_data in entries if subscription_data]
        target = SubscriptionManager.choose_discount_target(client, with_subscription)

        changed = []
        for pet, subscription_data in entries:
            subscription = pet.active_subscription
            if not subscription_data:
                if subscription is not None:
                    SubscriptionManager.deactivate_subscription(subscription, now=now)
                continue

            if subscription is None and subscription_data.get('id'):
                subscription = next((s for s in pet.subscriptions if s.id == subscription_data['id']), None)
                if subscription is None:
                    raise NotFoundError('Subscription not found')

            options = dict(pet_count=len(with_subscription), is_discount_target=pet.id == target, now=now)
            if subscription is None:
                subscription = SubscriptionManager.create_subscription(client, pet, subscription_data, **options)
            else:
                SubscriptionManager.update_subscription(subscription, subscription_data, **options)
            changed.append(subscription)
        return changed

    @staticmethod
    def patch_client(owner_id, client_id, data):
        """Update contact fields only; pets and appointments are left alone."""
        client = ClientService.get_owned_client(owner_id, client_id)
        try:
            apply_fields(client, data, CLIENT_FIELDS)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return client

    @staticmethod
    def delete_client(owner_id, client_id):
        client = ClientService.get_owned_client(owner_id, client_id)
        try:
            db.session.delete(client)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        logger.info("Deleted client %s", client_id)


def apply_fields(target, data, field_names):
    for field_name in field_names:
        if field_name in data:
            setattr(target, field_name, data[field_name])
