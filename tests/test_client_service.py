from decimal import Decimal

import pytest

from petgroom import db
from petgroom.errors import NotFoundError, ForbiddenError
from petgroom.models import Client, ClientSubscription, Pet, Scheduling
from petgroom.utils.client_service import ClientService

from conftest import NOW, subscription_payload, pets_by_name


def test_create_without_pets(owner):
    client, report = ClientService.create_client_with_pets_and_subscriptions(
        owner.id, {'name': 'Ana', 'email': 'ana@example.com'}, now=NOW
    )
    assert client.id
    assert client.user_id == owner.id
    assert client.pets == []
    assert client.discount_pet_id is None
    assert report.is_noop


def test_discount_target_is_first_pet_with_subscription(owner, prices):
    client, _ = ClientService.create_client_with_pets_and_subscriptions(owner.id, {
        'name': 'Ana',
        'pets': [
            {'name': 'NoPlan'},
            {'name': 'Rex', 'subscription': subscription_payload(prices[7], 2)},
            {'name': 'Bolt', 'subscription': subscription_payload(prices[7], 2)},
            {'name': 'Luna', 'subscription': subscription_payload(prices[7], 2)},
        ]
    }, now=NOW)
    rex, bolt, luna = pets_by_name(client, 'Rex', 'Bolt', 'Luna')

    assert client.discount_pet_id == rex.id
    assert rex.active_subscription.adjustment_percentage == Decimal('-15.00')
    assert rex.active_subscription.final_price == Decimal('42.50')
    assert bolt.active_subscription.final_price == Decimal('50.00')
    assert luna.active_subscription.final_price == Decimal('50.00')


def test_discount_target_survives_reordering(owner, prices):
    client, _ = ClientService.create_client_with_pets_and_subscriptions(owner.id, {
        'name': 'Ana',
        'pets': [
            {'name': 'Rex', 'subscription': subscription_payload(prices[7], 2)},
            {'name': 'Bolt', 'subscription': subscription_payload(prices[7], 2)},
        ]
    }, now=NOW)
    rex, bolt = pets_by_name(client, 'Rex', 'Bolt')
    weekly = {'package_price_id': prices[7].id, 'pickup_day_of_week': 2}

    ClientService.update_client_with_pets_and_subscriptions(owner.id, client.id, {'pets': [
        {'id': bolt.id, 'name': 'Bolt', 'subscription': weekly},
        {'id': rex.id, 'name': 'Rex', 'subscription': weekly},
    ]}, now=NOW)

    assert client.discount_pet_id == rex.id
    assert rex.active_subscription.final_price == Decimal('45.00')
    assert bolt.active_subscription.final_price == Decimal('50.00')


def test_discount_moves_when_target_loses_plan(owner, prices):
    client, _ = ClientService.create_client_with_pets_and_subscriptions(owner.id, {
        'name': 'Ana',
        'pets': [
            {'name': 'Rex', 'subscription': subscription_payload(prices[7], 2)},
            {'name': 'Bolt', 'subscription': subscription_payload(prices[7], 2)},
            {'name': 'Luna', 'subscription': subscription_payload(prices[7], 2)},
        ]
    }, now=NOW)
    rex, bolt, luna = pets_by_name(client, 'Rex', 'Bolt', 'Luna')
    weekly = {'package_price_id': prices[7].id, 'pickup_day_of_week': 2}

    ClientService.update_client_with_pets_and_subscriptions(owner.id, client.id, {'pets': [
        {'id': rex.id, 'name': 'Rex', 'subscription': None},
        {'id': bolt.id, 'name': 'Bolt', 'subscription': weekly},
        {'id': luna.id, 'name': 'Luna', 'subscription': weekly},
    ]}, now=NOW)

    assert client.discount_pet_id == bolt.id
    assert bolt.active_subscription.final_price == Decimal('45.00')
    assert luna.active_subscription.final_price == Decimal('50.00')
    assert rex.active_subscription is None


def test_update_adds_new_pet_with_plan(owner, prices):
    app_client, _ = ClientService.create_client_with_pets_and_subscriptions(owner.id, {
        'name': 'Ana',
        'pets': [{'name': 'Rex', 'subscription': subscription_payload(prices[7], 2)}],
    }, now=NOW)
    rex, = pets_by_name(app_client, 'Rex')

    _, report = ClientService.update_client_with_pets_and_subscriptions(owner.id, app_client.id, {
        'name': 'Ana Maria',
        'pets': [
            {'id': rex.id, 'name': 'Rex', 'subscription': {'package_price_id': prices[7].id, 'pickup_day_of_week': 2}},
            {'name': 'Bolt', 'breed': 'Beagle', 'size': 'small',
             'subscription': subscription_payload(prices[7], 2)},
        ]
    }, now=NOW)

    assert app_client.name == 'Ana Maria'
    bolt, = pets_by_name(app_client, 'Bolt')
    assert bolt.breed == 'Beagle'
    schedulings = Scheduling.query.filter_by(client_id=app_client.id).all()
    assert len(schedulings) == 5
    assert all(s.pet_ids == {rex.id, bolt.id} for s in schedulings)
    assert all(s.final_price == Decimal('95.00') for s in schedulings)
    assert report.attached_pets == 5
    assert report.created == 0


def test_update_foreign_client_is_forbidden(owner, other_owner, client_factory):
    client = client_factory()
    with pytest.raises(ForbiddenError):
        ClientService.update_client_with_pets_and_subscriptions(other_owner.id, client.id, {'name': 'X'}, now=NOW)


def test_update_missing_client_is_not_found(owner):
    with pytest.raises(NotFoundError):
        ClientService.update_client_with_pets_and_subscriptions(owner.id, 'missing', {'name': 'X'}, now=NOW)


def test_failed_update_rolls_back_everything(owner, prices):
    client, _ = ClientService.create_client_with_pets_and_subscriptions(owner.id, {
        'name': 'Ana',
        'pets': [{'name': 'Rex', 'subscription': subscription_payload(prices[7], 2)}],
    }, now=NOW)
    rex, = pets_by_name(client, 'Rex')
    client_id = client.id

    with pytest.raises(NotFoundError):
        ClientService.update_client_with_pets_and_subscriptions(owner.id, client_id, {
            'name': 'Changed',
            'pets': [
                {'id': rex.id, 'name': 'Rex', 'subscription': {'package_price_id': prices[7].id,
                                                                'pickup_day_of_week': 5}},
                {'name': 'Bolt', 'subscription': {'package_price_id': 'missing-price',
                                                  'pickup_day_of_week': 5}},
            ]
        }, now=NOW)

    stored = db.session.get(Client, client_id)
    assert stored.name == 'Ana'
    assert Pet.query.filter_by(client_id=client_id).count() == 1
    assert ClientSubscription.query.filter_by(client_id=client_id).one().pickup_day_of_week == 2
    assert all(s.pickup_date.weekday() == 1 for s in Scheduling.query.filter_by(client_id=client_id))


def test_patch_changes_contact_fields_only(owner, prices):
    client, _ = ClientService.create_client_with_pets_and_subscriptions(owner.id, {
        'name': 'Ana',
        'pets': [{'name': 'Rex', 'subscription': subscription_payload(prices[7], 2)}],
    }, now=NOW)

    ClientService.patch_client(owner.id, client.id, {'phone': '555-0101', 'notes': 'Gate code 12'})

    assert client.phone == '555-0101'
    assert client.notes == 'Gate code 12'
    assert Scheduling.query.filter_by(client_id=client.id).count() == 5


def test_delete_client_cascades(owner, prices):
    client, _ = ClientService.create_client_with_pets_and_subscriptions(owner.id, {
        'name': 'Ana',
        'pets': [{'name': 'Rex', 'subscription': subscription_payload(prices[7], 2)}],
    }, now=NOW)
    client_id = client.id

    ClientService.delete_client(owner.id, client_id)

    assert db.session.get(Client, client_id) is None
    assert Pet.query.filter_by(client_id=client_id).count() == 0
    assert ClientSubscription.query.filter_by(client_id=client_id).count() == 0
    assert Scheduling.query.filter_by(client_id=client_id).count() == 0
