from datetime import datetime
from decimal import Decimal

from petgroom import db
from petgroom.models import Scheduling
from petgroom.utils.client_service import ClientService
from petgroom.utils.scheduling_materializer import SchedulingMaterializer

from conftest import NOW, subscription_payload, pets_by_name


def create_client(owner, pets):
    data = {'name': 'Maria', 'pets': [
        {'name': name, 'subscription': subscription} for name, subscription in pets
    ]}
    client, report = ClientService.create_client_with_pets_and_subscriptions(owner.id, data, now=NOW)
    return client, report


def schedulings_of(client):
    return Scheduling.query.filter_by(client_id=client.id).order_by(Scheduling.pickup_date).all()


def test_two_weekly_pets_share_one_appointment(app, owner, prices):
    app.config['SCHEDULING_HORIZON_DAYS'] = 7
    client, report = create_client(owner, [
        ('Rex', subscription_payload(prices[7], 2)),
        ('Bolt', subscription_payload(prices[7], 2)),
    ])

    schedulings = schedulings_of(client)
    assert len(schedulings) == 1
    scheduling = schedulings[0]
    assert scheduling.pickup_date == datetime(2024, 1, 2)
    assert scheduling.base_price == Decimal('100.00')
    assert scheduling.final_price == Decimal('95.00')
    assert scheduling.adjustment_value == Decimal('-5.00')
    assert len(scheduling.scheduling_pets) == 2
    assert {row.package_price_id for row in scheduling.scheduling_pets} == {prices[7].id}
    assert report.created == 1


def test_only_first_pet_in_batch_is_discounted(app, owner, prices):
    client, _ = create_client(owner, [
        ('Rex', subscription_payload(prices[7], 2)),
        ('Bolt', subscription_payload(prices[7], 2)),
    ])
    rex, bolt = pets_by_name(client, 'Rex', 'Bolt')
    assert client.discount_pet_id == rex.id
    assert rex.active_subscription.final_price == Decimal('45.00')
    assert rex.active_subscription.adjustment_reason == 'multi_pet_discount'
    assert bolt.active_subscription.final_price == Decimal('50.00')


def test_weekly_subscription_fills_horizon(app, owner, prices):
    client, _ = create_client(owner, [('Rex', subscription_payload(prices[7], 2))])

    dates = [s.pickup_date for s in schedulings_of(client)]
    assert dates == [datetime(2024, 1, 2), datetime(2024, 1, 9), datetime(2024, 1, 16),
                     datetime(2024, 1, 23), datetime(2024, 1, 30)]
    assert all(s.final_price == Decimal('50.00') for s in schedulings_of(client))


def test_nothing_materialized_when_first_pickup_is_past_horizon(app, owner, prices):
    client, report = create_client(owner, [('Rex', subscription_payload(prices[30], 1))])

    assert client.pets[0].active_subscription.next_pickup_date == datetime(2024, 2, 5)
    assert schedulings_of(client) == []
    assert report.created == 0


def test_different_recurrences_on_same_day_get_separate_appointments(app, owner, prices):
    app.config['SCHEDULING_HORIZON_DAYS'] = 7
    client, _ = create_client(owner, [
        ('Rex', subscription_payload(prices[7], 2)),
        ('Bolt', subscription_payload(prices[15], 2)),
    ])

    schedulings = schedulings_of(client)
    assert len(schedulings) == 2
    assert {s.pickup_date for s in schedulings} == {datetime(2024, 1, 2)}
    assert sorted(len(s.scheduling_pets) for s in schedulings) == [1, 1]


def test_materializing_again_does_not_duplicate_attendance(app, owner, prices):
    client, _ = create_client(owner, [('Rex', subscription_payload(prices[7], 4))])
    subscription = client.pets[0].active_subscription

    report = SchedulingMaterializer().materialize(client.id, [subscription], now=NOW)
    db.session.commit()

    assert report.created == 0
    assert report.attached_pets == 0
    assert all(len(s.scheduling_pets) == 1 for s in schedulings_of(client))


def test_pet_joins_shared_appointments_from_its_own_start_date(app, owner, prices):
    client, _ = create_client(owner, [
        ('Rex', subscription_payload(prices[7], 2)),
        ('Bolt', subscription_payload(prices[7], 2, start_date=datetime(2024, 1, 22))),
    ])
    rex, bolt = pets_by_name(client, 'Rex', 'Bolt')
    assert bolt.active_subscription.next_pickup_date == datetime(2024, 1, 23)

    attendance = {s.pickup_date: sorted(s.pet_ids) for s in schedulings_of(client)}
    assert attendance == {
        datetime(2024, 1, 2): [rex.id],
        datetime(2024, 1, 9): [rex.id],
        datetime(2024, 1, 16): [rex.id],
        datetime(2024, 1, 23): sorted([rex.id, bolt.id]),
        datetime(2024, 1, 30): sorted([rex.id, bolt.id]),
    }
    prices_by_date = {s.pickup_date: s.final_price for s in schedulings_of(client)}
    assert prices_by_date[datetime(2024, 1, 16)] == Decimal('45.00')
    assert prices_by_date[datetime(2024, 1, 23)] == Decimal('95.00')


def test_pet_starting_past_horizon_is_not_placed(app, owner, prices):
    client, _ = create_client(owner, [
        ('Rex', subscription_payload(prices[7], 2)),
        ('Bolt', subscription_payload(prices[7], 2, start_date=datetime(2024, 3, 1))),
    ])
    rex, bolt = pets_by_name(client, 'Rex', 'Bolt')
    assert bolt.active_subscription.next_pickup_date == datetime(2024, 3, 5)

    assert all(s.pet_ids == {rex.id} for s in schedulings_of(client))
    assert len(schedulings_of(client)) == 5
