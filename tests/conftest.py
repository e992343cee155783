from datetime import datetime
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from petgroom import create_app, db, bcrypt
from petgroom.models import User, Package, PackagePrice, Client, Pet

# Monday
NOW = datetime(2024, 1, 1, 10, 0)


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def http(app):
    return app.test_client()


def make_owner(email='owner@example.com', name='Owner'):
    owner = User(
        name=name,
        email=email,
        password_hash=bcrypt.generate_password_hash('secret123').decode('utf-8')
    )
    db.session.add(owner)
    db.session.commit()
    return owner


@pytest.fixture
def owner(app):
    return make_owner()


@pytest.fixture
def other_owner(app):
    return make_owner(email='someone@example.com', name='Someone Else')


@pytest.fixture
def auth_headers(owner):
    return {'Authorization': f"Bearer {create_access_token(identity=owner.id)}"}


@pytest.fixture
def package(owner):
    package = Package(owner=owner, name='Full Grooming', duration=90)
    for recurrence, price in ((7, '50.00'), (15, '90.00'), (30, '160.00')):
        package.prices.append(PackagePrice(recurrence=recurrence, price=Decimal(price)))
    db.session.add(package)
    db.session.commit()
    return package


@pytest.fixture
def prices(package):
    return {price.recurrence: price for price in package.prices}


@pytest.fixture
def client_factory(owner):
    def factory(pet_names=('Rex',), name='Maria'):
        client = Client(user_id=owner.id, name=name)
        db.session.add(client)
        for pet_name in pet_names:
            client.pets.append(Pet(name=pet_name))
        db.session.commit()
        return client
    return factory


def subscription_payload(package_price, day, **extra):
    payload = {
        'package_price_id': package_price.id,
        'pickup_day_of_week': day,
        'start_date': NOW,
    }
    payload.update(extra)
    return payload


def pets_by_name(client, *names):
    lookup = {pet.name: pet for pet in client.pets}
    return [lookup[name] for name in names]
