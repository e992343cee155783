from petgroom import db
from datetime import datetime
import uuid

PET_SIZES = ('small', 'medium', 'large')


class Client(db.Model):
    __tablename__ = 'clients'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255))
    phone = db.Column(db.String(50))
    address = db.Column(db.String(500))
    notes = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    # Pet whose subscription carries the multi-pet discount for this client
    discount_pet_id = db.Column(db.String(36))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    pets = db.relationship('Pet', backref='client', lazy=True, cascade='all, delete-orphan',
                           order_by='Pet.created_at')
    subscriptions = db.relationship('ClientSubscription', backref='client', lazy=True,
                                    cascade='all, delete')
    schedulings = db.relationship('Scheduling', backref='client', lazy=True,
                                  cascade='all, delete')

    def active_subscriptions(self):
        return [s for s in self.subscriptions if s.is_active]


class Pet(db.Model):
    __tablename__ = 'pets'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = db.Column(db.String(36), db.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    breed = db.Column(db.String(255))
    size = db.Column(db.String(20))  # small/medium/large
    weight = db.Column(db.Numeric(6, 2))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    subscriptions = db.relationship('ClientSubscription', backref='pet', lazy=True,
                                    cascade='all, delete')
    scheduling_pets = db.relationship('SchedulingPet', backref='pet', lazy=True,
                                      cascade='all, delete')

    @property
    def active_subscription(self):
        for subscription in self.subscriptions:
            if subscription.is_active:
                return subscription
        return None
