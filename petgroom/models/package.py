from petgroom import db
from datetime import datetime
import uuid


class Package(db.Model):
    __tablename__ = 'packages'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    duration = db.Column(db.Integer)  # minutes
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    prices = db.relationship('PackagePrice', backref='package', lazy=True,
                             cascade='all, delete-orphan', order_by='PackagePrice.recurrence')


class PackagePrice(db.Model):
    """One price tier of a package, keyed by its recurrence in days (7, 15, 30, 60...)."""
    __tablename__ = 'package_prices'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    package_id = db.Column(db.String(36), db.ForeignKey('packages.id', ondelete='CASCADE'), nullable=False, index=True)
    recurrence = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    subscriptions = db.relationship('ClientSubscription', backref='package_price', lazy=True)
    scheduling_pets = db.relationship('SchedulingPet', backref='package_price', lazy=True)

    @property
    def is_referenced(self):
        return bool(self.subscriptions or self.scheduling_pets)
