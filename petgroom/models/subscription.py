from petgroom import db
from datetime import datetime
import uuid


class ClientSubscription(db.Model):
    """Recurring grooming plan for one pet of a client.

    ``base_price`` is copied from the package price when the subscription is
    written, so later price corrections on the tier never alter it
    retroactively. Subscriptions are deactivated, not deleted.
    """
    __tablename__ = 'client_subscriptions'
    __table_args__ = (
        db.Index(
            'uq_active_subscription_per_pet', 'client_id', 'pet_id',
            unique=True,
            sqlite_where=db.text('is_active = 1'),
            postgresql_where=db.text('is_active'),
        ),
        db.CheckConstraint('pickup_day_of_week BETWEEN 0 AND 6', name='ck_pickup_day_of_week'),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = db.Column(db.String(36), db.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)
    pet_id = db.Column(db.String(36), db.ForeignKey('pets.id', ondelete='CASCADE'), nullable=False, index=True)
    package_price_id = db.Column(db.String(36), db.ForeignKey('package_prices.id'), nullable=False)
    pickup_day_of_week = db.Column(db.Integer, nullable=False)  # 0 = Sunday
    pickup_time = db.Column(db.String(5))  # HH:MM
    start_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    next_pickup_date = db.Column(db.DateTime)
    base_price = db.Column(db.Numeric(10, 2), nullable=False)
    adjustment_value = db.Column(db.Numeric(10, 2), default=0, nullable=False)
    adjustment_percentage = db.Column(db.Numeric(6, 2), default=0, nullable=False)
    adjustment_reason = db.Column(db.String(50))
    # Pet count the automatic multi-pet discount was computed with
    discount_pet_count = db.Column(db.Integer)
    final_price = db.Column(db.Numeric(10, 2), nullable=False)
    end_date = db.Column(db.DateTime)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def recurrence(self):
        return self.package_price.recurrence if self.package_price else None

    @property
    def config_key(self):
        """(pickup weekday, recurrence) pair that appointments are grouped by."""
        return (self.pickup_day_of_week, self.recurrence)
