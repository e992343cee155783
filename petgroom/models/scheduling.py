from petgroom import db
from petgroom.errors import ConflictError
from datetime import datetime
import uuid

STATUS_SCHEDULED = 'scheduled'
STATUS_IN_PROGRESS = 'in_progress'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'

SCHEDULING_STATUSES = (STATUS_SCHEDULED, STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_CANCELLED)

ALLOWED_TRANSITIONS = {
    STATUS_SCHEDULED: {STATUS_IN_PROGRESS, STATUS_CANCELLED},
    STATUS_IN_PROGRESS: {STATUS_COMPLETED, STATUS_CANCELLED},
    STATUS_COMPLETED: set(),
    STATUS_CANCELLED: set(),
}


class Scheduling(db.Model):
    """A concrete appointment for a client on one pickup day."""
    __tablename__ = 'schedulings'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = db.Column(db.String(36), db.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)
    pickup_date = db.Column(db.DateTime, nullable=False, index=True)
    pickup_time = db.Column(db.String(5))
    status = db.Column(db.String(20), default=STATUS_SCHEDULED, nullable=False)
    base_price = db.Column(db.Numeric(10, 2), default=0, nullable=False)
    adjustment_value = db.Column(db.Numeric(10, 2), default=0, nullable=False)
    adjustment_percentage = db.Column(db.Numeric(6, 2), default=0, nullable=False)
    adjustment_reason = db.Column(db.String(50))
    final_price = db.Column(db.Numeric(10, 2), default=0, nullable=False)
    notes = db.Column(db.Text)
    started_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    scheduling_pets = db.relationship('SchedulingPet', backref='scheduling', lazy=True,
                                      cascade='all, delete-orphan')

    @property
    def pet_ids(self):
        return {row.pet_id for row in self.scheduling_pets}

    @property
    def is_from_subscription(self):
        return any(row.package_price_id for row in self.scheduling_pets)

    def transition_to(self, new_status, now=None):
        if new_status not in SCHEDULING_STATUSES:
            raise ConflictError(f"Unknown status '{new_status}'")
        if new_status not in ALLOWED_TRANSITIONS[self.status]:
            raise ConflictError(f"Cannot change status from '{self.status}' to '{new_status}'")

        now = now or datetime.utcnow()
        self.status = new_status
        if new_status == STATUS_IN_PROGRESS:
            self.started_at = now
        elif new_status == STATUS_COMPLETED:
            self.completed_at = now


class SchedulingPet(db.Model):
    """Attendance of one pet at one scheduling.

    ``package_price_id`` records the tier the pet attends under; it is empty
    for manually booked appointments.
    """
    __tablename__ = 'scheduling_pets'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    scheduling_id = db.Column(db.String(36), db.ForeignKey('schedulings.id', ondelete='CASCADE'), nullable=False, index=True)
    pet_id = db.Column(db.String(36), db.ForeignKey('pets.id', ondelete='CASCADE'), nullable=False, index=True)
    package_price_id = db.Column(db.String(36), db.ForeignKey('package_prices.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
