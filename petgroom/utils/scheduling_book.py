import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import selectinload

from petgroom import db
from petgroom.models import Scheduling, SchedulingPet, PackagePrice
from petgroom.models.scheduling import STATUS_SCHEDULED
from petgroom.utils.pickup_dates import js_weekday, midnight

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    created: int = 0
    deleted: int = 0
    moved_pets: int = 0
    attached_pets: int = 0
    detached_pets: int = 0
    repriced: int = 0
    merged: int = 0

    @property
    def is_noop(self):
        return not any((self.created, self.deleted, self.moved_pets, self.attached_pets,
                        self.detached_pets, self.repriced, self.merged))

    def to_dict(self):
        return {
            'created': self.created,
            'deleted': self.deleted,
            'moved_pets': self.moved_pets,
            'attached_pets': self.attached_pets,
            'detached_pets': self.detached_pets,
            'repriced': self.repriced,
            'merged': self.merged,
        }


@dataclass
class SchedulingBook:
    """Working set of one client's future, still scheduled appointments.

    Appointments are indexed by id so rows can be re-parented between them
    without chasing object references. New appointments are added through
    ``open`` and removed through ``drop``; both keep the session in sync.
    """
    client_id: str
    now: datetime
    schedulings: dict = field(default_factory=dict)
    report: ReconciliationReport = field(default_factory=ReconciliationReport)

    @classmethod
    def load(cls, client_id, now=None):
        now = now or datetime.now()
        rows = (
            Scheduling.query
            .options(selectinload(Scheduling.scheduling_pets)
                     .selectinload(SchedulingPet.package_price))
            .filter(Scheduling.client_id == client_id,
                    Scheduling.status == STATUS_SCHEDULED,
                    Scheduling.pickup_date >= now)
            .order_by(Scheduling.pickup_date, Scheduling.created_at, Scheduling.id)
            .populate_existing()
            .all()
        )
        book = cls(client_id=client_id, now=now)
        for scheduling in rows:
            book.schedulings[scheduling.id] = scheduling
        logger.debug("Loaded %d future schedulings for client %s", len(rows), client_id)
        return book

    def __iter__(self):
        return iter(self.ordered())

    def __len__(self):
        return len(self.schedulings)

    def get(self, scheduling_id):
        return self.schedulings.get(scheduling_id)

    def ordered(self):
        return sorted(self.schedulings.values(), key=sort_key)

    def holding(self, pet_ids):
        pet_ids = set(pet_ids)
        return [s for s in self.ordered() if s.pet_ids & pet_ids]

    def find_slot(self, pickup_date, recurrence):
        """Existing appointment on ``pickup_date`` whose priced rows share ``recurrence``."""
        day = midnight(pickup_date)
        for scheduling in self.ordered():
            if midnight(scheduling.pickup_date) != day:
                continue
            recurrences = recurrences_of(scheduling)
            if recurrences and recurrences == {recurrence}:
                return scheduling
        return None

    def open(self, pickup_date, pickup_time=None):
        scheduling = Scheduling(
            id=str(uuid.uuid4()),
            client_id=self.client_id,
            pickup_date=midnight(pickup_date),
            pickup_time=pickup_time,
            status=STATUS_SCHEDULED,
        )
        db.session.add(scheduling)
        self.schedulings[scheduling.id] = scheduling
        self.report.created += 1
        return scheduling

    def attach(self, scheduling, pet_id, package_price_id):
        """Add a pet to an appointment unless it already attends it."""
        for row in scheduling.scheduling_pets:
            if row.pet_id == pet_id:
                if row.package_price_id != package_price_id:
                    row.package_price_id = package_price_id
                    row.package_price = db.session.get(PackagePrice, package_price_id)
                    self.report.repriced += 1
                return row
        row = SchedulingPet(pet_id=pet_id, package_price_id=package_price_id,
                            package_price=db.session.get(PackagePrice, package_price_id))
        scheduling.scheduling_pets.append(row)
        self.report.attached_pets += 1
        return row

    def detach(self, scheduling, row):
        scheduling.scheduling_pets.remove(row)
        self.report.detached_pets += 1

    def move(self, row, source, target):
        """Re-parent an attendance row. A duplicate pet on the target is dropped instead."""
        if row.pet_id in target.pet_ids:
            source.scheduling_pets.remove(row)
            self.report.detached_pets += 1
            return None
        source.scheduling_pets.remove(row)
        target.scheduling_pets.append(row)
        self.report.moved_pets += 1
        return row

    def drop(self, scheduling):
        self.schedulings.pop(scheduling.id, None)
        db.session.delete(scheduling)
        self.report.deleted += 1

    def drop_empty(self):
        for scheduling in list(self.schedulings.values()):
            if not scheduling.scheduling_pets:
                self.drop(scheduling)


def sort_key(scheduling):
    return (scheduling.pickup_date, scheduling.created_at or datetime.max, scheduling.id)


def recurrences_of(scheduling):
    return {row.package_price.recurrence
            for row in scheduling.scheduling_pets
            if row.package_price is not None}


def weekday_of(scheduling):
    return js_weekday(scheduling.pickup_date)
