import logging
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import selectinload

from petgroom import db
from petgroom.errors import NotFoundError, ForbiddenError, InvalidDataError
from petgroom.models import Client, Pet, Scheduling, SchedulingPet, ClientSubscription
from petgroom.models.scheduling import STATUS_SCHEDULED, STATUS_COMPLETED
from petgroom.utils.pickup_dates import midnight
from petgroom.utils.pricing import apply_adjustment, clamp_price, to_money
from petgroom.utils.client_service import ClientService

logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 30


class AppointmentService:

    @staticmethod
    def get_owned_scheduling(owner_id, scheduling_id):
        scheduling = db.session.get(Scheduling, scheduling_id)
        if not scheduling:
            raise NotFoundError('Scheduling not found')
        if scheduling.client.user_id != owner_id:
            raise ForbiddenError('You do not have permission to edit this scheduling')
        return scheduling

    @staticmethod
    def create_appointment(owner_id, client_id, pet_ids, pickup_date, pickup_time=None,
                           pricing=None, notes=None):
        """Book a one-off appointment outside of any subscription."""
        pricing = pricing or {}
        client = ClientService.get_owned_client(owner_id, client_id)

        client_pet_ids = {pet.id for pet in Pet.query.filter_by(client_id=client.id).all()}
        invalid = [pet_id for pet_id in pet_ids if pet_id not in client_pet_ids]
        if invalid:
            raise InvalidDataError('Some pets do not belong to this client', errors={'pet_ids': invalid})

        base_price = to_money(pricing.get('base_price') or 0)
        adjustment_percentage = to_money(pricing.get('adjustment_percentage') or 0)
        adjustment_value, final_price = apply_adjustment(base_price, adjustment_percentage)

        try:
            scheduling = Scheduling(
                client_id=client.id,
                pickup_date=midnight(pickup_date),
                pickup_time=pickup_time,
                status=STATUS_SCHEDULED,
                base_price=base_price,
                adjustment_percentage=adjustment_percentage,
                adjustment_value=adjustment_value,
                adjustment_reason=pricing.get('adjustment_reason'),
                final_price=to_money(clamp_price(final_price)),
                notes=notes,
            )
            for pet_id in dict.fromkeys(pet_ids):
                scheduling.scheduling_pets.append(SchedulingPet(pet_id=pet_id, package_price_id=None))
            db.session.add(scheduling)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info("Booked appointment %s for client %s on %s", scheduling.id, client.id,
                    scheduling.pickup_date.date())
        return scheduling

    @staticmethod
    def update_appointment_status(owner_id, scheduling_id, new_status, now=None):
        scheduling = AppointmentService.get_owned_scheduling(owner_id, scheduling_id)
        previous = scheduling.status
        try:
            scheduling.transition_to(new_status, now=now)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        logger.info("Appointment %s moved from %s to %s", scheduling.id, previous, new_status)
        return scheduling

    @staticmethod
    def update_appointment(owner_id, scheduling_id, data, now=None):
        scheduling = AppointmentService.get_owned_scheduling(owner_id, scheduling_id)
        try:
            for field_name in ('pickup_time', 'notes'):
                if field_name in data:
                    setattr(scheduling, field_name, data[field_name])
            if 'adjustment_value' in data:
                extra = to_money(data['adjustment_value'])
                scheduling.adjustment_value = to_money(scheduling.adjustment_value) + extra
                scheduling.final_price = to_money(clamp_price(to_money(scheduling.final_price) + extra))
                if 'adjustment_reason' in data:
                    scheduling.adjustment_reason = data['adjustment_reason']
            if data.get('status') and data['status'] != scheduling.status:
                scheduling.transition_to(data['status'], now=now)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return scheduling

    @staticmethod
    def _owner_query(model, owner_id, next_30_days=False, now=None):
        query = model.query.join(Client, model.client_id == Client.id).filter(Client.user_id == owner_id)
        if next_30_days and model is Scheduling:
            now = now or datetime.now()
            query = query.filter(Scheduling.pickup_date.between(
                now, now + timedelta(days=UPCOMING_WINDOW_DAYS)))
        return query

    @staticmethod
    def list_appointments(owner_id, next_30_days=False, client_id=None, status=None, now=None):
        query = AppointmentService._owner_query(Scheduling, owner_id, next_30_days, now)
        if client_id:
            query = query.filter(Scheduling.client_id == client_id)
        if status:
            query = query.filter(Scheduling.status == status)
        return (
            query.options(selectinload(Scheduling.scheduling_pets).selectinload(SchedulingPet.pet))
            .order_by(Scheduling.pickup_date.desc())
            .all()
        )

    @staticmethod
    def appointment_stats(owner_id, next_30_days=False, now=None):
        def scheduling_query():
            return AppointmentService._owner_query(Scheduling, owner_id, next_30_days, now)

        def revenue(status):
            total = (scheduling_query()
                     .filter(Scheduling.status == status)
                     .with_entities(func.coalesce(func.sum(Scheduling.final_price), 0))
                     .scalar())
            return float(total or 0)

        active_subscriptions = (AppointmentService._owner_query(ClientSubscription, owner_id)
                                .filter(ClientSubscription.is_active.is_(True))
                                .count())

        return {
            'schedulings': {
                'total': scheduling_query().count(),
                'scheduled': scheduling_query().filter(Scheduling.status == STATUS_SCHEDULED).count(),
                'completed': scheduling_query().filter(Scheduling.status == STATUS_COMPLETED).count(),
            },
            'revenue': {
                'completed': revenue(STATUS_COMPLETED),
                'estimated': revenue(STATUS_SCHEDULED),
            },
            'subscriptions': {
                'active': active_subscriptions,
            }
        }
