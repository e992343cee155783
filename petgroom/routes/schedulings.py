from flask import Blueprint, request, jsonify

from petgroom.schemas.scheduling import SchedulingCreateSchema, SchedulingUpdateSchema, SchedulingSchema
from petgroom.utils.appointments import AppointmentService
from petgroom.utils.auth import owner_required, current_owner_id

schedulings_bp = Blueprint('schedulings', __name__)


def next_30_days_requested():
    return request.args.get('next_30_days', '').lower() == 'true'


@schedulings_bp.route('', methods=['GET'])
@owner_required
def list_schedulings():
    schedulings = AppointmentService.list_appointments(
        current_owner_id(),
        next_30_days=next_30_days_requested(),
        client_id=request.args.get('client_id'),
        status=request.args.get('status'),
    )
    return jsonify(SchedulingSchema(many=True).dump(schedulings)), 200


@schedulings_bp.route('', methods=['POST'])
@owner_required
def create_scheduling():
    data = SchedulingCreateSchema().load(request.get_json() or {})
    scheduling = AppointmentService.create_appointment(
        current_owner_id(),
        data['client_id'],
        data['pet_ids'],
        data['pickup_date'],
        pickup_time=data.get('pickup_time'),
        pricing={
            'base_price': data['base_price'],
            'adjustment_percentage': data.get('adjustment_percentage'),
            'adjustment_reason': data.get('adjustment_reason'),
        },
        notes=data.get('notes'),
    )
    return jsonify(SchedulingSchema().dump(scheduling)), 201


@schedulings_bp.route('/<scheduling_id>', methods=['PATCH'])
@owner_required
def update_scheduling(scheduling_id):
    data = SchedulingUpdateSchema().load(request.get_json() or {})
    if set(data) == {'status'}:
        scheduling = AppointmentService.update_appointment_status(current_owner_id(), scheduling_id, data['status'])
    else:
        scheduling = AppointmentService.update_appointment(current_owner_id(), scheduling_id, data)
    return jsonify(SchedulingSchema().dump(scheduling)), 200


@schedulings_bp.route('/stats', methods=['GET'])
@owner_required
def scheduling_stats():
    return jsonify(AppointmentService.appointment_stats(
        current_owner_id(), next_30_days=next_30_days_requested()
    )), 200
