from flask import Blueprint, request, jsonify

from petgroom.models import ClientSubscription
from petgroom.schemas.client import ClientInputSchema, ClientUpdateSchema, ClientPatchSchema, ClientSchema
from petgroom.schemas.subscription import SubscriptionSchema
from petgroom.utils.auth import owner_required, current_owner_id
from petgroom.utils.client_service import ClientService

clients_bp = Blueprint('clients', __name__)


@clients_bp.route('', methods=['GET'])
@owner_required
def list_clients():
    is_active = request.args.get('is_active')
    clients = ClientService.list_clients(
        current_owner_id(),
        search=request.args.get('search'),
        is_active=None if is_active is None else is_active.lower() == 'true',
    )
    return jsonify(ClientSchema(many=True).dump(clients)), 200


@clients_bp.route('', methods=['POST'])
@owner_required
def create_client():
    """Create a client together with its pets and their subscriptions."""
    data = ClientInputSchema().load(request.get_json() or {})
    client, report = ClientService.create_client_with_pets_and_subscriptions(current_owner_id(), data)
    return jsonify({
        'client': ClientSchema().dump(client),
        'schedulings': report.to_dict()
    }), 201


@clients_bp.route('/<client_id>', methods=['GET'])
@owner_required
def get_client(client_id):
    client = ClientService.get_owned_client(current_owner_id(), client_id)
    return jsonify(ClientSchema().dump(client)), 200


@clients_bp.route('/<client_id>', methods=['PUT'])
@owner_required
def update_client(client_id):
    """Full edit: pets and subscriptions are synced and future appointments reconciled."""
    patch = ClientUpdateSchema().load(request.get_json() or {})
    client, report = ClientService.update_client_with_pets_and_subscriptions(
        current_owner_id(), client_id, patch
    )
    return jsonify({
        'client': ClientSchema().dump(client),
        'schedulings': report.to_dict()
    }), 200


@clients_bp.route('/<client_id>', methods=['PATCH'])
@owner_required
def patch_client(client_id):
    data = ClientPatchSchema().load(request.get_json() or {})
    client = ClientService.patch_client(current_owner_id(), client_id, data)
    return jsonify(ClientSchema().dump(client)), 200


@clients_bp.route('/<client_id>', methods=['DELETE'])
@owner_required
def delete_client(client_id):
    ClientService.delete_client(current_owner_id(), client_id)
    return jsonify({'message': 'Client deleted successfully'}), 200


@clients_bp.route('/<client_id>/subscriptions', methods=['GET'])
@owner_required
def list_client_subscriptions(client_id):
    client = ClientService.get_owned_client(current_owner_id(), client_id)
    subscriptions = (ClientSubscription.query
                     .filter_by(client_id=client.id, is_active=True)
                     .order_by(ClientSubscription.created_at)
                     .all())
    return jsonify(SubscriptionSchema(many=True).dump(subscriptions)), 200
