from functools import wraps
from flask import jsonify
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity

from petgroom import db
from petgroom.models import User


def current_owner_id():
    return get_jwt_identity()


def owner_required(f):
    """Requires a valid access token that belongs to an active account."""
    @wraps(f)
    def decorated(*args, **kwargs):
        verify_jwt_in_request()
        user = db.session.get(User, get_jwt_identity())
        if not user or not user.is_active:
            return jsonify({'message': 'Account not found or inactive'}), 401
        return f(*args, **kwargs)
    return decorated
