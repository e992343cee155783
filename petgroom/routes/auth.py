from flask import Blueprint, request, jsonify
from flask_jwt_extended import (
    create_access_token, jwt_required, get_jwt_identity,
    create_refresh_token, get_jwt
)
from petgroom import db, bcrypt
from petgroom.errors import ConflictError, InvalidDataError
from petgroom.models import User
from petgroom.schemas.auth import RegisterSchema, LoginSchema, UserSchema

auth_bp = Blueprint('auth', __name__)


def issue_tokens(user):
    claims = {'email': user.email, 'name': user.name}
    return (
        create_access_token(identity=user.id, additional_claims=claims),
        create_refresh_token(identity=user.id, additional_claims=claims),
    )


# ------------------ REGISTER ------------------
@auth_bp.route('/register', methods=['POST'])
def register():
    data = RegisterSchema().load(request.get_json() or {})

    if User.query.filter_by(email=data['email'].lower()).first():
        raise ConflictError('An account with this email already exists')

    user = User(
        name=data['name'],
        email=data['email'].lower(),
        password_hash=bcrypt.generate_password_hash(data['password']).decode('utf-8')
    )
    try:
        db.session.add(user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    access_token, refresh_token = issue_tokens(user)
    return jsonify({
        'message': 'Account registered successfully',
        'access_token': access_token,
        'refresh_token': refresh_token,
        'user': UserSchema().dump(user)
    }), 201


# ------------------ LOGIN ------------------
@auth_bp.route('/login', methods=['POST'])
def login():
    data = LoginSchema().load(request.get_json() or {})

    user = User.query.filter_by(email=data['email'].lower()).first()
    if not user or not user.is_active or not bcrypt.check_password_hash(user.password_hash, data['password']):
        return jsonify({'message': 'Invalid credentials'}), 401

    access_token, refresh_token = issue_tokens(user)
    return jsonify({
        'message': 'Login successful',
        'access_token': access_token,
        'refresh_token': refresh_token,
        'user': UserSchema().dump(user)
    }), 200


# ------------------ PROFILE ------------------
@auth_bp.route('/profile', methods=['GET'])
@jwt_required()
def get_profile():
    user = db.session.get(User, get_jwt_identity())
    if not user:
        raise InvalidDataError('Account no longer exists')
    return jsonify(UserSchema().dump(user)), 200


# ------------------ REFRESH TOKEN ------------------
@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token():
    claims = get_jwt()
    new_access = create_access_token(
        identity=get_jwt_identity(),
        additional_claims={'email': claims.get('email'), 'name': claims.get('name')}
    )
    return jsonify({'access_token': new_access}), 200
