# Password hashing and bearer tokens
from flask import jsonify
from flask_bcrypt import Bcrypt
from flask_jwt_extended import JWTManager, create_access_token, get_jwt_identity

from errors import ValidationError

bcrypt = Bcrypt()
jwt = JWTManager()


def hash_password(plain):
    if not plain:
        raise ValidationError("password should not be empty")
    return bcrypt.generate_password_hash(plain).decode('utf-8')


def check_password(password_hash, plain):
    if not password_hash or not plain:
        return False
    return bcrypt.check_password_hash(password_hash, plain)


def generate_token(player_id):
    # JWT subjects must be strings
    return create_access_token(identity=str(player_id))


def current_player_id():
    """Player id of the verified request token, or None for anonymous requests.

    Only valid inside a view guarded by ``jwt_required``.
    """
    identity = get_jwt_identity()
    if identity is None:
        return None
    return int(identity)


def _auth_error(message):
    return jsonify({"errors": {"body": [message]}}), 401


@jwt.unauthorized_loader
def missing_token(reason):
    return _auth_error(reason)


@jwt.invalid_token_loader
def invalid_token(reason):
    return _auth_error(reason)


@jwt.expired_token_loader
def expired_token(jwt_header, jwt_payload):
    return _auth_error("token has expired")
