import os
import uuid
import jwt
from datetime import datetime, timedelta, timezone
from functools import wraps
from flask import request, jsonify, g
from .repositories.user_repository import UserRepository
from .repositories.organization_repository import OrganizationRepository
from .repositories.worker_repository import WorkerRepository

ROLE_SUPER_ADMIN = 'SUPER_ADMIN'
ROLE_MANAGER = 'MANAGER'
ROLE_WORKER = 'WORKER'
MANAGEMENT_ROLES = (ROLE_SUPER_ADMIN, ROLE_MANAGER)

TOKEN_EXPIRED_MESSAGE = 'Signature expired. Please log in again.'
TOKEN_INVALID_MESSAGE = 'Invalid token. Please log in again.'


def _jwt_secret():
    return os.environ.get('JWT_SECRET_KEY') or os.environ.get('SECRET_KEY', 'dev-secret-change-me')


def encode_auth_token(user_id):
    """
    Generates the Auth Token
    :return: string
    """
    try:
        payload = {
            'exp': datetime.now(timezone.utc) + timedelta(seconds=int(os.environ.get('JWT_ACCESS_TOKEN_EXPIRES', 86400))),
            'iat': datetime.now(timezone.utc),
            'sub': str(user_id)
        }
        return jwt.encode(payload, _jwt_secret(), algorithm='HS256')
    except Exception as e:
        return e


def decode_auth_token(auth_token):
    """
    Decodes the auth token
    :param auth_token:
    :return: user id string, or an error message
    """
    try:
        payload = jwt.decode(auth_token, _jwt_secret(), algorithms=['HS256'])
        return {'sub': payload['sub']}
    except jwt.ExpiredSignatureError:
        return TOKEN_EXPIRED_MESSAGE
    except jwt.InvalidTokenError:
        return TOKEN_INVALID_MESSAGE


def _unauthorized(message):
    return jsonify({'message': message, 'success': False, 'error': 'Unauthorized'}), 401


def _forbidden(message):
    return jsonify({'message': message, 'success': False, 'error': 'Forbidden'}), 403


def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization')
        if not auth_header:
            return _unauthorized('Token is missing')

        try:
            auth_token = auth_header.split(" ")[1]
        except IndexError:
            return _unauthorized('Token is invalid')

        resp = decode_auth_token(auth_token)
        if isinstance(resp, str):
            return _unauthorized(resp)

        try:
            current_user = UserRepository().get_by_id(uuid.UUID(resp['sub']))
        except (ValueError, KeyError):
            return _unauthorized('Token is invalid')

        if not current_user:
            return _unauthorized('User not found')
        if not current_user.is_active:
            return _forbidden('Account is deactivated')

        # Verify user's organization exists and is active
        organization = OrganizationRepository().get_by_id(current_user.organization_id)
        if not organization:
            return _forbidden('Your organization does not exist in the system')
        if not organization.is_active:
            return _forbidden('Your organization has been deactivated')

        # Store user and organization context in Flask's g object
        g.current_user = current_user
        g.organization_id = current_user.organization_id
        g.organization = organization

        return f(*args, **kwargs)

    return decorated


def role_required(*roles):
    """Restrict a token_required route to the given roles."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            user = getattr(g, 'current_user', None)
            if user is None:
                return _unauthorized('Token is missing')
            if user.role not in roles:
                return _forbidden('You do not have permission to perform this action')
            return f(*args, **kwargs)
        return decorated
    return decorator


def worker_required(f):
    """Restrict a token_required route to workers and load their profile into g.worker."""
    @wraps(f)
    def decorated(*args, **kwargs):
        user = getattr(g, 'current_user', None)
        if user is None:
            return _unauthorized('Token is missing')
        if user.role != ROLE_WORKER:
            return _forbidden('Only workers can perform this action')
        worker = WorkerRepository().get_by_user_id(user.id)
        if not worker:
            return _forbidden('Worker profile not found')
        g.worker = worker
        return f(*args, **kwargs)
    return decorated
