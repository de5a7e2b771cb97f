import logging
import traceback
from flask import Blueprint, request, g
from ..repositories.user_repository import UserRepository, TutorialCompletionRepository
from ..repositories.organization_repository import OrganizationRepository
from ..repositories.worker_repository import WorkerRepository
from ..repositories.audit_event_repository import AuditEventRepository
from ..services.account_service import AccountService
from ..services.email_service import EmailService
from ..errors import ServiceError
from ..auth_utils import encode_auth_token, token_required, role_required, ROLE_SUPER_ADMIN
from .utils import api_response, model_to_dict, models_to_list, user_to_dict, service_error_response

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')
user_repo = UserRepository()
organization_repo = OrganizationRepository()
worker_repo = WorkerRepository()
tutorial_repo = TutorialCompletionRepository()
account_service = AccountService(user_repo, AuditEventRepository(), EmailService(), tutorial_repo=tutorial_repo)


def get_user_with_organization(user):
    """
    Build user data dict including organization context and, for workers,
    the worker profile.
    """
    user_data = user_to_dict(user)

    organization = organization_repo.get_by_id(user.organization_id)
    if organization:
        user_data['organization'] = {
            'id': str(organization.id),
            'name': organization.name,
            'subscription_status': organization.subscription_status,
            'is_active': organization.is_active
        }

    if user.role == 'WORKER':
        worker = worker_repo.get_by_user_id(user.id)
        user_data['worker'] = model_to_dict(worker) if worker else None

    return user_data


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    User Login
    """
    data = request.get_json(silent=True)
    if not data or not data.get('email') or not data.get('password'):
        return api_response(status_code=400, message="Missing email or password", error="Bad Request")

    try:
        user = account_service.authenticate(data.get('email'), data.get('password'))
        if not user:
            return api_response(status_code=401, message="Invalid credentials", error="Unauthorized")

        if not user.is_active:
            return api_response(status_code=403, message="Account is deactivated", error="Forbidden")

        # Validate user's organization exists and is active
        organization = organization_repo.get_by_id(user.organization_id)
        if not organization:
            return api_response(
                status_code=403,
                message="Your organization does not exist in the system",
                error="Forbidden"
            )

        if not organization.is_active:
            return api_response(
                status_code=403,
                message="Your organization has been deactivated",
                error="Forbidden"
            )

        auth_token = encode_auth_token(user.id)
        if isinstance(auth_token, Exception):
            return api_response(status_code=500, message="Failed to generate token", error=str(auth_token))

        account_service.record_login(user)

        return api_response(data={
            'token': auth_token,
            'user': get_user_with_organization(user),
            'must_change_password': bool(user.must_change_password)
        }, message="Login successful")

    except Exception as e:
        logger.exception("Login failed")
        return api_response(status_code=500, message="Login failed", error=str(e))


@auth_bp.route('/me', methods=['GET'])
@token_required
def get_me():
    """
    Get current user details with organization context
    """
    return api_response(data=get_user_with_organization(g.current_user))


@auth_bp.route('/change-password', methods=['POST'])
@token_required
def change_password():
    data = request.get_json(silent=True) or {}
    try:
        account_service.change_password(g.current_user, data.get('current_password'), data.get('new_password'))
        return api_response(message="Password changed successfully")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception("Failed to change password")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to change password", error=str(e))


@auth_bp.route('/reset-password', methods=['POST'])
@token_required
@role_required(ROLE_SUPER_ADMIN)
def reset_password():
    """Reset a manager's password; the new password is returned once."""
    data = request.get_json(silent=True) or {}
    if not data.get('manager_id'):
        return api_response(status_code=400, message="manager_id is required", error="Bad Request")

    try:
        manager, temporary_password, email_sent = account_service.reset_manager_password(
            g.current_user,
            data['manager_id'],
            password=data.get('password'),
            require_password_change=data.get('require_password_change', True),
            send_email=data.get('send_email', True)
        )
        return api_response(data={
            'manager': user_to_dict(manager),
            'temporary_password': temporary_password,
            'email_sent': email_sent
        }, message="Password reset successfully")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception("Failed to reset manager password")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to reset password", error=str(e))


@auth_bp.route('/tutorials', methods=['GET'])
@token_required
def get_tutorials():
    completions = tutorial_repo.get_for_user(g.current_user.id)
    return api_response(data=models_to_list(completions))


@auth_bp.route('/tutorials/<tutorial_id>/complete', methods=['POST'])
@token_required
def complete_tutorial(tutorial_id):
    try:
        completion = account_service.complete_tutorial(g.current_user, tutorial_id)
        return api_response(data=model_to_dict(completion), message="Tutorial completed")
    except ServiceError as e:
        return service_error_response(e)
    except Exception as e:
        logger.exception(f"Failed to record tutorial {tutorial_id}")
        traceback.print_exc()
        return api_response(status_code=500, message="Failed to record tutorial", error=str(e))
