from flask import Blueprint, request, g
from ..repositories import NotificationRepository
from ..services.notification_service import NotificationService
from ..auth_utils import token_required, worker_required
from .utils import api_response, model_to_dict, models_to_list

notifications_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')
repo = NotificationRepository()
notification_service = NotificationService(repo)


@notifications_bp.route('', methods=['GET'])
@token_required
@worker_required
def get_notifications():
    unread_only = request.args.get('unread', 'false').lower() == 'true'
    notifications = repo.get_for_worker(g.worker.id, unread_only=unread_only)
    unread = sum(1 for n in notifications if not n.read)
    return api_response(data=models_to_list(notifications), meta={'unread_count': unread})


@notifications_bp.route('/<uuid:notification_id>/read', methods=['POST'])
@token_required
@worker_required
def mark_read(notification_id):
    notification = repo.get_by_id(notification_id)
    if not notification or not notification_service.mark_read(notification, g.worker.id):
        return api_response(status_code=404, message="Notification not found", error="Not Found")
    return api_response(data=model_to_dict(notification))


@notifications_bp.route('/read-all', methods=['POST'])
@token_required
@worker_required
def mark_all_read():
    updated = repo.mark_all_read(g.worker.id)
    return api_response(data={'updated': updated}, message="All notifications marked as read")
