"""In-app notification routes for the signed-in actor."""
from flask import Blueprint, jsonify, request

from apps.api import db
from apps.api.models.notification import Notification
from apps.api.utils import notifications
from apps.api.utils.access import access_engine, UPDATE
from apps.api.utils.auth import actor_required, current_actor
from apps.api.utils.policies import NOTIFICATION
from apps.api.utils.time import utc_now
from apps.api.utils.validators import page_limit

notifications_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')


@notifications_bp.route('', methods=['GET'])
@actor_required
def list_notifications():
    actor = current_actor()
    unread_only = request.args.get('unread', 'false').lower() == 'true'
    limit = page_limit(request.args.get('limit', type=int), 50, 200)
    rows = notifications.list_for_user(actor, unread_only=unread_only, limit=limit)
    return jsonify({
        'notifications': [n.to_dict() for n in rows],
        'unread_count': notifications.count_unread(actor),
    }), 200


@notifications_bp.route('/unread-count', methods=['GET'])
@actor_required
def unread_count():
    return jsonify({'unread_count': notifications.count_unread(current_actor())}), 200


@notifications_bp.route('/<int:notification_id>/read', methods=['POST'])
@actor_required
def mark_read(notification_id):
    actor = current_actor()
    engine = access_engine()
    row = engine.require_visible(actor, NOTIFICATION, db.session.get(Notification, notification_id))
    engine.require(actor, UPDATE, NOTIFICATION, row)
    if row.read_at is None:
        row.read_at = utc_now()
        db.session.commit()
    return jsonify({'notification': row.to_dict()}), 200


@notifications_bp.route('/read-all', methods=['POST'])
@actor_required
def mark_all_read():
    updated = notifications.mark_all_read(current_actor())
    return jsonify({'updated': updated}), 200
