"""Admin routes: employment proof review and the audit log."""
from flask import Blueprint, jsonify, request, current_app
from flask_jwt_extended import verify_jwt_in_request

from apps.api.models.audit import AuditLog
from apps.api.models.user import User
from apps.api.utils.access import access_engine
from apps.api.utils.auth import AuthenticationRequired, current_actor, verify_employment_proof
from apps.api.utils.identity import LGU_ROLES
from apps.api.utils.policies import AUDIT_LOG
from apps.api.utils.security import PermissionDenied
from apps.api.utils.validators import page_limit

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


@admin_bp.before_request
def enforce_admin_role():
    """Require a valid token for an admin account on every /api/admin route.
    Skips OPTIONS preflight requests to allow CORS to work properly.
    """
    if request.method == 'OPTIONS':
        return None
    verify_jwt_in_request()
    actor = current_actor()
    if not actor.is_authenticated:
        raise AuthenticationRequired('Account not found or inactive')
    if not actor.is_admin:
        current_app.logger.warning(f"Admin access denied: actor={actor.id} role={actor.role}")
        raise PermissionDenied(reason=f'role {actor.role} is not an admin role')
    return None


@admin_bp.route('/users/pending-proof', methods=['GET'])
def pending_proofs():
    """Responder accounts waiting for employment proof review."""
    users = (
        User.query
        .filter(
            User.role.in_(sorted(LGU_ROLES)),
            User.employment_proof_url.isnot(None),
            User.employment_proof_verified.is_(False),
            User.is_active.is_(True),
        )
        .order_by(User.created_at.asc())
        .all()
    )
    return jsonify({'count': len(users), 'users': [u.to_dict(include_private=True) for u in users]}), 200


@admin_bp.route('/users/<int:user_id>/verify-proof', methods=['POST'])
def verify_proof(user_id):
    user = verify_employment_proof(current_actor(), user_id)
    return jsonify({'message': 'Employment proof verified', 'user': user.to_dict(include_private=True)}), 200


@admin_bp.route('/audit-logs', methods=['GET'])
def audit_logs():
    query = AuditLog.query
    action = request.args.get('action')
    if action:
        query = query.filter(AuditLog.action == action)
    actor_id = request.args.get('actor_id', type=int)
    if actor_id:
        query = query.filter(AuditLog.actor_id == actor_id)
    query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    limit = page_limit(request.args.get('limit', type=int), 100, 500)
    rows = access_engine().visible_page(current_actor(), AUDIT_LOG, query, limit)
    return jsonify({'count': len(rows), 'logs': [r.to_dict() for r in rows]}), 200
