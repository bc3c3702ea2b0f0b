"""Admin invite routes: super admins issue codes, any signed-in account may claim one."""
from flask import Blueprint, jsonify, request

from apps.api import db
from apps.api.models.admin_invite import AdminInvite
from apps.api.utils import invites
from apps.api.utils.access import access_engine
from apps.api.utils.auth import actor_required, current_actor
from apps.api.utils.policies import ADMIN_INVITE

admin_invites_bp = Blueprint('admin_invites', __name__, url_prefix='/api/admin-invites')


@admin_invites_bp.route('', methods=['POST'])
@actor_required
def create_invite():
    data = request.get_json(silent=True) or {}
    invite = invites.create_invite(current_actor(), ttl_hours=data.get('ttl_hours'))
    # The code is only ever returned here, to its issuer
    return jsonify({'message': 'Invite created', 'invite': invite.to_dict(include_code=True)}), 201


@admin_invites_bp.route('', methods=['GET'])
@actor_required
def list_invites():
    rows = invites.list_invites(current_actor())
    return jsonify({'count': len(rows), 'invites': [i.to_dict() for i in rows]}), 200


@admin_invites_bp.route('/<int:invite_id>', methods=['GET'])
@actor_required
def get_invite(invite_id):
    row = access_engine().require_visible(current_actor(), ADMIN_INVITE, db.session.get(AdminInvite, invite_id))
    return jsonify(row.to_dict()), 200


@admin_invites_bp.route('/claim', methods=['POST'])
@actor_required
def claim_invite():
    data = request.get_json(silent=True) or {}
    invite = invites.claim_invite(current_actor(), data.get('code'))
    return jsonify({
        'message': 'Invite claimed. Sign in again to use admin access.',
        'invite': invite.to_dict(),
    }), 200
