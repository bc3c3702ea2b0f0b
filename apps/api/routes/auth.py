"""
DisasterLink - Authentication Routes
Registration, login, login eligibility and the current actor.

Security: login and registration are rate limited to slow down credential
stuffing and spam accounts.
"""
from datetime import timedelta

from flask import Blueprint, request, jsonify
from flask_jwt_extended import create_access_token

from apps.api import db, limiter
from apps.api.models.user import User
from apps.api.utils.access import access_engine
from apps.api.utils.affiliation import open_membership
from apps.api.utils.auth import (
    actor_required,
    authenticate,
    check_login_eligibility,
    current_actor,
    register_actor,
)
from apps.api.utils.policies import PROFILE

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _limit(limit_string):
    """Apply rate limit if limiter is available."""
    def decorator(f):
        if limiter:
            return limiter.limit(limit_string)(f)
        return f
    return decorator


def _issue_token(user: User) -> str:
    # Subject must be a string; role claim is informational only
    return create_access_token(
        identity=str(user.id),
        expires_delta=timedelta(hours=12),
        additional_claims={"role": user.role},
    )


@auth_bp.route('/register', methods=['POST'])
@_limit("5 per minute")
def register():
    data = request.get_json(silent=True) or {}
    user = register_actor(data)
    resp = {
        'message': 'Registration successful',
        'user': user.to_dict(include_private=True),
    }
    if user.proof_pending:
        resp['message'] = 'Registration received. You can log in once your proof of employment is verified.'
    else:
        resp['access_token'] = _issue_token(user)
    return jsonify(resp), 201


@auth_bp.route('/login', methods=['POST'])
@_limit("10 per minute")  # Critical: prevent brute force attacks
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip()
    password = data.get('password')
    if not email or not password:
        return jsonify({'error': 'Email and password are required', 'code': 'VALIDATION_ERROR'}), 400

    user = authenticate(email, password)
    return jsonify({
        'message': 'Login successful',
        'access_token': _issue_token(user),
        'user': user.to_dict(include_private=True),
    }), 200


@auth_bp.route('/login-eligibility', methods=['POST'])
@_limit("20 per minute")
def login_eligibility():
    """Pre-login check so clients can explain a pending proof before asking for a password."""
    data = request.get_json(silent=True) or {}
    return jsonify(check_login_eligibility(data.get('email'))), 200


@auth_bp.route('/me', methods=['GET'])
@actor_required
def me():
    actor = current_actor()
    user = db.session.get(User, actor.id)
    membership = open_membership(actor.id)
    return jsonify({
        'user': user.to_dict(include_private=True),
        'scope': actor.scope,
        'membership': membership.to_dict() if membership else None,
    }), 200


@auth_bp.route('/profiles/<int:user_id>', methods=['GET'])
@actor_required
def get_profile(user_id):
    """Profiles are visible to the owner, same-geography responders and admins."""
    actor = current_actor()
    user = access_engine().require_visible(actor, PROFILE, db.session.get(User, user_id))
    return jsonify(user.to_dict(include_private=actor.is_admin or actor.id == user.id)), 200
