"""Announcement routes.

Network-wide announcements are public. Barangay announcements are read by
that barangay's residents and responders.
"""
from flask import Blueprint, jsonify, request

from apps.api import db
from apps.api.models.announcement import Announcement, ANNOUNCEMENT_SCOPES, SCOPE_ALL, SCOPE_BARANGAY
from apps.api.utils.access import access_engine, INSERT, UPDATE
from apps.api.utils.auth import actor_required, current_actor
from apps.api.utils.geography import require_known_barangay
from apps.api.utils.identity import BARANGAY_SCOPED_ROLES
from apps.api.utils.policies import ANNOUNCEMENT
from apps.api.utils.validators import ValidationError, page_limit, sanitize_string, validate_name


announcements_bp = Blueprint('announcements', __name__, url_prefix='/api/announcements')


@announcements_bp.route('', methods=['GET'])
def list_announcements():
    query = Announcement.query
    barangay_id = request.args.get('barangay_id', type=int)
    if barangay_id:
        query = query.filter(Announcement.barangay_id == barangay_id)
    query = query.order_by(Announcement.created_at.desc(), Announcement.id.desc())
    limit = page_limit(request.args.get('limit', type=int), 100, 200)
    rows = access_engine().visible_page(current_actor(), ANNOUNCEMENT, query, limit)
    return jsonify({'count': len(rows), 'announcements': [a.to_dict() for a in rows]}), 200


@announcements_bp.route('/<int:announcement_id>', methods=['GET'])
def get_announcement(announcement_id):
    row = access_engine().require_visible(
        current_actor(), ANNOUNCEMENT, db.session.get(Announcement, announcement_id)
    )
    return jsonify(row.to_dict()), 200


@announcements_bp.route('', methods=['POST'])
@actor_required
def create_announcement():
    actor = current_actor()
    data = request.get_json(silent=True) or {}
    title = validate_name(data.get('title'), field='title')
    body = sanitize_string(data.get('body'))

    # Barangay responders post to their own barangay unless told otherwise
    default_scope = SCOPE_BARANGAY if actor.role in BARANGAY_SCOPED_ROLES else SCOPE_ALL
    scope = (data.get('scope') or default_scope).strip().lower()
    if scope not in ANNOUNCEMENT_SCOPES:
        raise ValidationError(f"Invalid scope. Allowed: {', '.join(ANNOUNCEMENT_SCOPES)}", field='scope')

    barangay_id = None
    if scope == SCOPE_BARANGAY:
        raw = data.get('barangay_id')
        if raw in (None, '') and actor.role in BARANGAY_SCOPED_ROLES:
            raw = actor.barangay_id
        barangay_id = require_known_barangay(raw)

    row = Announcement(author_id=actor.id, barangay_id=barangay_id, scope=scope, title=title, body=body)
    access_engine().require(actor, INSERT, ANNOUNCEMENT, row)
    db.session.add(row)
    db.session.commit()
    return jsonify({'message': 'Announcement published', 'announcement': row.to_dict()}), 201


@announcements_bp.route('/<int:announcement_id>', methods=['PATCH'])
@actor_required
def update_announcement(announcement_id):
    actor = current_actor()
    engine = access_engine()
    data = request.get_json(silent=True) or {}
    row = engine.require_visible(actor, ANNOUNCEMENT, db.session.get(Announcement, announcement_id))
    engine.require(actor, UPDATE, ANNOUNCEMENT, row)
    if 'title' in data:
        row.title = validate_name(data.get('title'), field='title')
    if 'body' in data:
        row.body = sanitize_string(data.get('body'))
    db.session.commit()
    return jsonify({'message': 'Announcement updated', 'announcement': row.to_dict()}), 200
