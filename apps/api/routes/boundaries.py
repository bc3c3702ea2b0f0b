"""Barangay affiliation routes: boundary requests, join, leave, transfer."""
from flask import Blueprint, jsonify, request

from apps.api import db
from apps.api.models.boundary_request import BarangayBoundaryRequest
from apps.api.models.change_request import BarangayChangeRequest
from apps.api.models.membership import BarangayMembership
from apps.api.utils import affiliation
from apps.api.utils.access import access_engine
from apps.api.utils.auth import actor_required, current_actor
from apps.api.utils.policies import BOUNDARY_REQUEST, CHANGE_REQUEST, MEMBERSHIP

boundaries_bp = Blueprint('barangay_boundaries', __name__, url_prefix='/api/barangay-boundaries')


def _body():
    return request.get_json(silent=True) or {}


@boundaries_bp.route('/requests', methods=['POST'])
@actor_required
def submit_request():
    data = _body()
    req = affiliation.submit_boundary_request(
        current_actor(),
        municipality_id=data.get('municipality_id'),
        name=data.get('barangay_name') or data.get('name'),
        geometry=data.get('boundary_geojson') or data.get('geometry'),
        contact_email=data.get('contact_email'),
        contact_phone=data.get('contact_phone'),
        barangay_id=data.get('barangay_id'),
        description=data.get('description'),
    )
    return jsonify({'message': 'Boundary request submitted', 'request': req.to_dict()}), 201


@boundaries_bp.route('/requests', methods=['GET'])
@actor_required
def list_requests():
    status = request.args.get('status')
    rows = affiliation.list_boundary_requests(current_actor(), status=status)
    include_geometry = request.args.get('include_geometry', 'false').lower() == 'true'
    return jsonify({
        'count': len(rows),
        'requests': [r.to_dict(include_geometry=include_geometry) for r in rows],
    }), 200


@boundaries_bp.route('/requests/<int:request_id>', methods=['GET'])
@actor_required
def get_request(request_id):
    row = access_engine().require_visible(
        current_actor(), BOUNDARY_REQUEST, db.session.get(BarangayBoundaryRequest, request_id)
    )
    return jsonify(row.to_dict()), 200


@boundaries_bp.route('/requests/<int:request_id>/approve', methods=['POST'])
@actor_required
def approve_request(request_id):
    req = affiliation.approve_boundary_request(current_actor(), request_id)
    return jsonify({'message': 'Boundary request approved', 'request': req.to_dict(include_geometry=False)}), 200


@boundaries_bp.route('/requests/<int:request_id>/reject', methods=['POST'])
@actor_required
def reject_request(request_id):
    req = affiliation.reject_boundary_request(current_actor(), request_id, reason=_body().get('reason'))
    return jsonify({'message': 'Boundary request rejected', 'request': req.to_dict(include_geometry=False)}), 200


@boundaries_bp.route('/join', methods=['POST'])
@actor_required
def join():
    membership = affiliation.join_barangay(current_actor(), _body().get('barangay_id'))
    return jsonify({'message': 'Joined barangay', 'membership': membership.to_dict()}), 201


@boundaries_bp.route('/leave', methods=['POST'])
@actor_required
def leave():
    membership = affiliation.leave_barangay(current_actor(), reason=_body().get('reason'))
    return jsonify({'message': 'Left barangay', 'membership': membership.to_dict()}), 200


@boundaries_bp.route('/transfer', methods=['POST'])
@actor_required
def transfer():
    data = _body()
    membership = affiliation.transfer_barangay(current_actor(), data.get('barangay_id'), reason=data.get('reason'))
    return jsonify({'message': 'Transferred barangay', 'membership': membership.to_dict()}), 200


@boundaries_bp.route('/membership', methods=['GET'])
@actor_required
def my_memberships():
    """Open membership and history for the current actor."""
    actor = current_actor()
    rows = (
        BarangayMembership.query
        .filter(BarangayMembership.user_id == actor.id)
        .order_by(BarangayMembership.joined_at.desc(), BarangayMembership.id.desc())
        .all()
    )
    rows = access_engine().filter_visible(actor, MEMBERSHIP, rows)
    current = next((m for m in rows if m.left_at is None), None)
    return jsonify({
        'current': current.to_dict() if current else None,
        'history': [m.to_dict() for m in rows],
    }), 200


@boundaries_bp.route('/delete-requests', methods=['POST'])
@actor_required
def request_delete():
    data = _body()
    row = affiliation.request_barangay_delete(current_actor(), data.get('barangay_id'), reason=data.get('reason'))
    return jsonify({'message': 'Delete request submitted', 'request': row.to_dict()}), 201


@boundaries_bp.route('/delete-requests', methods=['GET'])
@actor_required
def list_delete_requests():
    rows = BarangayChangeRequest.query.order_by(
        BarangayChangeRequest.created_at.desc(), BarangayChangeRequest.id.desc()
    ).all()
    rows = access_engine().filter_visible(current_actor(), CHANGE_REQUEST, rows)
    return jsonify({'count': len(rows), 'requests': [r.to_dict() for r in rows]}), 200
