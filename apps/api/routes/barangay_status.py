"""Barangay status board and assistance offer routes."""
from flask import Blueprint, jsonify, request

from apps.api import db
from apps.api.models.barangay_status import STATUS_NORMAL
from apps.api.models.municipality import Barangay
from apps.api.utils import assistance
from apps.api.utils.auth import actor_required, current_actor
from apps.api.utils.barangay_status import (
    current_statuses,
    normalize_status,
    status_history,
    update_barangay_status,
)
from apps.api.utils.security import NotFound
from apps.api.utils.validators import page_limit

barangay_status_bp = Blueprint('barangay_status', __name__, url_prefix='/api/barangay-status')


def _require_barangay(barangay_id) -> Barangay:
    barangay = db.session.get(Barangay, barangay_id)
    if barangay is None:
        raise NotFound('barangay')
    return barangay


@barangay_status_bp.route('/map', methods=['GET'])
def status_map():
    """Bounded barangays with their current status (``normal`` when never set)."""
    query = Barangay.query.filter(
        Barangay.boundary_approved_at.isnot(None),
        Barangay.boundary_geojson.isnot(None),
    )
    municipality_id = request.args.get('municipality_id', type=int)
    if municipality_id:
        query = query.filter(Barangay.municipality_id == municipality_id)
    barangays = query.order_by(Barangay.name.asc()).all()
    latest = current_statuses([b.id for b in barangays])

    items = []
    for b in barangays:
        update = latest.get(b.id)
        data = b.to_dict(include_geometry=True)
        data['status'] = normalize_status(update.status) if update else STATUS_NORMAL
        data['status_update'] = update.to_dict() if update else None
        items.append(data)
    return jsonify({'count': len(items), 'barangays': items}), 200


@barangay_status_bp.route('/<int:barangay_id>', methods=['GET'])
def get_status(barangay_id):
    barangay = _require_barangay(barangay_id)
    update = current_statuses([barangay.id]).get(barangay.id)
    return jsonify({
        'barangay_id': barangay.id,
        'status': normalize_status(update.status) if update else STATUS_NORMAL,
        'status_update': update.to_dict() if update else None,
    }), 200


@barangay_status_bp.route('/<int:barangay_id>/history', methods=['GET'])
def get_history(barangay_id):
    _require_barangay(barangay_id)
    limit = page_limit(request.args.get('limit', type=int), 50, 200)
    rows = status_history(barangay_id, limit=limit)
    return jsonify({'history': [r.to_dict() for r in rows]}), 200


@barangay_status_bp.route('/<int:barangay_id>', methods=['POST'])
@actor_required
def set_status(barangay_id):
    data = request.get_json(silent=True) or {}
    row = update_barangay_status(
        current_actor(),
        barangay_id,
        data.get('status'),
        description=data.get('description'),
        photo_urls=data.get('photo_urls'),
        notes=data.get('notes'),
    )
    return jsonify({'message': 'Status updated', 'status_update': row.to_dict()}), 201


@barangay_status_bp.route('/<int:barangay_id>/assistance', methods=['GET'])
def list_assistance(barangay_id):
    _require_barangay(barangay_id)
    pending_only = request.args.get('pending', 'false').lower() == 'true'
    offers = assistance.list_offers_for_barangay(current_actor(), barangay_id, pending_only=pending_only)
    return jsonify({'count': len(offers), 'offers': [o.to_dict() for o in offers]}), 200


@barangay_status_bp.route('/<int:barangay_id>/assistance', methods=['POST'])
@actor_required
def offer_assistance(barangay_id):
    data = request.get_json(silent=True) or {}
    offer = assistance.create_assistance_offer(
        current_actor(),
        barangay_id,
        data.get('description'),
        expected_arrival_at=data.get('expected_arrival_at'),
        assistance_image_url=data.get('assistance_image_url'),
        helping_barangay_id=data.get('helping_barangay_id'),
        helping_municipality_id=data.get('helping_municipality_id'),
    )
    return jsonify({'message': 'Assistance offered', 'offer': offer.to_dict()}), 201


@barangay_status_bp.route('/assistance/<int:offer_id>/delivered', methods=['POST'])
@actor_required
def mark_delivered(offer_id):
    offer = assistance.mark_assistance_delivered(current_actor(), offer_id)
    return jsonify({'message': 'Assistance marked delivered', 'offer': offer.to_dict()}), 200
