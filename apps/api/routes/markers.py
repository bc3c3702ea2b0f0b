"""Official map marker routes."""
from flask import Blueprint, jsonify, request

from apps.api import db
from apps.api.models.marker import MarkerType, OfficialMarker
from apps.api.utils.access import access_engine, INSERT, UPDATE
from apps.api.utils.auth import actor_required, current_actor
from apps.api.utils.geography import require_known_barangay
from apps.api.utils.policies import MARKER
from apps.api.utils.validators import (
    ValidationError,
    sanitize_string,
    validate_coordinate,
    validate_name,
    validate_positive_int,
)

markers_bp = Blueprint('markers', __name__, url_prefix='/api/markers')


@markers_bp.route('/types', methods=['GET'])
def list_marker_types():
    types = MarkerType.query.order_by(MarkerType.sort_order.asc(), MarkerType.name.asc()).all()
    return jsonify({'types': [t.to_dict() for t in types]}), 200


@markers_bp.route('', methods=['GET'])
def list_markers():
    """Active markers for everyone; scoped responders and admins also see inactive ones."""
    query = OfficialMarker.query
    barangay_id = request.args.get('barangay_id', type=int)
    if barangay_id:
        query = query.filter(OfficialMarker.barangay_id == barangay_id)
    rows = query.order_by(OfficialMarker.created_at.desc()).all()
    rows = access_engine().filter_visible(current_actor(), MARKER, rows)
    return jsonify({'count': len(rows), 'markers': [m.to_dict() for m in rows]}), 200


@markers_bp.route('', methods=['POST'])
@actor_required
def create_marker():
    actor = current_actor()
    data = request.get_json(silent=True) or {}
    barangay_id = require_known_barangay(data.get('barangay_id'))
    marker_type_id = validate_positive_int(data.get('marker_type_id'), 'marker_type_id')
    lat = validate_coordinate(data.get('lat'), 'lat', 90)
    lng = validate_coordinate(data.get('lng'), 'lng', 180)
    if lat is None or lng is None:
        raise ValidationError('lat and lng are required', field='lat')
    title = validate_name(data.get('title'), field='title')
    if db.session.get(MarkerType, marker_type_id) is None:
        raise ValidationError('Unknown marker type', field='marker_type_id')

    marker = OfficialMarker(
        barangay_id=barangay_id,
        marker_type_id=marker_type_id,
        lat=lat,
        lng=lng,
        title=title,
        description=sanitize_string(data.get('description')),
        is_active=True,
        created_by=actor.id,
        updated_by=actor.id,
    )
    access_engine().require(actor, INSERT, MARKER, marker)
    db.session.add(marker)
    db.session.commit()
    return jsonify({'message': 'Marker created', 'marker': marker.to_dict()}), 201


@markers_bp.route('/<int:marker_id>', methods=['PATCH'])
@actor_required
def update_marker(marker_id):
    actor = current_actor()
    engine = access_engine()
    data = request.get_json(silent=True) or {}

    marker = engine.require_visible(actor, MARKER, db.session.get(OfficialMarker, marker_id))
    engine.require(actor, UPDATE, MARKER, marker)

    if 'title' in data:
        marker.title = validate_name(data.get('title'), field='title')
    if 'description' in data:
        marker.description = sanitize_string(data.get('description'))
    if 'lat' in data:
        marker.lat = validate_coordinate(data.get('lat'), 'lat', 90)
    if 'lng' in data:
        marker.lng = validate_coordinate(data.get('lng'), 'lng', 180)
    if 'is_active' in data:
        marker.is_active = bool(data.get('is_active'))
    marker.updated_by = actor.id
    db.session.commit()
    return jsonify({'message': 'Marker updated', 'marker': marker.to_dict()}), 200
