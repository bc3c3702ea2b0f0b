"""Municipality and barangay routes.

Geography is public to read. Admins create municipalities and barangays
directly; boundaries normally arrive through boundary requests.
"""
from flask import Blueprint, jsonify, request
from sqlalchemy import func

from apps.api import db
from apps.api.models.municipality import Municipality, Barangay
from apps.api.utils.access import access_engine, INSERT, UPDATE
from apps.api.utils.audit import log_action, AuditAction
from apps.api.utils.auth import actor_required, admin_required, current_actor
from apps.api.utils.barangay_status import current_status_value
from apps.api.utils.geography import GeographyDirectory
from apps.api.utils.policies import MUNICIPALITY, BARANGAY
from apps.api.utils.security import NotFound, StateConflict
from apps.api.utils.validators import (
    sanitize_string,
    validate_name,
    validate_url_list,
)

municipalities_bp = Blueprint('municipalities', __name__, url_prefix='/api/municipalities')


def _parse_bool(value, default=False):
    if value is None:
        return default
    return str(value).lower() in ('1', 'true', 'yes', 'y')


@municipalities_bp.route('', methods=['GET'])
def list_municipalities():
    municipalities = Municipality.query.order_by(Municipality.name.asc()).all()
    return jsonify({
        'count': len(municipalities),
        'municipalities': [m.to_dict() for m in municipalities],
    }), 200


@municipalities_bp.route('/<int:municipality_id>', methods=['GET'])
def get_municipality(municipality_id):
    municipality = db.session.get(Municipality, municipality_id)
    if not municipality:
        raise NotFound(MUNICIPALITY)
    return jsonify(municipality.to_dict()), 200


@municipalities_bp.route('/<int:municipality_id>/barangays', methods=['GET'])
def list_barangays(municipality_id):
    """Barangays of a municipality. ``?bounded=true`` limits to approved boundaries."""
    directory = GeographyDirectory()
    if directory.get_municipality(municipality_id) is None:
        raise NotFound(MUNICIPALITY)
    bounded_only = _parse_bool(request.args.get('bounded'))
    include_geometry = _parse_bool(request.args.get('include_geometry'))
    barangays = directory.list_barangays(municipality_id, bounded_only=bounded_only)
    return jsonify({
        'count': len(barangays),
        'barangays': [b.to_dict(include_geometry=include_geometry) for b in barangays],
    }), 200


@municipalities_bp.route('/joinable', methods=['GET'])
def list_joinable_barangays():
    """Bounded barangays a barangay responder may join, optionally by municipality."""
    query = Barangay.query.filter(
        Barangay.boundary_approved_at.isnot(None),
        Barangay.boundary_geojson.isnot(None),
    )
    municipality_id = request.args.get('municipality_id', type=int)
    if municipality_id:
        query = query.filter(Barangay.municipality_id == municipality_id)
    barangays = query.order_by(Barangay.name.asc()).all()
    return jsonify({'count': len(barangays), 'barangays': [b.to_dict() for b in barangays]}), 200


@municipalities_bp.route('/barangays/<int:barangay_id>', methods=['GET'])
def get_barangay(barangay_id):
    barangay = db.session.get(Barangay, barangay_id)
    if not barangay:
        raise NotFound(BARANGAY)
    data = barangay.to_dict(include_geometry=True)
    data['current_status'] = current_status_value(barangay.id)
    return jsonify(data), 200


@municipalities_bp.route('/barangays/<int:barangay_id>', methods=['PATCH'])
@actor_required
def update_barangay_profile(barangay_id):
    """Scoped LGU responders and admins edit description and brochure photos."""
    actor = current_actor()
    data = request.get_json(silent=True) or {}
    engine = access_engine()

    description = sanitize_string(data.get('description'))
    photos = None
    if 'brochure_photo_urls' in data:
        photos = validate_url_list(data.get('brochure_photo_urls'), 'brochure_photo_urls')

    barangay = db.session.get(Barangay, barangay_id)
    if not barangay:
        raise NotFound(BARANGAY)
    engine.require(actor, UPDATE, BARANGAY, barangay)

    if 'description' in data:
        barangay.description = description
    if photos is not None:
        barangay.brochure_photo_urls = photos
    db.session.commit()
    return jsonify({'message': 'Barangay updated', 'barangay': barangay.to_dict()}), 200


@municipalities_bp.route('', methods=['POST'])
@admin_required
def create_municipality():
    actor = current_actor()
    data = request.get_json(silent=True) or {}
    name = validate_name(data.get('name'), max_length=100)
    code = validate_name(data.get('code'), field='code', max_length=20).upper()
    region = sanitize_string(data.get('region'), max_length=100)

    municipality = Municipality(name=name, code=code, region=region)
    access_engine().require(actor, INSERT, MUNICIPALITY, municipality)
    if Municipality.query.filter(func.upper(Municipality.code) == code).first():
        raise StateConflict(f'Municipality code {code} already exists', code='MUNICIPALITY_EXISTS')

    db.session.add(municipality)
    db.session.flush()
    log_action(actor, AuditAction.MUNICIPALITY_CREATED, 'municipality', municipality.id, {'code': code})
    db.session.commit()
    return jsonify({'message': 'Municipality created', 'municipality': municipality.to_dict()}), 201


@municipalities_bp.route('/<int:municipality_id>/barangays', methods=['POST'])
@admin_required
def create_barangay(municipality_id):
    """Create an unbounded barangay; its boundary comes from a boundary request."""
    actor = current_actor()
    data = request.get_json(silent=True) or {}
    name = validate_name(data.get('name'), max_length=150)

    if db.session.get(Municipality, municipality_id) is None:
        raise NotFound(MUNICIPALITY)
    barangay = Barangay(
        municipality_id=municipality_id,
        name=name,
        description=sanitize_string(data.get('description')),
    )
    access_engine().require(actor, INSERT, BARANGAY, barangay)
    existing = Barangay.query.filter(
        Barangay.municipality_id == municipality_id,
        func.lower(Barangay.name) == name.lower(),
    ).first()
    if existing:
        raise StateConflict(f'{existing.name} already exists in this municipality', code='BARANGAY_EXISTS')

    db.session.add(barangay)
    db.session.flush()
    log_action(actor, AuditAction.BARANGAY_CREATED, 'barangay', barangay.id, {'municipality_id': municipality_id})
    db.session.commit()
    return jsonify({'message': 'Barangay created', 'barangay': barangay.to_dict()}), 201
