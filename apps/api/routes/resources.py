"""Resource inventory, resource request and allocation routes."""
from decimal import Decimal, InvalidOperation

from flask import Blueprint, jsonify, request

from apps.api import db
from apps.api.models.resource import (
    Resource,
    ResourceAllocation,
    ResourceRequest,
    ResourceType,
    RESOURCE_REQUEST_STATUSES,
)
from apps.api.utils.access import access_engine, INSERT, UPDATE
from apps.api.utils.auth import actor_required, admin_required, current_actor
from apps.api.utils.geography import require_known_barangay
from apps.api.utils.policies import RESOURCE, RESOURCE_REQUEST, RESOURCE_ALLOCATION
from apps.api.utils.security import StateConflict
from apps.api.utils.time import utc_now
from apps.api.utils.validators import (
    ValidationError,
    sanitize_string,
    validate_name,
    validate_positive_int,
)

resources_bp = Blueprint('resources', __name__, url_prefix='/api/resources')


def _quantity(value, field='quantity', allow_zero=False) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f'{field} must be a number', field=field)
    if number < 0 or (number == 0 and not allow_zero):
        raise ValidationError(f'{field} must be positive', field=field)
    return number


def _resource_type(value) -> ResourceType:
    type_id = validate_positive_int(value, 'resource_type_id')
    resource_type = db.session.get(ResourceType, type_id)
    if resource_type is None:
        raise ValidationError('Unknown resource type', field='resource_type_id')
    return resource_type


@resources_bp.route('/types', methods=['GET'])
def list_resource_types():
    types = ResourceType.query.order_by(ResourceType.name.asc()).all()
    return jsonify({'types': [t.to_dict() for t in types]}), 200


@resources_bp.route('', methods=['GET'])
@actor_required
def list_resources():
    rows = Resource.query.order_by(Resource.name.asc()).all()
    rows = access_engine().filter_visible(current_actor(), RESOURCE, rows)
    return jsonify({'count': len(rows), 'resources': [r.to_dict() for r in rows]}), 200


@resources_bp.route('', methods=['POST'])
@admin_required
def create_resource():
    actor = current_actor()
    data = request.get_json(silent=True) or {}
    resource_type = _resource_type(data.get('resource_type_id'))
    barangay_id = data.get('barangay_id')
    resource = Resource(
        resource_type_id=resource_type.id,
        name=validate_name(data.get('name'), max_length=150),
        quantity=_quantity(data.get('quantity', 0), allow_zero=True),
        unit_override=sanitize_string(data.get('unit'), max_length=30),
        barangay_id=require_known_barangay(barangay_id) if barangay_id not in (None, '') else None,
    )
    access_engine().require(actor, INSERT, RESOURCE, resource)
    db.session.add(resource)
    db.session.commit()
    return jsonify({'message': 'Resource created', 'resource': resource.to_dict()}), 201


@resources_bp.route('/<int:resource_id>', methods=['PATCH'])
@admin_required
def update_resource(resource_id):
    actor = current_actor()
    engine = access_engine()
    data = request.get_json(silent=True) or {}
    resource = engine.require_visible(actor, RESOURCE, db.session.get(Resource, resource_id))
    engine.require(actor, UPDATE, RESOURCE, resource)
    if 'quantity' in data:
        resource.quantity = _quantity(data.get('quantity'), allow_zero=True)
    if 'name' in data:
        resource.name = validate_name(data.get('name'), max_length=150)
    db.session.commit()
    return jsonify({'message': 'Resource updated', 'resource': resource.to_dict()}), 200


@resources_bp.route('/requests', methods=['GET'])
@actor_required
def list_requests():
    query = ResourceRequest.query
    status = request.args.get('status')
    if status:
        query = query.filter(ResourceRequest.status == status)
    rows = query.order_by(ResourceRequest.created_at.desc(), ResourceRequest.id.desc()).all()
    rows = access_engine().filter_visible(current_actor(), RESOURCE_REQUEST, rows)
    return jsonify({'count': len(rows), 'requests': [r.to_dict() for r in rows]}), 200


@resources_bp.route('/requests', methods=['POST'])
@actor_required
def create_request():
    actor = current_actor()
    data = request.get_json(silent=True) or {}
    resource_type = _resource_type(data.get('resource_type_id'))
    row = ResourceRequest(
        barangay_id=require_known_barangay(data.get('barangay_id')),
        requested_by=actor.id,
        resource_type_id=resource_type.id,
        quantity_requested=_quantity(data.get('quantity'), 'quantity'),
        notes=sanitize_string(data.get('notes')),
        status='pending',
    )
    access_engine().require(actor, INSERT, RESOURCE_REQUEST, row)
    db.session.add(row)
    db.session.commit()
    return jsonify({'message': 'Resource request submitted', 'request': row.to_dict()}), 201


@resources_bp.route('/requests/<int:request_id>', methods=['PATCH'])
@admin_required
def update_request(request_id):
    actor = current_actor()
    engine = access_engine()
    data = request.get_json(silent=True) or {}
    status = data.get('status')
    if status not in RESOURCE_REQUEST_STATUSES:
        raise ValidationError(f"Invalid status. Allowed: {', '.join(RESOURCE_REQUEST_STATUSES)}", field='status')

    row = engine.require_visible(actor, RESOURCE_REQUEST, db.session.get(ResourceRequest, request_id))
    if row.status in ('fulfilled', 'rejected'):
        raise StateConflict(f'Resource request is already {row.status}')
    engine.require(actor, UPDATE, RESOURCE_REQUEST, row)

    row.status = status
    if status == 'fulfilled' and row.fulfilled_at is None:
        row.fulfilled_at = utc_now()
    db.session.commit()
    return jsonify({'message': 'Resource request updated', 'request': row.to_dict()}), 200


@resources_bp.route('/requests/<int:request_id>/allocations', methods=['GET'])
@actor_required
def list_allocations(request_id):
    actor = current_actor()
    engine = access_engine()
    row = engine.require_visible(actor, RESOURCE_REQUEST, db.session.get(ResourceRequest, request_id))
    allocations = engine.filter_visible(actor, RESOURCE_ALLOCATION, row.allocations.all())
    return jsonify({'allocations': [a.to_dict() for a in allocations]}), 200


@resources_bp.route('/requests/<int:request_id>/allocations', methods=['POST'])
@admin_required
def allocate(request_id):
    """Allocate stock to a request; stock decreases and the request fills up."""
    actor = current_actor()
    engine = access_engine()
    data = request.get_json(silent=True) or {}
    quantity = _quantity(data.get('quantity'))
    resource_id = validate_positive_int(data.get('resource_id'), 'resource_id')

    row = engine.require_visible(actor, RESOURCE_REQUEST, db.session.get(ResourceRequest, request_id))
    if row.status in ('fulfilled', 'rejected'):
        raise StateConflict(f'Resource request is already {row.status}')

    resource = (
        Resource.query.filter(Resource.id == resource_id)
        .with_for_update()
        .first()
    )
    if resource is None:
        raise ValidationError('Unknown resource', field='resource_id')
    if resource.resource_type_id != row.resource_type_id:
        raise ValidationError('Resource type does not match the request', field='resource_id')
    if Decimal(resource.quantity) < quantity:
        raise StateConflict('Not enough stock for this allocation', code='INSUFFICIENT_STOCK')

    allocation = ResourceAllocation(
        resource_request_id=row.id,
        resource_id=resource.id,
        quantity=quantity,
        allocated_by=actor.id,
    )
    allocation.request = row
    engine.require(actor, INSERT, RESOURCE_ALLOCATION, allocation)

    resource.quantity = Decimal(resource.quantity) - quantity
    row.quantity_fulfilled = Decimal(row.quantity_fulfilled or 0) + quantity
    if row.quantity_fulfilled >= Decimal(row.quantity_requested):
        row.status = 'fulfilled'
        row.fulfilled_at = utc_now()
    else:
        row.status = 'partially_fulfilled'
    db.session.add(allocation)
    db.session.commit()
    return jsonify({'message': 'Allocation recorded', 'allocation': allocation.to_dict(), 'request': row.to_dict()}), 201
