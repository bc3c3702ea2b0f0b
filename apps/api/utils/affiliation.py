"""Affiliation lifecycle: boundary requests, join, leave, transfer, delete requests.

``BarangayMembership`` is the source of truth. ``User.barangay_id`` and
``User.municipality_id`` are recomputed from it inside the same transaction
whenever a membership opens or closes.

Lifecycle operations that check-then-write lock the rows they guard
(``SELECT ... FOR UPDATE``) and finish with a conditional UPDATE, so a lost
race surfaces as ``StateConflict`` instead of a second side effect.
"""
from typing import Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from apps.api import db
from apps.api.models.boundary_request import (
    BarangayBoundaryRequest,
    STATUS_PENDING,
    STATUS_APPROVED,
    STATUS_REJECTED,
)
from apps.api.models.change_request import BarangayChangeRequest, REQUEST_TYPE_DELETE
from apps.api.models.membership import BarangayMembership
from apps.api.models.municipality import Barangay, Municipality
from apps.api.models.user import User
from apps.api.utils.audit import log_action, AuditAction
from apps.api.utils.identity import BARANGAY_SCOPED_ROLES, MUNICIPAL_SCOPED_ROLES
from apps.api.utils.notifications import queue_boundary_request_decided
from apps.api.utils.security import NotFound, StateConflict
from apps.api.utils.time import utc_now
from apps.api.utils.validators import (
    ValidationError,
    sanitize_string,
    validate_email,
    validate_geometry,
    validate_name,
    validate_phone,
    validate_positive_int,
)


def _engine(engine):
    if engine is not None:
        return engine
    from apps.api.utils.access import access_engine
    return access_engine()


def open_membership(user_id) -> Optional[BarangayMembership]:
    if user_id is None:
        return None
    return BarangayMembership.query.filter(
        BarangayMembership.user_id == user_id,
        BarangayMembership.left_at.is_(None),
    ).first()


def _lock_user(user_id) -> User:
    user = (
        User.query.filter(User.id == user_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if user is None:
        raise NotFound('user')
    return user


def _lock_open_membership(user_id) -> Optional[BarangayMembership]:
    return (
        BarangayMembership.query.filter(
            BarangayMembership.user_id == user_id,
            BarangayMembership.left_at.is_(None),
        )
        .with_for_update()
        .populate_existing()
        .first()
    )


def sync_affiliation_cache(user: User) -> None:
    """Recompute ``user``'s affiliation fields from the open membership."""
    if user.role in MUNICIPAL_SCOPED_ROLES:
        user.barangay_id = None
        return
    if user.role not in BARANGAY_SCOPED_ROLES:
        return
    db.session.flush()
    membership = open_membership(user.id)
    if membership is None:
        user.barangay_id = None
        user.municipality_id = None
    else:
        user.barangay_id = membership.barangay_id
        user.municipality_id = db.session.get(Barangay, membership.barangay_id).municipality_id


def _open_membership(user: User, barangay: Barangay, is_creator: bool) -> BarangayMembership:
    membership = BarangayMembership(user_id=user.id, barangay_id=barangay.id, is_creator=is_creator)
    db.session.add(membership)
    try:
        db.session.flush()
    except IntegrityError:
        # Unique open-membership index: another transaction got there first
        db.session.rollback()
        raise StateConflict('Account already belongs to a barangay', code='ALREADY_AFFILIATED')
    sync_affiliation_cache(user)
    return membership


def _close_membership(user: User, membership: BarangayMembership, reason: Optional[str]) -> None:
    membership.left_at = utc_now()
    membership.leave_reason = reason
    sync_affiliation_cache(user)


def _conflict(message: str, code: str = 'STATE_CONFLICT'):
    db.session.rollback()
    return StateConflict(message, code=code)


def _require_bounded_barangay(barangay_id) -> Barangay:
    barangay = db.session.get(Barangay, barangay_id) if barangay_id is not None else None
    if barangay is None:
        raise NotFound('barangay')
    if not barangay.is_bounded:
        raise StateConflict('This barangay has no approved boundary yet', code='BARANGAY_NOT_BOUNDED')
    return barangay


# ---------------------------------------------------------------------------
# Boundary requests
# ---------------------------------------------------------------------------

def submit_boundary_request(
    actor,
    municipality_id,
    name,
    geometry,
    contact_email,
    contact_phone,
    barangay_id=None,
    description=None,
    engine=None,
) -> BarangayBoundaryRequest:
    """
    Create a pending boundary request. Does not touch the barangay or the actor.

    Raises:
        ValidationError: missing name/geometry, bad email or phone, unknown geography
        PermissionDenied: actor is not an LGU responder
    """
    from apps.api.utils.access import INSERT
    from apps.api.utils.policies import BOUNDARY_REQUEST

    engine = _engine(engine)

    name = validate_name(name, field='barangay_name', max_length=150)
    geometry = validate_geometry(geometry)
    contact_email = validate_email(contact_email)
    contact_phone = validate_phone(contact_phone)
    municipality_id = validate_positive_int(municipality_id, 'municipality_id')
    description = sanitize_string(description)

    if db.session.get(Municipality, municipality_id) is None:
        raise ValidationError('Unknown municipality', field='municipality_id')
    if barangay_id not in (None, ''):
        barangay_id = validate_positive_int(barangay_id, 'barangay_id')
        barangay = db.session.get(Barangay, barangay_id)
        if barangay is None or barangay.municipality_id != municipality_id:
            raise ValidationError('Barangay does not belong to this municipality', field='barangay_id')
    else:
        barangay_id = None

    req = BarangayBoundaryRequest(
        requested_by=actor.id,
        municipality_id=municipality_id,
        barangay_id=barangay_id,
        barangay_name=name,
        boundary_geojson=geometry,
        contact_email=contact_email,
        contact_phone=contact_phone,
        description=description,
        status=STATUS_PENDING,
    )
    engine.require(actor, INSERT, BOUNDARY_REQUEST, req)

    db.session.add(req)
    db.session.flush()
    log_action(actor, AuditAction.BOUNDARY_REQUEST_SUBMITTED, 'boundary_request', req.id,
               {'municipality_id': municipality_id, 'barangay_id': barangay_id, 'name': name})
    db.session.commit()
    return req


def _reviewable_request(approver, request_id, engine) -> BarangayBoundaryRequest:
    """Visibility, then state, then review permission."""
    from apps.api.utils.access import UPDATE
    from apps.api.utils.policies import BOUNDARY_REQUEST

    req = db.session.get(BarangayBoundaryRequest, request_id)
    engine.require_visible(approver, BOUNDARY_REQUEST, req)
    if req.status != STATUS_PENDING:
        raise StateConflict(f'Boundary request is already {req.status}', code='ALREADY_REVIEWED')
    engine.require(approver, UPDATE, BOUNDARY_REQUEST, req)
    return req


def _lock_pending_request(request_id) -> BarangayBoundaryRequest:
    locked = (
        BarangayBoundaryRequest.query
        .filter(BarangayBoundaryRequest.id == request_id, BarangayBoundaryRequest.status == STATUS_PENDING)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if locked is None:
        raise _conflict('Boundary request was reviewed by someone else', code='ALREADY_REVIEWED')
    return locked


def _mark_reviewed(req: BarangayBoundaryRequest, values: dict) -> None:
    claimed = BarangayBoundaryRequest.query.filter(
        BarangayBoundaryRequest.id == req.id,
        BarangayBoundaryRequest.status == STATUS_PENDING,
    ).update(values, synchronize_session=False)
    if claimed != 1:
        raise _conflict('Boundary request was reviewed by someone else', code='ALREADY_REVIEWED')
    db.session.refresh(req)


def _target_barangay(req: BarangayBoundaryRequest, requester: User) -> Barangay:
    if req.barangay_id is not None:
        barangay = (
            Barangay.query.filter(Barangay.id == req.barangay_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if barangay is None:
            raise _conflict('The barangay on this request no longer exists', code='BARANGAY_MISSING')
        return barangay

    existing = Barangay.query.filter(
        Barangay.municipality_id == req.municipality_id,
        func.lower(Barangay.name) == req.barangay_name.lower(),
    ).with_for_update().first()
    if existing is not None:
        if existing.boundary_approved_at is not None:
            raise _conflict(f'{existing.name} already has an approved boundary', code='BARANGAY_EXISTS')
        return existing

    barangay = Barangay(
        municipality_id=req.municipality_id,
        name=req.barangay_name,
        creator_id=requester.id,
        description=req.description,
    )
    db.session.add(barangay)
    return barangay


def approve_boundary_request(approver, request_id, engine=None) -> BarangayBoundaryRequest:
    """
    Approve a pending boundary request.

    Creates or updates the barangay boundary and, for barangay-scoped
    requesters, opens a creator membership. A second approval of the same
    request raises ``StateConflict`` and changes nothing.
    """
    engine = _engine(engine)
    req = _reviewable_request(approver, request_id, engine)

    locked = _lock_pending_request(req.id)
    requester = _lock_user(locked.requested_by)
    opens_membership = requester.role in BARANGAY_SCOPED_ROLES

    if opens_membership and _lock_open_membership(requester.id) is not None:
        raise _conflict('Requester already belongs to a barangay', code='ALREADY_AFFILIATED')

    barangay = _target_barangay(locked, requester)
    barangay.approve_boundary(locked.boundary_geojson)
    if barangay.creator_id is None:
        barangay.creator_id = requester.id
    db.session.flush()

    if opens_membership:
        _open_membership(requester, barangay, is_creator=True)

    now = utc_now()
    _mark_reviewed(locked, {
        BarangayBoundaryRequest.status: STATUS_APPROVED,
        BarangayBoundaryRequest.reviewed_by: approver.id,
        BarangayBoundaryRequest.reviewed_at: now,
        BarangayBoundaryRequest.barangay_id: barangay.id,
        BarangayBoundaryRequest.updated_at: now,
    })
    log_action(approver, AuditAction.BOUNDARY_REQUEST_APPROVED, 'boundary_request', locked.id,
               {'barangay_id': barangay.id, 'requester_id': requester.id, 'membership_opened': opens_membership})
    queue_boundary_request_decided(locked)
    db.session.commit()
    current_app.logger.info("Boundary request %s approved by %s", locked.id, approver.id)
    return locked


def reject_boundary_request(approver, request_id, reason=None, engine=None) -> BarangayBoundaryRequest:
    """Reject a pending boundary request. No geography changes."""
    engine = _engine(engine)
    req = _reviewable_request(approver, request_id, engine)
    locked = _lock_pending_request(req.id)

    now = utc_now()
    _mark_reviewed(locked, {
        BarangayBoundaryRequest.status: STATUS_REJECTED,
        BarangayBoundaryRequest.reviewed_by: approver.id,
        BarangayBoundaryRequest.reviewed_at: now,
        BarangayBoundaryRequest.rejection_reason: sanitize_string(reason),
        BarangayBoundaryRequest.updated_at: now,
    })
    log_action(approver, AuditAction.BOUNDARY_REQUEST_REJECTED, 'boundary_request', locked.id,
               {'reason': locked.rejection_reason})
    queue_boundary_request_decided(locked)
    db.session.commit()
    current_app.logger.info("Boundary request %s rejected by %s", locked.id, approver.id)
    return locked


def list_boundary_requests(actor, status=None, engine=None) -> list:
    from apps.api.utils.policies import BOUNDARY_REQUEST

    engine = _engine(engine)
    query = BarangayBoundaryRequest.query
    if status:
        query = query.filter(BarangayBoundaryRequest.status == status)
    rows = query.order_by(BarangayBoundaryRequest.created_at.desc(), BarangayBoundaryRequest.id.desc()).all()
    return engine.filter_visible(actor, BOUNDARY_REQUEST, rows)


# ---------------------------------------------------------------------------
# Join / leave / transfer
# ---------------------------------------------------------------------------

def join_barangay(actor, barangay_id, engine=None) -> BarangayMembership:
    """Open a non-creator membership on a bounded barangay."""
    from apps.api.utils.access import INSERT
    from apps.api.utils.policies import MEMBERSHIP

    engine = _engine(engine)
    barangay = _require_bounded_barangay(barangay_id)
    engine.require(actor, INSERT, MEMBERSHIP,
                   BarangayMembership(user_id=actor.id, barangay_id=barangay.id, is_creator=False))

    user = _lock_user(actor.id)
    if _lock_open_membership(user.id) is not None:
        raise _conflict('You already belong to a barangay. Leave it first.', code='ALREADY_AFFILIATED')

    membership = _open_membership(user, barangay, is_creator=False)
    log_action(actor, AuditAction.BARANGAY_JOINED, 'barangay', barangay.id)
    db.session.commit()
    return membership


def leave_barangay(actor, reason=None, engine=None) -> BarangayMembership:
    """Close the actor's open membership and clear their affiliation."""
    from apps.api.utils.access import UPDATE
    from apps.api.utils.policies import MEMBERSHIP

    engine = _engine(engine)
    user = _lock_user(actor.id)
    membership = _lock_open_membership(user.id)
    if membership is None:
        raise _conflict('You are not affiliated with any barangay', code='NOT_AFFILIATED')
    engine.require(actor, UPDATE, MEMBERSHIP, membership)

    reason = sanitize_string(reason)
    _close_membership(user, membership, reason)
    log_action(actor, AuditAction.BARANGAY_LEFT, 'barangay', membership.barangay_id, {'reason': reason})
    db.session.commit()
    return membership


def transfer_barangay(actor, barangay_id, reason=None, engine=None) -> BarangayMembership:
    """Leave the current barangay and join another in one transaction."""
    from apps.api.utils.access import INSERT, UPDATE
    from apps.api.utils.policies import MEMBERSHIP

    engine = _engine(engine)
    target = _require_bounded_barangay(barangay_id)
    engine.require(actor, INSERT, MEMBERSHIP,
                   BarangayMembership(user_id=actor.id, barangay_id=target.id, is_creator=False))

    user = _lock_user(actor.id)
    current = _lock_open_membership(user.id)
    if current is None:
        raise _conflict('You are not affiliated with any barangay', code='NOT_AFFILIATED')
    if current.barangay_id == target.id:
        db.session.rollback()
        raise ValidationError('You already belong to this barangay', field='barangay_id')
    engine.require(actor, UPDATE, MEMBERSHIP, current)

    reason = sanitize_string(reason)
    previous_barangay_id = current.barangay_id
    _close_membership(user, current, reason)
    db.session.flush()
    membership = _open_membership(user, target, is_creator=False)
    log_action(actor, AuditAction.BARANGAY_TRANSFERRED, 'barangay', target.id,
               {'from_barangay_id': previous_barangay_id, 'reason': reason})
    db.session.commit()
    return membership


# ---------------------------------------------------------------------------
# Delete requests
# ---------------------------------------------------------------------------

def request_barangay_delete(actor, barangay_id, reason=None, engine=None) -> BarangayChangeRequest:
    """Record a creator's request that admins delete their barangay."""
    from apps.api.utils.access import INSERT
    from apps.api.utils.policies import CHANGE_REQUEST

    engine = _engine(engine)
    barangay = db.session.get(Barangay, barangay_id) if barangay_id is not None else None
    if barangay is None:
        raise NotFound('barangay')

    row = BarangayChangeRequest(
        barangay_id=barangay.id,
        requested_by=actor.id,
        request_type=REQUEST_TYPE_DELETE,
        reason=sanitize_string(reason),
        status='pending',
    )
    engine.require(actor, INSERT, CHANGE_REQUEST, row)

    pending = BarangayChangeRequest.query.filter_by(
        barangay_id=barangay.id,
        request_type=REQUEST_TYPE_DELETE,
        status='pending',
    ).first()
    if pending is not None:
        raise StateConflict('A delete request for this barangay is already pending', code='DELETE_PENDING')

    db.session.add(row)
    db.session.flush()
    log_action(actor, AuditAction.BARANGAY_DELETE_REQUESTED, 'barangay', barangay.id,
               {'change_request_id': row.id, 'reason': row.reason})
    db.session.commit()
    return row
