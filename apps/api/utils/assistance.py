"""Assistance offers between LGUs."""
from typing import List, Optional

from flask import current_app

from apps.api import db
from apps.api.models.assistance import AssistanceOffer
from apps.api.models.barangay_status import NEED_STATUSES
from apps.api.models.municipality import Barangay, Municipality
from apps.api.utils.access import access_engine, INSERT, UPDATE
from apps.api.utils.barangay_status import current_status_value, latest_status_update
from apps.api.utils.identity import BARANGAY_SCOPED_ROLES, MUNICIPAL_SCOPED_ROLES, ADMIN_ROLES
from apps.api.utils.notifications import queue_assistance_offered
from apps.api.utils.policies import ASSISTANCE_OFFER
from apps.api.utils.realtime import note_change
from apps.api.utils.security import NotFound, StateConflict
from apps.api.utils.time import utc_now, parse_iso_datetime
from apps.api.utils.validators import (
    ValidationError,
    validate_min_length,
    validate_positive_int,
    validate_url,
)


def _helper_for(actor, helping_barangay_id, helping_municipality_id):
    """Helper party is the actor's own geography; admins must name one."""
    if actor.role in BARANGAY_SCOPED_ROLES:
        return actor.barangay_id, None
    if actor.role in MUNICIPAL_SCOPED_ROLES:
        return None, actor.municipality_id
    if actor.role in ADMIN_ROLES:
        has_barangay = helping_barangay_id not in (None, '')
        has_municipality = helping_municipality_id not in (None, '')
        if has_barangay == has_municipality:
            raise ValidationError(
                'Name exactly one helping barangay or helping municipality',
                field='helping_barangay_id',
            )
        if has_barangay:
            barangay_id = validate_positive_int(helping_barangay_id, 'helping_barangay_id')
            if db.session.get(Barangay, barangay_id) is None:
                raise ValidationError('Unknown helping barangay', field='helping_barangay_id')
            return barangay_id, None
        municipality_id = validate_positive_int(helping_municipality_id, 'helping_municipality_id')
        if db.session.get(Municipality, municipality_id) is None:
            raise ValidationError('Unknown helping municipality', field='helping_municipality_id')
        return None, municipality_id
    return None, None


def create_assistance_offer(
    actor,
    recipient_barangay_id,
    description,
    expected_arrival_at=None,
    assistance_image_url=None,
    helping_barangay_id=None,
    helping_municipality_id=None,
    engine=None,
) -> AssistanceOffer:
    """
    Record an offer of help to a barangay that is currently in need.

    Raises:
        ValidationError: short description, self-assistance, bad helper
        NotFound: unknown recipient barangay
        StateConflict: recipient is not in a need status
        PermissionDenied: actor may not offer from this geography
    """
    engine = engine or access_engine()

    description = validate_min_length(
        description,
        current_app.config.get('ASSISTANCE_DESCRIPTION_MIN_LENGTH', 3),
        'description',
    )
    try:
        expected_arrival_at = parse_iso_datetime(expected_arrival_at)
    except (TypeError, ValueError):
        raise ValidationError('expected_arrival_at must be an ISO-8601 timestamp', field='expected_arrival_at')
    if assistance_image_url not in (None, ''):
        assistance_image_url = validate_url(assistance_image_url, field='assistance_image_url')
    else:
        assistance_image_url = None

    recipient = db.session.get(Barangay, recipient_barangay_id) if recipient_barangay_id is not None else None
    if recipient is None:
        raise NotFound('barangay')

    helping_barangay_id, helping_municipality_id = _helper_for(actor, helping_barangay_id, helping_municipality_id)
    if helping_barangay_id is not None and helping_barangay_id == recipient.id:
        raise ValidationError('A barangay cannot offer assistance to itself', field='recipient_barangay_id')

    if current_status_value(recipient.id) not in NEED_STATUSES:
        raise StateConflict(f'{recipient.name} is not currently requesting assistance', code='RECIPIENT_NOT_IN_NEED')

    latest = latest_status_update(recipient.id)
    offer = AssistanceOffer(
        helping_barangay_id=helping_barangay_id,
        helping_municipality_id=helping_municipality_id,
        recipient_barangay_id=recipient.id,
        status_update_id=latest.id if latest else None,
        description=description,
        expected_arrival_at=expected_arrival_at,
        assistance_image_url=assistance_image_url,
        created_by=actor.id,
    )
    engine.require(actor, INSERT, ASSISTANCE_OFFER, offer)

    db.session.add(offer)
    db.session.flush()
    queue_assistance_offered(offer, recipient, exclude_user_ids={actor.id})
    db.session.commit()
    current_app.logger.info("Assistance offer %s to barangay %s by %s", offer.id, recipient.id, actor.id)
    return offer


def mark_assistance_delivered(actor, offer_id, engine=None) -> AssistanceOffer:
    """Set ``delivered_at`` once. Only the helping party may do it."""
    engine = engine or access_engine()

    offer = db.session.get(AssistanceOffer, offer_id)
    engine.require_visible(actor, ASSISTANCE_OFFER, offer)
    if offer.delivered_at is not None:
        raise StateConflict('Assistance was already marked delivered', code='ALREADY_DELIVERED')
    engine.require(actor, UPDATE, ASSISTANCE_OFFER, offer)

    updated = AssistanceOffer.query.filter(
        AssistanceOffer.id == offer.id,
        AssistanceOffer.delivered_at.is_(None),
    ).update({AssistanceOffer.delivered_at: utc_now()}, synchronize_session=False)
    if updated != 1:
        db.session.rollback()
        raise StateConflict('Assistance was already marked delivered', code='ALREADY_DELIVERED')
    db.session.refresh(offer)
    note_change(db.session, offer)
    db.session.commit()
    return offer


def list_offers_for_barangay(actor, barangay_id, pending_only: bool = False, engine=None) -> List[AssistanceOffer]:
    engine = engine or access_engine()
    query = AssistanceOffer.query.filter(AssistanceOffer.recipient_barangay_id == barangay_id)
    if pending_only:
        query = query.filter(AssistanceOffer.delivered_at.is_(None))
    rows = query.order_by(AssistanceOffer.created_at.desc(), AssistanceOffer.id.desc()).all()
    return engine.filter_visible(actor, ASSISTANCE_OFFER, rows)


def get_offer(actor, offer_id, engine=None) -> Optional[AssistanceOffer]:
    engine = engine or access_engine()
    return engine.require_visible(actor, ASSISTANCE_OFFER, db.session.get(AssistanceOffer, offer_id))
