"""Barangay status log helpers.

The current status of a barangay is its newest status row, ordered by
``created_at`` and then ``id``. Barangays with no rows are ``normal``.
"""
from typing import Dict, Iterable, List, Optional

from flask import current_app
from sqlalchemy import select

from apps.api import db
from apps.api.models.barangay_status import (
    BarangayStatusUpdate,
    BARANGAY_STATUSES,
    NEED_STATUSES,
    STATUS_NORMAL,
    STATUS_NEED_RESOURCES,
)
from apps.api.models.municipality import Barangay
from apps.api.utils.security import NotFound
from apps.api.utils.validators import (
    ValidationError,
    sanitize_string,
    validate_min_length,
    validate_url_list,
)


# Values written before the need statuses were split up
LEGACY_STATUS_MAP = {
    'on_alert': STATUS_NEED_RESOURCES,
    'under_threat': STATUS_NEED_RESOURCES,
}


def normalize_status(value) -> Optional[str]:
    if not value:
        return None
    status = str(value).strip().lower()
    status = LEGACY_STATUS_MAP.get(status, status)
    return status if status in BARANGAY_STATUSES else None


def is_need_status(value) -> bool:
    return normalize_status(value) in NEED_STATUSES


def latest_status_update(barangay_id) -> Optional[BarangayStatusUpdate]:
    return (
        BarangayStatusUpdate.query
        .filter(BarangayStatusUpdate.barangay_id == barangay_id)
        .order_by(BarangayStatusUpdate.created_at.desc(), BarangayStatusUpdate.id.desc())
        .first()
    )


def current_status_value(barangay_id) -> str:
    latest = latest_status_update(barangay_id)
    if latest is None:
        return STATUS_NORMAL
    return normalize_status(latest.status) or STATUS_NORMAL


def current_statuses(barangay_ids: Iterable[int]) -> Dict[int, Optional[BarangayStatusUpdate]]:
    """Latest status row for each barangay in one query."""
    ids = list({int(b) for b in barangay_ids})
    latest: Dict[int, Optional[BarangayStatusUpdate]] = {b: None for b in ids}
    if not ids:
        return latest
    rows = db.session.execute(
        select(BarangayStatusUpdate)
        .where(BarangayStatusUpdate.barangay_id.in_(ids))
        .order_by(
            BarangayStatusUpdate.barangay_id,
            BarangayStatusUpdate.created_at.desc(),
            BarangayStatusUpdate.id.desc(),
        )
    ).scalars()
    for row in rows:
        if latest.get(row.barangay_id) is None:
            latest[row.barangay_id] = row
    return latest


def status_history(barangay_id, limit: int = 50) -> List[BarangayStatusUpdate]:
    return (
        BarangayStatusUpdate.query
        .filter(BarangayStatusUpdate.barangay_id == barangay_id)
        .order_by(BarangayStatusUpdate.created_at.desc(), BarangayStatusUpdate.id.desc())
        .limit(limit)
        .all()
    )


def update_barangay_status(actor, barangay_id, status, description=None, photo_urls=None, notes=None, engine=None):
    """
    Append a status row for a barangay.

    Need statuses require a description; description and photos are dropped
    for ``normal``.

    Raises:
        ValidationError: unknown status, or need status without description
        NotFound: unknown barangay
        PermissionDenied: actor is not a scoped responder or admin
    """
    from apps.api.utils.access import access_engine
    from apps.api.utils.policies import STATUS_UPDATE
    from apps.api.utils.access import INSERT

    engine = engine or access_engine()

    normalized = normalize_status(status)
    if normalized is None:
        raise ValidationError(f"Invalid status. Allowed: {', '.join(BARANGAY_STATUSES)}", field='status')

    if normalized in NEED_STATUSES:
        description = validate_min_length(
            description,
            current_app.config.get('NEED_DESCRIPTION_MIN_LENGTH', 5),
            'description',
            label='A description of the need',
        )
        photo_urls = validate_url_list(photo_urls, max_items=current_app.config.get('MAX_PHOTO_URLS', 10))
    else:
        description = None
        photo_urls = []

    barangay = db.session.get(Barangay, barangay_id)
    if barangay is None:
        raise NotFound('barangay')

    row = BarangayStatusUpdate(
        barangay_id=barangay.id,
        updated_by=actor.id,
        status=normalized,
        description=description,
        photo_urls=photo_urls,
        notes=sanitize_string(notes),
    )
    engine.require(actor, INSERT, STATUS_UPDATE, row)

    db.session.add(row)
    db.session.commit()
    current_app.logger.info("Barangay %s status set to %s by %s", barangay.id, normalized, actor.id)
    return row
