"""In-app notification helpers.

Notifications are queued in the caller's session and committed with the
change that caused them.
"""
from __future__ import annotations
from typing import Dict, Iterable, List

from sqlalchemy import or_

from apps.api import db
from apps.api.models.notification import Notification
from apps.api.models.user import User
from apps.api.utils.identity import BARANGAY_SCOPED_ROLES, MUNICIPAL_SCOPED_ROLES
from apps.api.utils.time import utc_now


def _build_dedupe_key(event_type: str, entity_id: int | None, user_id: int, extra: str | None = None) -> str:
    base = f"{event_type}:{entity_id}:{user_id}"
    return f"{base}:{extra}" if extra else base


def queue_notification_for_user(
    user: User,
    event_type: str,
    entity_id: int | None,
    title: str,
    body: str | None = None,
    link: str | None = None,
    dedupe_extra: str | None = None,
) -> str:
    """Queue a single notification, skipping duplicates of the same event."""
    if not user:
        return 'skipped_no_user'

    dedupe_key = _build_dedupe_key(event_type, entity_id, user.id, dedupe_extra)
    if Notification.query.filter_by(dedupe_key=dedupe_key).first():
        return 'duplicate'

    db.session.add(Notification(
        user_id=user.id,
        event_type=event_type,
        entity_id=entity_id,
        title=title,
        body=body,
        link=link,
        dedupe_key=dedupe_key,
    ))
    return 'queued'


def responders_for_barangay(barangay_id: int, municipality_id: int | None) -> List[User]:
    """Responders who cover a barangay: its own responders and its municipality's."""
    clauses = [(User.role.in_(sorted(BARANGAY_SCOPED_ROLES))) & (User.barangay_id == barangay_id)]
    if municipality_id is not None:
        clauses.append((User.role.in_(sorted(MUNICIPAL_SCOPED_ROLES))) & (User.municipality_id == municipality_id))
    return User.query.filter(User.is_active.is_(True), or_(*clauses)).order_by(User.id.asc()).all()


def queue_assistance_offered(offer, recipient, exclude_user_ids: Iterable[int] = ()) -> Dict[str, int]:
    """Notify everyone responsible for the recipient barangay about a new offer."""
    results = {'queued': 0, 'skipped': 0}
    excluded = set(exclude_user_ids)
    helper = offer.helping_barangay or offer.helping_municipality
    helper_name = helper.name if helper else 'Another LGU'
    title = f"{helper_name} offered assistance to {recipient.name}"
    body = offer.description
    if offer.expected_arrival_at:
        body = f"{body}\nExpected arrival: {offer.expected_arrival_at.isoformat()}"

    for user in responders_for_barangay(recipient.id, recipient.municipality_id):
        if user.id in excluded:
            results['skipped'] += 1
            continue
        state = queue_notification_for_user(
            user,
            'assistance_offered',
            offer.id,
            title,
            body=body,
            link=f"/barangays/{recipient.id}/assistance",
        )
        results['queued' if state == 'queued' else 'skipped'] += 1
    return results


def queue_boundary_request_decided(boundary_request) -> str:
    requester = db.session.get(User, boundary_request.requested_by)
    status = boundary_request.status
    if status == 'approved':
        title = f"Your boundary for {boundary_request.barangay_name} was approved"
        body = None
    else:
        title = f"Your boundary request for {boundary_request.barangay_name} was rejected"
        body = boundary_request.rejection_reason
    return queue_notification_for_user(
        requester,
        'boundary_request_decided',
        boundary_request.id,
        title,
        body=body,
        link=f"/boundary-requests/{boundary_request.id}",
        dedupe_extra=status,
    )


def list_for_user(actor, unread_only: bool = False, limit: int = 50) -> List[Notification]:
    query = Notification.query.filter(Notification.user_id == actor.id)
    if unread_only:
        query = query.filter(Notification.read_at.is_(None))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def count_unread(actor) -> int:
    return Notification.query.filter(
        Notification.user_id == actor.id,
        Notification.read_at.is_(None),
    ).count()


def mark_all_read(actor) -> int:
    updated = Notification.query.filter(
        Notification.user_id == actor.id,
        Notification.read_at.is_(None),
    ).update({Notification.read_at: utc_now()}, synchronize_session=False)
    db.session.commit()
    return updated
