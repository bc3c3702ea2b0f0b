"""Admin invite issuing and claiming.

A code is claimable once, before it expires. Claiming is a single
conditional UPDATE; whoever's UPDATE matches the row wins and everyone else
gets ``StateConflict`` with nothing changed.
"""
from typing import List

from flask import current_app

from apps.api import db
from apps.api.models.admin_invite import AdminInvite
from apps.api.models.membership import BarangayMembership
from apps.api.models.user import User
from apps.api.utils.access import access_engine, INSERT
from apps.api.utils.audit import log_action, AuditAction
from apps.api.utils.identity import ADMIN, ADMIN_ROLES
from apps.api.utils.policies import ADMIN_INVITE
from apps.api.utils.security import NotFound, StateConflict
from apps.api.utils.time import utc_now, utc_in
from apps.api.utils.validators import ValidationError, sanitize_string


def create_invite(actor, ttl_hours=None, engine=None) -> AdminInvite:
    engine = engine or access_engine()

    if ttl_hours in (None, ''):
        ttl_hours = current_app.config.get('ADMIN_INVITE_TTL_HOURS', 72)
    try:
        ttl_hours = int(ttl_hours)
    except (TypeError, ValueError):
        raise ValidationError('ttl_hours must be an integer', field='ttl_hours')
    if not 1 <= ttl_hours <= 24 * 30:
        raise ValidationError('ttl_hours must be between 1 and 720', field='ttl_hours')

    invite = AdminInvite(
        code=AdminInvite.generate_code(),
        created_by=actor.id,
        expires_at=utc_in(hours=ttl_hours),
    )
    engine.require(actor, INSERT, ADMIN_INVITE, invite)

    db.session.add(invite)
    db.session.flush()
    log_action(actor, AuditAction.ADMIN_INVITE_CREATED, 'admin_invite', invite.id,
               {'expires_at': invite.expires_at.isoformat()})
    db.session.commit()
    return invite


def list_invites(actor, engine=None) -> List[AdminInvite]:
    engine = engine or access_engine()
    rows = AdminInvite.query.order_by(AdminInvite.created_at.desc(), AdminInvite.id.desc()).all()
    return engine.filter_visible(actor, ADMIN_INVITE, rows)


def claim_invite(actor, code) -> AdminInvite:
    """
    Redeem an invite code and elevate the claimant to ``admin``.

    Raises:
        ValidationError: missing code
        NotFound: unknown code
        StateConflict: code already used or expired, or claimant already an admin
    """
    code = sanitize_string(code)
    if not code:
        raise ValidationError('Invite code is required', field='code')

    invite = AdminInvite.query.filter_by(code=code).first()
    if invite is None:
        raise NotFound(ADMIN_INVITE)
    if actor.role in ADMIN_ROLES:
        raise StateConflict('Account is already an administrator', code='ALREADY_ADMIN')

    now = utc_now()
    claimed = AdminInvite.query.filter(
        AdminInvite.code == code,
        AdminInvite.used_at.is_(None),
        AdminInvite.expires_at > now,
    ).update({AdminInvite.used_at: now, AdminInvite.used_by: actor.id}, synchronize_session=False)
    if claimed != 1:
        db.session.rollback()
        raise StateConflict('Invite code has already been used or has expired', code='INVITE_UNAVAILABLE')

    user = User.query.filter(User.id == actor.id).with_for_update().first()
    if user is None:
        db.session.rollback()
        raise NotFound('user')
    previous_role = user.role
    user.role = ADMIN
    # Admins carry no geography
    BarangayMembership.query.filter(
        BarangayMembership.user_id == user.id,
        BarangayMembership.left_at.is_(None),
    ).update(
        {BarangayMembership.left_at: now, BarangayMembership.leave_reason: 'elevated to admin'},
        synchronize_session=False,
    )
    user.barangay_id = None
    user.municipality_id = None

    log_action(actor, AuditAction.ADMIN_INVITE_CLAIMED, 'admin_invite', invite.id,
               {'previous_role': previous_role})
    db.session.commit()
    db.session.refresh(invite)
    current_app.logger.info("Admin invite %s claimed by %s", invite.id, actor.id)
    return invite
