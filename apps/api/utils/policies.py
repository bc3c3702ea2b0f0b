"""Allow clauses per resource type and operation.

Rows are ORM instances (or any object with the same attribute names). Scope
checks take ``(actor, row, ctx)``; state checks take ``(row, ctx)``.
"""
from apps.api.models.report import PUBLIC_REPORT_STATUSES
from apps.api.models.barangay_status import NEED_STATUSES
from apps.api.models.boundary_request import STATUS_PENDING
from apps.api.models.announcement import SCOPE_ALL, SCOPE_BARANGAY

from .access import Clause, READ, INSERT, UPDATE
from .identity import (
    RESIDENT,
    SUPER_ADMIN,
    ADMIN_ROLES,
    LGU_ROLES,
    BARANGAY_SCOPED_ROLES,
    MUNICIPAL_SCOPED_ROLES,
)


# Resource type names
MUNICIPALITY = 'municipality'
BARANGAY = 'barangay'
REFERENCE = 'reference'
PROFILE = 'profile'
MEMBERSHIP = 'membership'
BOUNDARY_REQUEST = 'boundary_request'
CHANGE_REQUEST = 'change_request'
REPORT = 'report'
REPORT_NOTE = 'report_note'
STATUS_UPDATE = 'barangay_status_update'
ASSISTANCE_OFFER = 'assistance_offer'
MARKER = 'official_marker'
RESOURCE = 'resource'
RESOURCE_REQUEST = 'resource_request'
RESOURCE_ALLOCATION = 'resource_allocation'
ANNOUNCEMENT = 'announcement'
ADMIN_INVITE = 'admin_invite'
NOTIFICATION = 'notification'
AUDIT_LOG = 'audit_log'


# ---------------------------------------------------------------------------
# Scope checks
# ---------------------------------------------------------------------------

def geography_match(actor, row, ctx) -> bool:
    """Barangay roles: same barangay. Municipal role: barangay inside their municipality."""
    barangay_id = getattr(row, 'barangay_id', None)
    if barangay_id is None:
        return False
    if actor.role in BARANGAY_SCOPED_ROLES:
        return actor.barangay_id is not None and actor.barangay_id == barangay_id
    if actor.role in MUNICIPAL_SCOPED_ROLES:
        return ctx is not None and ctx.municipality_contains(actor.municipality_id, barangay_id)
    return False


def geography_match_or_global(actor, row, ctx) -> bool:
    return getattr(row, 'barangay_id', None) is None or geography_match(actor, row, ctx)


def same_barangay(actor, row, ctx) -> bool:
    return actor.barangay_id is not None and actor.barangay_id == getattr(row, 'barangay_id', None)


def owned_by(field):
    def check(actor, row, ctx) -> bool:
        return actor.id is not None and getattr(row, field, None) == actor.id
    check.__name__ = f'owned_by_{field}'
    return check


def all_of(*checks):
    def check(actor, row, ctx) -> bool:
        return all(c(actor, row, ctx) for c in checks)
    return check


def same_municipality(actor, row, ctx) -> bool:
    return actor.municipality_id is not None and actor.municipality_id == getattr(row, 'municipality_id', None)


def report_owner(actor, row, ctx) -> bool:
    report = getattr(row, 'report', None)
    return actor.id is not None and report is not None and report.reporter_id == actor.id


def helps_from_own_geography(actor, row, ctx) -> bool:
    """Helper must be the actor's own barangay or municipality, never the recipient."""
    if actor.role in BARANGAY_SCOPED_ROLES:
        return (
            actor.barangay_id is not None
            and row.helping_barangay_id == actor.barangay_id
            and row.helping_municipality_id is None
            and row.recipient_barangay_id != actor.barangay_id
        )
    if actor.role in MUNICIPAL_SCOPED_ROLES:
        return (
            actor.municipality_id is not None
            and row.helping_municipality_id == actor.municipality_id
            and row.helping_barangay_id is None
        )
    return False


def names_distinct_helper(actor, row, ctx) -> bool:
    if (row.helping_barangay_id is None) == (row.helping_municipality_id is None):
        return False
    return row.helping_barangay_id != row.recipient_barangay_id


def is_helping_party(actor, row, ctx) -> bool:
    if actor.role in BARANGAY_SCOPED_ROLES:
        return actor.barangay_id is not None and row.helping_barangay_id == actor.barangay_id
    if actor.role in MUNICIPAL_SCOPED_ROLES:
        return actor.municipality_id is not None and row.helping_municipality_id == actor.municipality_id
    return False


def profile_in_barangay(actor, row, ctx) -> bool:
    return actor.barangay_id is not None and row.barangay_id == actor.barangay_id


def profile_in_municipality(actor, row, ctx) -> bool:
    return actor.municipality_id is not None and row.municipality_id == actor.municipality_id


def barangay_self_scope(actor, row, ctx) -> bool:
    """Scope check for rows that *are* barangays."""
    if actor.role in BARANGAY_SCOPED_ROLES:
        return actor.barangay_id is not None and actor.barangay_id == row.id
    if actor.role in MUNICIPAL_SCOPED_ROLES:
        return actor.municipality_id is not None and actor.municipality_id == row.municipality_id
    return False


def creator_of_barangay(actor, row, ctx) -> bool:
    if ctx is None:
        return False
    membership = ctx.open_membership(actor.id)
    return (
        membership is not None
        and membership.is_creator
        and membership.barangay_id == row.barangay_id
    )


# ---------------------------------------------------------------------------
# State checks
# ---------------------------------------------------------------------------

def report_is_public(row, ctx) -> bool:
    return row.status in PUBLIC_REPORT_STATUSES


def request_is_pending(row, ctx) -> bool:
    return row.status == STATUS_PENDING


def recipient_in_need(row, ctx) -> bool:
    return ctx is not None and ctx.current_status(row.recipient_barangay_id) in NEED_STATUSES


def not_yet_delivered(row, ctx) -> bool:
    return row.delivered_at is None


def marker_is_active(row, ctx) -> bool:
    return bool(row.is_active)


def announcement_is_global(row, ctx) -> bool:
    return row.scope == SCOPE_ALL and row.barangay_id is None


def announcement_is_barangay(row, ctx) -> bool:
    return row.scope == SCOPE_BARANGAY and row.barangay_id is not None


# ---------------------------------------------------------------------------
# Policy table
# ---------------------------------------------------------------------------

ANYONE = None
ADMINS = ADMIN_ROLES
SUPER_ADMINS = frozenset({SUPER_ADMIN})
RESIDENTS = frozenset({RESIDENT})

ADMIN_ANY = Clause('admin_any', roles=ADMINS)
PUBLIC_READ = Clause('public_read', roles=ANYONE)
SCOPED_RESPONDER = Clause('scoped_responder', roles=LGU_ROLES, scope=geography_match)


POLICIES = {
    MUNICIPALITY: {
        READ: (PUBLIC_READ,),
        INSERT: (ADMIN_ANY,),
        UPDATE: (ADMIN_ANY,),
    },
    BARANGAY: {
        READ: (PUBLIC_READ,),
        INSERT: (ADMIN_ANY,),
        UPDATE: (
            ADMIN_ANY,
            Clause('scoped_responder_profile', roles=LGU_ROLES, scope=barangay_self_scope),
        ),
    },
    REFERENCE: {
        READ: (PUBLIC_READ,),
        INSERT: (ADMIN_ANY,),
        UPDATE: (ADMIN_ANY,),
    },
    PROFILE: {
        READ: (
            Clause('self', scope=owned_by('id')),
            Clause('barangay_colleague', roles=BARANGAY_SCOPED_ROLES, scope=profile_in_barangay),
            Clause('municipal_colleague', roles=MUNICIPAL_SCOPED_ROLES, scope=profile_in_municipality),
            ADMIN_ANY,
        ),
        UPDATE: (ADMIN_ANY,),
    },
    MEMBERSHIP: {
        READ: (Clause('self', scope=owned_by('user_id')), ADMIN_ANY),
        INSERT: (Clause('barangay_responder_join', roles=BARANGAY_SCOPED_ROLES, scope=owned_by('user_id')),),
        UPDATE: (Clause('member_leave', roles=BARANGAY_SCOPED_ROLES, scope=owned_by('user_id')),),
    },
    BOUNDARY_REQUEST: {
        READ: (
            Clause('requester', scope=owned_by('requested_by')),
            ADMIN_ANY,
            Clause('municipal_reviewer', roles=MUNICIPAL_SCOPED_ROLES, scope=same_municipality),
        ),
        INSERT: (
            Clause('lgu_requester', roles=LGU_ROLES, scope=owned_by('requested_by')),
        ),
        UPDATE: (
            Clause('admin_review', roles=ADMINS, state=request_is_pending),
            Clause(
                'municipal_review',
                roles=MUNICIPAL_SCOPED_ROLES,
                scope=same_municipality,
                state=request_is_pending,
            ),
        ),
    },
    CHANGE_REQUEST: {
        READ: (Clause('requester', scope=owned_by('requested_by')), ADMIN_ANY),
        INSERT: (
            Clause(
                'barangay_creator',
                roles=LGU_ROLES,
                scope=all_of(owned_by('requested_by'), creator_of_barangay),
            ),
        ),
    },
    REPORT: {
        READ: (
            Clause('reporter', scope=owned_by('reporter_id')),
            SCOPED_RESPONDER,
            ADMIN_ANY,
            Clause('public_once_acknowledged', roles=ANYONE, state=report_is_public),
        ),
        INSERT: (
            Clause('resident_self_report', roles=RESIDENTS, scope=owned_by('reporter_id')),
            Clause(
                'barangay_responder_report',
                roles=BARANGAY_SCOPED_ROLES,
                scope=all_of(owned_by('reporter_id'), same_barangay),
            ),
        ),
        UPDATE: (SCOPED_RESPONDER, ADMIN_ANY),
    },
    REPORT_NOTE: {
        READ: (
            Clause('report_owner', scope=report_owner),
            SCOPED_RESPONDER,
            ADMIN_ANY,
        ),
        INSERT: (
            Clause('scoped_responder', roles=LGU_ROLES, scope=all_of(owned_by('author_id'), geography_match)),
            Clause('admin_any', roles=ADMINS, scope=owned_by('author_id')),
        ),
    },
    STATUS_UPDATE: {
        READ: (PUBLIC_READ,),
        INSERT: (
            Clause('scoped_responder', roles=LGU_ROLES, scope=all_of(owned_by('updated_by'), geography_match)),
            Clause('admin_any', roles=ADMINS, scope=owned_by('updated_by')),
        ),
    },
    ASSISTANCE_OFFER: {
        READ: (PUBLIC_READ,),
        INSERT: (
            Clause(
                'responder_outside_recipient',
                roles=LGU_ROLES,
                scope=all_of(owned_by('created_by'), helps_from_own_geography),
                state=recipient_in_need,
            ),
            Clause(
                'admin_on_behalf',
                roles=ADMINS,
                scope=all_of(owned_by('created_by'), names_distinct_helper),
                state=recipient_in_need,
            ),
        ),
        UPDATE: (
            Clause('helping_party', roles=LGU_ROLES, scope=is_helping_party, state=not_yet_delivered),
        ),
    },
    MARKER: {
        READ: (
            Clause('active_public', roles=ANYONE, state=marker_is_active),
            SCOPED_RESPONDER,
            ADMIN_ANY,
        ),
        INSERT: (SCOPED_RESPONDER, ADMIN_ANY),
        UPDATE: (SCOPED_RESPONDER, ADMIN_ANY),
    },
    RESOURCE: {
        READ: (
            Clause('scoped_or_global', roles=LGU_ROLES, scope=geography_match_or_global),
            ADMIN_ANY,
        ),
        INSERT: (ADMIN_ANY,),
        UPDATE: (ADMIN_ANY,),
    },
    RESOURCE_REQUEST: {
        READ: (SCOPED_RESPONDER, ADMIN_ANY),
        INSERT: (
            Clause('scoped_responder', roles=LGU_ROLES, scope=all_of(owned_by('requested_by'), geography_match)),
        ),
        UPDATE: (ADMIN_ANY,),
    },
    RESOURCE_ALLOCATION: {
        READ: (SCOPED_RESPONDER, ADMIN_ANY),
        INSERT: (ADMIN_ANY,),
    },
    ANNOUNCEMENT: {
        READ: (
            Clause('global_announcement', roles=ANYONE, state=announcement_is_global),
            Clause('barangay_member', scope=same_barangay, state=announcement_is_barangay),
            ADMIN_ANY,
        ),
        INSERT: (
            Clause(
                'barangay_responder_announcement',
                roles=BARANGAY_SCOPED_ROLES,
                scope=all_of(owned_by('author_id'), same_barangay),
                state=announcement_is_barangay,
            ),
            Clause(
                'municipal_responder_announcement',
                roles=MUNICIPAL_SCOPED_ROLES,
                scope=owned_by('author_id'),
                state=announcement_is_global,
            ),
            Clause('admin_any', roles=ADMINS, scope=owned_by('author_id')),
        ),
        UPDATE: (ADMIN_ANY,),
    },
    ADMIN_INVITE: {
        READ: (
            Clause('invite_creator', roles=SUPER_ADMINS, scope=owned_by('created_by')),
            Clause('invite_claimant', scope=owned_by('used_by')),
        ),
        INSERT: (
            Clause('super_admin_issuer', roles=SUPER_ADMINS, scope=owned_by('created_by')),
        ),
    },
    NOTIFICATION: {
        READ: (Clause('recipient', scope=owned_by('user_id')),),
        UPDATE: (Clause('recipient', scope=owned_by('user_id')),),
    },
    AUDIT_LOG: {
        READ: (ADMIN_ANY,),
    },
}
