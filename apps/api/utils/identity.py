"""Roles, geography scopes and the ``Actor`` value passed to every access check.

Role strings are stored on ``users.role``. Accounts created before the
barangay/municipal split still carry ``lgu_responder``; that value is kept
for compatibility and always treated as barangay-scoped.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select

from apps.api import db


RESIDENT = 'resident'
BARANGAY_RESPONDER = 'barangay_responder'
MUNICIPAL_RESPONDER = 'municipal_responder'
LEGACY_LGU_RESPONDER = 'lgu_responder'
ADMIN = 'admin'
SUPER_ADMIN = 'super_admin'

ROLES = (RESIDENT, BARANGAY_RESPONDER, MUNICIPAL_RESPONDER, LEGACY_LGU_RESPONDER, ADMIN, SUPER_ADMIN)

# Accepted spellings on input
ROLE_ALIASES = {
    'legacy_lgu_responder': LEGACY_LGU_RESPONDER,
    'superadmin': SUPER_ADMIN,
}

LEGACY_BARANGAY_ROLES = frozenset({LEGACY_LGU_RESPONDER})
BARANGAY_SCOPED_ROLES = frozenset({BARANGAY_RESPONDER}) | LEGACY_BARANGAY_ROLES
MUNICIPAL_SCOPED_ROLES = frozenset({MUNICIPAL_RESPONDER})
LGU_ROLES = BARANGAY_SCOPED_ROLES | MUNICIPAL_SCOPED_ROLES
ADMIN_ROLES = frozenset({ADMIN, SUPER_ADMIN})
SELF_REGISTER_ROLES = frozenset({RESIDENT, BARANGAY_RESPONDER, MUNICIPAL_RESPONDER})

SCOPE_NONE = 'none'
SCOPE_BARANGAY = 'barangay'
SCOPE_MUNICIPALITY = 'municipality'
SCOPE_GLOBAL = 'global'


def normalize_role(role) -> Optional[str]:
    """Return the stored role string for ``role`` or ``None`` if unknown."""
    if not role:
        return None
    value = str(role).strip().lower()
    value = ROLE_ALIASES.get(value, value)
    return value if value in ROLES else None


def canonical_scope(role) -> str:
    """Map any role, legacy ones included, to the geography it is scoped to."""
    role = normalize_role(role)
    if role in BARANGAY_SCOPED_ROLES:
        return SCOPE_BARANGAY
    if role in MUNICIPAL_SCOPED_ROLES:
        return SCOPE_MUNICIPALITY
    if role in ADMIN_ROLES:
        return SCOPE_GLOBAL
    return SCOPE_NONE


def is_lgu_type(role) -> bool:
    return normalize_role(role) in LGU_ROLES


def is_admin_role(role) -> bool:
    return normalize_role(role) in ADMIN_ROLES


@dataclass(frozen=True)
class Actor:
    """Snapshot of who is asking, taken from one read of the users row."""

    id: Optional[int]
    role: Optional[str]
    barangay_id: Optional[int] = None
    municipality_id: Optional[int] = None

    @classmethod
    def anonymous(cls) -> 'Actor':
        return cls(id=None, role=None)

    @classmethod
    def from_user(cls, user) -> 'Actor':
        return cls.from_values(user.id, user.role, user.barangay_id, user.municipality_id)

    @classmethod
    def from_values(cls, actor_id, role, barangay_id=None, municipality_id=None) -> 'Actor':
        role = normalize_role(role)
        scope = canonical_scope(role)
        if scope == SCOPE_BARANGAY:
            return cls(actor_id, role, barangay_id, municipality_id if barangay_id else None)
        if scope == SCOPE_MUNICIPALITY:
            return cls(actor_id, role, None, municipality_id)
        # Residents keep their home barangay for barangay-scoped announcements
        if role == RESIDENT:
            return cls(actor_id, role, barangay_id, municipality_id)
        return cls(actor_id, role)

    @property
    def is_authenticated(self) -> bool:
        return self.id is not None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_lgu(self) -> bool:
        return self.role in LGU_ROLES

    @property
    def scope(self) -> str:
        return canonical_scope(self.role)

    @property
    def is_affiliated(self) -> bool:
        if self.scope == SCOPE_BARANGAY:
            return self.barangay_id is not None
        if self.scope == SCOPE_MUNICIPALITY:
            return self.municipality_id is not None
        return False


def load_actor(actor_id) -> Optional[Actor]:
    """Build an Actor from a single SELECT so role and affiliation agree."""
    from apps.api.models.user import User

    try:
        actor_id = int(actor_id)
    except (TypeError, ValueError):
        return None
    row = db.session.execute(
        select(User.id, User.role, User.barangay_id, User.municipality_id, User.is_active)
        .where(User.id == actor_id)
    ).first()
    if row is None or not row.is_active:
        return None
    return Actor.from_values(row.id, row.role, row.barangay_id, row.municipality_id)


def current_role(actor_id) -> Optional[str]:
    actor = load_actor(actor_id)
    return actor.role if actor else None


def current_affiliation(actor_id) -> dict:
    actor = load_actor(actor_id)
    if actor is None:
        return {'barangay_id': None, 'municipality_id': None}
    return {'barangay_id': actor.barangay_id, 'municipality_id': actor.municipality_id}
