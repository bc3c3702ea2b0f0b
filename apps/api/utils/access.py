"""Access predicate engine.

Each resource type maps an operation to a tuple of allow ``Clause``s. A clause
matches when its role set, scope check and state check all hold. The engine
allows if any clause matches and denies otherwise; there are no deny rules.

The engine never reads request state. Everything it needs arrives as the
``Actor``, the row, and the lookups held by ``AccessContext``.
"""
import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, Mapping, Optional, Tuple

from .security import PermissionDenied, NotFound


logger = logging.getLogger(__name__)

READ = 'read'
INSERT = 'insert'
UPDATE = 'update'
OPERATIONS = (READ, INSERT, UPDATE)


@dataclass(frozen=True)
class Clause:
    """One allow rule: ``roles`` (None = any actor), then scope, then state."""

    name: str
    roles: Optional[FrozenSet[str]] = None
    scope: Optional[Callable] = None
    state: Optional[Callable] = None

    def matches(self, actor, row, ctx) -> bool:
        if self.roles is not None and actor.role not in self.roles:
            return False
        if self.scope is not None and not self.scope(actor, row, ctx):
            return False
        if self.state is not None and not self.state(row, ctx):
            return False
        return True


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    resource_type: str
    operation: str
    clause: Optional[str] = None
    evaluated: Tuple[str, ...] = ()

    def __bool__(self):
        return self.allowed

    @property
    def reason(self) -> str:
        if self.allowed:
            return f'{self.resource_type}:{self.operation} allowed by {self.clause}'
        checked = ', '.join(self.evaluated) or 'no clauses defined'
        return f'{self.resource_type}:{self.operation} matched no allow clause (checked: {checked})'


class AccessContext:
    """Lookups a clause may need beyond the row itself.

    Args:
        directory: geography directory (``municipality_of``/``municipality_contains``)
        status_of: callable ``barangay_id -> current status string``
        membership_of: callable ``actor_id -> open membership or None``
    """

    def __init__(self, directory, status_of: Callable = None, membership_of: Callable = None):
        self.directory = directory
        self._status_of = status_of
        self._membership_of = membership_of

    def municipality_contains(self, municipality_id, barangay_id) -> bool:
        return self.directory.municipality_contains(municipality_id, barangay_id)

    def current_status(self, barangay_id) -> Optional[str]:
        if self._status_of is None or barangay_id is None:
            return None
        return self._status_of(barangay_id)

    def open_membership(self, actor_id):
        if self._membership_of is None or actor_id is None:
            return None
        return self._membership_of(actor_id)


class AccessEngine:
    def __init__(self, policies: Mapping[str, Mapping[str, Tuple[Clause, ...]]] = None, context: AccessContext = None):
        if policies is None:
            from .policies import POLICIES
            policies = POLICIES
        self.policies = policies
        self.context = context

    def clauses_for(self, resource_type: str, operation: str) -> Tuple[Clause, ...]:
        return tuple(self.policies.get(resource_type, {}).get(operation, ()))

    def decide(self, actor, operation: str, resource_type: str, row) -> AccessDecision:
        clauses = self.clauses_for(resource_type, operation)
        evaluated = []
        for clause in clauses:
            evaluated.append(clause.name)
            if clause.matches(actor, row, self.context):
                return AccessDecision(True, resource_type, operation, clause.name, tuple(evaluated))
        return AccessDecision(False, resource_type, operation, None, tuple(evaluated))

    def can_perform(self, actor, operation: str, resource_type: str, row) -> bool:
        return self.decide(actor, operation, resource_type, row).allowed

    def require(self, actor, operation: str, resource_type: str, row) -> AccessDecision:
        """Return the allowing decision or raise ``PermissionDenied``."""
        decision = self.decide(actor, operation, resource_type, row)
        if not decision.allowed:
            logger.warning(
                "Access denied for actor %s (%s): %s",
                actor.id, actor.role or 'anonymous', decision.reason,
            )
            raise PermissionDenied(reason=decision.reason)
        return decision

    def require_visible(self, actor, resource_type: str, row):
        """Return ``row`` if readable; missing and hidden rows both raise ``NotFound``."""
        if row is None:
            raise NotFound(resource_type)
        decision = self.decide(actor, READ, resource_type, row)
        if not decision.allowed:
            logger.info(
                "Hidden %s for actor %s (%s): %s",
                resource_type, actor.id, actor.role or 'anonymous', decision.reason,
            )
            raise NotFound(resource_type)
        return row

    def filter_visible(self, actor, resource_type: str, rows: Iterable) -> list:
        return [row for row in rows if self.decide(actor, READ, resource_type, row).allowed]

    def visible_page(self, actor, resource_type: str, query, limit: int, batch_size: int = 200) -> list:
        """First ``limit`` readable rows of an ordered ``query``.

        Rows are checked before they count toward the page, so hidden rows
        never push a readable row off it. The query must have a total order.
        """
        visible = []
        offset = 0
        while len(visible) < limit:
            batch = query.offset(offset).limit(batch_size).all()
            visible.extend(self.filter_visible(actor, resource_type, batch))
            if len(batch) < batch_size:
                break
            offset += batch_size
        return visible[:limit]


def access_engine() -> AccessEngine:
    """Engine wired to the store-backed geography, status and membership lookups."""
    from .geography import GeographyDirectory
    from .barangay_status import current_status_value
    from .affiliation import open_membership

    return AccessEngine(context=AccessContext(
        GeographyDirectory(),
        status_of=current_status_value,
        membership_of=open_membership,
    ))
