"""Change feed for watched tables.

Changes are collected on flush and published through the ``record_changed``
Blinker signal only after the transaction commits. A rolled back
transaction publishes nothing.

Subscribers receive every change; before forwarding one to a client they
must call ``visible_change(actor, event)``, which applies the same read
rules as a direct query.
"""
import logging
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any, Dict, Optional

from blinker import Namespace
from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from .access import READ
from .policies import REPORT, STATUS_UPDATE, BARANGAY, ASSISTANCE_OFFER


logger = logging.getLogger(__name__)

_signals = Namespace()
record_changed = _signals.signal('record_changed')

WATCHED_TABLES = {
    'reports': REPORT,
    'barangay_status_updates': STATUS_UPDATE,
    'barangays': BARANGAY,
    'barangay_assistance_offers': ASSISTANCE_OFFER,
}

_PENDING_KEY = 'pending_record_changes'
_installed = False


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    operation: str
    row_id: Optional[int]
    snapshot: Dict[str, Any] = field(default_factory=dict)

    @property
    def resource_type(self) -> Optional[str]:
        return WATCHED_TABLES.get(self.table)


def _snapshot(obj) -> Dict[str, Any]:
    mapper = inspect(obj).mapper
    return {attr.key: getattr(obj, attr.key) for attr in mapper.column_attrs}


def _queue(session, obj, operation: str) -> None:
    table = getattr(obj, '__tablename__', None)
    if table not in WATCHED_TABLES:
        return
    session.info.setdefault(_PENDING_KEY, []).append(
        ChangeEvent(table, operation, getattr(obj, 'id', None), _snapshot(obj))
    )


def note_change(session, obj, operation: str = 'update') -> None:
    """Queue a change made with a bulk UPDATE, which skips flush events."""
    _queue(session, obj, operation)


def _after_flush(session, flush_context):
    for obj in session.new:
        _queue(session, obj, 'insert')
    for obj in session.dirty:
        if session.is_modified(obj, include_collections=False):
            _queue(session, obj, 'update')
    for obj in session.deleted:
        _queue(session, obj, 'delete')


def _after_commit(session):
    pending = session.info.pop(_PENDING_KEY, [])
    for change in pending:
        try:
            record_changed.send(change.table, event=change)
        except Exception:
            # Commit is already done; subscriber errors are only logged
            logger.exception("record_changed subscriber failed for %s:%s", change.table, change.row_id)


def _after_rollback(session):
    session.info.pop(_PENDING_KEY, None)


def install_change_feed() -> None:
    global _installed
    if _installed:
        return
    event.listen(Session, 'after_flush', _after_flush)
    event.listen(Session, 'after_commit', _after_commit)
    event.listen(Session, 'after_rollback', _after_rollback)
    _installed = True


def visible_change(actor, change: ChangeEvent, engine=None) -> bool:
    """Whether ``actor`` may see the row carried by ``change``."""
    resource_type = change.resource_type
    if resource_type is None:
        return False
    if engine is None:
        from .access import access_engine
        engine = access_engine()
    row = SimpleNamespace(**change.snapshot)
    return engine.can_perform(actor, READ, resource_type, row)
