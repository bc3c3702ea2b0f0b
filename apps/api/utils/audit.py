"""Audit trail for lifecycle transitions.

Entries join the caller's transaction: they are committed or rolled back
together with the change they describe.
"""
from flask import request, current_app, has_request_context

from apps.api import db
from apps.api.models.audit import AuditLog, AuditAction


def _request_origin(req=None):
    r = req or (request if has_request_context() else None)
    if r is None:
        return None, None
    ip_address = r.headers.get('X-Forwarded-For', '').split(',')[0].strip()
    if not ip_address:
        ip_address = r.headers.get('X-Real-IP') or r.remote_addr
    return ip_address, r.headers.get('User-Agent')


def log_action(
    actor=None,
    action: str = None,
    resource_type: str = None,
    resource_id: int = None,
    details: dict = None,
    req=None
) -> AuditLog:
    """
    Add an audit entry to the current session.

    Args:
        actor: The ``Actor`` performing the action (optional for pre-auth events)
        action: The action being performed (use AuditAction constants)
        resource_type: The type of resource being acted upon (optional)
        resource_id: The ID of the resource (optional)
        details: Additional details as a dict (optional)
        req: The Flask request object (optional, uses global request if available)

    Returns:
        The pending AuditLog instance
    """
    if not action:
        raise ValueError("action is required")

    ip_address, user_agent = _request_origin(req)
    entry = AuditLog(
        actor_id=getattr(actor, 'id', None),
        actor_role=getattr(actor, 'role', None),
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        ip_address=ip_address,
        user_agent=user_agent,
        details=details or {},
    )
    db.session.add(entry)
    current_app.logger.info(
        f"Audit: {action} by {getattr(actor, 'id', None)} on {resource_type}:{resource_id}"
    )
    return entry


__all__ = ['log_action', 'AuditAction']
