"""Error taxonomy and log hygiene for the DisasterLink API.

Every failure an operation can report is an ``APIError`` subclass; the app
factory renders them as ``{"error": message, "code": CODE}`` and rolls the
session back. Messages are safe to show to clients; ``details`` only appear
in debug mode and denial reasons only in the server log.
"""
import re
from typing import Iterable
from flask import current_app, has_app_context


class APIError(Exception):
    """Base exception for API errors with safe error messages."""

    def __init__(self, message: str, code: str = None, status_code: int = 500, details: str = None):
        super().__init__(message)
        self.message = message
        self.code = code or 'ERROR'
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        payload = {'error': self.message, 'code': self.code}
        if self.details and has_app_context() and current_app.config.get('DEBUG'):
            payload['details'] = self.details
        return payload


class PermissionDenied(APIError):
    """No allow clause matched.

    The caller only ever sees the generic message; ``reason`` names the
    evaluated clauses and is written to the server log.
    """

    def __init__(self, reason: str = None, message: str = 'You do not have permission to perform this action'):
        super().__init__(message, code='PERMISSION_DENIED', status_code=403)
        self.reason = reason


class StateConflict(APIError):
    """The target is not in the state the operation requires."""

    def __init__(self, message: str, code: str = 'STATE_CONFLICT'):
        super().__init__(message, code=code, status_code=409)


class NotFound(APIError):
    """Unknown id, or a row the actor is not allowed to see."""

    def __init__(self, resource: str = None):
        super().__init__('Not found', code='NOT_FOUND', status_code=404)
        self.resource = resource


SENSITIVE_FIELDS = frozenset({'password', 'token', 'secret', 'invite_code', 'code', 'authorization'})


def sanitize_log_message(message: str, sensitive_fields: Iterable[str] = SENSITIVE_FIELDS) -> str:
    """Redact ``field=value`` / ``"field": "value"`` pairs before logging."""
    sanitized = message
    for field in sensitive_fields:
        sanitized = re.sub(
            rf"(\b{field}['\"]?\s*[:=]\s*['\"]?)([^'\",\s]+)",
            r'\1[REDACTED]',
            sanitized,
            flags=re.IGNORECASE,
        )
    return sanitized
