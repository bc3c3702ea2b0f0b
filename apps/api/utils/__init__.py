"""Utility functions for the API."""

from .validators import (
    validate_email,
    validate_phone,
    validate_name,
    validate_geometry,
    validate_url_list,
    validate_required_fields,
    sanitize_string,
    ValidationError,
)

from .security import (
    APIError,
    PermissionDenied,
    StateConflict,
    NotFound,
    sanitize_log_message,
)

__all__ = [
    # Validators
    'validate_email',
    'validate_phone',
    'validate_name',
    'validate_geometry',
    'validate_url_list',
    'validate_required_fields',
    'sanitize_string',
    'ValidationError',
    # Errors
    'APIError',
    'PermissionDenied',
    'StateConflict',
    'NotFound',
    'sanitize_log_message',
]
