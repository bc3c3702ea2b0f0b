"""Input validators.

Validation runs before any access check; a ``ValidationError`` echoes its
message to the caller.
"""
import re
from urllib.parse import urlparse

from .security import APIError


EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
# Philippine mobile numbers: 09XXXXXXXXX, +639XXXXXXXXX or 639XXXXXXXXX
PHONE_PATTERN = re.compile(r'^(?:\+?63|0)9\d{9}$')
GEOMETRY_TYPES = ('Polygon', 'MultiPolygon')


class ValidationError(APIError):
    """Malformed input."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message, code='VALIDATION_ERROR', status_code=400)
        self.field = field

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.field:
            payload['field'] = self.field
        return payload


def sanitize_string(value, max_length: int = None):
    """Trim a string value; empty strings become ``None``."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    if max_length:
        value = value[:max_length]
    return value or None


def validate_required_fields(data: dict, fields) -> None:
    missing = [f for f in fields if data.get(f) in (None, '')]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", field=missing[0])


def validate_email(email) -> str:
    """Return the normalised email or raise."""
    value = sanitize_string(email)
    if not value:
        raise ValidationError('Email is required', field='email')
    value = value.lower()
    if not EMAIL_PATTERN.match(value):
        raise ValidationError('Invalid email format', field='email')
    return value


def validate_phone(phone) -> str:
    """Return the phone number with separators stripped, or raise."""
    value = sanitize_string(phone)
    if not value:
        raise ValidationError('Phone number is required', field='phone')
    compact = re.sub(r'[\s\-()]', '', value)
    if not PHONE_PATTERN.match(compact):
        raise ValidationError('Invalid Philippine mobile number (e.g. 09171234567)', field='phone')
    return compact


def validate_name(name, field: str = 'name', max_length: int = 200) -> str:
    value = sanitize_string(name)
    if not value:
        raise ValidationError(f'{field.replace("_", " ").capitalize()} is required', field=field)
    if len(value) > max_length:
        raise ValidationError(f'{field} must be at most {max_length} characters', field=field)
    return value


def validate_geometry(geometry, field: str = 'geometry') -> dict:
    """Accept a GeoJSON Polygon or MultiPolygon object (or a Feature wrapping one)."""
    if geometry is None:
        raise ValidationError('Boundary geometry is required', field=field)
    if not isinstance(geometry, dict):
        raise ValidationError('Boundary geometry must be a GeoJSON object', field=field)
    if geometry.get('type') == 'Feature':
        geometry = geometry.get('geometry') or {}
    if geometry.get('type') not in GEOMETRY_TYPES:
        raise ValidationError('Boundary geometry must be a Polygon or MultiPolygon', field=field)
    coordinates = geometry.get('coordinates')
    if not isinstance(coordinates, list) or not coordinates:
        raise ValidationError('Boundary geometry has no coordinates', field=field)
    return {'type': geometry['type'], 'coordinates': coordinates}


def validate_url(url, field: str = 'url') -> str:
    value = sanitize_string(url)
    if not value:
        raise ValidationError('URL is required', field=field)
    parsed = urlparse(value)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ValidationError('Invalid URL', field=field)
    return value


def validate_url_list(urls, field: str = 'photo_urls', max_items: int = 10) -> list:
    if urls in (None, ''):
        return []
    if not isinstance(urls, (list, tuple)):
        raise ValidationError('Expected a list of URLs', field=field)
    if len(urls) > max_items:
        raise ValidationError(f'At most {max_items} URLs allowed', field=field)
    return [validate_url(u, field=field) for u in urls]


def validate_coordinate(value, field: str, limit: float):
    if value in (None, ''):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a number', field=field)
    if not -limit <= number <= limit:
        raise ValidationError(f'{field} is out of range', field=field)
    return number


def validate_positive_int(value, field: str) -> int:
    # bool is an int subclass; 1.7 must not truncate to 1
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be an integer', field=field)
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f'{field} must be an integer', field=field)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer', field=field)
    if number <= 0:
        raise ValidationError(f'{field} must be positive', field=field)
    return number


def page_limit(value, default: int, maximum: int) -> int:
    """Clamp a ``?limit=`` query value into ``1..maximum``."""
    if value is None:
        return default
    return max(1, min(value, maximum))


def validate_min_length(value, minimum: int, field: str, label: str = None) -> str:
    text = sanitize_string(value) or ''
    if len(text) < minimum:
        raise ValidationError(
            f'{label or field.capitalize()} must be at least {minimum} characters',
            field=field,
        )
    return text
