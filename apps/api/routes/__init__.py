"""API Routes - Import all blueprints here."""

from .auth import auth_bp
from .municipalities import municipalities_bp
from .boundaries import boundaries_bp
from .reports import reports_bp
from .barangay_status import barangay_status_bp
from .markers import markers_bp
from .resources import resources_bp
from .announcements import announcements_bp
from .admin_invites import admin_invites_bp
from .notifications import notifications_bp
from .admin import admin_bp

__all__ = [
    'auth_bp',
    'municipalities_bp',
    'boundaries_bp',
    'reports_bp',
    'barangay_status_bp',
    'markers_bp',
    'resources_bp',
    'announcements_bp',
    'admin_invites_bp',
    'notifications_bp',
    'admin_bp',
    'ALL_BLUEPRINTS',
]

# Registration order for create_app
ALL_BLUEPRINTS = (
    auth_bp,
    municipalities_bp,
    boundaries_bp,
    reports_bp,
    barangay_status_bp,
    markers_bp,
    resources_bp,
    announcements_bp,
    admin_invites_bp,
    notifications_bp,
    admin_bp,
)
