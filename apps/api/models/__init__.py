"""
DisasterLink - Database Models
Import all models here for Flask-Migrate to detect them
"""
from apps.api import db

# Base model will be imported by other models
Base = db.Model

# Import all models to register them with SQLAlchemy
from .user import User
from .municipality import Municipality, Barangay
from .membership import BarangayMembership
from .boundary_request import BarangayBoundaryRequest
from .change_request import BarangayChangeRequest
from .report import ReportType, Report, ReportNote
from .barangay_status import BarangayStatusUpdate
from .assistance import AssistanceOffer
from .marker import MarkerType, OfficialMarker
from .resource import ResourceType, Resource, ResourceRequest, ResourceAllocation
from .announcement import Announcement
from .admin_invite import AdminInvite
from .notification import Notification
from .audit import AuditLog, AuditAction

__all__ = [
    'User',
    'Municipality',
    'Barangay',
    'BarangayMembership',
    'BarangayBoundaryRequest',
    'BarangayChangeRequest',
    'ReportType',
    'Report',
    'ReportNote',
    'BarangayStatusUpdate',
    'AssistanceOffer',
    'MarkerType',
    'OfficialMarker',
    'ResourceType',
    'Resource',
    'ResourceRequest',
    'ResourceAllocation',
    'Announcement',
    'AdminInvite',
    'Notification',
    'AuditLog',
    'AuditAction',
]
