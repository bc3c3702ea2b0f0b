"""Audit log for affiliation, invite and verification transitions."""
from sqlalchemy import Index

from apps.api import db
from apps.api.utils.time import utc_now


class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)

    # Who performed the action (nullable for pre-auth events)
    actor_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    actor_role = db.Column(db.String(30), nullable=True)

    action = db.Column(db.String(100), nullable=False)
    resource_type = db.Column(db.String(50), nullable=True)
    resource_id = db.Column(db.Integer, nullable=True)

    # Request context
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.Text, nullable=True)

    details = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_audit_actor', 'actor_id'),
        Index('idx_audit_action', 'action'),
        Index('idx_audit_created', 'created_at'),
        Index('idx_audit_resource', 'resource_type', 'resource_id'),
    )

    def __repr__(self):
        return f'<AuditLog {self.id}: {self.action} by {self.actor_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'actor_id': self.actor_id,
            'actor_role': self.actor_role,
            'action': self.action,
            'resource_type': self.resource_type,
            'resource_id': self.resource_id,
            'ip_address': self.ip_address,
            'details': self.details,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class AuditAction:
    """Constants for audit log actions."""

    BOUNDARY_REQUEST_SUBMITTED = 'boundary_request_submitted'
    BOUNDARY_REQUEST_APPROVED = 'boundary_request_approved'
    BOUNDARY_REQUEST_REJECTED = 'boundary_request_rejected'

    BARANGAY_JOINED = 'barangay_joined'
    BARANGAY_LEFT = 'barangay_left'
    BARANGAY_TRANSFERRED = 'barangay_transferred'
    BARANGAY_DELETE_REQUESTED = 'barangay_delete_requested'
    BARANGAY_CREATED = 'barangay_created'
    MUNICIPALITY_CREATED = 'municipality_created'

    ADMIN_INVITE_CREATED = 'admin_invite_created'
    ADMIN_INVITE_CLAIMED = 'admin_invite_claimed'

    EMPLOYMENT_PROOF_VERIFIED = 'employment_proof_verified'
    ACTOR_REGISTERED = 'actor_registered'
