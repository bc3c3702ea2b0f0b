"""Creator-submitted change requests against an existing barangay."""
from sqlalchemy import Index

from apps.api import db
from apps.api.utils.time import utc_now


REQUEST_TYPE_DELETE = 'delete_barangay'


class BarangayChangeRequest(db.Model):
    __tablename__ = 'barangay_change_requests'

    id = db.Column(db.Integer, primary_key=True)
    barangay_id = db.Column(db.Integer, db.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False)
    requested_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    request_type = db.Column(db.String(30), nullable=False, default=REQUEST_TYPE_DELETE)
    reason = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default='pending')
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_change_request_barangay', 'barangay_id'),
        Index('idx_change_request_status', 'status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'barangay_id': self.barangay_id,
            'requested_by': self.requested_by,
            'request_type': self.request_type,
            'reason': self.reason,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
