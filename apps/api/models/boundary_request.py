"""Barangay boundary request model (pending -> approved | rejected)."""
from sqlalchemy import Index

from apps.api import db
from apps.api.utils.time import utc_now


STATUS_PENDING = 'pending'
STATUS_APPROVED = 'approved'
STATUS_REJECTED = 'rejected'
BOUNDARY_REQUEST_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


class BarangayBoundaryRequest(db.Model):
    __tablename__ = 'barangay_boundary_requests'

    id = db.Column(db.Integer, primary_key=True)
    requested_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    municipality_id = db.Column(db.Integer, db.ForeignKey('municipalities.id'), nullable=False)
    barangay_id = db.Column(db.Integer, db.ForeignKey('barangays.id'), nullable=True)  # null = new barangay
    barangay_name = db.Column(db.String(150), nullable=False)
    boundary_geojson = db.Column(db.JSON(none_as_null=True), nullable=False)
    contact_email = db.Column(db.String(255), nullable=False)
    contact_phone = db.Column(db.String(20), nullable=False)
    description = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    reviewed_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    requester = db.relationship('User', foreign_keys=[requested_by])
    reviewer = db.relationship('User', foreign_keys=[reviewed_by])
    municipality = db.relationship('Municipality')

    __table_args__ = (
        Index('idx_boundary_request_status', 'status'),
        Index('idx_boundary_request_municipality', 'municipality_id'),
        Index('idx_boundary_request_requester', 'requested_by'),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    def to_dict(self, include_geometry: bool = True):
        data = {
            'id': self.id,
            'requested_by': self.requested_by,
            'municipality_id': self.municipality_id,
            'barangay_id': self.barangay_id,
            'barangay_name': self.barangay_name,
            'contact_email': self.contact_email,
            'contact_phone': self.contact_phone,
            'description': self.description,
            'status': self.status,
            'reviewed_by': self.reviewed_by,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
            'rejection_reason': self.rejection_reason,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_geometry:
            data['boundary_geojson'] = self.boundary_geojson
        return data
