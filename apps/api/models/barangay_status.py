"""Append-only barangay status log. The newest row is the current status."""
from sqlalchemy import Index

from apps.api import db
from apps.api.utils.time import utc_now


STATUS_NORMAL = 'normal'
STATUS_NEED_RESOURCES = 'in_need_of_resources'
STATUS_NEED_MANPOWER = 'in_need_of_manpower'
STATUS_ACTIVE_DISASTER = 'active_disaster'

BARANGAY_STATUSES = (STATUS_NORMAL, STATUS_NEED_RESOURCES, STATUS_NEED_MANPOWER, STATUS_ACTIVE_DISASTER)
NEED_STATUSES = frozenset({STATUS_NEED_RESOURCES, STATUS_NEED_MANPOWER, STATUS_ACTIVE_DISASTER})


class BarangayStatusUpdate(db.Model):
    __tablename__ = 'barangay_status_updates'

    id = db.Column(db.Integer, primary_key=True)
    barangay_id = db.Column(db.Integer, db.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False)
    updated_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    status = db.Column(db.String(30), nullable=False, default=STATUS_NORMAL)
    description = db.Column(db.Text, nullable=True)
    photo_urls = db.Column(db.JSON, nullable=False, default=list)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    barangay = db.relationship('Barangay', backref=db.backref('status_updates', lazy='dynamic'))

    __table_args__ = (
        Index('idx_status_update_barangay_created', 'barangay_id', 'created_at'),
    )

    @property
    def is_need(self) -> bool:
        return self.status in NEED_STATUSES

    def to_dict(self):
        return {
            'id': self.id,
            'barangay_id': self.barangay_id,
            'updated_by': self.updated_by,
            'status': self.status,
            'description': self.description,
            'photo_urls': list(self.photo_urls or []),
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
