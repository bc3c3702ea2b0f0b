"""Assistance offers from a helping barangay or municipality to a barangay in need."""
from sqlalchemy import Index, CheckConstraint

from apps.api import db
from apps.api.utils.time import utc_now


class AssistanceOffer(db.Model):
    __tablename__ = 'barangay_assistance_offers'

    id = db.Column(db.Integer, primary_key=True)
    helping_barangay_id = db.Column(db.Integer, db.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=True)
    helping_municipality_id = db.Column(db.Integer, db.ForeignKey('municipalities.id', ondelete='CASCADE'), nullable=True)
    recipient_barangay_id = db.Column(db.Integer, db.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False)
    status_update_id = db.Column(db.Integer, db.ForeignKey('barangay_status_updates.id', ondelete='SET NULL'), nullable=True)
    description = db.Column(db.Text, nullable=False)
    expected_arrival_at = db.Column(db.DateTime, nullable=True)
    delivered_at = db.Column(db.DateTime, nullable=True)
    assistance_image_url = db.Column(db.String(500), nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    helping_barangay = db.relationship('Barangay', foreign_keys=[helping_barangay_id])
    helping_municipality = db.relationship('Municipality', foreign_keys=[helping_municipality_id])
    recipient_barangay = db.relationship('Barangay', foreign_keys=[recipient_barangay_id])

    __table_args__ = (
        Index('idx_assistance_recipient', 'recipient_barangay_id'),
        Index('idx_assistance_helping_barangay', 'helping_barangay_id'),
        Index('idx_assistance_helping_municipality', 'helping_municipality_id'),
        CheckConstraint(
            '(helping_barangay_id IS NULL) <> (helping_municipality_id IS NULL)',
            name='ck_assistance_single_helper',
        ),
        CheckConstraint(
            'helping_barangay_id IS NULL OR helping_barangay_id <> recipient_barangay_id',
            name='ck_assistance_not_self',
        ),
    )

    @property
    def barangay_id(self):
        return self.recipient_barangay_id

    def to_dict(self):
        return {
            'id': self.id,
            'helping_barangay_id': self.helping_barangay_id,
            'helping_municipality_id': self.helping_municipality_id,
            'helping_name': (
                self.helping_barangay.name if self.helping_barangay
                else (self.helping_municipality.name if self.helping_municipality else None)
            ),
            'recipient_barangay_id': self.recipient_barangay_id,
            'status_update_id': self.status_update_id,
            'description': self.description,
            'expected_arrival_at': self.expected_arrival_at.isoformat() if self.expected_arrival_at else None,
            'delivered_at': self.delivered_at.isoformat() if self.delivered_at else None,
            'assistance_image_url': self.assistance_image_url,
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
