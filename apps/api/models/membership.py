"""Barangay membership history (source of truth for affiliation)."""
from sqlalchemy import Index, text

from apps.api import db
from apps.api.utils.time import utc_now


class BarangayMembership(db.Model):
    __tablename__ = 'barangay_memberships'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    barangay_id = db.Column(db.Integer, db.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False)
    is_creator = db.Column(db.Boolean, nullable=False, default=False)
    joined_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    left_at = db.Column(db.DateTime, nullable=True)
    leave_reason = db.Column(db.Text, nullable=True)

    user = db.relationship('User', backref=db.backref('memberships', lazy='dynamic'))
    barangay = db.relationship('Barangay', backref=db.backref('memberships', lazy='dynamic'))

    __table_args__ = (
        Index('idx_membership_user', 'user_id'),
        Index('idx_membership_barangay', 'barangay_id'),
        # At most one open membership per user
        Index(
            'uq_membership_open_user',
            'user_id',
            unique=True,
            sqlite_where=text('left_at IS NULL'),
            postgresql_where=text('left_at IS NULL'),
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.left_at is None

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'barangay_id': self.barangay_id,
            'is_creator': bool(self.is_creator),
            'joined_at': self.joined_at.isoformat() if self.joined_at else None,
            'left_at': self.left_at.isoformat() if self.left_at else None,
            'leave_reason': self.leave_reason,
        }
