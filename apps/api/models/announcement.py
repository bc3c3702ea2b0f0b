"""DisasterLink - Announcement Model
Announcements are either network-wide (scope ``all``) or addressed to one barangay.
"""
from sqlalchemy import Index, CheckConstraint

from apps.api import db
from apps.api.utils.time import utc_now


SCOPE_ALL = 'all'
SCOPE_BARANGAY = 'barangay'
ANNOUNCEMENT_SCOPES = (SCOPE_ALL, SCOPE_BARANGAY)


class Announcement(db.Model):
    """Announcement model for network-wide or barangay communications."""

    __tablename__ = 'announcements'

    id = db.Column(db.Integer, primary_key=True)
    author_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    barangay_id = db.Column(db.Integer, db.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=True)
    scope = db.Column(db.String(20), nullable=False, default=SCOPE_BARANGAY)
    title = db.Column(db.String(200), nullable=False)
    body = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    barangay = db.relationship('Barangay', backref='announcements')
    author = db.relationship('User', backref='authored_announcements')

    __table_args__ = (
        Index('idx_announcement_barangay', 'barangay_id'),
        Index('idx_announcement_scope', 'scope'),
        Index('idx_announcement_created', 'created_at'),
        CheckConstraint(
            "(scope = 'all' AND barangay_id IS NULL) OR (scope = 'barangay' AND barangay_id IS NOT NULL)",
            name='ck_announcement_scope_barangay',
        ),
    )

    def __repr__(self):
        return f'<Announcement {self.title}>'

    def to_dict(self):
        return {
            'id': self.id,
            'author_id': self.author_id,
            'barangay_id': self.barangay_id,
            'barangay_name': self.barangay.name if self.barangay else None,
            'scope': self.scope,
            'title': self.title,
            'body': self.body,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
