"""Hazard report models."""
from sqlalchemy import Index

from apps.api import db
from apps.api.utils.time import utc_now


REPORT_PENDING = 'pending'
REPORT_ACKNOWLEDGED = 'acknowledged'
REPORT_RESOLVED = 'resolved'
# Order matters: transitions only move forward along this tuple
REPORT_STATUSES = (REPORT_PENDING, REPORT_ACKNOWLEDGED, REPORT_RESOLVED)
PUBLIC_REPORT_STATUSES = frozenset({REPORT_ACKNOWLEDGED, REPORT_RESOLVED})


class ReportType(db.Model):
    __tablename__ = 'report_types'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'slug': self.slug, 'sort_order': self.sort_order}


class Report(db.Model):
    __tablename__ = 'reports'

    id = db.Column(db.Integer, primary_key=True)
    reporter_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    barangay_id = db.Column(db.Integer, db.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False)
    report_type_id = db.Column(db.Integer, db.ForeignKey('report_types.id'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=REPORT_PENDING)
    title = db.Column(db.String(200), nullable=True)
    description = db.Column(db.Text, nullable=True)
    gps_lat = db.Column(db.Float, nullable=True)
    gps_lng = db.Column(db.Float, nullable=True)
    photo_urls = db.Column(db.JSON, nullable=False, default=list)
    video_urls = db.Column(db.JSON, nullable=False, default=list)

    acknowledged_at = db.Column(db.DateTime, nullable=True)
    acknowledged_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    resolved_at = db.Column(db.DateTime, nullable=True)
    resolved_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    report_type = db.relationship('ReportType')
    reporter = db.relationship('User', foreign_keys=[reporter_id])

    __table_args__ = (
        Index('idx_report_barangay', 'barangay_id'),
        Index('idx_report_status', 'status'),
        Index('idx_report_reporter', 'reporter_id'),
        Index('idx_report_created', 'created_at'),
    )

    @property
    def is_public(self) -> bool:
        return self.status in PUBLIC_REPORT_STATUSES

    def to_dict(self):
        return {
            'id': self.id,
            'reporter_id': self.reporter_id,
            'barangay_id': self.barangay_id,
            'report_type_id': self.report_type_id,
            'report_type': self.report_type.name if self.report_type else None,
            'status': self.status,
            'title': self.title,
            'description': self.description,
            'gps_lat': self.gps_lat,
            'gps_lng': self.gps_lng,
            'photo_urls': list(self.photo_urls or []),
            'video_urls': list(self.video_urls or []),
            'acknowledged_at': self.acknowledged_at.isoformat() if self.acknowledged_at else None,
            'resolved_at': self.resolved_at.isoformat() if self.resolved_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class ReportNote(db.Model):
    """Responder note attached to a report."""

    __tablename__ = 'report_notes'

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.Integer, db.ForeignKey('reports.id', ondelete='CASCADE'), nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    body = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    report = db.relationship('Report', backref=db.backref('notes', lazy='dynamic'))

    __table_args__ = (
        Index('idx_report_note_report', 'report_id'),
    )

    @property
    def barangay_id(self):
        return self.report.barangay_id if self.report else None

    def to_dict(self):
        return {
            'id': self.id,
            'report_id': self.report_id,
            'author_id': self.author_id,
            'body': self.body,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
