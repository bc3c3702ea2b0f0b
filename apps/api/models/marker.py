"""Official map markers (evacuation centers, danger zones, ...)."""
from sqlalchemy import Index

from apps.api import db
from apps.api.utils.time import utc_now


class MarkerType(db.Model):
    __tablename__ = 'marker_types'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'slug': self.slug, 'sort_order': self.sort_order}


class OfficialMarker(db.Model):
    __tablename__ = 'official_markers'

    id = db.Column(db.Integer, primary_key=True)
    barangay_id = db.Column(db.Integer, db.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False)
    marker_type_id = db.Column(db.Integer, db.ForeignKey('marker_types.id'), nullable=False)
    lat = db.Column(db.Float, nullable=False)
    lng = db.Column(db.Float, nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    updated_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    marker_type = db.relationship('MarkerType')

    __table_args__ = (
        Index('idx_marker_barangay', 'barangay_id'),
        Index('idx_marker_active', 'is_active'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'barangay_id': self.barangay_id,
            'marker_type_id': self.marker_type_id,
            'marker_type': self.marker_type.slug if self.marker_type else None,
            'lat': self.lat,
            'lng': self.lng,
            'title': self.title,
            'description': self.description,
            'is_active': bool(self.is_active),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
