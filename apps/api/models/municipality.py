"""Geography models: municipalities and the barangays they contain."""
from sqlalchemy import Index, UniqueConstraint, CheckConstraint

from apps.api import db
from apps.api.utils.time import utc_now


class Municipality(db.Model):
    __tablename__ = 'municipalities'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    code = db.Column(db.String(20), unique=True, nullable=False)
    region = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    barangays = db.relationship('Barangay', backref='municipality', lazy='dynamic')

    def __repr__(self):
        return f'<Municipality {self.code}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'region': self.region,
        }


class Barangay(db.Model):
    """A barangay is *bounded* once ``boundary_approved_at`` is set."""

    __tablename__ = 'barangays'

    id = db.Column(db.Integer, primary_key=True)
    municipality_id = db.Column(db.Integer, db.ForeignKey('municipalities.id'), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    boundary_geojson = db.Column(db.JSON(none_as_null=True), nullable=True)
    boundary_approved_at = db.Column(db.DateTime, nullable=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id', use_alter=True, name='fk_barangays_creator'), nullable=True)
    description = db.Column(db.Text, nullable=True)
    brochure_photo_urls = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_barangay_municipality', 'municipality_id'),
        Index('idx_barangay_approved', 'boundary_approved_at'),
        UniqueConstraint('municipality_id', 'name', name='uq_barangay_municipality_name'),
        CheckConstraint(
            'boundary_approved_at IS NULL OR boundary_geojson IS NOT NULL',
            name='ck_barangay_approved_has_geometry',
        ),
    )

    @property
    def is_bounded(self) -> bool:
        return self.boundary_approved_at is not None and self.boundary_geojson is not None

    def approve_boundary(self, geometry: dict, approved_at=None):
        """Set geometry and approval together so neither is ever set alone."""
        if geometry is None:
            raise ValueError('approved boundary requires geometry')
        self.boundary_geojson = geometry
        self.boundary_approved_at = approved_at or utc_now()

    def __repr__(self):
        return f'<Barangay {self.name}>'

    def to_dict(self, include_geometry: bool = False):
        data = {
            'id': self.id,
            'municipality_id': self.municipality_id,
            'name': self.name,
            'is_bounded': self.is_bounded,
            'boundary_approved_at': self.boundary_approved_at.isoformat() if self.boundary_approved_at else None,
            'creator_id': self.creator_id,
            'description': self.description,
            'brochure_photo_urls': list(self.brochure_photo_urls or []),
        }
        if include_geometry:
            data['boundary_geojson'] = self.boundary_geojson
        return data
