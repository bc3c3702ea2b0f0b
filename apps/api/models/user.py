"""User (actor profile) model.

``barangay_id`` and ``municipality_id`` are a cache of the open barangay
membership. They are only written by the affiliation helpers, inside the
same transaction that opens or closes a membership.
"""
from sqlalchemy import Index

from apps.api import db
from apps.api.utils.time import utc_now


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(200), nullable=True)
    phone = db.Column(db.String(20), nullable=True)

    # resident, barangay_responder, municipal_responder, lgu_responder, admin, super_admin
    role = db.Column(db.String(30), nullable=False, default='resident')
    barangay_id = db.Column(db.Integer, db.ForeignKey('barangays.id'), nullable=True)
    municipality_id = db.Column(db.Integer, db.ForeignKey('municipalities.id'), nullable=True)

    employment_proof_url = db.Column(db.String(500), nullable=True)
    employment_proof_verified = db.Column(db.Boolean, nullable=False, default=False)
    employment_proof_verified_at = db.Column(db.DateTime, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    barangay = db.relationship('Barangay', foreign_keys=[barangay_id])
    municipality = db.relationship('Municipality', foreign_keys=[municipality_id])

    __table_args__ = (
        Index('idx_user_email', 'email'),
        Index('idx_user_role', 'role'),
        Index('idx_user_barangay', 'barangay_id'),
        Index('idx_user_municipality', 'municipality_id'),
    )

    @property
    def proof_pending(self) -> bool:
        return bool(self.employment_proof_url) and not self.employment_proof_verified

    def __repr__(self):
        return f'<User {self.email}>'

    def to_dict(self, include_private: bool = False):
        data = {
            'id': self.id,
            'full_name': self.full_name,
            'role': self.role,
            'barangay_id': self.barangay_id,
            'municipality_id': self.municipality_id,
            'employment_proof_verified': bool(self.employment_proof_verified),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_private:
            data.update({
                'email': self.email,
                'phone': self.phone,
                'employment_proof_url': self.employment_proof_url,
                'last_login': self.last_login.isoformat() if self.last_login else None,
            })
        return data
