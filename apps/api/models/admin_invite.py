"""Admin invite codes (single-use, time-bounded)."""
import secrets

from sqlalchemy import Index

from apps.api import db
from apps.api.utils.time import utc_now


class AdminInvite(db.Model):
    __tablename__ = 'admin_invites'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    used_at = db.Column(db.DateTime, nullable=True)
    used_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    creator = db.relationship('User', foreign_keys=[created_by])

    __table_args__ = (
        Index('idx_admin_invite_code', 'code'),
        Index('idx_admin_invite_creator', 'created_by'),
    )

    def __repr__(self):
        return f'<AdminInvite {self.id}>'

    def is_expired(self) -> bool:
        return utc_now() >= self.expires_at

    def is_used(self) -> bool:
        return self.used_at is not None

    def is_claimable(self) -> bool:
        return not self.is_used() and not self.is_expired()

    @staticmethod
    def generate_code() -> str:
        """URL-safe random code, long enough that guessing is impractical."""
        return secrets.token_urlsafe(18)

    def to_dict(self, include_code: bool = False):
        data = {
            'id': self.id,
            'created_by': self.created_by,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'used_at': self.used_at.isoformat() if self.used_at else None,
            'used_by': self.used_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_code:
            data['code'] = self.code
        return data
