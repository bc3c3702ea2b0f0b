"""In-app notification model."""
from sqlalchemy import Index

from apps.api import db
from apps.api.utils.time import utc_now


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    event_type = db.Column(db.String(100), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    body = db.Column(db.Text, nullable=True)
    link = db.Column(db.String(500), nullable=True)
    entity_id = db.Column(db.Integer, nullable=True)
    read_at = db.Column(db.DateTime, nullable=True)
    # One notification per user per event
    dedupe_key = db.Column(db.String(255), nullable=False, unique=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index('ix_notification_user_read', 'user_id', 'read_at'),
        Index('ix_notification_event', 'event_type'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'event_type': self.event_type,
            'title': self.title,
            'body': self.body,
            'link': self.link,
            'entity_id': self.entity_id,
            'read_at': self.read_at.isoformat() if self.read_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
