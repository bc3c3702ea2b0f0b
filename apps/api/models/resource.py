"""Relief resource inventory, barangay requests and admin allocations."""
from sqlalchemy import Index, CheckConstraint

from apps.api import db
from apps.api.utils.time import utc_now


RESOURCE_REQUEST_STATUSES = ('pending', 'approved', 'partially_fulfilled', 'fulfilled', 'rejected')


class ResourceType(db.Model):
    __tablename__ = 'resource_types'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    unit = db.Column(db.String(30), nullable=True)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'slug': self.slug, 'unit': self.unit}


class Resource(db.Model):
    """Stock held by a barangay, or global stock when ``barangay_id`` is null."""

    __tablename__ = 'resources'

    id = db.Column(db.Integer, primary_key=True)
    resource_type_id = db.Column(db.Integer, db.ForeignKey('resource_types.id'), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    quantity = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    unit_override = db.Column(db.String(30), nullable=True)
    barangay_id = db.Column(db.Integer, db.ForeignKey('barangays.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    resource_type = db.relationship('ResourceType')

    __table_args__ = (
        Index('idx_resource_barangay', 'barangay_id'),
        CheckConstraint('quantity >= 0', name='ck_resource_quantity'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'resource_type_id': self.resource_type_id,
            'name': self.name,
            'quantity': float(self.quantity or 0),
            'unit': self.unit_override or (self.resource_type.unit if self.resource_type else None),
            'barangay_id': self.barangay_id,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class ResourceRequest(db.Model):
    __tablename__ = 'resource_requests'

    id = db.Column(db.Integer, primary_key=True)
    barangay_id = db.Column(db.Integer, db.ForeignKey('barangays.id', ondelete='CASCADE'), nullable=False)
    requested_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    resource_type_id = db.Column(db.Integer, db.ForeignKey('resource_types.id'), nullable=False)
    quantity_requested = db.Column(db.Numeric(12, 2), nullable=False)
    quantity_fulfilled = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status = db.Column(db.String(30), nullable=False, default='pending')
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    fulfilled_at = db.Column(db.DateTime, nullable=True)

    resource_type = db.relationship('ResourceType')

    __table_args__ = (
        Index('idx_resource_request_barangay', 'barangay_id'),
        Index('idx_resource_request_status', 'status'),
        CheckConstraint('quantity_requested > 0', name='ck_resource_request_quantity'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'barangay_id': self.barangay_id,
            'requested_by': self.requested_by,
            'resource_type_id': self.resource_type_id,
            'quantity_requested': float(self.quantity_requested or 0),
            'quantity_fulfilled': float(self.quantity_fulfilled or 0),
            'status': self.status,
            'notes': self.notes,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'fulfilled_at': self.fulfilled_at.isoformat() if self.fulfilled_at else None,
        }


class ResourceAllocation(db.Model):
    __tablename__ = 'resource_allocations'

    id = db.Column(db.Integer, primary_key=True)
    resource_request_id = db.Column(db.Integer, db.ForeignKey('resource_requests.id', ondelete='CASCADE'), nullable=False)
    resource_id = db.Column(db.Integer, db.ForeignKey('resources.id'), nullable=False)
    quantity = db.Column(db.Numeric(12, 2), nullable=False)
    allocated_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    request = db.relationship('ResourceRequest', backref=db.backref('allocations', lazy='dynamic'))
    resource = db.relationship('Resource')

    __table_args__ = (
        Index('idx_allocation_request', 'resource_request_id'),
        CheckConstraint('quantity > 0', name='ck_allocation_quantity'),
    )

    @property
    def barangay_id(self):
        return self.request.barangay_id if self.request else None

    def to_dict(self):
        return {
            'id': self.id,
            'resource_request_id': self.resource_request_id,
            'resource_id': self.resource_id,
            'quantity': float(self.quantity or 0),
            'allocated_by': self.allocated_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
