"""
AuditLog model for security and compliance.
"""
import json
from sqlalchemy import Index
from refevo.models.base import db, generate_uuid, utcnow, isoformat


class AuditLog(db.Model):
    """Append-only record of a state-changing action."""
    __tablename__ = 'audit_logs'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'), index=True)
    actor = db.Column(db.String(50))  # candidate, referee, system, or the user's name
    company_id = db.Column(db.String(36), index=True)

    action = db.Column(db.String(100), nullable=False)
    resource_type = db.Column(db.String(50))  # candidate, referee, plan, etc.
    resource_id = db.Column(db.String(36))
    details = db.Column(db.Text)  # JSON: field-level diff or metadata
    ip_address = db.Column(db.String(50))
    user_agent = db.Column(db.String(255))

    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    user = db.relationship('User')

    __table_args__ = (
        Index('idx_audit_user_action', 'user_id', 'action'),
        Index('idx_audit_company_created', 'company_id', 'created_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'user_name': self.user.full_name if self.user else self.actor,
            'actor': self.actor,
            'company_id': self.company_id,
            'action': self.action,
            'resource_type': self.resource_type,
            'resource_id': self.resource_id,
            'details': json.loads(self.details) if self.details else None,
            'created_at': isoformat(self.created_at),
        }
