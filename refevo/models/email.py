"""
Email delivery log and mailing-list models (early access, opt-out, waitlist).
"""
import json
from refevo.models.base import db, generate_uuid, utcnow, isoformat


class EmailLog(db.Model):
    """Provider webhook event, linked to a candidate when the recipient matches one."""
    __tablename__ = 'email_logs'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    candidate_id = db.Column(db.String(36), db.ForeignKey('candidates.id', ondelete='SET NULL'),
                             index=True)
    recipient_email = db.Column(db.String(255))
    subject = db.Column(db.String(255))
    status = db.Column(db.String(50))  # delivered, bounced, complained, ...
    event_metadata = db.Column('metadata', db.Text)  # raw JSON payload
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'candidate_id': self.candidate_id,
            'recipient_email': self.recipient_email,
            'subject': self.subject,
            'status': self.status,
            'metadata': json.loads(self.event_metadata) if self.event_metadata else None,
            'created_at': isoformat(self.created_at),
        }


class EarlyAccessEmail(db.Model):
    """Address on the early-access mailing list."""
    __tablename__ = 'early_access_emails'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    opted_out = db.Column(db.Boolean, nullable=False, default=False)
    opted_out_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)


class OptOutLog(db.Model):
    __tablename__ = 'opt_out_log'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    email = db.Column(db.String(255), nullable=False)
    reason = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=utcnow)


class WaitlistSignup(db.Model):
    __tablename__ = 'waitlist_signups'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'created_at': isoformat(self.created_at),
        }
