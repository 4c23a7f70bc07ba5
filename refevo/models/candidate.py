"""
Candidate model.
"""
from sqlalchemy import Index
from refevo.models.base import db, generate_uuid, generate_token, utcnow, isoformat


class Candidate(db.Model):
    """Person whose references are being checked."""
    __tablename__ = 'candidates'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    company_id = db.Column(db.String(36), db.ForeignKey('companies.id', ondelete='CASCADE'),
                           index=True)
    created_by = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'))

    # Basic info
    full_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    mobile = db.Column(db.String(20))  # E.164

    # Consent
    consent_token = db.Column(db.String(64), unique=True, nullable=False, index=True,
                              default=generate_token)
    consent_status = db.Column(db.String(20), nullable=False, default='pending')
    # pending, granted, declined
    consent_at = db.Column(db.DateTime)

    # Lifecycle: awaiting_consent, active, archived
    status = db.Column(db.String(20), nullable=False, default='awaiting_consent')

    # Which questionnaire / referee-type set applies
    template_id = db.Column(db.String(36), db.ForeignKey('reference_templates.id', ondelete='SET NULL'))

    # Recruiter-side archival (hides from dashboards, keeps history)
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    archived_at = db.Column(db.DateTime)

    # Delivery tracking from provider webhooks
    email_status = db.Column(db.String(20), default='unknown')
    last_invite_sent_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    template = db.relationship('ReferenceTemplate')
    referees = db.relationship('Referee', backref='candidate', lazy='dynamic',
                               cascade='all, delete-orphan')
    reference_requests = db.relationship('ReferenceRequest', backref='candidate', lazy='dynamic',
                                         cascade='all, delete-orphan')

    __table_args__ = (
        Index('idx_candidate_company_status', 'company_id', 'status'),
    )

    def to_dict(self, include_referees=False, include_requests=False):
        result = {
            'id': self.id,
            'full_name': self.full_name,
            'email': self.email,
            'mobile': self.mobile,
            'consent_status': self.consent_status,
            'consent_at': isoformat(self.consent_at),
            'status': self.status,
            'template_id': self.template_id,
            'company_id': self.company_id,
            'created_by': self.created_by,
            'is_archived': self.is_archived,
            'email_status': self.email_status,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
            'progress': self.get_reference_progress(),
        }

        if include_referees:
            result['referees'] = [r.to_dict() for r in self.referees]

        if include_requests:
            result['requests'] = [r.to_dict() for r in self.reference_requests]

        return result

    def get_reference_progress(self):
        """Completed vs. total non-archived reference requests."""
        requests = [r for r in self.reference_requests if r.status != 'archived']
        completed = len([r for r in requests if r.status == 'completed'])
        return {'completed': completed, 'total': len(requests)}
