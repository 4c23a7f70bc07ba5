"""
Referee, reference request, template and response models.
"""
import json
from refevo.models.base import db, generate_uuid, generate_token, utcnow, isoformat


class ReferenceTemplate(db.Model):
    """Referee types and questions a reference must cover. company_id NULL = global."""
    __tablename__ = 'reference_templates'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    company_id = db.Column(db.String(36), db.ForeignKey('companies.id', ondelete='CASCADE'),
                           index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)

    ref_types = db.Column(db.Text)  # JSON array of {"value", "label"}
    questions = db.Column(db.Text)  # JSON array of {"key", "label", "kind", "required", "scale"?}

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def get_ref_types(self):
        return json.loads(self.ref_types) if self.ref_types else []

    def get_questions(self):
        return json.loads(self.questions) if self.questions else []

    def type_values(self):
        return [t['value'] for t in self.get_ref_types()]

    def label_for_type(self, value):
        for t in self.get_ref_types():
            if t['value'] == value:
                return t.get('label') or value
        return value

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'name': self.name,
            'description': self.description,
            'ref_types': self.get_ref_types(),
            'questions': self.get_questions(),
            'is_active': self.is_active,
            'visibility': 'tenant' if self.company_id else 'global',
        }


class Referee(db.Model):
    """Person nominated to give a reference for exactly one candidate."""
    __tablename__ = 'referees'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    candidate_id = db.Column(db.String(36), db.ForeignKey('candidates.id', ondelete='CASCADE'),
                             nullable=False, index=True)
    template_id = db.Column(db.String(36), db.ForeignKey('reference_templates.id', ondelete='SET NULL'))

    # Contact info
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    mobile = db.Column(db.String(20))
    relationship = db.Column(db.String(100))
    type = db.Column(db.String(50))

    # Access token for the reference form
    token = db.Column(db.String(64), unique=True, nullable=False, index=True, default=generate_token)

    # invited, pending, completed, declined
    status = db.Column(db.String(20), nullable=False, default='invited')
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    archived_at = db.Column(db.DateTime)

    email_sent = db.Column(db.Boolean, nullable=False, default=False)
    response_received_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    template = db.relationship('ReferenceTemplate')

    def to_dict(self):
        return {
            'id': self.id,
            'candidate_id': self.candidate_id,
            'template_id': self.template_id,
            'name': self.name,
            'email': self.email,
            'mobile': self.mobile,
            'relationship': self.relationship,
            'type': self.type,
            'status': self.status,
            'is_archived': self.is_archived,
            'email_sent': self.email_sent,
            'response_received_at': isoformat(self.response_received_at),
            'created_at': isoformat(self.created_at),
        }


class ReferenceRequest(db.Model):
    """Referee X must supply a reference for candidate Y."""
    __tablename__ = 'reference_requests'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    candidate_id = db.Column(db.String(36), db.ForeignKey('candidates.id', ondelete='CASCADE'),
                             nullable=False, index=True)
    referee_id = db.Column(db.String(36), db.ForeignKey('referees.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    template_type = db.Column(db.String(50))

    # pending, completed, declined, archived
    status = db.Column(db.String(20), nullable=False, default='pending')

    # Resend accounting
    resend_count = db.Column(db.Integer, nullable=False, default=0)
    resend_count_14d = db.Column(db.Integer, nullable=False, default=0)
    resend_window_start = db.Column(db.DateTime)
    last_resent_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=utcnow)
    completed_at = db.Column(db.DateTime)

    referee = db.relationship('Referee', backref=db.backref('requests', lazy='dynamic',
                                                            cascade='all, delete-orphan'))

    def to_dict(self):
        return {
            'id': self.id,
            'candidate_id': self.candidate_id,
            'referee_id': self.referee_id,
            'template_type': self.template_type,
            'status': self.status,
            'resend_count': self.resend_count,
            'resend_count_14d': self.resend_count_14d,
            'resend_window_start': isoformat(self.resend_window_start),
            'last_resent_at': isoformat(self.last_resent_at),
            'created_at': isoformat(self.created_at),
            'completed_at': isoformat(self.completed_at),
        }


class ReferenceResponse(db.Model):
    """Answers submitted by a referee, keyed by template question key."""
    __tablename__ = 'reference_responses'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    referee_id = db.Column(db.String(36), db.ForeignKey('referees.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    candidate_id = db.Column(db.String(36), db.ForeignKey('candidates.id', ondelete='CASCADE'),
                             nullable=False, index=True)
    template_id = db.Column(db.String(36), db.ForeignKey('reference_templates.id', ondelete='SET NULL'))

    responses = db.Column(db.Text, nullable=False)  # JSON object
    submitted_at = db.Column(db.DateTime, default=utcnow)

    def get_responses(self):
        return json.loads(self.responses) if self.responses else {}

    def to_dict(self):
        return {
            'id': self.id,
            'referee_id': self.referee_id,
            'candidate_id': self.candidate_id,
            'template_id': self.template_id,
            'responses': self.get_responses(),
            'submitted_at': isoformat(self.submitted_at),
        }
