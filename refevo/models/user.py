"""
User model: authentication plus the profile fields (role, tenant) used for access control.
"""
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from refevo.models.base import db, generate_uuid, utcnow, isoformat


class User(UserMixin, db.Model):
    """Authenticated user and its profile (role + company)."""
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)

    # Profile
    role = db.Column(db.String(32), nullable=False, default='user')
    status = db.Column(db.String(20), nullable=False, default='active')  # active, invited, disabled
    company_id = db.Column(db.String(36), db.ForeignKey('companies.id', ondelete='SET NULL'),
                           index=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    last_login_at = db.Column(db.DateTime)

    company = db.relationship('Company', backref='users')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password, method='pbkdf2:sha256')

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_active(self):
        """Disabled accounts cannot log in and their sessions stop loading."""
        return self.status != 'disabled'

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'role': self.role,
            'status': self.status,
            'company_id': self.company_id,
            'company_name': self.company.name if self.company else None,
            'created_at': isoformat(self.created_at),
            'last_login_at': isoformat(self.last_login_at),
        }
