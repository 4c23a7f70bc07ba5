import json
from unittest.mock import patch

import pytest

from refevo import create_app
from refevo.models import (
    db, Candidate, Company, ReferenceTemplate, Referee, ReferenceRequest, User
)

PASSWORD = 'Password123'

QUESTIONS = [
    {"key": "relationship", "label": "How do you know {candidate_name}?", "kind": "textarea", "required": True},
    {"key": "performance", "label": "Overall performance", "kind": "rating", "required": True, "scale": 5},
    {"key": "comments", "label": "Anything else?", "kind": "text", "required": False},
]

REF_TYPES = [
    {"value": "Manager", "label": "Manager"},
    {"value": "Colleague", "label": "Colleague"},
]


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def mock_resend():
    """Every outbound email succeeds unless a test overrides the mock."""
    with patch('refevo.services.communication.email.requests.post') as mock_post:
        mock_post.return_value.status_code = 200
        mock_post.return_value.json.return_value = {'id': 'msg_123'}
        mock_post.return_value.text = '{"id": "msg_123"}'
        yield mock_post


@pytest.fixture
def company(app):
    company = Company(name='Acme Ltd', billing_email='billing@acme.test')
    db.session.add(company)
    db.session.commit()
    return company


@pytest.fixture
def template(app):
    template = ReferenceTemplate(
        name='Standard',
        ref_types=json.dumps(REF_TYPES),
        questions=json.dumps(QUESTIONS),
        is_active=True,
    )
    db.session.add(template)
    db.session.commit()
    return template


@pytest.fixture
def make_user(app, company):
    def _make(role='user', email=None, company_id=None, first_name='Alex', last_name='Morgan'):
        user = User(
            email=email or f'{role}@acme.test',
            first_name=first_name,
            last_name=last_name,
            role=role,
            company_id=company_id or company.id,
        )
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def login(client):
    def _login(user):
        resp = client.post('/login', data={'email': user.email, 'password': PASSWORD})
        assert resp.status_code == 302
        return resp
    return _login


@pytest.fixture
def make_candidate(app, company, template):
    def _make(full_name='Jamie Taylor', email='jamie@example.com', token=None,
              consent_status='pending', status='awaiting_consent', template_id=None,
              company_id=None, **kwargs):
        candidate = Candidate(
            company_id=company_id or company.id,
            full_name=full_name,
            email=email,
            consent_status=consent_status,
            status=status,
            template_id=template_id or template.id,
            **kwargs
        )
        if token:
            candidate.consent_token = token
        db.session.add(candidate)
        db.session.commit()
        return candidate
    return _make


@pytest.fixture
def make_referee(app):
    def _make(candidate, name='Sam Lee', email='sam@x.com', token=None, status='invited',
              is_archived=False, request_status='pending', **request_fields):
        referee = Referee(
            candidate_id=candidate.id,
            template_id=candidate.template_id,
            name=name,
            email=email,
            type='Manager',
            status=status,
            is_archived=is_archived,
        )
        if token:
            referee.token = token
        db.session.add(referee)
        db.session.flush()
        request = ReferenceRequest(
            candidate_id=candidate.id,
            referee_id=referee.id,
            status=request_status,
            **request_fields
        )
        db.session.add(request)
        db.session.commit()
        return referee, request
    return _make
