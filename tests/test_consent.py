from unittest.mock import patch

import pytest
import requests
from sqlalchemy.exc import IntegrityError, OperationalError

from refevo.models import db, Candidate
from refevo.services.consent import decline_consent, grant_consent
from refevo.services.errors import NotFound, UpstreamFailure
from refevo.utils.constants import ALREADY_GRANTED_MESSAGE


def test_consent_tokens_are_unique(make_candidate):
    candidates = [make_candidate(email=f'c{i}@example.com') for i in range(20)]
    assert len({c.consent_token for c in candidates}) == 20


def test_duplicate_consent_token_is_rejected(make_candidate):
    make_candidate(token='abc123')
    with pytest.raises(IntegrityError):
        make_candidate(email='other@example.com', token='abc123')
    db.session.rollback()


def test_grant_sets_granted_and_active(make_candidate, mock_resend):
    candidate = make_candidate(token='abc123')

    result = grant_consent('abc123')

    assert result.changed is True
    assert candidate.consent_status == 'granted'
    assert candidate.status == 'active'
    assert candidate.consent_at is not None
    sent = mock_resend.call_args.kwargs['json']
    assert sent['to'] == ['jamie@example.com']
    assert '/add-referees/abc123' in sent['html']


def test_grant_survives_invite_email_failure(make_candidate, mock_resend):
    candidate = make_candidate(token='abc123')
    mock_resend.side_effect = requests.ConnectionError('provider down')

    grant_consent('abc123')

    assert db.session.get(Candidate, candidate.id).consent_status == 'granted'


def test_grant_database_failure_leaves_candidate_unchanged(make_candidate):
    candidate = make_candidate(token='abc123')

    with patch.object(db.session, 'commit', side_effect=OperationalError('UPDATE', {}, Exception('db down'))):
        with pytest.raises(UpstreamFailure):
            grant_consent('abc123')

    db.session.expire_all()
    refreshed = db.session.get(Candidate, candidate.id)
    assert refreshed.consent_status == 'pending'
    assert refreshed.status == 'awaiting_consent'


def test_decline_pending_candidate(make_candidate):
    candidate = make_candidate(token='abc123')

    result = decline_consent('abc123')

    assert result.changed is True
    assert candidate.consent_status == 'declined'
    assert candidate.status == 'archived'


def test_decline_after_grant_is_a_no_op(make_candidate):
    candidate = make_candidate(token='abc123', consent_status='granted', status='active')

    result = decline_consent('abc123')

    assert result.changed is False
    assert result.message == ALREADY_GRANTED_MESSAGE
    assert candidate.consent_status == 'granted'
    assert candidate.status == 'active'


def test_unknown_token_raises_not_found(app):
    with pytest.raises(NotFound):
        grant_consent('nope')
    with pytest.raises(NotFound):
        decline_consent('')


class TestConsentPages:

    def test_consent_page_shows_candidate(self, client, make_candidate):
        make_candidate(token='abc123')
        resp = client.get('/consent/abc123')
        assert resp.status_code == 200
        assert b'Jamie Taylor' in resp.data

    def test_granting_advances_to_onboarding(self, client, make_candidate):
        candidate = make_candidate(token='abc123')

        resp = client.post('/consent/abc123', data={'decision': 'granted'})

        assert resp.status_code == 302
        assert resp.headers['Location'].endswith('/add-referees/abc123')
        assert db.session.get(Candidate, candidate.id).status == 'active'

    def test_stale_decline_link_reports_already_granted(self, client, make_candidate):
        make_candidate(token='abc123', consent_status='granted', status='active')

        resp = client.get('/decline-consent/abc123')

        assert resp.status_code == 200
        assert 'You have already granted consent' in resp.get_data(as_text=True)

    def test_unknown_token_page(self, client, app):
        resp = client.get('/consent/missing')
        assert resp.status_code == 404
        assert b'Invalid or expired link' in resp.data

    def test_missing_decision_is_rejected(self, client, make_candidate):
        make_candidate(token='abc123')
        resp = client.post('/consent/abc123', data={})
        assert resp.status_code == 400
