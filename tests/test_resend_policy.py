from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from refevo.models import ReferenceRequest, db, utcnow
from refevo.services.resend_policy import apply_resend, can_resend, request_is_overdue
from refevo.utils.roles import Role

NOW = datetime(2025, 6, 15, 12, 0, 0)


def make_request(days_ago=None, count=0, lifetime=0):
    return SimpleNamespace(
        resend_window_start=NOW - timedelta(days=days_ago) if days_ago is not None else None,
        resend_count_14d=count,
        resend_count=lifetime,
        last_resent_at=None,
    )


@pytest.mark.parametrize("role", ['manager', 'company_admin', 'billing', 'admin', 'global_admin'])
def test_privileged_roles_are_unlimited(role):
    requests = [make_request(days_ago=1, count=10)]
    assert can_resend(role, requests, NOW) is True


def test_user_without_window_may_resend():
    assert can_resend('user', [make_request(), make_request()], NOW) is True


def test_user_within_window_below_limit_is_allowed_and_increments():
    req = make_request(days_ago=10, count=2)
    start = req.resend_window_start

    assert can_resend(Role.USER, [req], NOW) is True
    apply_resend([req], NOW)

    assert req.resend_count_14d == 3
    assert req.resend_window_start == start


def test_user_at_limit_within_window_is_denied():
    assert can_resend('user', [make_request(days_ago=10, count=3)], NOW) is False


def test_user_after_window_lapses_is_allowed_and_resets():
    req = make_request(days_ago=15, count=3)

    assert can_resend('user', [req], NOW) is True
    apply_resend([req], NOW)

    assert req.resend_count_14d == 1
    assert req.resend_window_start == NOW


def test_window_of_exactly_fourteen_days_has_lapsed():
    assert can_resend('user', [make_request(days_ago=14, count=3)], NOW) is True


def test_gate_sums_counts_across_requests():
    requests = [make_request(days_ago=3, count=1), make_request(days_ago=2, count=2)]
    assert can_resend('user', requests, NOW) is False


def test_gate_uses_earliest_window_but_counters_stay_per_request():
    old = make_request(days_ago=20, count=2)
    recent = make_request(days_ago=5, count=1)
    recent_start = recent.resend_window_start

    assert can_resend('user', [old, recent], NOW) is True
    apply_resend([old, recent], NOW)

    assert (old.resend_count_14d, old.resend_window_start) == (1, NOW)
    assert (recent.resend_count_14d, recent.resend_window_start) == (2, recent_start)


def test_apply_resend_tracks_lifetime_count_and_timestamp():
    req = make_request(lifetime=4)
    apply_resend([req], NOW)

    assert req.resend_count == 5
    assert req.last_resent_at == NOW
    assert req.resend_count_14d == 1
    assert req.resend_window_start == NOW


def test_unknown_role_is_treated_as_user():
    assert can_resend('intern', [make_request(days_ago=1, count=3)], NOW) is False


def test_request_is_overdue_after_seven_days():
    pending = SimpleNamespace(status='pending', created_at=NOW - timedelta(days=8))
    fresh = SimpleNamespace(status='pending', created_at=NOW - timedelta(days=2))
    done = SimpleNamespace(status='completed', created_at=NOW - timedelta(days=30))

    assert request_is_overdue(pending, NOW)
    assert not request_is_overdue(fresh, NOW)
    assert not request_is_overdue(done, NOW)


class TestResendEndpoint:

    def _setup(self, make_user, make_candidate, make_referee, role, count, days):
        user = make_user(role=role)
        candidate = make_candidate(consent_status='granted', status='active')
        _, request = make_referee(candidate, resend_count_14d=count,
                                  resend_window_start=utcnow() - timedelta(days=days))
        return user, candidate, request

    def test_user_at_limit_gets_429(self, client, login, make_user, make_candidate, make_referee,
                                    mock_resend):
        user, candidate, request = self._setup(make_user, make_candidate, make_referee, 'user', 3, 2)
        login(user)
        mock_resend.reset_mock()

        resp = client.post(f'/api/candidates/{candidate.id}/resend')

        assert resp.status_code == 429
        assert resp.get_json()['error'] == 'Resend limit reached (3 within 14 days).'
        assert db.session.get(ReferenceRequest, request.id).resend_count_14d == 3
        mock_resend.assert_not_called()

    def test_user_below_limit_resends_and_counts(self, client, login, make_user, make_candidate,
                                                 make_referee, mock_resend):
        user, candidate, request = self._setup(make_user, make_candidate, make_referee, 'user', 2, 10)
        login(user)
        mock_resend.reset_mock()

        resp = client.post(f'/api/candidates/{candidate.id}/resend')

        assert resp.status_code == 200
        assert resp.get_json()['resent'] == 1
        assert db.session.get(ReferenceRequest, request.id).resend_count_14d == 3
        assert mock_resend.call_count == 1

    def test_manager_is_not_limited(self, client, login, make_user, make_candidate, make_referee):
        user, candidate, request = self._setup(make_user, make_candidate, make_referee, 'manager', 3, 2)
        login(user)

        resp = client.post(f'/api/candidates/{candidate.id}/resend')

        assert resp.status_code == 200
        assert db.session.get(ReferenceRequest, request.id).resend_count_14d == 4

    def test_resend_requires_login(self, client, make_candidate):
        candidate = make_candidate()
        resp = client.post(f'/api/candidates/{candidate.id}/resend')
        assert resp.status_code == 401


class TestMixedRequestStatuses:
    """Completed and archived requests still count towards the candidate's limit."""

    def _candidate(self, make_candidate, make_referee, spent_status):
        candidate = make_candidate(consent_status='granted', status='active')
        make_referee(candidate, request_status=spent_status, status='completed',
                     resend_count_14d=3, resend_window_start=utcnow() - timedelta(days=2))
        _, fresh = make_referee(candidate, name='Pat Kim', email='pat@x.com')
        return candidate, fresh

    @pytest.mark.parametrize('spent_status', ['completed', 'archived'])
    def test_user_is_denied_when_spent_request_is_no_longer_pending(
            self, client, login, make_user, make_candidate, make_referee, mock_resend, spent_status):
        login(make_user('user'))
        candidate, fresh = self._candidate(make_candidate, make_referee, spent_status)
        mock_resend.reset_mock()

        resp = client.post(f'/api/candidates/{candidate.id}/resend')

        assert resp.status_code == 429
        fresh = db.session.get(ReferenceRequest, fresh.id)
        assert fresh.resend_count_14d == 0
        assert fresh.resend_window_start is None
        mock_resend.assert_not_called()

    def test_list_flag_reflects_all_requests(self, client, login, make_user, make_candidate,
                                             make_referee):
        login(make_user('user'))
        candidate, _ = self._candidate(make_candidate, make_referee, 'completed')

        rows = client.get('/api/candidates').get_json()['candidates']

        assert [r['can_resend'] for r in rows if r['id'] == candidate.id] == [False]

    def test_manager_resends_only_the_pending_request(self, client, login, make_user, make_candidate,
                                                      make_referee):
        login(make_user('manager'))
        candidate, fresh = self._candidate(make_candidate, make_referee, 'completed')

        resp = client.post(f'/api/candidates/{candidate.id}/resend')

        assert resp.status_code == 200
        assert [r['id'] for r in resp.get_json()['requests']] == [fresh.id]
        assert db.session.get(ReferenceRequest, fresh.id).resend_count_14d == 1

    def test_gate_sums_counts_across_statuses(self):
        spent = make_request(days_ago=2, count=3)
        pending = make_request()
        assert can_resend('user', [spent, pending], NOW) is False
        assert can_resend('user', [pending], NOW) is True
