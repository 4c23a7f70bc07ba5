from datetime import datetime

import pytest

from refevo.models import db, AuditLog, Company


@pytest.fixture
def manager(make_user, login):
    user = make_user('manager', first_name='Morgan', last_name='Reeve')
    login(user)
    return user


def _entry(company_id, action='update_candidate', when=None, user_id=None, actor=None):
    log = AuditLog(company_id=company_id, action=action, user_id=user_id, actor=actor,
                   created_at=when or datetime(2024, 5, 10, 12, 0))
    db.session.add(log)
    return log


def test_missing_company_id_checked_first(client):
    resp = client.get('/api/audit-logs')
    assert resp.status_code == 400
    assert resp.get_json() == {'error': 'Missing company_id'}


def test_logged_out(client, company):
    resp = client.get(f'/api/audit-logs?company_id={company.id}')
    assert resp.status_code == 401
    assert resp.get_json() == {'error': 'Not authenticated'}


@pytest.mark.parametrize('role', ['user', 'billing', 'company_admin', 'global_admin'])
def test_roles_outside_allow_list(client, company, make_user, login, role):
    login(make_user(role))

    resp = client.get(f'/api/audit-logs?company_id={company.id}')

    assert resp.status_code == 403
    assert resp.get_json() == {'error': 'Forbidden'}


def test_scoped_to_callers_company(client, company, manager):
    other = Company(name='Other Ltd')
    db.session.add(other)
    db.session.commit()
    _entry(company.id, action='mine')
    _entry(other.id, action='theirs')
    db.session.commit()

    # Asking for another tenant still returns only the caller's rows.
    resp = client.get(f'/api/audit-logs?company_id={other.id}')

    actions = {row['action'] for row in resp.get_json()['data']}
    assert 'theirs' not in actions
    assert 'mine' in actions


def test_pagination(client, company, manager):
    for i in range(25):
        _entry(company.id, action=f'action_{i}', when=datetime(2024, 5, 1, 0, i))
    db.session.commit()
    total = AuditLog.query.filter_by(company_id=company.id).count()

    first = client.get(f'/api/audit-logs?company_id={company.id}').get_json()
    second = client.get(f'/api/audit-logs?company_id={company.id}&page=2').get_json()

    assert first['meta'] == {'total': total, 'page': 1, 'limit': 20, 'totalPages': 2}
    assert len(first['data']) == 20
    assert len(second['data']) == total - 20
    assert {r['id'] for r in first['data']}.isdisjoint(r['id'] for r in second['data'])


def test_newest_first(client, company, manager):
    _entry(company.id, action='older', when=datetime(2020, 1, 1))
    _entry(company.id, action='newer', when=datetime(2020, 1, 2))
    db.session.commit()

    data = client.get(f'/api/audit-logs?company_id={company.id}&end_date=2020-01-31').get_json()['data']

    assert [r['action'] for r in data] == ['newer', 'older']


def test_date_range_is_inclusive(client, company, manager):
    _entry(company.id, action='before', when=datetime(2024, 5, 9, 23, 59))
    _entry(company.id, action='start', when=datetime(2024, 5, 10, 0, 0))
    _entry(company.id, action='end', when=datetime(2024, 5, 12, 23, 59))
    _entry(company.id, action='after', when=datetime(2024, 5, 13, 0, 0))
    db.session.commit()

    resp = client.get(f'/api/audit-logs?company_id={company.id}'
                      '&start_date=2024-05-10&end_date=2024-05-12')

    assert {r['action'] for r in resp.get_json()['data']} == {'start', 'end'}


def test_user_name_filter(client, company, manager, make_user):
    other = make_user('user', email='casey@acme.test', first_name='Casey', last_name='Jones')
    _entry(company.id, action='by_casey', user_id=other.id)
    _entry(company.id, action='by_referee', actor='referee')
    db.session.commit()

    casey = client.get(f'/api/audit-logs?company_id={company.id}&user_name=casey jo').get_json()
    referee = client.get(f'/api/audit-logs?company_id={company.id}&user_name=REFEREE').get_json()
    everyone = client.get(f'/api/audit-logs?company_id={company.id}&user_name=all').get_json()

    assert [r['action'] for r in casey['data']] == ['by_casey']
    assert casey['data'][0]['user_name'] == 'Casey Jones'
    assert [r['action'] for r in referee['data']] == ['by_referee']
    assert everyone['meta']['total'] == AuditLog.query.filter_by(company_id=company.id).count()


def test_empty_result(client, company, manager):
    resp = client.get(f'/api/audit-logs?company_id={company.id}&start_date=1999-01-01&end_date=1999-01-02')

    assert resp.get_json()['meta']['totalPages'] == 0
    assert resp.get_json()['data'] == []
