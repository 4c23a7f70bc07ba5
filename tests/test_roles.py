import pytest
from flask import Flask

from refevo import create_app
from refevo.models import db, Company, User
from refevo.utils.auth import can_access_company
from refevo.utils.roles import (
    PERMISSIONS, Principal, ProfileRoleProvider, Role, StaticRoleProvider,
    install_role_provider, is_allowed
)


class TestAllowLists:

    def test_unknown_role_is_least_privileged(self):
        assert Role.parse('superuser') is Role.USER
        assert Role.parse(None) is Role.USER

    def test_every_role_reaches_the_dashboard(self):
        assert all(is_allowed(role, 'dashboard') for role in Role)

    def test_audit_logs_are_manager_and_admin_only(self):
        allowed = {role for role in Role if is_allowed(role, 'audit_logs')}
        assert allowed == {Role.MANAGER, Role.ADMIN}

    def test_billing_is_not_a_rank(self):
        assert is_allowed('billing', 'billing')
        assert not is_allowed('manager', 'billing')
        assert not is_allowed('billing', 'manager_dashboard')

    def test_global_admin_only_for_admin_console(self):
        assert is_allowed('global_admin', 'global_admin')
        assert not is_allowed('admin', 'global_admin')
        assert not is_allowed('company_admin', 'global_admin')

    def test_only_user_role_is_resend_limited(self):
        assert not is_allowed('user', 'unlimited_resend')
        assert is_allowed('manager', 'unlimited_resend')
        assert is_allowed('billing', 'unlimited_resend')

    def test_unknown_resource_denies(self):
        assert not is_allowed('global_admin', 'no-such-page')

    def test_every_resource_has_a_non_empty_list(self):
        assert all(PERMISSIONS.values())


class TestProviders:

    def test_override_refused_without_flag(self):
        app = Flask(__name__)
        app.config['ALLOW_ROLE_OVERRIDE'] = False
        with pytest.raises(RuntimeError):
            install_role_provider(app, StaticRoleProvider('global_admin'))

    def test_profile_provider_always_installable(self):
        app = Flask(__name__)
        provider = install_role_provider(app)
        assert isinstance(provider, ProfileRoleProvider)
        assert app.extensions['role_provider'] is provider

    def test_static_provider_overrides_profile(self, make_user):
        user = make_user('user')
        principal = StaticRoleProvider('manager').principal_for(user)
        assert principal.role is Role.MANAGER
        assert principal.company_id == user.company_id


def test_can_access_company():
    assert can_access_company(Principal('u1', Role.MANAGER, 'c1'), 'c1')
    assert not can_access_company(Principal('u1', Role.MANAGER, 'c1'), 'c2')
    assert not can_access_company(Principal('u1', Role.MANAGER, None), None)
    assert can_access_company(Principal('u1', Role.GLOBAL_ADMIN, None), 'c2')
    assert not can_access_company(None, 'c1')


def test_logged_out_page_redirects_to_login(client):
    resp = client.get('/dashboard/audit-logs')
    assert resp.status_code == 302
    assert '/login' in resp.headers['Location']


def test_forbidden_role_gets_403_page(client, make_user, login):
    login(make_user('billing'))

    resp = client.get('/dashboard/manager')

    assert resp.status_code == 403
    assert b'You do not have permission to view this page.' in resp.data


def test_billing_role_sees_billing_page(client, make_user, login):
    login(make_user('billing'))
    assert client.get('/dashboard/billing').status_code == 200


def test_manager_sees_audit_page(client, make_user, login):
    login(make_user('manager'))
    assert client.get('/dashboard/audit-logs').status_code == 200


def test_api_forbidden_is_json(client, make_user, login):
    login(make_user('manager'))

    resp = client.get('/api/admin/tenants')

    assert resp.status_code == 403
    assert resp.get_json() == {'error': 'Forbidden'}


def test_static_provider_drives_page_access():
    app = create_app('testing', role_provider=StaticRoleProvider('global_admin'))
    with app.app_context():
        db.create_all()
        company = Company(name='Other Ltd')
        db.session.add(company)
        db.session.commit()
        user = User(email='plain@other.test', first_name='Pat', last_name='Kim',
                    role='user', company_id=company.id)
        user.set_password('Password123')
        db.session.add(user)
        db.session.commit()

        client = app.test_client()
        client.post('/login', data={'email': 'plain@other.test', 'password': 'Password123'})
        resp = client.get('/admin')

        db.session.remove()
        db.drop_all()

    assert resp.status_code == 200
