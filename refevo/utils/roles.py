"""
Role resolution and per-resource permissions.

Permissions are explicit allow-lists per resource. Roles are not ranked, so a
page may admit ``billing`` without admitting ``manager``.
"""
from collections import namedtuple
from enum import Enum
from flask import current_app


class Role(str, Enum):
    USER = 'user'
    MANAGER = 'manager'
    COMPANY_ADMIN = 'company_admin'
    BILLING = 'billing'
    ADMIN = 'admin'
    GLOBAL_ADMIN = 'global_admin'

    @classmethod
    def parse(cls, value):
        """Unknown or missing roles fall back to the least privileged role."""
        try:
            return cls(value)
        except ValueError:
            return cls.USER


PERMISSIONS = {
    'dashboard': frozenset(Role),
    'audit_logs': frozenset({Role.MANAGER, Role.ADMIN}),
    'manager_dashboard': frozenset({Role.MANAGER, Role.COMPANY_ADMIN, Role.ADMIN, Role.GLOBAL_ADMIN}),
    'company_admin': frozenset({Role.COMPANY_ADMIN, Role.ADMIN, Role.GLOBAL_ADMIN}),
    'global_admin': frozenset({Role.GLOBAL_ADMIN}),
    'billing': frozenset({Role.BILLING, Role.COMPANY_ADMIN, Role.GLOBAL_ADMIN}),
    'manage_candidates': frozenset({Role.MANAGER, Role.ADMIN}),
    'unlimited_resend': frozenset(set(Role) - {Role.USER}),
}


Principal = namedtuple('Principal', ['user_id', 'role', 'company_id'])


def is_allowed(role, resource):
    """True if ``role`` is on the allow-list for ``resource``. Unknown resources deny."""
    return Role.parse(role) in PERMISSIONS.get(resource, frozenset())


class ProfileRoleProvider:
    """Reads role and tenant from the user's profile row."""

    def principal_for(self, user):
        return Principal(user.id, Role.parse(user.role), user.company_id)


class StaticRoleProvider:
    """
    Fixed role for tests and local impersonation.

    Only installable when the app config sets ALLOW_ROLE_OVERRIDE.
    """

    def __init__(self, role, company_id=None):
        self.role = Role.parse(role)
        self.company_id = company_id

    def principal_for(self, user):
        company_id = self.company_id if self.company_id is not None else user.company_id
        return Principal(user.id, self.role, company_id)


def install_role_provider(app, provider=None):
    """Register the role provider on ``app``; overrides need ALLOW_ROLE_OVERRIDE."""
    if provider is None:
        provider = ProfileRoleProvider()
    elif not isinstance(provider, ProfileRoleProvider) and not app.config.get('ALLOW_ROLE_OVERRIDE'):
        raise RuntimeError('Role override providers are disabled in this environment')
    app.extensions['role_provider'] = provider
    return provider


def resolve_principal(user):
    """Principal for an authenticated user, or None when nobody is logged in."""
    if user is None or not getattr(user, 'is_authenticated', False):
        return None
    provider = current_app.extensions.get('role_provider') or ProfileRoleProvider()
    return provider.principal_for(user)
