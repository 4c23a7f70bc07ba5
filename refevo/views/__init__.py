"""
View blueprints for Refevo.
"""
from refevo.views import auth, dashboard, public

__all__ = ['auth', 'dashboard', 'public']
