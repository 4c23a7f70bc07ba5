"""
User administration for global admins: list profiles across tenants and
enable or disable accounts.
"""
import logging
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from refevo.models import db, User
from refevo.services.errors import NotFound, ValidationError, UpstreamFailure
from refevo.utils.auth import log_audit
from refevo.utils.constants import USER_ACTIVE, USER_DISABLED, USER_STATUSES

logger = logging.getLogger(__name__)

USER_LIST_LIMIT = 100


def list_users(company_id=None, status=None, search=None, limit=USER_LIST_LIMIT):
    """Newest users first, optionally narrowed by tenant, status and a name/email search."""
    query = User.query
    if company_id and company_id != 'all':
        query = query.filter(User.company_id == company_id)
    if status and status != 'all':
        query = query.filter(User.status == status)
    search = (search or '').strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            (User.first_name + ' ' + User.last_name).ilike(pattern),
            User.email.ilike(pattern),
        ))
    return query.order_by(User.created_at.desc()).limit(limit).all()


def get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def set_user_status(principal, user, status=None):
    """
    Set an account's status. Without ``status`` an active account is disabled
    and any other account is re-activated.
    """
    if status is None:
        status = USER_DISABLED if user.status == USER_ACTIVE else USER_ACTIVE
    if status not in USER_STATUSES:
        raise ValidationError(errors={'status': 'Status must be active, invited or disabled.'})
    if user.id == principal.user_id and status == USER_DISABLED:
        raise ValidationError("You cannot disable your own account.")

    previous = user.status
    user.status = status
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Status change failed for user %s", user.id)
        raise UpstreamFailure() from e

    if previous != status:
        log_audit(principal.user_id, 'update_user_status', 'user', user.id,
                  details={'changes': {'status': {'from': previous, 'to': status}}},
                  company_id=user.company_id)
    return user
