"""
Authentication view routes.
"""
from flask import Blueprint, render_template, request, redirect, url_for, flash
from flask_login import login_user, logout_user, login_required, current_user
from refevo.models import db, User, utcnow
from refevo.utils.auth import validate_email, log_audit

bp = Blueprint('auth', __name__)


def _safe_next(target):
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return url_for('dashboard.dashboard')


@bp.route('/login', methods=['GET', 'POST'])
def login():
    """User login."""
    if current_user.is_authenticated:
        return redirect(url_for('dashboard.dashboard'))

    if request.method == 'POST':
        email = request.form.get('email', '').strip().lower()
        password = request.form.get('password', '')

        if not email or not validate_email(email) or not password:
            flash('Please enter your email and password', 'error')
            return render_template('auth/login.html'), 400

        user = User.query.filter_by(email=email).first()
        if user is None or not user.check_password(password):
            flash('Invalid email or password', 'error')
            return render_template('auth/login.html'), 401

        if not user.is_active:
            flash('This account has been disabled', 'error')
            return render_template('auth/login.html'), 403

        user.last_login_at = utcnow()
        db.session.commit()
        login_user(user, remember=request.form.get('remember') == 'on')
        log_audit(user.id, 'login', 'user', user.id, company_id=user.company_id,
                  actor=user.full_name)
        return redirect(_safe_next(request.args.get('next')))

    return render_template('auth/login.html')


@bp.route('/logout')
@login_required
def logout():
    """User logout."""
    log_audit(current_user.id, 'logout', 'user', current_user.id,
              company_id=current_user.company_id, actor=current_user.full_name)
    logout_user()
    flash('You have been logged out', 'info')
    return redirect(url_for('auth.login'))
