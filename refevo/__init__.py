"""
Flask application factory for Refevo.
"""
import json
import logging
import os
import click
from flask import Flask, jsonify, render_template, request


def create_app(config_name='default', role_provider=None):
    """Create and configure the Flask application."""
    # Import these inside the function to avoid import-time side effects
    from refevo.config import config
    from refevo.extensions import login_manager, migrate
    from refevo.models import db, User
    from refevo.utils.roles import install_role_provider

    # Set template folder to project root templates directory
    template_folder = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'templates')
    app = Flask(__name__, template_folder=template_folder)

    # Load configuration
    config_class = config[config_name]
    app.config.from_object(config_class)
    if hasattr(config_class, 'init_app'):
        config_class.init_app(app)

    # Class attributes are evaluated at import time, so re-read the database URL
    database_url = os.environ.get('DATABASE_URL')
    if database_url and not app.config.get('TESTING'):
        app.config['SQLALCHEMY_DATABASE_URI'] = database_url

    # Handle PostgreSQL URL format from Heroku/Railway
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('postgres://'):
        app.config['SQLALCHEMY_DATABASE_URI'] = app.config['SQLALCHEMY_DATABASE_URI'].replace(
            'postgres://', 'postgresql://', 1
        )

    logging.basicConfig(
        level=getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    db_uri = app.config['SQLALCHEMY_DATABASE_URI']
    db_type = 'postgresql' if 'postgresql' in db_uri else 'sqlite' if 'sqlite' in db_uri else 'unknown'
    app.logger.info("Starting Refevo (%s config, %s database)", config_name, db_type)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # Configure login manager
    login_manager.login_view = 'auth.login'
    login_manager.login_message = 'Please log in to access this page.'
    login_manager.login_message_category = 'info'

    @login_manager.user_loader
    def load_user(user_id):
        user = db.session.get(User, user_id)
        return user if user is not None and user.is_active else None

    install_role_provider(app, role_provider)

    # Register blueprints
    from refevo.views import auth, dashboard, public
    from refevo.api import candidates_api, referees_api, audit_api, admin_api, public_api

    app.register_blueprint(auth.bp)
    app.register_blueprint(dashboard.bp)
    app.register_blueprint(public.bp)

    app.register_blueprint(candidates_api.bp)
    app.register_blueprint(referees_api.bp)
    app.register_blueprint(audit_api.bp)
    app.register_blueprint(admin_api.bp)
    app.register_blueprint(public_api.bp)

    register_error_handlers(app, db)
    register_commands(app, db)

    return app


def register_error_handlers(app, db):
    from refevo.services.errors import WorkflowError, ValidationError

    def wants_json():
        return request.path.startswith('/api/')

    @app.errorhandler(WorkflowError)
    def workflow_error(error):
        if wants_json():
            body = {'error': error.message}
            if isinstance(error, ValidationError) and error.errors:
                body['errors'] = {str(k): v for k, v in error.errors.items()}
            return jsonify(body), error.status_code
        return render_template('public/message.html', title='Something went wrong',
                               message=error.message), error.status_code

    @app.errorhandler(403)
    def forbidden(error):
        if wants_json():
            return jsonify({'error': 'Forbidden'}), 403
        return render_template('errors/403.html'), 403

    @app.errorhandler(404)
    def not_found(error):
        if wants_json():
            return jsonify({'error': 'Not found'}), 404
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        if wants_json():
            return jsonify({'error': 'Internal server error'}), 500
        return render_template('errors/500.html'), 500


def register_commands(app, db):
    from refevo.models import ReferenceTemplate
    from refevo.utils.constants import DEFAULT_QUESTIONS, DEFAULT_REF_TYPES

    @app.cli.command('preview-email')
    @click.argument('template', type=click.Choice(sorted(EMAIL_PREVIEWS)))
    @click.option('--out', 'out_path', default=None, help='Write HTML here instead of stdout.')
    def preview_email(template, out_path):
        """Render one transactional email with sample data."""
        subject, html = EMAIL_PREVIEWS[template](app.config)
        if out_path:
            with open(out_path, 'w', encoding='utf-8') as f:
                f.write(html)
            click.echo(f"Wrote '{subject}' to {out_path}")
        else:
            click.echo(html)

    @app.cli.command('seed-templates')
    def seed_templates():
        """Create the global default reference template if it is missing."""
        if ReferenceTemplate.query.filter_by(company_id=None, name='Standard Reference').first():
            click.echo('Default template already exists')
            return
        db.session.add(ReferenceTemplate(
            name='Standard Reference',
            ref_types=json.dumps(DEFAULT_REF_TYPES),
            questions=json.dumps(DEFAULT_QUESTIONS),
            is_active=True,
        ))
        db.session.commit()
        click.echo('Created default template')


def _sample_objects():
    from datetime import date
    from refevo.models import Candidate, Company, Plan, Referee

    candidate = Candidate(full_name='Jamie Taylor', email='jamie@example.com',
                          consent_token='sample-consent-token')
    referee = Referee(name='Sam Lee', email='sam@example.com', token='sample-referee-token')
    company = Company(name='Acme Ltd', billing_email='billing@example.com')
    plan = Plan(display_name='Acme Enterprise', plan_type='custom', credits_per_month=100,
                contract_start_date=date(2025, 1, 31), contract_term_months=12,
                contract_end_date=date(2026, 1, 31), is_auto_renew=True)
    return candidate, referee, company, plan


def _preview(builder_name):
    def render(config):
        from refevo.services.communication import email
        candidate, referee, company, plan = _sample_objects()
        base_url = config['SITE_URL'].rstrip('/')
        builder = getattr(email, builder_name)
        if builder_name == 'build_reference_request_email':
            return builder(referee, candidate, base_url)
        if builder_name == 'build_plan_approval_email':
            return builder(company, plan)
        if builder_name == 'build_beta_invite_email':
            return builder('Jamie Taylor', 'jamie@example.com', None, base_url,
                           config.get('OPT_OUT_SECRET'))
        return builder(candidate, base_url)
    return render


EMAIL_PREVIEWS = {
    'consent-request': _preview('build_consent_request_email'),
    'referee-invite': _preview('build_referee_invite_email'),
    'reference-request': _preview('build_reference_request_email'),
    'plan-approval': _preview('build_plan_approval_email'),
    'beta-invite': _preview('build_beta_invite_email'),
}
