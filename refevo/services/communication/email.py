"""
Email sending services using Resend API.

Every send returns ``{'success': bool, ...}`` and never raises, so callers can
treat email as a best-effort side effect of a committed action.
"""
import logging
from urllib.parse import urlencode
import requests
from flask import current_app
from markupsafe import escape

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

PLAN_APPROVAL_SUBJECT = "Your Refevo Enterprise Plan Has Been Activated"


def _first_name(full_name):
    return escape(full_name.split()[0]) if full_name and full_name.split() else 'there'


def _layout(heading, body_html):
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #0f766e;">{heading}</h2>
        {body_html}
        <hr style="border: none; border-top: 1px solid #eee; margin: 30px 0;">
        <p style="color: #999; font-size: 12px;">This email was sent by Refevo.</p>
    </div>
    """


def _button(url, label):
    return f"""
        <p style="text-align: center; margin: 30px 0;">
            <a href="{escape(url)}" style="background-color: #0f766e; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; font-weight: bold;">{label}</a>
        </p>
    """


def build_consent_request_email(candidate, base_url):
    consent_url = f"{base_url}/consent/{candidate.consent_token}"
    decline_url = f"{base_url}/decline-consent/{candidate.consent_token}"
    subject = "Refevo - Your consent is needed for a reference check"
    html = _layout("Reference Check Consent", f"""
        <p>Hi {_first_name(candidate.full_name)},</p>
        <p>A recruiter would like to collect references on your behalf using Refevo.
        Before we contact anyone we need your consent.</p>
        {_button(consent_url, "Review and Give Consent")}
        <p style="color: #666; font-size: 14px;">If you do not want to take part,
        <a href="{decline_url}">decline here</a>.</p>
    """)
    return subject, html


def build_referee_invite_email(candidate, base_url):
    """Sent to the candidate after consent, asking them to nominate referees."""
    add_url = f"{base_url}/add-referees/{candidate.consent_token}"
    subject = "Refevo - Please add your referees"
    html = _layout("Add Your Referees", f"""
        <p>Hi {_first_name(candidate.full_name)},</p>
        <p>Thank you for giving consent. The next step is to tell us who can provide a reference for you.</p>
        {_button(add_url, "Add Referees")}
    """)
    return subject, html


def build_reference_request_email(referee, candidate, base_url):
    form_url = f"{base_url}/referee/{referee.token}"
    subject = f"Reference request for {candidate.full_name}"
    html = _layout("Reference Request", f"""
        <p>Hi {_first_name(referee.name)},</p>
        <p>{escape(candidate.full_name)} has named you as a referee. It only takes a few minutes to complete.</p>
        {_button(form_url, "Provide Reference")}
        <p style="color: #666; font-size: 14px;">If you were not expecting this email you can ignore it.</p>
    """)
    return subject, html


def build_plan_approval_email(company, plan):
    start = plan.contract_start_date.isoformat() if plan.contract_start_date else 'N/A'
    end = plan.contract_end_date.isoformat() if plan.contract_end_date else 'N/A'
    html = _layout("Enterprise Plan Activated", f"""
        <p>Hello {escape(company.name)} team,</p>
        <p>Your custom plan <strong>{escape(plan.display_name)}</strong> is now active.</p>
        <ul>
            <li>Credits per month: {plan.credits_per_month if plan.credits_per_month is not None else 'N/A'}</li>
            <li>Contract start: {start}</li>
            <li>Contract end: {end}</li>
            <li>Auto-renew: {'Yes' if plan.is_auto_renew else 'No'}</li>
        </ul>
    """)
    return PLAN_APPROVAL_SUBJECT, html


def build_beta_invite_email(name, email, invite_link, base_url, opt_out_secret):
    query = urlencode({'email': email, 'token': opt_out_secret or ''})
    opt_out_url = f"{base_url}/api/optout?{query}"
    subject = "Welcome to the Refevo Beta — Activate your access"
    html = _layout("Refevo Early Access", f"""
        <p>Hi {_first_name(name)},</p>
        <p>Thanks for your interest in Refevo. Your beta access is ready to activate.</p>
        {_button(invite_link or base_url, "Activate Access")}
        <p style="color: #999; font-size: 12px;">Don't want these emails?
        <a href="{opt_out_url}">Unsubscribe</a>.</p>
    """)
    return subject, html


def send_email(to, subject, html):
    """POST one message to the Resend API using the app's key, sender and timeout."""
    api_key = current_app.config.get('RESEND_API_KEY')
    if not api_key:
        return {'success': False, 'error': 'Resend API key not configured'}

    if not to:
        return {'success': False, 'error': 'Recipient email not available'}

    try:
        response = requests.post(
            RESEND_API_URL,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json"
            },
            json={
                "from": current_app.config['EMAIL_FROM'],
                "to": [to],
                "subject": subject,
                "html": html
            },
            timeout=current_app.config.get('HTTP_TIMEOUT_SECONDS', 30)
        )

        if response.status_code in (200, 201):
            return {'success': True, 'message_id': response.json().get('id')}
        logger.warning("Resend rejected email to %s: %s %s", to, response.status_code, response.text)
        return {'success': False, 'error': response.text}

    except requests.RequestException as e:
        logger.warning("Email send to %s failed: %s", to, e)
        return {'success': False, 'error': str(e)}


def _base_url():
    return current_app.config['SITE_URL'].rstrip('/')


def send_consent_request_email(candidate):
    subject, html = build_consent_request_email(candidate, _base_url())
    return send_email(candidate.email, subject, html)


def send_referee_invite_email(candidate):
    subject, html = build_referee_invite_email(candidate, _base_url())
    return send_email(candidate.email, subject, html)


def send_reference_request_email(referee, candidate):
    subject, html = build_reference_request_email(referee, candidate, _base_url())
    return send_email(referee.email, subject, html)


def send_plan_approval_email(company, plan):
    if not company.billing_email:
        return {'success': False, 'error': 'Company has no billing email'}
    subject, html = build_plan_approval_email(company, plan)
    return send_email(company.billing_email, subject, html)


def send_beta_invite_email(name, email, invite_link=None):
    subject, html = build_beta_invite_email(name, email, invite_link, _base_url(),
                                            current_app.config.get('OPT_OUT_SECRET'))
    return send_email(email, subject, html)


def dispatch(send, *args):
    """Call a send function after a commit; failures are logged and reported, never raised."""
    try:
        result = send(*args)
    except Exception as e:
        logger.exception("Email dispatch via %s failed", getattr(send, '__name__', send))
        return {'success': False, 'error': str(e)}
    if not result.get('success'):
        logger.warning("Email dispatch via %s unsuccessful: %s",
                       getattr(send, '__name__', send), result.get('error'))
    return result
