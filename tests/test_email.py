from datetime import date
from unittest.mock import Mock

import requests

from refevo.models import Candidate, Company, Plan, ReferenceTemplate, Referee
from refevo.services.communication.email import (
    build_consent_request_email, build_plan_approval_email, build_reference_request_email,
    dispatch, send_email
)

BASE = 'https://app.refevo.com'


def test_consent_email_links():
    candidate = Candidate(full_name='Jamie Taylor', email='jamie@example.com', consent_token='abc123')

    subject, html = build_consent_request_email(candidate, BASE)

    assert 'consent' in subject.lower()
    assert 'Hi Jamie,' in html
    assert f'{BASE}/consent/abc123' in html
    assert f'{BASE}/decline-consent/abc123' in html


def test_reference_request_email():
    candidate = Candidate(full_name='Jamie Taylor')
    referee = Referee(name='Sam Lee', token='tok456')

    subject, html = build_reference_request_email(referee, candidate, BASE)

    assert subject == 'Reference request for Jamie Taylor'
    assert f'{BASE}/referee/tok456' in html


def test_plan_approval_email():
    plan = Plan(display_name='Acme Enterprise', credits_per_month=None,
                contract_start_date=date(2024, 1, 31), contract_end_date=None, is_auto_renew=False)

    subject, html = build_plan_approval_email(Company(name='Acme Ltd'), plan)

    assert subject == 'Your Refevo Enterprise Plan Has Been Activated'
    assert 'Credits per month: N/A' in html
    assert 'Contract start: 2024-01-31' in html
    assert 'Contract end: N/A' in html
    assert 'Auto-renew: No' in html


class TestSendEmail:

    def test_success(self, app, mock_resend):
        result = send_email('sam@x.com', 'Hello', '<p>Hi</p>')

        assert result == {'success': True, 'message_id': 'msg_123'}
        kwargs = mock_resend.call_args.kwargs
        assert kwargs['headers']['Authorization'] == 'Bearer test-resend-key'
        assert kwargs['json']['from'] == 'Refevo <no-reply@refevo.com>'
        assert kwargs['timeout'] == 30

    def test_missing_key(self, app, mock_resend):
        app.config['RESEND_API_KEY'] = None
        result = send_email('sam@x.com', 'Hello', '<p>Hi</p>')
        assert result['success'] is False
        mock_resend.assert_not_called()

    def test_missing_recipient(self, app, mock_resend):
        assert send_email('', 'Hello', '<p>Hi</p>')['success'] is False
        mock_resend.assert_not_called()

    def test_provider_rejection(self, app, mock_resend):
        mock_resend.return_value.status_code = 422
        mock_resend.return_value.text = 'invalid from'
        assert send_email('sam@x.com', 'Hello', '<p>Hi</p>') == {'success': False, 'error': 'invalid from'}

    def test_timeout(self, app, mock_resend):
        mock_resend.side_effect = requests.Timeout('read timed out')
        result = send_email('sam@x.com', 'Hello', '<p>Hi</p>')
        assert result['success'] is False
        assert 'timed out' in result['error']


def test_dispatch_swallows_errors(app):
    send = Mock(side_effect=RuntimeError('boom'), __name__='send')
    assert dispatch(send, 'x') == {'success': False, 'error': 'boom'}


def test_dispatch_passes_result_through(app):
    send = Mock(return_value={'success': True}, __name__='send')
    assert dispatch(send, 'x') == {'success': True}
    send.assert_called_once_with('x')


class TestCommands:

    def test_preview_email(self, app):
        result = app.test_cli_runner().invoke(args=['preview-email', 'reference-request'])

        assert result.exit_code == 0
        assert 'http://localhost/referee/sample-referee-token' in result.output

    def test_preview_email_to_file(self, app, tmp_path):
        out = tmp_path / 'consent.html'

        result = app.test_cli_runner().invoke(args=['preview-email', 'consent-request', '--out', str(out)])

        assert result.exit_code == 0
        assert '/consent/sample-consent-token' in out.read_text(encoding='utf-8')

    def test_preview_unknown_template(self, app):
        result = app.test_cli_runner().invoke(args=['preview-email', 'nope'])
        assert result.exit_code != 0

    def test_seed_templates_is_idempotent(self, app):
        runner = app.test_cli_runner()

        first = runner.invoke(args=['seed-templates'])
        second = runner.invoke(args=['seed-templates'])

        assert 'Created default template' in first.output
        assert 'already exists' in second.output
        template = ReferenceTemplate.query.filter_by(name='Standard Reference').one()
        assert template.company_id is None
        assert template.get_questions()


def test_supplied_names_are_escaped():
    candidate = Candidate(full_name='<b>Jamie</b> Taylor')
    referee = Referee(name='<script>alert(1)</script> Lee', token='tok456')

    _, html = build_reference_request_email(referee, candidate, BASE)

    assert '<script>' not in html
    assert '<b>Jamie</b>' not in html
    assert '&lt;script&gt;alert(1)&lt;/script&gt;' in html
    assert '&lt;b&gt;Jamie&lt;/b&gt; Taylor has named you' in html


def test_plan_approval_escapes_company_and_plan_names():
    plan = Plan(display_name='Gold <i>Plus</i>')

    _, html = build_plan_approval_email(Company(name='Smith & Sons'), plan)

    assert 'Hello Smith &amp; Sons team' in html
    assert 'Gold &lt;i&gt;Plus&lt;/i&gt;' in html
