import json

import pytest

from refevo.models import db, AuditLog, Referee, ReferenceRequest, ReferenceResponse
from refevo.services.collection import load_reference_form, submit_reference, validate_answers
from refevo.services.errors import (
    AlreadySubmitted, ArchivedResource, InactiveResource, NotFound, ValidationError
)

ANSWERS = {'relationship': 'Line manager for two years', 'performance': '4', 'comments': ''}


@pytest.fixture
def candidate(make_candidate):
    return make_candidate(token='abc123', consent_status='granted', status='active')


@pytest.fixture
def referee(candidate, make_referee):
    referee, _ = make_referee(candidate, token='tok456')
    return referee


def test_form_substitutes_candidate_name(referee):
    form = load_reference_form('tok456')
    labels = [q['label'] for q in form.questions]
    assert 'How do you know Jamie Taylor?' in labels
    assert form.questions[1]['scale'] == 5


def test_unknown_token(app):
    with pytest.raises(NotFound):
        load_reference_form('nope')


def test_archived_referee_never_sees_form(candidate, make_referee):
    make_referee(candidate, token='tok456', is_archived=True, request_status='archived')

    with pytest.raises(ArchivedResource) as exc:
        load_reference_form('tok456')
    assert 'archived' in exc.value.message.lower()


def test_archived_referee_page(client, candidate, make_referee):
    make_referee(candidate, token='tok456', is_archived=True, request_status='archived')

    resp = client.get('/referee/tok456')

    assert resp.status_code == 410
    assert b'<form' not in resp.data


def test_post_to_archived_link_writes_nothing(client, candidate, make_referee):
    make_referee(candidate, token='tok456', is_archived=True, request_status='archived')

    resp = client.post('/referee/tok456', data=ANSWERS)

    assert resp.status_code == 410
    assert ReferenceResponse.query.count() == 0
    assert Referee.query.one().status == 'invited'


def test_inactive_template_blocks_form(referee, template):
    template.is_active = False
    db.session.commit()

    with pytest.raises(InactiveResource):
        load_reference_form('tok456')


@pytest.mark.parametrize('is_archived, expected', [
    (True, ArchivedResource),
    (False, AlreadySubmitted),
])
def test_terminal_states_are_checked_before_template(candidate, make_referee, template,
                                                     is_archived, expected):
    make_referee(candidate, token='tok456', status='completed', is_archived=is_archived)
    template.is_active = False
    db.session.commit()

    with pytest.raises(expected):
        load_reference_form('tok456')


def test_submit_completes_referee_and_request(referee):
    submit_reference('tok456', dict(ANSWERS, unexpected='dropped'))

    referee = Referee.query.filter_by(token='tok456').one()
    request = ReferenceRequest.query.filter_by(referee_id=referee.id).one()
    response = ReferenceResponse.query.filter_by(referee_id=referee.id).one()

    assert referee.status == 'completed'
    assert referee.response_received_at is not None
    assert request.status == 'completed'
    assert request.completed_at is not None
    assert set(response.get_responses()) == {'relationship', 'performance', 'comments'}
    assert response.get_responses()['performance'] == 4


def test_submit_writes_audit(referee):
    submit_reference('tok456', ANSWERS)

    entry = AuditLog.query.filter_by(action='submit_reference').one()
    assert entry.actor == 'referee'
    assert json.loads(entry.details)['candidate_id'] == referee.candidate_id


def test_second_submission_is_rejected(referee):
    submit_reference('tok456', ANSWERS)

    with pytest.raises(AlreadySubmitted):
        submit_reference('tok456', ANSWERS)
    assert ReferenceResponse.query.count() == 1


class TestValidateAnswers:

    def test_required_questions(self, template):
        with pytest.raises(ValidationError) as exc:
            validate_answers(template, {'comments': 'hi'})
        assert set(exc.value.errors) == {'relationship', 'performance'}

    @pytest.mark.parametrize('rating', ['0', '6', 'great'])
    def test_rating_out_of_range(self, template, rating):
        with pytest.raises(ValidationError) as exc:
            validate_answers(template, dict(ANSWERS, performance=rating))
        assert exc.value.errors == {'performance': 'Choose a rating from 1 to 5.'}

    def test_optional_answer_is_kept_when_given(self, template):
        cleaned = validate_answers(template, dict(ANSWERS, comments='  Reliable  '))
        assert cleaned['comments'] == 'Reliable'


def test_form_page_and_short_alias(client, referee):
    assert client.get('/referee/tok456').status_code == 200
    resp = client.get('/ref/tok456')
    assert resp.status_code == 200
    assert b'How do you know Jamie Taylor?' in resp.data


def test_submit_via_page(client, referee):
    resp = client.post('/ref/tok456', data=ANSWERS)

    assert resp.status_code == 302
    assert 'kind=reference' in resp.headers['Location']
    assert Referee.query.filter_by(token='tok456').one().status == 'completed'

    resp = client.get('/referee/tok456')
    assert resp.status_code == 302


def test_invalid_submission_rerenders_form(client, referee):
    resp = client.post('/referee/tok456', data={'relationship': '', 'performance': ''})

    assert resp.status_code == 400
    assert b'This question is required.' in resp.data
    assert ReferenceResponse.query.count() == 0


def test_rendered_form_round_trips_to_template_keys(client, referee, template):
    keys = [q['key'] for q in template.get_questions()]
    page = client.get('/referee/tok456').get_data(as_text=True)
    for key in keys:
        assert f'name="{key}"' in page

    filled = {'relationship': 'Managed them', 'performance': '5', 'comments': 'Reliable'}
    client.post('/referee/tok456', data=filled)

    stored = ReferenceResponse.query.one().get_responses()
    assert sorted(stored) == sorted(keys)
    assert stored['comments'] == 'Reliable'
