"""
Contact Submission Pipeline Tests

Exercises ContactSubmissionService and ContactFormSubmitView with fake
collaborators (store, scorer, mail dispatcher, rate limiter) so each step
of the pipeline can be observed in isolation.

Run with: pytest tests/integration/test_contact_submission_service.py -v
"""

import pytest
from unittest.mock import patch

from django.db import DatabaseError
from rest_framework import status
from rest_framework.test import APIRequestFactory

from contact.exceptions import NotificationFailed, PersistenceFailed, SpamDetected, ValidationFailed
from contact.models import ContactSubmission
from contact.rate_limiting import RateLimitDecision
from contact.services import (
    ContactSubmissionService,
    ContactSubmissionStore,
    SubmissionMetadata,
    SubmissionOutcome,
)
from contact.views import ContactFormSubmitView


# =============================================================================
# FAKES
# =============================================================================

class FakeScorer:
    def __init__(self, score=4, calls=None):
        self.value = score
        self.calls = calls if calls is not None else []

    def score(self, text):
        self.calls.append(('score', text))
        return self.value


class FakeStore:
    def __init__(self, fail=False, calls=None):
        self.fail = fail
        self.saved = []
        self.calls = calls if calls is not None else []

    def save(self, **fields):
        self.calls.append(('save', fields['email']))
        if self.fail:
            raise PersistenceFailed()
        submission = ContactSubmission(**fields)
        self.saved.append(submission)
        return submission


class FakeDispatcher:
    def __init__(self, fail=False, calls=None):
        self.fail = fail
        self.sent = []
        self.calls = calls if calls is not None else []

    def send_all(self, messages):
        self.calls.append(('send_all', len(messages)))
        if self.fail:
            raise NotificationFailed()
        self.sent.extend(messages)


class FakeLimiter:
    def __init__(self, allowed=True):
        self.allowed = allowed
        self.hits = []

    def hit(self, identifier):
        self.hits.append(identifier)
        if self.allowed:
            return RateLimitDecision(True, len(self.hits))
        return RateLimitDecision(False, len(self.hits), retry_after=1800)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def calls():
    return []


@pytest.fixture
def scorer(calls):
    return FakeScorer(score=4, calls=calls)


@pytest.fixture
def store(calls):
    return FakeStore(calls=calls)


@pytest.fixture
def dispatcher(calls):
    return FakeDispatcher(calls=calls)


@pytest.fixture
def service(store, scorer, dispatcher):
    return ContactSubmissionService(store=store, scorer=scorer, dispatcher=dispatcher)


@pytest.fixture
def metadata():
    return SubmissionMetadata(ip='203.0.113.10', user_agent='curl/8.5.0', browser='Other / Other / curl 8.5.0')


# =============================================================================
# SERVICE
# =============================================================================

class TestContactSubmissionService:

    def test_delivered_submission(self, service, store, dispatcher, contact_payload, metadata):
        result = service.submit(contact_payload, metadata)

        assert result.outcome is SubmissionOutcome.DELIVERED
        assert result.notified is True
        assert result.error is None
        assert result.submission is store.saved[0]

        assert [m.to for m in dispatcher.sent] == [['owner@example.com'], ['ann@x.com']]

    def test_stores_scorer_output_and_metadata(self, service, store, contact_payload, metadata):
        service.submit(contact_payload, metadata)

        submission = store.saved[0]
        assert submission.sentiment_score == 4
        assert submission.ip == '203.0.113.10'
        assert submission.user_agent == 'curl/8.5.0'

    def test_pipeline_order(self, service, calls, contact_payload, metadata):
        service.submit(contact_payload, metadata)

        assert calls == [
            ('score', 'I love this!'),
            ('save', 'ann@x.com'),
            ('send_all', 2),
        ]

    def test_fields_are_trimmed(self, service, store, contact_payload, metadata):
        contact_payload['name'] = '  Ann  '

        service.submit(contact_payload, metadata)

        assert store.saved[0].name == 'Ann'

    def test_honeypot_short_circuits(self, service, calls, metadata):
        data = {'name': 'Bot', 'email': 'a@b.com', 'message': 'hi', 'website': 'http://spam.biz'}

        with pytest.raises(SpamDetected):
            service.submit(data, metadata)

        assert calls == []

    def test_missing_fields(self, service, calls, metadata):
        with pytest.raises(ValidationFailed) as excinfo:
            service.submit({'name': 'Ann', 'website': ''}, metadata)

        assert set(excinfo.value.fields) == {'email', 'message'}
        assert excinfo.value.status_code == status.HTTP_400_BAD_REQUEST
        assert calls == []

    def test_non_mapping_body(self, service, metadata):
        with pytest.raises(ValidationFailed):
            service.submit(['Ann'], metadata)

    def test_persistence_failure_sends_nothing(self, scorer, dispatcher, contact_payload, metadata):
        service = ContactSubmissionService(
            store=FakeStore(fail=True), scorer=scorer, dispatcher=dispatcher
        )

        with pytest.raises(PersistenceFailed):
            service.submit(contact_payload, metadata)

        assert dispatcher.sent == []

    def test_notification_failure_is_stored_not_notified(self, store, scorer, contact_payload, metadata):
        service = ContactSubmissionService(
            store=store, scorer=scorer, dispatcher=FakeDispatcher(fail=True)
        )

        result = service.submit(contact_payload, metadata)

        assert result.outcome is SubmissionOutcome.STORED_NOT_NOTIFIED
        assert result.notified is False
        assert isinstance(result.error, NotificationFailed)
        assert len(store.saved) == 1


@pytest.mark.django_db
class TestContactSubmissionStore:

    def test_save_creates_record(self):
        submission = ContactSubmissionStore().save(
            name='Ann', email='ann@x.com', message='I love this!',
            ip=None, user_agent='', sentiment_score=3,
        )

        stored = ContactSubmission.objects.get(id=submission.id)
        assert stored.ip is None
        assert stored.sentiment_score == 3
        assert stored.sentiment_label == 'positive'

    def test_database_error_becomes_persistence_failed(self):
        with patch.object(ContactSubmission.objects, 'create', side_effect=DatabaseError('locked')):
            with pytest.raises(PersistenceFailed) as excinfo:
                ContactSubmissionStore().save(
                    name='Ann', email='ann@x.com', message='hi',
                    ip=None, user_agent='', sentiment_score=0,
                )

        assert isinstance(excinfo.value.__cause__, DatabaseError)


# =============================================================================
# VIEW WITH INJECTED COLLABORATORS
# =============================================================================

class TestContactFormSubmitViewInjection:

    def _post(self, view, data):
        factory = APIRequestFactory()
        request = factory.post('/api/contact', data, format='json', REMOTE_ADDR='203.0.113.10')
        return view(request)

    def test_success(self, service, contact_payload):
        limiter = FakeLimiter()
        view = ContactFormSubmitView.as_view(service=service, rate_limiter=limiter)

        response = self._post(view, contact_payload)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'message': 'Message sent successfully'}
        assert limiter.hits == ['203.0.113.10']

    def test_stored_not_notified_maps_to_server_error(self, store, scorer, contact_payload):
        service = ContactSubmissionService(
            store=store, scorer=scorer, dispatcher=FakeDispatcher(fail=True)
        )
        view = ContactFormSubmitView.as_view(service=service, rate_limiter=FakeLimiter())

        response = self._post(view, contact_payload)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data == {'message': 'Failed to send message.'}
        assert len(store.saved) == 1

    def test_rate_limited_request_never_reaches_service(self, service, calls, contact_payload):
        view = ContactFormSubmitView.as_view(service=service, rate_limiter=FakeLimiter(allowed=False))

        response = self._post(view, contact_payload)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response['Retry-After'] == '1800'
        assert calls == []
