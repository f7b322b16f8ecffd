"""
Tests for the public contact form endpoint.
"""
import pytest
from smtplib import SMTPException
from unittest.mock import patch

from django.core.mail import EmailMultiAlternatives
from django.db import DatabaseError
from django.test import override_settings
from rest_framework import status

from contact.models import ContactSubmission

CONTACT_URL = '/api/contact'
CHROME_UA = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)


def submit(api_client, data, ip='203.0.113.10', **extra):
    extra.setdefault('HTTP_USER_AGENT', CHROME_UA)
    return api_client.post(CONTACT_URL, data, format='json', REMOTE_ADDR=ip, **extra)


@pytest.mark.django_db
class TestContactFormSubmission:
    """Test public contact form submission."""

    def test_submit_valid_contact_form(self, api_client, contact_payload, mailoutbox):
        """Ann's submission is stored, scored positive and both emails go out."""
        response = submit(api_client, contact_payload)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {'message': 'Message sent successfully'}

        assert ContactSubmission.objects.count() == 1
        submission = ContactSubmission.objects.get()
        assert submission.name == 'Ann'
        assert submission.email == 'ann@x.com'
        assert submission.message == 'I love this!'
        assert submission.sentiment_score > 0
        assert submission.ip == '203.0.113.10'
        assert submission.user_agent == CHROME_UA
        assert submission.created_at is not None

        assert len(mailoutbox) == 2
        assert sorted(m.to[0] for m in mailoutbox) == ['ann@x.com', 'owner@example.com']

    def test_owner_notification_content(self, api_client, contact_payload, mailoutbox):
        submit(api_client, contact_payload)

        owner_email = next(m for m in mailoutbox if m.to == ['owner@example.com'])
        submission = ContactSubmission.objects.get()

        assert owner_email.subject == 'New Contact Form Submission'
        assert owner_email.reply_to == ['ann@x.com']
        assert owner_email.from_email == '"Portfolio Contact" <noreply@example.com>'
        assert 'Name: Ann' in owner_email.body
        assert 'Email: ann@x.com' in owner_email.body
        assert 'IP: 203.0.113.10' in owner_email.body
        assert f'User Agent: {CHROME_UA}' in owner_email.body
        assert 'Chrome' in owner_email.body
        assert f'Sentiment Score: {submission.sentiment_score}' in owner_email.body
        assert 'I love this!' in owner_email.body

        html, mimetype = owner_email.alternatives[0]
        assert mimetype == 'text/html'
        assert '<b>Sentiment Score:</b>' in html

    def test_acknowledgement_content(self, api_client, contact_payload, mailoutbox):
        submit(api_client, contact_payload)

        ack = next(m for m in mailoutbox if m.to == ['ann@x.com'])

        assert ack.subject == 'Thank you for contacting!'
        assert ack.body.startswith('Hi Ann,')
        assert 'Site Owner' in ack.body
        assert ack.from_email == '"Site Owner" <noreply@example.com>'

    def test_html_email_escapes_user_input(self, api_client, contact_payload, mailoutbox):
        contact_payload['message'] = '<script>alert(1)</script> great work'
        submit(api_client, contact_payload)

        owner_email = next(m for m in mailoutbox if m.to == ['owner@example.com'])
        html, _ = owner_email.alternatives[0]
        assert '<script>' not in html
        assert '&lt;script&gt;' in html

    def test_negative_message_scores_negative(self, api_client, contact_payload):
        contact_payload['message'] = 'This site is terrible and the service was awful.'

        response = submit(api_client, contact_payload)

        assert response.status_code == status.HTTP_200_OK
        assert ContactSubmission.objects.get().sentiment_score < 0

    def test_forwarded_for_header_takes_precedence(self, api_client, contact_payload):
        response = submit(
            api_client,
            contact_payload,
            HTTP_X_FORWARDED_FOR='198.51.100.7, 10.0.0.1'
        )

        assert response.status_code == status.HTTP_200_OK
        assert ContactSubmission.objects.get().ip == '198.51.100.7'

    def test_long_forwarded_for_is_truncated(self, api_client, contact_payload):
        response = submit(api_client, contact_payload, HTTP_X_FORWARDED_FOR='a' * 1000)

        assert response.status_code == status.HTTP_200_OK
        assert ContactSubmission.objects.get().ip == 'a' * 255

    def test_missing_user_agent_is_stored_blank(self, api_client, contact_payload, mailoutbox):
        response = submit(api_client, contact_payload, HTTP_USER_AGENT='')

        assert response.status_code == status.HTTP_200_OK
        assert ContactSubmission.objects.get().user_agent == ''
        owner_email = next(m for m in mailoutbox if m.to == ['owner@example.com'])
        assert 'User Agent: Unknown' in owner_email.body

    def test_identical_submissions_are_not_deduplicated(self, api_client, contact_payload):
        submit(api_client, contact_payload)
        submit(api_client, contact_payload)

        submissions = list(ContactSubmission.objects.all())
        assert len(submissions) == 2
        assert submissions[0].id != submissions[1].id


@pytest.mark.django_db
class TestSpamAndValidation:

    def test_honeypot_spam_detection(self, api_client, mailoutbox):
        """Bot fills the hidden website field."""
        data = {
            'name': 'Bot',
            'email': 'a@b.com',
            'message': 'hi',
            'website': 'http://spam.biz'
        }

        response = submit(api_client, data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {'message': 'Spam detected.'}
        assert ContactSubmission.objects.count() == 0
        assert len(mailoutbox) == 0

    def test_honeypot_checked_before_required_fields(self, api_client):
        response = submit(api_client, {'website': 'http://spam.biz'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {'message': 'Spam detected.'}

    def test_submit_missing_required_fields(self, api_client, mailoutbox):
        response = submit(api_client, {'name': 'Test User'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body['message'] == 'Name, email and message are required.'
        assert set(body['fields']) == {'email', 'message'}
        assert ContactSubmission.objects.count() == 0
        assert len(mailoutbox) == 0

    def test_blank_fields_are_rejected(self, api_client, contact_payload):
        contact_payload['name'] = '   '

        response = submit(api_client, contact_payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'name' in response.json()['fields']

    def test_email_format_is_not_validated(self, api_client, contact_payload):
        contact_payload['email'] = 'not-an-address'

        response = submit(api_client, contact_payload)

        assert response.status_code == status.HTTP_200_OK

    def test_malformed_json_body(self, api_client):
        response = api_client.post(
            CONTACT_URL,
            data='{"name": "Ann",',
            content_type='application/json',
            REMOTE_ADDR='203.0.113.10'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['message'] == 'Name, email and message are required.'

    def test_form_encoded_body_is_rejected(self, api_client, contact_payload, mailoutbox):
        """Only JSON bodies are accepted; other media types are a client error."""
        response = api_client.post(CONTACT_URL, contact_payload, REMOTE_ADDR='203.0.113.10')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['message'] == 'Name, email and message are required.'
        assert ContactSubmission.objects.count() == 0
        assert len(mailoutbox) == 0

    def test_non_object_json_body(self, api_client):
        response = submit(api_client, ['Ann', 'ann@x.com', 'hello'])

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert ContactSubmission.objects.count() == 0


@pytest.mark.django_db
class TestFailureHandling:

    def test_persistence_failure_sends_no_email(self, api_client, contact_payload, mailoutbox):
        with patch.object(
            ContactSubmission.objects, 'create',
            side_effect=DatabaseError('could not write to disk')
        ):
            response = submit(api_client, contact_payload)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {'message': 'Failed to send message.'}
        assert len(mailoutbox) == 0

    def test_notification_failure_keeps_record(self, api_client, contact_payload):
        with patch.object(
            EmailMultiAlternatives, 'send',
            side_effect=SMTPException('relay access denied')
        ):
            response = submit(api_client, contact_payload)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {'message': 'Failed to send message.'}
        assert 'relay' not in response.content.decode()
        assert ContactSubmission.objects.count() == 1

    def test_scorer_failure_falls_back_to_zero(self, api_client, contact_payload):
        with patch('contact.sentiment.Afinn.score', side_effect=RuntimeError('lexicon missing')):
            response = submit(api_client, contact_payload)

        assert response.status_code == status.HTTP_200_OK
        assert ContactSubmission.objects.get().sentiment_score == 0

    def test_unexpected_error_is_opaque(self, api_client, contact_payload):
        with patch(
            'contact.services.build_owner_notification',
            side_effect=KeyError('template context')
        ):
            response = submit(api_client, contact_payload)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {'message': 'Failed to send message.'}


@pytest.mark.django_db
class TestRateLimiting:
    """Test rate limiting for contact form."""

    def test_rate_limit_per_hour(self, api_client, contact_payload, mailoutbox):
        """Sixth request within the hour is rejected without side effects."""
        for i in range(5):
            contact_payload['message'] = f'Test message number {i}'
            response = submit(api_client, contact_payload)
            assert response.status_code == status.HTTP_200_OK

        response = submit(api_client, contact_payload)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json() == {
            'message': 'Too many requests from this IP, please try again after an hour.'
        }
        assert 0 < int(response['Retry-After']) <= 3600
        assert ContactSubmission.objects.count() == 5
        assert len(mailoutbox) == 10

    def test_rejected_requests_count_towards_quota(self, api_client, contact_payload):
        for _ in range(5):
            submit(api_client, {'website': 'http://spam.biz'})

        response = submit(api_client, contact_payload)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert ContactSubmission.objects.count() == 0

    def test_limit_is_per_client_address(self, api_client, contact_payload):
        for _ in range(5):
            submit(api_client, contact_payload, ip='203.0.113.10')

        blocked = submit(api_client, contact_payload, ip='203.0.113.10')
        allowed = submit(api_client, contact_payload, ip='203.0.113.11')

        assert blocked.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert allowed.status_code == status.HTTP_200_OK

    def test_rotating_forwarded_for_does_not_bypass_limit(self, api_client, contact_payload):
        """Quota is counted against the connection address, not X-Forwarded-For."""
        codes = [
            submit(
                api_client, contact_payload,
                ip='203.0.113.10', HTTP_X_FORWARDED_FOR=f'10.9.9.{i}'
            ).status_code
            for i in range(10)
        ]

        assert codes == [status.HTTP_200_OK] * 5 + [status.HTTP_429_TOO_MANY_REQUESTS] * 5
        assert ContactSubmission.objects.count() == 5

    @override_settings(CONTACT_TRUST_FORWARDED_FOR=True)
    def test_trusted_proxy_keys_on_forwarded_address(self, api_client, contact_payload):
        for _ in range(5):
            submit(api_client, contact_payload, ip='10.0.0.1', HTTP_X_FORWARDED_FOR='198.51.100.7')

        blocked = submit(api_client, contact_payload, ip='10.0.0.1', HTTP_X_FORWARDED_FOR='198.51.100.7')
        other_client = submit(api_client, contact_payload, ip='10.0.0.1', HTTP_X_FORWARDED_FOR='198.51.100.8')

        assert blocked.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert other_client.status_code == status.HTTP_200_OK
