"""
Notification and Sentiment Tests

Covers the concurrent mail dispatcher, the two contact emails and the
sentiment scorer fallback.
"""

import threading

import pytest

from contact.emails import MailDispatcher, build_acknowledgement, build_owner_notification
from contact.exceptions import NotificationFailed
from contact.models import ContactSubmission
from contact.sentiment import SentimentScorer
from contact.services import SubmissionMetadata


class FakeMessage:
    def __init__(self, to, send=None):
        self.to = [to]
        self.connection = None
        self._send = send
        self.sent = False

    def send(self, fail_silently=False):
        if self._send is not None:
            self._send()
        self.sent = True
        return 1


@pytest.fixture
def submission():
    return ContactSubmission(
        name='Ann',
        email='ann@x.com',
        message='I love this!',
        ip='203.0.113.10',
        user_agent='curl/8.5.0',
        sentiment_score=3,
    )


# =============================================================================
# MAIL DISPATCHER
# =============================================================================

class TestMailDispatcher:

    def test_sends_concurrently(self):
        """Both sends must be in flight together to pass the barrier."""
        barrier = threading.Barrier(2, timeout=2)
        messages = [
            FakeMessage('owner@example.com', send=barrier.wait),
            FakeMessage('ann@x.com', send=barrier.wait),
        ]

        MailDispatcher(timeout=5).send_all(messages)

        assert all(m.sent for m in messages)

    def test_one_failure_fails_batch_after_both_settle(self):
        def refuse():
            raise ConnectionRefusedError('smtp down')

        ok = FakeMessage('owner@example.com')
        failing = FakeMessage('ann@x.com', send=refuse)

        with pytest.raises(NotificationFailed) as excinfo:
            MailDispatcher(timeout=5).send_all([ok, failing])

        assert isinstance(excinfo.value.__cause__, ConnectionRefusedError)
        assert ok.sent is True

    def test_timeout_fails_batch(self):
        release = threading.Event()
        slow = FakeMessage('owner@example.com', send=lambda: release.wait(5))

        try:
            with pytest.raises(NotificationFailed) as excinfo:
                MailDispatcher(timeout=0.2).send_all([slow, FakeMessage('ann@x.com')])
        finally:
            release.set()

        assert isinstance(excinfo.value.__cause__, TimeoutError)

    def test_each_send_gets_its_own_connection(self):
        messages = [FakeMessage('owner@example.com'), FakeMessage('ann@x.com')]

        MailDispatcher(
            backend='django.core.mail.backends.locmem.EmailBackend', timeout=5
        ).send_all(messages)

        assert messages[0].connection is not None
        assert messages[1].connection is not None
        assert messages[0].connection is not messages[1].connection

    def test_real_messages_reach_outbox(self, submission, mailoutbox):
        metadata = SubmissionMetadata(ip=submission.ip, user_agent=submission.user_agent)

        MailDispatcher(timeout=5).send_all([
            build_owner_notification(submission, metadata),
            build_acknowledgement(submission),
        ])

        assert sorted(m.subject for m in mailoutbox) == [
            'New Contact Form Submission',
            'Thank you for contacting!',
        ]


class TestContactEmails:

    def test_owner_notification(self, submission):
        metadata = SubmissionMetadata(ip=submission.ip, user_agent=submission.user_agent, browser='curl')

        email = build_owner_notification(submission, metadata)

        assert email.to == ['owner@example.com']
        assert email.reply_to == ['ann@x.com']
        assert 'Sentiment Score: 3 (positive)' in email.body
        assert 'Browser: curl' in email.body

    def test_owner_notification_unknown_ip(self, submission):
        submission.ip = None

        email = build_owner_notification(submission, SubmissionMetadata())

        assert 'IP: Unknown' in email.body

    def test_acknowledgement(self, submission):
        email = build_acknowledgement(submission)

        assert email.to == ['ann@x.com']
        assert 'Thanks for reaching out.' in email.body
        html, _ = email.alternatives[0]
        assert 'Hi Ann,' in html


# =============================================================================
# SENTIMENT
# =============================================================================

class TestSentimentScorer:

    def test_positive(self):
        assert SentimentScorer().score('I love this!') > 0

    def test_negative(self):
        assert SentimentScorer().score('This is terrible, I hate it.') < 0

    def test_empty_text_is_neutral(self):
        assert SentimentScorer().score('') == 0

    def test_score_is_rounded_integer(self):
        class HalfAnalyzer:
            def score(self, text):
                return 2.6

        assert SentimentScorer(analyzer=HalfAnalyzer()).score('anything') == 3

    def test_analyzer_failure_uses_fallback(self):
        class BrokenAnalyzer:
            def score(self, text):
                raise UnicodeDecodeError('utf-8', b'\xff', 0, 1, 'invalid start byte')

        assert SentimentScorer(analyzer=BrokenAnalyzer()).score('hello') == 0
        assert SentimentScorer(analyzer=BrokenAnalyzer(), fallback_score=-1).score('hello') == -1
