"""
Contact Submission Service

Runs one contact form submission end to end: honeypot, validation,
sentiment scoring, persistence and the two notification emails.

Collaborators are passed in so tests can swap them:

    service = ContactSubmissionService(
        store=ContactSubmissionStore(),
        scorer=SentimentScorer(),
        dispatcher=MailDispatcher(timeout=30),
    )
    result = service.submit(request.data, SubmissionMetadata.from_request(request))
"""
import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from django.db import DatabaseError
from user_agents import parse as parse_user_agent

from .emails import MailDispatcher, build_acknowledgement, build_owner_notification
from .exceptions import NotificationFailed, PersistenceFailed, SpamDetected, ValidationFailed
from .models import ContactSubmission
from .rate_limiting import get_client_ip
from .sentiment import SentimentScorer
from .serializers import ContactFormSubmitSerializer

logger = logging.getLogger(__name__)

HONEYPOT_FIELD = 'website'
USER_AGENT_MAX_LENGTH = 500
IP_MAX_LENGTH = ContactSubmission._meta.get_field('ip').max_length


class SubmissionOutcome(enum.Enum):
    DELIVERED = 'delivered'
    STORED_NOT_NOTIFIED = 'stored_not_notified'


@dataclass
class SubmissionResult:
    outcome: SubmissionOutcome
    submission: ContactSubmission
    error: Optional[Exception] = None

    @property
    def notified(self):
        return self.outcome is SubmissionOutcome.DELIVERED


@dataclass(frozen=True)
class SubmissionMetadata:
    """Request-derived details stored alongside a submission."""

    ip: Optional[str] = None
    user_agent: str = ''
    browser: str = 'Unknown'

    @classmethod
    def from_request(cls, request):
        user_agent = request.META.get('HTTP_USER_AGENT', '')[:USER_AGENT_MAX_LENGTH]
        browser = str(parse_user_agent(user_agent)) if user_agent else 'Unknown'
        ip = get_client_ip(request)
        if ip:
            ip = ip[:IP_MAX_LENGTH]
        return cls(ip=ip, user_agent=user_agent, browser=browser)


class ContactSubmissionStore:
    """Persists submissions through the ORM."""

    def save(self, **fields) -> ContactSubmission:
        try:
            return ContactSubmission.objects.create(**fields)
        except DatabaseError as exc:
            logger.exception(f"Failed to store contact submission from {fields.get('email')}")
            raise PersistenceFailed() from exc


class ContactSubmissionService:

    def __init__(self, store=None, scorer=None, dispatcher=None):
        self.store = store or ContactSubmissionStore()
        self.scorer = scorer or SentimentScorer()
        self.dispatcher = dispatcher or MailDispatcher()

    def submit(self, data, metadata: SubmissionMetadata) -> SubmissionResult:
        """
        Process one submission.

        Raises:
            SpamDetected: honeypot field filled in
            ValidationFailed: required field missing
            PersistenceFailed: submission could not be stored

        A failed notification does not raise; the result carries
        SubmissionOutcome.STORED_NOT_NOTIFIED since the record is already saved.
        """
        if not isinstance(data, Mapping):
            logger.info("Rejected contact submission: body is not an object")
            raise ValidationFailed()

        if data.get(HONEYPOT_FIELD):
            logger.warning(f"Honeypot triggered by {metadata.ip or 'unknown address'}")
            raise SpamDetected()

        serializer = ContactFormSubmitSerializer(data=data)
        if not serializer.is_valid():
            logger.info(f"Rejected contact submission: {dict(serializer.errors)}")
            raise ValidationFailed(serializer.errors)

        fields = serializer.validated_data
        sentiment_score = self.scorer.score(fields['message'])

        submission = self.store.save(
            name=fields['name'],
            email=fields['email'],
            message=fields['message'],
            ip=metadata.ip,
            user_agent=metadata.user_agent,
            sentiment_score=sentiment_score,
        )
        logger.info(
            f"Stored contact submission {submission.id} from {submission.email} "
            f"(sentiment {sentiment_score})"
        )

        try:
            self.dispatcher.send_all([
                build_owner_notification(submission, metadata),
                build_acknowledgement(submission),
            ])
        except NotificationFailed as exc:
            logger.error(f"Contact submission {submission.id} stored but notifications failed")
            return SubmissionResult(SubmissionOutcome.STORED_NOT_NOTIFIED, submission, exc)

        return SubmissionResult(SubmissionOutcome.DELIVERED, submission)
