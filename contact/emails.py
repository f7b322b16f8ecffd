"""
Contact Form Emails

Builds the owner notification and the submitter acknowledgement, and sends
them concurrently.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, wait

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection
from django.template.loader import render_to_string

from .exceptions import NotificationFailed

logger = logging.getLogger(__name__)


def _from_address(display_name):
    sender = getattr(settings, 'CONTACT_EMAIL_FROM', None) or settings.DEFAULT_FROM_EMAIL
    return f'"{display_name}" <{sender}>'


def build_owner_notification(submission, metadata):
    """
    Notification to the site owner about a new submission.

    Args:
        submission: the saved ContactSubmission
        metadata: SubmissionMetadata for the request
    """
    subject = 'New Contact Form Submission'

    # Plain text version
    text_content = f"""New contact form submission received:

Name: {submission.name}
Email: {submission.email}
IP: {submission.ip or 'Unknown'}
User Agent: {submission.user_agent or 'Unknown'}
Browser: {metadata.browser}
Sentiment Score: {submission.sentiment_score} ({submission.sentiment_label})

Message:
{submission.message}
"""

    html_content = render_to_string('contact/emails/owner_notification.html', {
        'submission': submission,
        'browser': metadata.browser,
    })

    email = EmailMultiAlternatives(
        subject=subject,
        body=text_content,
        from_email=_from_address(getattr(settings, 'CONTACT_FROM_NAME', 'Portfolio Contact')),
        to=[settings.CONTACT_EMAIL_TO],
        reply_to=[submission.email]
    )
    email.attach_alternative(html_content, "text/html")
    return email


def build_acknowledgement(submission):
    """Thank-you email to the submitter."""
    owner_name = getattr(settings, 'CONTACT_OWNER_NAME', 'Site Owner')

    text_content = f"""Hi {submission.name},

Thanks for reaching out. I'll get back to you soon.

Regards,
{owner_name}
"""

    html_content = render_to_string('contact/emails/acknowledgement.html', {
        'name': submission.name,
        'owner_name': owner_name,
    })

    email = EmailMultiAlternatives(
        subject='Thank you for contacting!',
        body=text_content,
        from_email=_from_address(owner_name),
        to=[submission.email]
    )
    email.attach_alternative(html_content, "text/html")
    return email


class MailDispatcher:
    """
    Sends a batch of messages concurrently and waits for all of them.

    Any failed or unfinished send fails the whole batch with
    NotificationFailed. There are no retries.

    Usage:
        dispatcher = MailDispatcher(timeout=30)  # or backend='dotted.path.EmailBackend'
        dispatcher.send_all([owner_email, acknowledgement])
    """

    def __init__(self, backend=None, timeout=None, max_workers=2):
        self.backend = backend
        if timeout is None:
            timeout = getattr(settings, 'CONTACT_EMAIL_SEND_TIMEOUT', 30)
        self.timeout = timeout
        self.max_workers = max_workers

    def _send(self, message):
        # One connection per send; SMTP connections are not thread-safe
        message.connection = get_connection(self.backend)
        return message.send(fail_silently=False)

    def send_all(self, messages):
        executor = ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix='contact-mail'
        )
        try:
            futures = {executor.submit(self._send, message): message for message in messages}
            done, not_done = wait(futures, timeout=self.timeout)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        failures = []
        for future in not_done:
            logger.error(
                f"Timed out after {self.timeout}s sending email to {futures[future].to}"
            )
            failures.append(TimeoutError(f"send to {futures[future].to} timed out"))

        for future in done:
            exc = future.exception()
            if exc is not None:
                logger.error(
                    f"Failed to send email to {futures[future].to}",
                    exc_info=(type(exc), exc, exc.__traceback__)
                )
                failures.append(exc)

        if failures:
            raise NotificationFailed() from failures[0]

        logger.info(f"Sent {len(messages)} contact emails")
