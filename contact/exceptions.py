"""
Contact Form Errors

Every failure of the submission pipeline maps to one of these, each with a
fixed HTTP status and client-facing message. Internal detail goes to the logs.
"""
from rest_framework import status


class ContactFormError(Exception):
    """Base class for contact form failures."""
    
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = 'Failed to send message.'
    
    def as_payload(self):
        return {'message': self.message}


class SpamDetected(ContactFormError):
    """Raised when the honeypot field is filled in."""
    
    status_code = status.HTTP_400_BAD_REQUEST
    message = 'Spam detected.'


class ValidationFailed(ContactFormError):
    """Raised when a required field is missing or invalid."""
    
    status_code = status.HTTP_400_BAD_REQUEST
    message = 'Name, email and message are required.'
    
    def __init__(self, fields=None):
        super().__init__(self.message)
        self.fields = fields or {}
    
    def as_payload(self):
        payload = super().as_payload()
        if self.fields:
            payload['fields'] = self.fields
        return payload


class PersistenceFailed(ContactFormError):
    """Raised when the submission could not be stored."""
    pass


class NotificationFailed(ContactFormError):
    """Raised when a notification email could not be sent."""
    pass


class RateLimited(ContactFormError):
    """Raised when a client exceeds the submission quota."""
    
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = 'Too many requests from this IP, please try again after an hour.'
    
    def __init__(self, retry_after=0):
        super().__init__(self.message)
        self.retry_after = retry_after
