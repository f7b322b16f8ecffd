"""
Contact Form Views

Public endpoint for contact form submissions.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import ParseError, UnsupportedMediaType
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import ContactFormError, NotificationFailed, ValidationFailed
from .rate_limiting import RateLimiter, rate_limit_contact_form
from .services import ContactSubmissionService, SubmissionMetadata, SubmissionOutcome

logger = logging.getLogger(__name__)


class ContactFormSubmitView(APIView):
    """
    Public endpoint for contact form submissions.

    POST /api/contact

    No authentication required. Rate limited per client address.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    # Injected through as_view(service=..., rate_limiter=...)
    service = None
    rate_limiter = None

    def get_service(self):
        return self.service or ContactSubmissionService()

    def get_rate_limiter(self):
        return self.rate_limiter or RateLimiter.from_settings()

    @rate_limit_contact_form
    def post(self, request):
        """Submit a contact form."""
        try:
            try:
                data = request.data
            except (ParseError, UnsupportedMediaType):
                raise ValidationFailed()

            result = self.get_service().submit(data, SubmissionMetadata.from_request(request))

            if result.outcome is SubmissionOutcome.STORED_NOT_NOTIFIED:
                raise NotificationFailed() from result.error

        except ContactFormError as error:
            return Response(error.as_payload(), status=error.status_code)

        except Exception:
            logger.exception("Contact form error")
            return Response(
                {'message': ContactFormError.message},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return Response(
            {'message': 'Message sent successfully'},
            status=status.HTTP_200_OK
        )
