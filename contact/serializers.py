"""
Contact Form Serializers
"""
from rest_framework import serializers

from .models import ContactSubmission


class ContactFormSubmitSerializer(serializers.Serializer):
    """
    Public contact form submission serializer.

    Checks presence of the required fields. Email format is not validated;
    the address is only used to reply to the submitter.
    """

    name = serializers.CharField(
        max_length=ContactSubmission._meta.get_field('name').max_length,
        required=True,
        help_text="Name of the person contacting us"
    )

    email = serializers.CharField(
        max_length=ContactSubmission._meta.get_field('email').max_length,
        required=True,
        help_text="Email address for follow-up"
    )

    message = serializers.CharField(
        required=True,
        help_text="Message content"
    )

    # Honeypot field for spam prevention (should be empty)
    website = serializers.CharField(
        required=False,
        allow_blank=True,
        write_only=True,
        help_text="Honeypot field - should be empty"
    )
