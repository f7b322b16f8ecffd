"""
Contact Form Models

Database schema for contact form submissions.
"""
import uuid
from django.db import models


class ContactSubmission(models.Model):
    """
    A contact form submission from the public site.
    
    Records are append-only: created once per accepted submission and never
    updated or deleted by the application.
    """
    
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    
    # Contact Information
    name = models.CharField(
        max_length=255,
        help_text="Name of the person contacting us"
    )
    
    email = models.CharField(
        max_length=254,
        help_text="Email address given by the submitter"
    )
    
    message = models.TextField(
        help_text="The message content"
    )
    
    # Security and Tracking
    ip = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Client address (X-Forwarded-For or connection address)"
    )
    
    user_agent = models.TextField(
        blank=True,
        default='',
        help_text="Browser user agent"
    )
    
    sentiment_score = models.IntegerField(
        help_text="Sentiment polarity of the message (positive is favourable)"
    )
    
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="When the message was submitted"
    )
    
    class Meta:
        db_table = 'contact_submissions'
        ordering = ['-created_at']
        verbose_name = 'Contact Submission'
        verbose_name_plural = 'Contact Submissions'
        indexes = [
            models.Index(fields=['email'], name='contact_sub_email_idx'),
        ]
    
    def __str__(self):
        return f"{self.name} <{self.email}> ({self.sentiment_score:+d})"
    
    @property
    def sentiment_label(self):
        """Readable sentiment bucket for admin and email display."""
        if self.sentiment_score > 0:
            return 'positive'
        if self.sentiment_score < 0:
            return 'negative'
        return 'neutral'
