"""
Contact Form Django Admin Configuration

Submissions are append-only, so the admin is read-only.
"""
from django.contrib import admin
from .models import ContactSubmission


@admin.register(ContactSubmission)
class ContactSubmissionAdmin(admin.ModelAdmin):
    """Admin interface for contact submissions."""
    
    list_display = [
        'name', 'email', 'sentiment_score', 'ip', 'created_at'
    ]
    
    list_filter = ['created_at']
    
    search_fields = ['name', 'email', 'message']
    
    readonly_fields = [
        'id', 'name', 'email', 'message', 'ip', 'user_agent',
        'sentiment_score', 'sentiment_label', 'created_at'
    ]
    
    fieldsets = (
        ('Contact Information', {
            'fields': ('name', 'email', 'message')
        }),
        ('Sentiment', {
            'fields': ('sentiment_score', 'sentiment_label')
        }),
        ('Security & Tracking', {
            'fields': ('ip', 'user_agent'),
            'classes': ('collapse',)
        }),
        ('Metadata', {
            'fields': ('id', 'created_at'),
            'classes': ('collapse',)
        }),
    )
    
    def has_add_permission(self, request):
        return False
    
    def has_change_permission(self, request, obj=None):
        return False
    
    def has_delete_permission(self, request, obj=None):
        return False
