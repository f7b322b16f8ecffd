import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ContactSubmission',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(help_text='Name of the person contacting us', max_length=255)),
                ('email', models.CharField(help_text='Email address given by the submitter', max_length=254)),
                ('message', models.TextField(help_text='The message content')),
                ('ip', models.CharField(blank=True, help_text='Client address (X-Forwarded-For or connection address)', max_length=255, null=True)),
                ('user_agent', models.TextField(blank=True, default='', help_text='Browser user agent')),
                ('sentiment_score', models.IntegerField(help_text='Sentiment polarity of the message (positive is favourable)')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='When the message was submitted')),
            ],
            options={
                'verbose_name': 'Contact Submission',
                'verbose_name_plural': 'Contact Submissions',
                'db_table': 'contact_submissions',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['email'], name='contact_sub_email_idx')],
            },
        ),
    ]
