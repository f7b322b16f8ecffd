"""
Contact Form App

Handles contact form submissions from the public site:
- Rate limiting per client address
- Honeypot spam check and required-field validation
- Sentiment scoring of the message
- Storage of each submission
- Email notifications (owner alert and submitter acknowledgement)
"""
