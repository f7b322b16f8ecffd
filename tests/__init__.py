"""
Centralized test suite for the contact form backend.

Test Organization:
- integration/ - pipeline and component tests with fake collaborators
- Endpoint tests remain in the app directory (contact/tests.py)
"""
