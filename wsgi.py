"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi cleanup-orphan-notifications
    gunicorn wsgi:app
"""

from checklist_platform import create_app

app = create_app()
