"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi run
    flask --app wsgi db upgrade
    gunicorn wsgi:app
"""

from qa_dashboard import create_app

app = create_app()
