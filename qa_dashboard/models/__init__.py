"""
QA Bug Dashboard
Database instance shared by all model modules.

Usage:
    from qa_dashboard.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
