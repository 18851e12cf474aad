"""
Checklist Platform
SQLAlchemy extension instance shared by every model module.

Usage:
    from checklist_platform.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
