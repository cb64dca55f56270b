"""
Deal Room Back Office
SQLAlchemy extension instance shared by all models.

Usage:
    from dealroom.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
