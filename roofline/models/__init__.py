"""
Roofline Project Tracker
Shared SQLAlchemy extension instance.

Every model module imports ``db`` from here so a single metadata object
covers the whole schema (Flask-Migrate reads it for autogenerate).
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
