"""
TimeFlow backend.

Multi-user time tracking and task management API built on FastAPI and
SQLAlchemy.
"""
