"""
Pydantic schemas for API request/response validation.

Provides data models for all API endpoints including authentication,
users, teams, projects, tasks, time tracking, and integration settings.
"""
