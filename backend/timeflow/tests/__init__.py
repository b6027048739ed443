"""
Test package for the TimeFlow backend application.

This package contains test suites for:
- Authentication and API keys
- User, team and project management
- Task and checklist operations
- Time tracking and reporting
- Storage-level authorization and project repair
"""
