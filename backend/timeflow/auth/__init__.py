"""Authentication helpers: JWT tokens, password hashing and request dependencies."""
