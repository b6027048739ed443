"""Persistence layer: models, engine/session management and the storage facade."""
