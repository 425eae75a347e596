"""Persistence layer: models, contexts, sessions and repositories."""
