"""Shared helpers: settings and logging setup."""
