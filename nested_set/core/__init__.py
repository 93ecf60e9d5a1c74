"""Core: settings and the database layer."""
