"""Database schema definitions used by the init script and CLI."""
