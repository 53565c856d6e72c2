"""Database schema and connection handling."""
