"""Database helpers for the SQL store backend."""
