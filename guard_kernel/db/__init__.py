"""Database plumbing: declarative base and async engine/session management."""
