"""
Guard Kernel - shared infrastructure for the guard hours ledger.

Provides:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- Injectable clock
- Hour/minute arithmetic
- Async SQLAlchemy plumbing (declarative base, engine, session scope)
"""

__version__ = "0.1.0"
