"""
Module ORM Registry (``guard_modules._orm_registry``).

Responsibility
--------------
Import every ``guard_modules.*.orm`` module so that ``Base.metadata``
holds all table definitions before ``create_tables()`` runs.

Usage
-----
``guard_kernel.db.engine.create_tables()`` calls
``import_all_orm_models()``; tests get a complete schema the same way.
"""


def import_all_orm_models() -> None:
    """Register every module ORM model.  Idempotent."""
    # fmt: off
    import guard_modules.roster.orm  # noqa: F401
    import guard_modules.payroll.orm  # noqa: F401
    import guard_modules.alerts.orm  # noqa: F401
    # fmt: on
