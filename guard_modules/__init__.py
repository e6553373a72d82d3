"""
Ledger modules: roster, payroll and alerts.

Each module follows the same shape: ``models.py`` (frozen DTOs),
``orm.py`` (SQLAlchemy persistence with ``to_dto``/``from_dto``) and
``service.py`` (flush-only async service).
"""
