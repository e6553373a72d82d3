"""
guard_batch -- savepoint-per-item batch processing over the ledgers.

Tasks implement the ``BatchTask`` protocol and are looked up by
``task_type`` in a ``TaskRegistry``; ``BatchExecutor`` runs them.
"""
