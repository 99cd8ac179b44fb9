# Overview: Transaction coordination and row locking for stock-affecting operations.

from __future__ import annotations

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The conditional UPDATE in stock_ledger_service is what actually guards
    against overselling; the lock only narrows the window.
    Rows already in the session are overwritten with what the lock read.
    """
    return query.with_for_update().populate_existing()


class UnitOfWork:
    """
    One database transaction around a multi-statement operation.

    Commits on a clean exit, rolls back on any exception and re-raises it.
    Nothing flushed inside the block survives a failure, so a sale can never
    be left with some items written and others missing.

        with UnitOfWork():
            ...
    """

    def __init__(self, session=None):
        self.session = session or db.session

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.session.rollback()
            return False
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return False
