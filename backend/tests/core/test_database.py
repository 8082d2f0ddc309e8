"""Transactions and lifecycle - rollback on every failure, engine disposed on shutdown."""

import pytest
from sqlalchemy.exc import IntegrityError

from clarity_crm import main
from clarity_crm.core.errors import DuplicateRecordError, ForbiddenError, TransactionError
from clarity_crm.infrastructure.database import run_in_transaction


class _Session:
    def __init__(self):
        self.calls: list[str] = []

    async def commit(self):
        self.calls.append("commit")

    async def rollback(self):
        self.calls.append("rollback")


def _failing(exc: Exception):
    async def operation():
        raise exc
    return operation


# ─── run_in_transaction ──────────────────────────────────────────

async def test_commits_once_and_returns_result():
    db = _Session()

    async def operation():
        return "deal"

    assert await run_in_transaction(db, operation) == "deal"
    assert db.calls == ["commit"]


async def test_domain_error_passes_through_after_rollback():
    db = _Session()
    with pytest.raises(ForbiddenError):
        await run_in_transaction(db, _failing(ForbiddenError()))
    assert db.calls == ["rollback"]


async def test_unique_violation_becomes_duplicate_record():
    db = _Session()
    exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.email"))
    with pytest.raises(DuplicateRecordError):
        await run_in_transaction(db, _failing(exc))
    assert db.calls == ["rollback"]


async def test_unexpected_error_rolls_back_as_transaction_error():
    db = _Session()
    with pytest.raises(TransactionError) as info:
        await run_in_transaction(db, _failing(KeyError("stage")), "Failed to update deal")
    assert db.calls == ["rollback"]
    assert info.value.message == "Failed to update deal"
    assert info.value.http_status == 500
    assert isinstance(info.value.__cause__, KeyError)


# ─── Lifespan ────────────────────────────────────────────────────

async def test_lifespan_disposes_engine_on_shutdown(monkeypatch):
    disposed: list[bool] = []

    class _Engine:
        async def dispose(self):
            disposed.append(True)

    class _Manager:
        engine = _Engine()

    monkeypatch.setattr(main, "setup_logging", lambda level, fmt: None)
    monkeypatch.setattr(main, "init_db", lambda url, **kwargs: _Manager())

    async with main.lifespan(main.app):
        assert disposed == []
    assert disposed == [True]
