import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from database import Base, build_engine, session_factory, session_scope
from models import Budget, Category, TransactionType


def test_in_memory_engine_shares_one_database_across_sessions() -> None:
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    factory = session_factory(engine)

    with session_scope(factory) as session:
        session.add(Category(name="Food", type=TransactionType.expense))

    with session_scope(factory) as session:
        assert session.query(Category).count() == 1


def test_sqlite_engine_enforces_foreign_keys() -> None:
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with engine.connect() as conn:
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1

    with pytest.raises(IntegrityError):
        with session_scope(session_factory(engine)) as session:
            session.add(Budget(category_id=999, limit_cents=1_000))


def test_session_scope_rolls_back_on_error() -> None:
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    factory = session_factory(engine)

    with pytest.raises(RuntimeError):
        with session_scope(factory) as session:
            session.add(Category(name="Rent", type=TransactionType.expense))
            session.flush()
            raise RuntimeError("boom")

    with session_scope(factory) as session:
        assert session.query(Category).count() == 0
