import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from app.rms.db.models import StoreMember
from app.rms.services.concurrency import is_lock_timeout, is_order_number_conflict, run_with_retry
from app.rms.services.paging import Page, page_request
from app.rms.services.unit_of_work import UnitOfWork
from tests.order_helpers import RecordingObservability, build_services, create_store, seeded_checkout


def _members(db_session, store) -> int:
    db_session.expire_all()
    return db_session.execute(
        select(func.count()).select_from(StoreMember).where(StoreMember.store_id == store.id)
    ).scalar_one()


def test_commit_then_callbacks(db_session, session_factory):
    store = create_store(db_session)
    obs = RecordingObservability()
    calls = []

    with UnitOfWork(session_factory, obs) as uow:
        uow.session.add(StoreMember(store_id=store.id, user_id=uuid.uuid4(), role="SERVER"))
        uow.after_commit("first", lambda: calls.append("first"))
        uow.after_commit("broken", lambda: 1 / 0)
        uow.after_commit("last", lambda: calls.append("last"))
        assert calls == []

    assert calls == ["first", "last"]
    assert _members(db_session, store) == 1
    assert "after_commit_failed" in obs.names("error")


def test_error_rolls_back_and_skips_callbacks(db_session, session_factory):
    store = create_store(db_session)
    calls = []

    with pytest.raises(RuntimeError):
        with UnitOfWork(session_factory, RecordingObservability()) as uow:
            uow.session.add(StoreMember(store_id=store.id, user_id=uuid.uuid4(), role="SERVER"))
            uow.session.flush()
            uow.after_commit("never", lambda: calls.append("never"))
            raise RuntimeError("boom")

    assert calls == []
    assert _members(db_session, store) == 0


def test_read_only_unit_never_commits(db_session, session_factory):
    store = create_store(db_session)

    with UnitOfWork(session_factory, RecordingObservability(), read_only=True) as uow:
        uow.session.add(StoreMember(store_id=store.id, user_id=uuid.uuid4(), role="SERVER"))
        uow.session.flush()

    assert _members(db_session, store) == 0


def test_read_only_results_stay_readable_after_the_block(db_session, session_factory):
    store = create_store(db_session)
    user_id = uuid.uuid4()
    db_session.add(StoreMember(store_id=store.id, user_id=user_id, role="CASHIER"))
    db_session.commit()

    with UnitOfWork(session_factory, RecordingObservability(), read_only=True) as uow:
        member = uow.session.execute(select(StoreMember).where(StoreMember.store_id == store.id)).scalar_one()

    assert member.role == "CASHIER"
    assert str(member.user_id) == str(user_id)


def test_order_read_is_usable_after_its_unit_closes(db_session, session_factory):
    orders, *_ = build_services(session_factory)
    _store, _owner_id, checkout = seeded_checkout(db_session, orders, base_price="12.00")

    view = orders.get_order(checkout.order.id)

    assert view.order.order_number == checkout.order.order_number
    assert [item.final_price for item in view.order.items] == [Decimal("12.00")]
    assert view.order.items[0].customizations == []
    assert view.payment.is_paid_in_full is False


def _conflict():
    return IntegrityError("INSERT INTO orders", {}, Exception("UNIQUE constraint failed: orders.store_id, orders.order_number"))


def test_retry_on_order_number_conflict():
    attempts = []
    retries = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise _conflict()
        return "20261019-003"

    result = run_with_retry(flaky, attempts=5, backoff_base=0, on_retry=lambda exc, attempt: retries.append(attempt))

    assert result == "20261019-003"
    assert retries == [1, 2]


def test_retry_attempts_are_bounded():
    def always_conflicts():
        raise _conflict()

    with pytest.raises(IntegrityError):
        run_with_retry(always_conflicts, attempts=2, backoff_base=0)


def test_other_errors_are_not_retried():
    attempts = []

    def fails():
        attempts.append(1)
        raise IntegrityError("INSERT INTO payments", {}, Exception("NOT NULL constraint failed: payments.amount"))

    with pytest.raises(IntegrityError):
        run_with_retry(fails, attempts=5, backoff_base=0)
    assert len(attempts) == 1


def test_error_classifiers():
    assert is_order_number_conflict(_conflict()) is True
    assert is_order_number_conflict(ValueError("order_number")) is False
    assert is_lock_timeout(OperationalError("UPDATE", {}, Exception("database is locked"))) is True
    assert is_lock_timeout(OperationalError("UPDATE", {}, Exception("no such table"))) is False


def test_page_request_clamps_limit():
    assert page_request(None, None).limit == 20
    assert page_request(0, 1000).limit == 100
    assert page_request(3, 10).offset == 20
    assert Page(items=[], total=21, page=1, limit=10).total_pages == 3
    assert Page(items=[], total=0, page=1, limit=10).total_pages == 0
