from __future__ import annotations

from typing import Callable

from app.rms.core.observability import Observability
from app.rms.repos.audit import AuditRepository
from app.rms.repos.carts import CartRepository
from app.rms.repos.menu import MenuRepository
from app.rms.repos.order_sequences import OrderSequenceRepository
from app.rms.repos.orders import OrderRepository
from app.rms.repos.payments import PaymentRepository
from app.rms.repos.sessions import TableSessionRepository
from app.rms.repos.stores import StoreRepository


class UnitOfWork:
    """One database transaction with the repositories bound to it.

    Leaving the block normally commits; any exception rolls back every write
    made through the repositories. Callbacks registered with ``after_commit``
    run only once the commit has succeeded, and their failures are reported
    but never raised. A ``read_only`` unit never commits, and what it loaded
    stays readable after the block as detached objects.
    """

    def __init__(
        self,
        session_factory,
        observability: Observability | None = None,
        *,
        read_only: bool = False,
    ) -> None:
        self.session_factory = session_factory
        self.observability = observability or Observability()
        self.read_only = read_only
        self.session = None
        self._callbacks: list[tuple[str, Callable[[], None]]] = []

    def __enter__(self) -> "UnitOfWork":
        self.session = self.session_factory()
        self._callbacks = []
        self.orders = OrderRepository(self.session)
        self.payments = PaymentRepository(self.session)
        self.sessions = TableSessionRepository(self.session)
        self.carts = CartRepository(self.session)
        self.menu = MenuRepository(self.session)
        self.stores = StoreRepository(self.session)
        self.sequences = OrderSequenceRepository(self.session)
        self.audit = AuditRepository(self.session)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        committed = False
        try:
            if exc_type is not None:
                self.session.rollback()
            elif self.read_only:
                # Rollback expires whatever is still attached; detach first so results stay readable.
                self.session.expunge_all()
                self.session.rollback()
            else:
                self.session.commit()
                committed = True
        except Exception:
            self.session.rollback()
            raise
        finally:
            self.session.close()
        if committed:
            self._run_callbacks()
        return False

    def after_commit(self, name: str, callback: Callable[[], None]) -> None:
        self._callbacks.append((name, callback))

    def _run_callbacks(self) -> None:
        callbacks, self._callbacks = self._callbacks, []
        for name, callback in callbacks:
            try:
                callback()
            except Exception as exc:
                self.observability.error("after_commit_failed", exc=exc, callback=name)
