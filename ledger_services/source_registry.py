"""
SourceRegistry -- maps source kinds to the modules' integrity hooks.

Responsibility:
    Collects the ``SourceHandler`` each sub-ledger module exposes
    (``bill``, ``pay``, ``invoice``, ``rcpt``, ``exp``, ``exp-reimb``,
    ``asset``, ``dep``, ``payroll``, ``payroll-pay``) and resolves
    transaction ids back to the kind that produced them.

Architecture position:
    Services -- wiring between ledger_modules and the integrity tools.
    The kernel knows nothing about source kinds; this registry is the only
    place they are enumerated.

Invariants enforced:
    - One handler per kind; registering a kind twice raises ValueError.
    - ``parse`` picks the longest registered kind, so ``exp-reimb-7`` is a
      reimbursement and not an expense with key ``reimb-7``.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from sqlalchemy.orm import Session

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import SourceRef
from ledger_modules._posting_helpers import SourceHandler
from ledger_modules.ap.service import APService
from ledger_modules.ar.service import ARService
from ledger_modules.assets.service import AssetService
from ledger_modules.expense.service import ExpenseService
from ledger_modules.payroll.service import PayrollService


class SourceRegistry:
    """Registry mapping source kinds to ``SourceHandler`` hooks.

    Contract:
        - ``register()`` adds a handler; raises ValueError on duplicate kind.
        - ``handler()`` retrieves by kind; raises KeyError if missing.
        - ``kinds()`` returns all registered kinds, sorted.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, SourceHandler] = {}

    def register(self, handler: SourceHandler) -> None:
        """Register one kind's hooks.

        Raises:
            ValueError: If the kind is already registered.
        """
        if handler.kind in self._handlers:
            raise ValueError(f"Source kind '{handler.kind}' is already registered")
        self._handlers[handler.kind] = handler

    def register_all(self, handlers: Iterable[SourceHandler]) -> None:
        for handler in handlers:
            self.register(handler)

    def handler(self, kind: str) -> SourceHandler:
        """Retrieve the handler for a kind.

        Raises:
            KeyError: If no handler is registered for the kind.
        """
        try:
            return self._handlers[kind]
        except KeyError:
            raise KeyError(
                f"No handler registered for source kind '{kind}'. "
                f"Available: {sorted(self._handlers)}"
            ) from None

    def kinds(self) -> tuple[str, ...]:
        return tuple(sorted(self._handlers))

    def parse(self, transaction_id: str) -> SourceRef | None:
        """Resolve a transaction id to its registered kind and key."""
        return SourceRef.parse(transaction_id, self._handlers)

    def __iter__(self) -> Iterator[SourceHandler]:
        return iter(self._handlers[kind] for kind in self.kinds())

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, kind: str) -> bool:
        return kind in self._handlers


def build_default_registry(
    session: Session,
    config: LedgerConfig,
    clock: Clock | None = None,
) -> SourceRegistry:
    """Registry holding every sub-ledger module's handlers, bound to ``session``."""
    clock = clock or SystemClock()
    registry = SourceRegistry()
    for service in (
        APService(session, config, clock=clock),
        ARService(session, config, clock=clock),
        ExpenseService(session, config, clock=clock),
        AssetService(session, config, clock=clock),
        PayrollService(session, config, clock=clock),
    ):
        registry.register_all(service.source_handlers())
    return registry
