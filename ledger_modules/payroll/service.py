"""
Payroll Module Service (``ledger_modules.payroll.service``).

Responsibility
--------------
Creates payroll runs with per-employee withholdings, approves them (accrual
entry ``payroll-{id}``) and pays them (disbursement entry
``payroll-pay-{id}``).

Architecture position
---------------------
**Modules layer** -- thin ERP glue over ``ModulePostingService``.

Invariants enforced
-------------------
* Each payslip's net pay is gross minus income tax minus pension, with
  withholdings computed from configured basis points (half-up).
* DRAFT -> APPROVED -> PAID; each transition posts exactly one entry.

Failure modes
-------------
* Duplicate employee in a run, empty run, bad dates -> VALIDATION_FAILED.
* Wrong status for the transition -> INVALID_STATE.
"""

from __future__ import annotations

from datetime import date
from typing import Sequence

from sqlalchemy.orm import Session

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import SourceRef
from ledger_kernel.exceptions import (
    InvalidSourceDocumentError,
    SourceDocumentNotFoundError,
    SourceDocumentStateError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.module_posting_service import (
    ModulePostingService,
    PostingResult,
    PostingStatus,
)
from ledger_modules._posting_helpers import (
    SourceHandler,
    document_exists,
    document_id,
    document_keys,
    require_amount,
    require_posting_account,
)
from ledger_modules.payroll.models import PayrollRun, PayrollStatus, PayslipInput
from ledger_modules.payroll.orm import PayrollRunModel, PayslipModel
from ledger_modules.payroll.profiles import (
    PAYROLL,
    PAYROLL_PAYMENT,
    approval_lines,
    payment_lines,
    withhold,
)

logger = get_logger("modules.payroll.service")

_ACCRUED_STATES = (PayrollStatus.APPROVED.value, PayrollStatus.PAID.value)


class PayrollService:
    """
    Orchestrates payroll runs through the kernel.

    Contract
    --------
    * ``create_run`` writes no journal entry; ``approve_run`` and
      ``pay_run`` each post one.
    * Every method that changes state returns ``PostingResult`` with
      ``document_id`` set to the run id.
    """

    def __init__(
        self,
        session: Session,
        config: LedgerConfig,
        clock: Clock | None = None,
        auto_commit: bool = False,
    ):
        self._session = session
        self._config = config
        self._roles = config.roles
        self._rates = config.payroll
        self._clock = clock or SystemClock()
        self._poster = ModulePostingService(session, self._clock, auto_commit=auto_commit)

    def create_run(
        self,
        period_name: str,
        start_date: date,
        end_date: date,
        pay_date: date,
        payslips: Sequence[PayslipInput],
    ) -> PostingResult:
        """
        Create a DRAFT run with one payslip per employee.

        Postconditions:
            - COMPLETED with ``document_id`` = run id; no journal entry.
        """

        def work() -> PostingResult:
            if not period_name:
                raise InvalidSourceDocumentError(PAYROLL, "period_name is required")
            if end_date < start_date:
                raise InvalidSourceDocumentError(PAYROLL, "end_date precedes start_date")
            if not payslips:
                raise InvalidSourceDocumentError(PAYROLL, "a payroll run needs at least one payslip")
            names = [slip.employee_name for slip in payslips]
            if len(set(names)) != len(names):
                raise InvalidSourceDocumentError(PAYROLL, "employee listed twice in one run")

            run = PayrollRunModel(
                period_name=period_name,
                start_date=start_date,
                end_date=end_date,
                pay_date=pay_date,
                status=PayrollStatus.DRAFT.value,
            )
            for slip in payslips:
                if not slip.employee_name:
                    raise InvalidSourceDocumentError(PAYROLL, "employee_name is required")
                gross = require_amount(PAYROLL, "gross_pay", slip.gross_pay)
                withheld = withhold(gross, self._rates)
                run.payslips.append(PayslipModel(
                    employee_name=slip.employee_name,
                    gross_pay=gross,
                    income_tax=withheld.income_tax,
                    pension=withheld.pension,
                    net_pay=withheld.net_pay,
                    status=PayrollStatus.DRAFT.value,
                ))
            run.total_gross = sum(s.gross_pay for s in run.payslips)
            run.total_income_tax = sum(s.income_tax for s in run.payslips)
            run.total_pension = sum(s.pension for s in run.payslips)
            run.total_net = sum(s.net_pay for s in run.payslips)
            self._session.add(run)
            self._session.flush()

            logger.info("payroll_run_created", extra={
                "run_id": run.id,
                "period_name": period_name,
                "payslip_count": len(run.payslips),
                "total_gross": run.total_gross,
            })
            return PostingResult(PostingStatus.COMPLETED, document_id=run.id)

        return self._poster.run("payroll.create_run", work)

    def approve_run(self, run_id: int) -> PostingResult:
        """Accrue a DRAFT run on its end date; status -> APPROVED."""

        def work() -> PostingResult:
            run = self._load_run(run_id)
            if run.status != PayrollStatus.DRAFT.value:
                raise SourceDocumentStateError(PAYROLL, run_id, run.status, PayrollStatus.DRAFT.value)
            self._set_status(run, PayrollStatus.APPROVED)
            self._session.flush()
            result = self._post_accrual(run)

            logger.info("payroll_run_approved", extra={
                "run_id": run.id,
                "total_gross": run.total_gross,
                "total_net": run.total_net,
            })
            return result.with_document(run.id)

        return self._poster.run("payroll.approve_run", work)

    def pay_run(
        self,
        run_id: int,
        payment_date: date | None = None,
        bank_account_code: str | None = None,
    ) -> PostingResult:
        """Disburse an APPROVED run; status -> PAID.

        ``payment_date`` defaults to the run's pay date and
        ``bank_account_code`` to the configured bank account.
        """

        def work() -> PostingResult:
            run = self._load_run(run_id)
            if run.status != PayrollStatus.APPROVED.value:
                raise SourceDocumentStateError(
                    PAYROLL, run_id, run.status, PayrollStatus.APPROVED.value
                )
            run.paid_date = payment_date or run.pay_date
            run.payment_bank_account_code = require_posting_account(
                self._session, bank_account_code or self._roles.bank
            )
            self._set_status(run, PayrollStatus.PAID)
            self._session.flush()
            result = self._post_payment(run)

            logger.info("payroll_run_paid", extra={
                "run_id": run.id,
                "paid_date": run.paid_date.isoformat(),
                "total_disbursed": run.total_net + run.total_income_tax + run.total_pension,
            })
            return result.with_document(run.id)

        return self._poster.run("payroll.pay_run", work)

    def get_run(self, run_id: int) -> PayrollRun | None:
        run = self._session.get(PayrollRunModel, run_id)
        return run.to_dto() if run is not None else None

    # =========================================================================
    # Integrity hooks
    # =========================================================================

    def source_handlers(self) -> list[SourceHandler]:
        return [
            SourceHandler(
                kind=PAYROLL,
                document_keys=lambda: document_keys(
                    self._session, PayrollRunModel, PayrollRunModel.status.in_(_ACCRUED_STATES)
                ),
                document_exists=lambda key: document_exists(self._session, PayrollRunModel, key),
                repost=self.repost_accrual,
            ),
            SourceHandler(
                kind=PAYROLL_PAYMENT,
                document_keys=lambda: document_keys(
                    self._session,
                    PayrollRunModel,
                    PayrollRunModel.status == PayrollStatus.PAID.value,
                ),
                document_exists=lambda key: document_exists(self._session, PayrollRunModel, key),
                repost=self.repost_payment,
            ),
        ]

    def repost_accrual(self, key: str) -> PostingResult:
        return self._poster.run(
            "payroll.repost_accrual",
            lambda: self._post_accrual(self._load_run(document_id(PAYROLL, key))),
            transaction_id=SourceRef.of(PAYROLL, key).transaction_id,
        )

    def repost_payment(self, key: str) -> PostingResult:
        return self._poster.run(
            "payroll.repost_payment",
            lambda: self._post_payment(self._load_run(document_id(PAYROLL_PAYMENT, key))),
            transaction_id=SourceRef.of(PAYROLL_PAYMENT, key).transaction_id,
        )

    # =========================================================================
    # Internal
    # =========================================================================

    def _post_accrual(self, run: PayrollRunModel) -> PostingResult:
        return self._poster.post(
            SourceRef.of(PAYROLL, run.id),
            run.end_date,
            f"Payroll accrual - {run.period_name}",
            approval_lines(
                run.total_gross,
                run.total_net,
                run.total_income_tax,
                run.total_pension,
                self._roles,
            ),
        )

    def _post_payment(self, run: PayrollRunModel) -> PostingResult:
        return self._poster.post(
            SourceRef.of(PAYROLL_PAYMENT, run.id),
            run.paid_date or run.pay_date,
            f"Payroll disbursement - {run.period_name}",
            payment_lines(
                run.total_net,
                run.total_income_tax,
                run.total_pension,
                run.payment_bank_account_code or self._roles.bank,
                self._roles,
            ),
        )

    @staticmethod
    def _set_status(run: PayrollRunModel, status: PayrollStatus) -> None:
        run.status = status.value
        for slip in run.payslips:
            slip.status = status.value

    def _load_run(self, run_id: int) -> PayrollRunModel:
        run = self._session.get(PayrollRunModel, run_id)
        if run is None:
            raise SourceDocumentNotFoundError(PAYROLL, run_id)
        return run
