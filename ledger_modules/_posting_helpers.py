"""
Shared helpers for sub-ledger posting flows.

Used by ledger_modules/*/service.py for the checks and bookkeeping every
document type repeats: positive-amount validation, settlement status,
integer document keys, and the ``SourceHandler`` each module hands to the
integrity sweep.

Architecture: Modules layer. Imports only from ledger_kernel.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import require_minor_units
from ledger_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    InvalidSourceDocumentError,
    SourceDocumentNotFoundError,
)
from ledger_kernel.models.account import GLAccount
from ledger_kernel.services.module_posting_service import PostingResult


class SettlementStatus(str, Enum):
    """Payment state of a bill or invoice."""

    OPEN = "OPEN"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


def settlement_status(total: int, paid: int) -> SettlementStatus:
    """Status for a document of ``total`` with ``paid`` settled so far."""
    if paid <= 0:
        return SettlementStatus.OPEN
    if paid >= total:
        return SettlementStatus.PAID
    return SettlementStatus.PARTIAL


def require_amount(kind: str, field: str, value: object, *, allow_zero: bool = False) -> int:
    """Check that ``value`` is integer minor units and positive (or zero if allowed).

    Raises:
        InvalidSourceDocumentError: not an int, negative, or zero when
            zero is not allowed.
    """
    try:
        amount = require_minor_units(value, field)
    except TypeError as exc:
        raise InvalidSourceDocumentError(kind, str(exc)) from exc
    if amount < 0 or (amount == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        raise InvalidSourceDocumentError(kind, f"{field} must be {bound}, got {amount}")
    return amount


def parse_int_key(key: str) -> int | None:
    """Document id from a source key; None when the key is not an integer."""
    try:
        return int(key)
    except (TypeError, ValueError):
        return None


def document_id(kind: str, key: str) -> int:
    """Document id from a source key.

    Raises:
        SourceDocumentNotFoundError: key is not an integer id.
    """
    pk = parse_int_key(key)
    if pk is None:
        raise SourceDocumentNotFoundError(kind, key)
    return pk


def document_keys(session: Session, model: Any, *criteria: Any) -> list[str]:
    """Ids of ``model`` rows matching ``criteria``, as source keys."""
    stmt = select(model.id).where(*criteria).order_by(model.id)
    return [str(pk) for pk in session.scalars(stmt)]


def document_exists(session: Session, model: Any, key: str) -> bool:
    pk = parse_int_key(key)
    return pk is not None and session.get(model, pk) is not None


def require_posting_account(session: Session, account_code: str) -> str:
    """Check that ``account_code`` names an active account before a row references it.

    Raises:
        AccountNotFoundError / AccountInactiveError.
    """
    account = session.get(GLAccount, account_code)
    if account is None:
        raise AccountNotFoundError(account_code)
    if not account.is_active:
        raise AccountInactiveError(account_code)
    return account_code


@dataclass(frozen=True)
class SourceHandler:
    """
    Integrity hooks for one source kind.

    Contract:
        ``document_keys()`` lists the keys of documents that must have a
        journal entry.  ``document_exists(key)`` tells whether the document
        is still present.  ``repost(key)`` posts the document's entry
        (idempotently) from its stored data.
    """

    kind: str
    document_keys: Callable[[], list[str]]
    document_exists: Callable[[str], bool]
    repost: Callable[[str], PostingResult]
