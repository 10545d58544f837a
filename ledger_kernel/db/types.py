"""
Module: ledger_kernel.db.types
Responsibility: Annotated column aliases and the money helpers shared by
    every model and service.  Amounts are integers in the currency's minor
    unit (cents); there is no float and no Decimal column in the schema.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/ and the sub-ledger modules.  MUST NOT import from
    any of those layers.

Invariants enforced:
    - Every monetary column is ``Amount`` (BigInteger).
    - ``apply_basis_points`` is the only sanctioned rounding path for
      percentage-derived amounts (payroll withholdings, tax).

Failure modes:
    - TypeError from ``require_minor_units`` on a non-integer amount.
"""

from typing import Annotated

from sqlalchemy import BigInteger, Integer

# Integer primary keys: BIGINT on PostgreSQL, INTEGER on SQLite so that
# SQLite treats the column as its rowid alias and autoincrements it.
IntPK = BigInteger().with_variant(Integer(), "sqlite")

# Monetary amount in minor units
Amount = Annotated[int, BigInteger]

BASIS_POINTS = 10_000


def require_minor_units(value: object, field: str = "amount") -> int:
    """
    Return ``value`` if it is a plain integer amount.

    ``bool`` is rejected even though it subclasses ``int``.

    Raises:
        TypeError: If value is not an int.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(
            f"{field} must be an integer number of minor units, "
            f"got {type(value).__name__}"
        )
    return value


def apply_basis_points(amount: int, basis_points: int) -> int:
    """
    Return ``amount * basis_points / 10000`` rounded half-up.

    Preconditions: amount >= 0, basis_points >= 0.
    Postconditions: Result is an integer in [0, amount] when
        basis_points <= 10000.

    Example:
        apply_basis_points(333_333, 1200) -> 40_000
    """
    if amount < 0 or basis_points < 0:
        raise ValueError("amount and basis_points must be non-negative")
    return (amount * basis_points + BASIS_POINTS // 2) // BASIS_POINTS
