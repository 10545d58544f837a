"""
Module ORM Registry (``ledger_modules._orm_registry``).

Responsibility
--------------
Ensure the kernel and every sub-ledger ORM model are imported so that
``Base.metadata`` holds all table definitions before
``ledger_kernel.db.engine.create_tables()`` runs.

Architecture position
---------------------
**Modules layer** -- utility.  Imported lazily by the kernel engine's
``create_tables`` / ``drop_tables`` so the kernel keeps no import-time
dependency on the modules.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``ledger_modules.*.orm`` module.

    Idempotent -- repeated calls are harmless.
    """
    import ledger_kernel.models  # noqa: F401
    # fmt: off
    import ledger_modules.ap.orm  # noqa: F401
    import ledger_modules.ar.orm  # noqa: F401
    import ledger_modules.assets.orm  # noqa: F401
    import ledger_modules.expense.orm  # noqa: F401
    import ledger_modules.payroll.orm  # noqa: F401
    # fmt: on
