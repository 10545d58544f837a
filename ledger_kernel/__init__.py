"""
Ledger kernel -- double-entry general ledger core.

Chart of accounts with cached balances, the journal engine (create,
reverse, update, idempotent source posting), the period lock and the
read-side selectors.  Sub-ledger modules and integrity tools build on top.
"""

__version__ = "0.1.0"
