"""
wipledger: an event-sourced WIP board store.

Every board mutation is recorded in an append-only ledger in the same
transaction as the table write, so the live tables can always be rebuilt
from history.
"""

__version__ = "0.1.0"
