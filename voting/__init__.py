"""
Voting module for the quote voting system.
Session ledger, vote coordinator and ranking/search views.
"""

from .ledger import SessionLedger, LedgerState, LedgerEntry
from .coordinator import VoteCoordinator, VoteResult, SessionSummary
from .views import QuoteViews

__all__ = [
    'SessionLedger',
    'LedgerState',
    'LedgerEntry',
    'VoteCoordinator',
    'VoteResult',
    'SessionSummary',
    'QuoteViews',
]
