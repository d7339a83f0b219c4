"""Exceptions raised by the session engine and the ledger.

Dispatch outcomes for unknown, forbidden and expired tokens are values
(see ``wagerbot.core.router.DispatchOutcome``), not exceptions.
"""

from __future__ import annotations


class BetError(Exception):
    """A bet was rejected before any session state or debit existed."""


class InvalidBetError(BetError):
    """The bet is outside the configured bounds."""

    def __init__(self, bet: int, min_bet: int, max_bet: int) -> None:
        super().__init__(f"Bet must be between {min_bet} and {max_bet}.")
        self.bet = bet
        self.min_bet = min_bet
        self.max_bet = max_bet


class InsufficientBalanceError(BetError):
    """The user cannot cover the requested amount."""

    def __init__(self, balance: int, requested: int) -> None:
        super().__init__(f"You only have {balance} coins.")
        self.balance = balance
        self.requested = requested


class LedgerError(Exception):
    """A ledger call failed. The adjustment it described did not happen."""


class PresentationError(Exception):
    """The presentation collaborator could not deliver an update."""
