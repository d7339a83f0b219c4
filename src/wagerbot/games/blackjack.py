"""Blackjack against a dealer who stands on 17.

Naturals are checked right after the deal, before any button exists. Double
is only offered as the first action: it debits the original bet again, draws
one card and stands.
"""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Any

from wagerbot.core.presentation import Frame
from wagerbot.core.session import (
    Finish,
    GameSession,
    Modifier,
    Outcome,
    Proceed,
    Reject,
    StepResult,
)
from wagerbot.models.constants import BJ_BLACKJACK_PAYOUT, BJ_DEALER_STAND, BJ_TIMEOUT_MS

RANKS = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")
DECK_COUNT = 4


def new_deck(rng: random.Random) -> list[str]:
    cards = list(RANKS) * DECK_COUNT
    rng.shuffle(cards)
    return cards


def hand_value(cards: list[str]) -> int:
    """Best total for *cards*, counting aces as 1 when 11 would bust."""
    total = 0
    aces = 0
    for card in cards:
        if card == "A":
            aces += 1
            total += 11
        elif card in ("J", "Q", "K"):
            total += 10
        else:
            total += int(card)
    while total > 21 and aces:
        total -= 10
        aces -= 1
    return total


def is_blackjack(cards: list[str]) -> bool:
    return len(cards) == 2 and hand_value(cards) == 21


def _lost_by_one(session: BlackjackSession, finish: Finish) -> bool:
    player = hand_value(session.player)
    dealer = hand_value(session.dealer)
    return (
        finish.outcome is Outcome.LOSS and player <= 21 and dealer <= 21 and dealer - player == 1
    )


MODIFIERS = (
    Modifier(
        item_id="dealer-charm",
        note="Dealer's Charm turned a one-point loss into a push.",
        applies=_lost_by_one,
        apply=lambda session, finish: replace(finish, outcome=Outcome.PUSH, multiplier=1.0),
    ),
    Modifier(
        item_id="bj-boost",
        note="High Roller Token added 20% of your wager.",
        applies=lambda session, finish: finish.payout_multiplier > 0,
        apply=lambda session, finish: replace(
            finish, multiplier=finish.payout_multiplier + 0.2
        ),
    ),
)


class BlackjackSession(GameSession):
    name = "blackjack"
    title = "Blackjack"
    actions = ("hit", "stand", "double")
    cancellable = True
    timeout_ms = BJ_TIMEOUT_MS
    modifiers = MODIFIERS

    def __init__(self, *, deck: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.deck = deck if deck is not None else new_deck(self.rng)
        self.player: list[str] = []
        self.dealer: list[str] = []
        self.first_action = True
        self.peeked = False
        self.doubled = False

    def draw(self) -> str:
        return self.deck.pop()

    async def deal(self) -> Finish | None:
        self.player = [self.draw(), self.draw()]
        self.dealer = [self.draw(), self.draw()]
        self.peeked = await self.use_item("bj-peek")

        player_natural = is_blackjack(self.player)
        dealer_natural = is_blackjack(self.dealer)
        if player_natural and dealer_natural:
            return Finish(Outcome.PUSH, notes=["Both hands are blackjack."])
        if player_natural:
            return Finish(Outcome.WIN, multiplier=BJ_BLACKJACK_PAYOUT, notes=["Blackjack!"])
        if dealer_natural:
            return Finish(Outcome.LOSS, notes=["Dealer has blackjack."])
        return None

    def can_cancel(self) -> bool:
        return self.first_action

    async def act(self, action: str, source: Any) -> StepResult:
        if action == "double":
            if not self.first_action:
                return Reject("You can only double on your first move.")
            if self.bet <= 0:
                return Reject("There is nothing to double on a free game.")
            if not await self.raise_stake(self.bet):
                return Reject(f"You need {self.bet} more coins to double.")
            self.first_action = False
            self.doubled = True
            self.player.append(self.draw())
            if hand_value(self.player) > 21:
                return Finish(Outcome.LOSS)
            return self._stand()

        self.first_action = False
        if action == "hit":
            self.player.append(self.draw())
            if hand_value(self.player) > 21:
                return Finish(Outcome.LOSS)
            return Proceed()
        return self._stand()

    def _stand(self) -> Finish:
        while hand_value(self.dealer) < BJ_DEALER_STAND:
            self.dealer.append(self.draw())
        player = hand_value(self.player)
        dealer = hand_value(self.dealer)
        if dealer > 21 or player > dealer:
            return Finish(Outcome.WIN)
        if player == dealer:
            return Finish(Outcome.PUSH)
        return Finish(Outcome.LOSS)

    def render(self) -> Frame:
        reveal = self.peeked or self.resolved
        if reveal:
            dealer_line = f"Dealer: {' '.join(self.dealer)} ({hand_value(self.dealer)})"
        else:
            dealer_line = f"Dealer: {self.dealer[0]} ??" if self.dealer else "Dealer: ??"
        lines = [
            f"Stake: **{self.stake}** coins" + (" (doubled)" if self.doubled else ""),
            f"You: {' '.join(self.player)} ({hand_value(self.player)})",
            dealer_line,
        ]
        if self.peeked and not self.resolved:
            lines.append("Dealer Peek is showing the dealer's hand.")
        return Frame(
            title=self.title,
            lines=lines,
            buttons=[
                self.button("hit", "Hit", style="primary"),
                self.button("stand", "Stand", style="secondary"),
                self.button(
                    "double",
                    "Double",
                    style="success",
                    disabled=not self.first_action or self.bet <= 0,
                ),
                self.button("cancel", "Cancel", style="danger", disabled=not self.first_action),
            ],
        )
