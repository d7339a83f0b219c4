"""Rock, paper, scissors against the bot. Win 2x, draw returns the bet."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from wagerbot.core.presentation import Frame
from wagerbot.core.session import (
    Finish,
    GameSession,
    Modifier,
    Outcome,
    StepResult,
)
from wagerbot.models.constants import RPS_TIMEOUT_MS

HANDS = ("rock", "paper", "scissors")
BEATS = {"rock": "scissors", "paper": "rock", "scissors": "paper"}
ICONS = {"rock": "🪨", "paper": "📄", "scissors": "✂️"}


def judge(player: str, bot: str) -> Outcome:
    if player == bot:
        return Outcome.PUSH
    return Outcome.WIN if BEATS[player] == bot else Outcome.LOSS


def _reroll(session: RpsSession, finish: Finish) -> Finish:
    session.bot_hand = session.rng.choice(HANDS)
    return replace(finish, outcome=judge(session.player_hand, session.bot_hand), multiplier=None)


MODIFIERS = (
    Modifier(
        item_id="reroll-token",
        note="Reroll Token made the bot throw again.",
        applies=lambda session, finish: finish.outcome is Outcome.LOSS,
        apply=_reroll,
    ),
    Modifier(
        item_id="rps-shield",
        note="RPS Shield turned the loss into a draw.",
        applies=lambda session, finish: finish.outcome is Outcome.LOSS,
        apply=lambda session, finish: replace(finish, outcome=Outcome.PUSH, multiplier=None),
    ),
    Modifier(
        item_id="rps-edge",
        note="RPS Edge broke the tie in your favor.",
        applies=lambda session, finish: finish.outcome is Outcome.PUSH,
        apply=lambda session, finish: replace(finish, outcome=Outcome.WIN, multiplier=None),
    ),
)


class RpsSession(GameSession):
    name = "rps"
    title = "Rock Paper Scissors"
    actions = HANDS
    cancellable = True
    timeout_ms = RPS_TIMEOUT_MS
    modifiers = MODIFIERS

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.player_hand: str | None = None
        self.bot_hand: str | None = None

    async def act(self, action: str, source: Any) -> StepResult:
        self.player_hand = action
        self.bot_hand = self.rng.choice(HANDS)
        return Finish(judge(self.player_hand, self.bot_hand))

    def render(self) -> Frame:
        if self.bot_hand is None:
            lines = [f"Bet: **{self.bet}** coins", "Pick your hand."]
        else:
            lines = [
                f"You: {ICONS[self.player_hand]} {self.player_hand}",
                f"Bot: {ICONS[self.bot_hand]} {self.bot_hand}",
            ]
        buttons = [
            self.button(hand, f"{ICONS[hand]} {hand.title()}", style="primary") for hand in HANDS
        ]
        buttons.append(self.button("cancel", "Cancel", style="danger"))
        return Frame(title=self.title, lines=lines, buttons=buttons)
