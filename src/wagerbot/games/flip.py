"""Coin flip: call heads or tails, a correct call pays 2x."""

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
from wagerbot.models.constants import FLIP_TIMEOUT_MS

SIDES = ("heads", "tails")


def _reroll(session: FlipSession, finish: Finish) -> Finish:
    session.result = session.rng.choice(SIDES)
    if session.result == session.pick:
        return replace(finish, outcome=Outcome.WIN, multiplier=2.0)
    return finish


MODIFIERS = (
    Modifier(
        item_id="lucky-coin",
        note="Lucky Coin flipped the coin again.",
        applies=lambda session, finish: finish.outcome is Outcome.LOSS,
        apply=_reroll,
    ),
    Modifier(
        item_id="coin-guardian",
        note="Coin Guardian returned your bet.",
        applies=lambda session, finish: finish.outcome is Outcome.LOSS,
        apply=lambda session, finish: replace(finish, outcome=Outcome.PUSH, multiplier=1.0),
    ),
    Modifier(
        item_id="flip-charm",
        note="Flip Charm added half your bet.",
        applies=lambda session, finish: finish.outcome is Outcome.WIN,
        apply=lambda session, finish: replace(
            finish, multiplier=finish.payout_multiplier + 0.5
        ),
    ),
)


class FlipSession(GameSession):
    name = "flip"
    title = "Coin Flip"
    actions = SIDES
    cancellable = True
    timeout_ms = FLIP_TIMEOUT_MS
    modifiers = MODIFIERS

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.pick: str | None = None
        self.result: str | None = None

    async def act(self, action: str, source: Any) -> StepResult:
        self.pick = action
        self.result = self.rng.choice(SIDES)
        outcome = Outcome.WIN if self.result == self.pick else Outcome.LOSS
        return Finish(outcome)

    def render(self) -> Frame:
        if self.result is None:
            lines = [f"Bet: **{self.bet}** coins", "Call it: heads or tails?"]
        else:
            lines = [
                f"You called **{self.pick}**.",
                f"The coin landed on **{self.result}**.",
            ]
        return Frame(
            title=self.title,
            lines=lines,
            buttons=[
                self.button("heads", "Heads", style="primary"),
                self.button("tails", "Tails", style="primary"),
                self.button("cancel", "Cancel", style="danger"),
            ],
        )
