"""Scratch card: nine hidden spots, scratch three of them.

A triple pays 5x and a pair pays 2x. The card settles once the last
scratch is used, even when no pair is possible any more.
"""

from __future__ import annotations

from collections import Counter
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
from wagerbot.models.constants import (
    SCRATCH_PAIR_MULTIPLIER,
    SCRATCH_PICKS,
    SCRATCH_SPOTS,
    SCRATCH_TIMEOUT_MS,
    SCRATCH_TRIPLE_MULTIPLIER,
)

SYMBOLS = ("💰", "⭐", "🍀", "🍒")
HIDDEN = "⬜"
COLUMNS = 3


def _bonus(session: ScratchSession, finish: Finish) -> Finish:
    if finish.outcome is Outcome.WIN:
        return replace(finish, multiplier=finish.payout_multiplier * 1.5)
    return replace(finish, multiplier=0.5)


MODIFIERS = (
    Modifier(
        item_id="scratch-clover",
        note="Scratch Clover paid out a pair.",
        applies=lambda session, finish: finish.outcome is Outcome.LOSS,
        apply=lambda session, finish: replace(
            finish, outcome=Outcome.WIN, multiplier=float(SCRATCH_PAIR_MULTIPLIER)
        ),
    ),
    Modifier(
        item_id="scratch-bonus",
        note="Lucky Sticker boosted your card.",
        applies=lambda session, finish: True,
        apply=_bonus,
    ),
)


class ScratchSession(GameSession):
    name = "scratch"
    title = "Scratch Card"
    actions = tuple(f"spot-{index}" for index in range(SCRATCH_SPOTS))
    cancellable = True
    timeout_ms = SCRATCH_TIMEOUT_MS
    modifiers = MODIFIERS

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.card = [self.rng.choice(SYMBOLS) for _ in range(SCRATCH_SPOTS)]
        self.revealed: set[int] = set()
        self.picks_left = SCRATCH_PICKS
        self.lens_used = False

    def can_cancel(self) -> bool:
        return not self.revealed

    def counts(self) -> Counter[str]:
        return Counter(self.card[index] for index in self.revealed)

    def best_match(self) -> int:
        counts = self.counts()
        return max(counts.values()) if counts else 0

    async def act(self, action: str, source: Any) -> StepResult:
        index = int(action.removeprefix("spot-"))
        if index in self.revealed:
            return Reject("That spot is already scratched.")

        first = not self.revealed
        self.revealed.add(index)
        self.picks_left -= 1

        if first and await self.use_item("scratch-lens"):
            hidden = [i for i in range(SCRATCH_SPOTS) if i not in self.revealed]
            if hidden:
                self.revealed.add(self.rng.choice(hidden))
                self.lens_used = True

        if self.picks_left <= 0:
            return self._score()
        return Proceed()

    def _score(self) -> Finish:
        best = self.best_match()
        if best >= 3:
            return Finish(Outcome.WIN, multiplier=float(SCRATCH_TRIPLE_MULTIPLIER))
        if best == 2:
            return Finish(Outcome.WIN, multiplier=float(SCRATCH_PAIR_MULTIPLIER))
        return Finish(Outcome.LOSS)

    def render(self) -> Frame:
        lines = [
            f"Bet: **{self.bet}** coins",
            f"Scratches left: {max(self.picks_left, 0)}",
        ]
        if self.lens_used:
            lines.append("Scratch Lens revealed an extra spot.")
        buttons = []
        for index in range(SCRATCH_SPOTS):
            shown = index in self.revealed or self.resolved
            buttons.append(
                self.button(
                    f"spot-{index}",
                    self.card[index] if shown else HIDDEN,
                    row=index // COLUMNS,
                    disabled=index in self.revealed,
                )
            )
        buttons.append(
            self.button("cancel", "Cancel", style="danger", row=3, disabled=bool(self.revealed))
        )
        return Frame(title=self.title, lines=lines, buttons=buttons)
