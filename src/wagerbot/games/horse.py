"""Horse race: back one of four horses, then watch them run."""

from __future__ import annotations

from typing import Any

from wagerbot.core.items import ITEM_MAP
from wagerbot.core.presentation import Frame
from wagerbot.core.session import Finish, GameSession, Outcome, Proceed, StepResult
from wagerbot.models.constants import (
    HORSE_ADVANCE_CHANCE,
    HORSE_COUNT,
    HORSE_MAX_CHANCE,
    HORSE_PAYOUT_MULTIPLIER,
    HORSE_SPUR_BONUS,
    HORSE_TICK_MS,
    HORSE_TIMEOUT_MS,
    HORSE_TRACK_LENGTH,
)

HORSE_NAMES = ("Thunder", "Comet", "Biscuit", "Nightshade")
HEAD_STARTS = (("horse-whistle", 1), ("horse-rocket", 2))


class HorseRaceSession(GameSession):
    name = "horserace"
    title = "Horse Race"
    actions = tuple(f"horse-{index}" for index in range(HORSE_COUNT))
    cancellable = True
    timeout_ms = HORSE_TIMEOUT_MS
    tick_ms = HORSE_TICK_MS

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.positions = [0] * HORSE_COUNT
        self.pick: int | None = None
        self.spurred = False
        self.winner: int | None = None
        self.item_notes: list[str] = []

    async def act(self, action: str, source: Any) -> StepResult:
        self.pick = int(action.removeprefix("horse-"))
        for item_id, steps in HEAD_STARTS:
            if await self.use_item(item_id):
                self.positions[self.pick] += steps
                self.item_notes.append(
                    f"{ITEM_MAP[item_id].name} gave your horse a {steps}-step head start."
                )
        if await self.use_item("speed-spur"):
            self.spurred = True
            self.item_notes.append("Speed Spur is pushing your horse.")
        return Proceed(commit=True, start_ticking=True)

    def advance_chance(self, index: int) -> float:
        chance = HORSE_ADVANCE_CHANCE
        if self.spurred and index == self.pick:
            chance += HORSE_SPUR_BONUS
        return min(chance, HORSE_MAX_CHANCE)

    async def tick(self) -> StepResult:
        for index in range(HORSE_COUNT):
            if self.rng.random() < self.advance_chance(index):
                self.positions[index] += 1

        finishers = [i for i, pos in enumerate(self.positions) if pos >= HORSE_TRACK_LENGTH]
        if not finishers:
            return Proceed()

        leader = max(self.positions[i] for i in finishers)
        leaders = [i for i in finishers if self.positions[i] == leader]
        self.winner = leaders[0] if len(leaders) == 1 else self.rng.choice(leaders)
        notes = [f"{HORSE_NAMES[self.winner]} wins the race!"]
        if self.winner == self.pick:
            return Finish(Outcome.WIN, multiplier=HORSE_PAYOUT_MULTIPLIER, notes=notes)
        return Finish(Outcome.LOSS, notes=notes)

    def render(self) -> Frame:
        lines = [f"Bet: **{self.bet}** coins"]
        for index, name in enumerate(HORSE_NAMES):
            pos = min(self.positions[index], HORSE_TRACK_LENGTH)
            track = "·" * pos + "🐎" + "·" * (HORSE_TRACK_LENGTH - pos) + "🏁"
            marker = " ⬅️" if index == self.pick else ""
            lines.append(f"`{track}` {name}{marker}")
        if self.pick is None:
            lines.append("Pick a horse to start the race.")
        lines.extend(self.item_notes)
        buttons = [
            self.button(f"horse-{index}", name, style="primary")
            for index, name in enumerate(HORSE_NAMES)
        ]
        buttons.append(self.button("cancel", "Cancel", style="danger", row=1))
        return Frame(title=self.title, lines=lines, buttons=buttons)
