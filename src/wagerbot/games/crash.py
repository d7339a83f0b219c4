"""Crash: a multiplier climbs every tick until it crashes. Cash out before it does."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from wagerbot.core.presentation import COLOR_ACTIVE, Frame
from wagerbot.core.session import (
    Finish,
    GameSession,
    Modifier,
    Outcome,
    Proceed,
    StepResult,
)
from wagerbot.models.constants import (
    CRASH_AUTOCASH_AT,
    CRASH_CAP_MARGIN,
    CRASH_GROWTH,
    CRASH_TICK_MS,
    CRASH_TIMEOUT_MS,
)


def draw_crash_point(roll: float) -> float:
    """Map a uniform roll in [0, 1) to the multiplier where the rocket crashes."""
    return max(1.1, 1 + roll * 4.5)


MODIFIERS = (
    Modifier(
        item_id="parachute",
        note="Parachute returned your bet.",
        applies=lambda session, finish: finish.outcome is Outcome.LOSS,
        apply=lambda session, finish: replace(finish, outcome=Outcome.PUSH, multiplier=1.0),
    ),
    Modifier(
        item_id="crash-booster",
        note="Crash Booster added 15% to your cash-out.",
        applies=lambda session, finish: finish.outcome is Outcome.WIN,
        apply=lambda session, finish: replace(
            finish, multiplier=finish.payout_multiplier * 1.15
        ),
    ),
)


class CrashSession(GameSession):
    name = "crash"
    title = "Crash"
    actions = ("cashout",)
    timeout_ms = CRASH_TIMEOUT_MS
    tick_ms = CRASH_TICK_MS
    ticks_on_start = True
    modifiers = MODIFIERS

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.multiplier = 1.0
        self.crash_point = draw_crash_point(self.rng.random())
        self.crashed = False
        self.cashed_at: float | None = None

    async def act(self, action: str, source: Any) -> StepResult:
        self.cashed_at = self.multiplier
        return Finish(Outcome.WIN, multiplier=self.multiplier)

    async def tick(self) -> StepResult:
        self.multiplier = min(self.multiplier * CRASH_GROWTH, self.crash_point + CRASH_CAP_MARGIN)

        if (
            self.multiplier >= CRASH_AUTOCASH_AT
            and self.crash_point > CRASH_AUTOCASH_AT
            and await self.use_item("crash-autocash")
        ):
            self.cashed_at = CRASH_AUTOCASH_AT
            return Finish(
                Outcome.WIN,
                multiplier=CRASH_AUTOCASH_AT,
                notes=[f"Auto Cashout Chip cashed out at {CRASH_AUTOCASH_AT:.2f}x."],
            )

        if self.multiplier >= self.crash_point:
            self.crashed = True
            return Finish(Outcome.LOSS)
        return Proceed()

    def render(self) -> Frame:
        if self.crashed:
            lines = [f"💥 Crashed at **{self.crash_point:.2f}x**."]
        elif self.cashed_at is not None:
            lines = [f"💰 Cashed out at **{self.cashed_at:.2f}x**."]
        else:
            lines = [
                f"Bet: **{self.bet}** coins",
                f"🚀 **{self.multiplier:.2f}x**",
                f"Cash out now for {int(self.bet * self.multiplier)} coins.",
            ]
        return Frame(
            title=self.title,
            lines=lines,
            buttons=[self.button("cashout", "Cash Out", style="success")],
            color=COLOR_ACTIVE,
        )
