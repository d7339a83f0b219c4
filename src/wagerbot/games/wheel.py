"""Prize wheel. The landing segment is drawn up front; the ticks only animate the pointer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from wagerbot.core.presentation import Frame
from wagerbot.core.session import Finish, GameSession, Outcome, Proceed, StepResult
from wagerbot.models.constants import (
    WHEEL_BASE_DELAY_MS,
    WHEEL_MAX_STEPS,
    WHEEL_MIN_STEPS,
    WHEEL_STEP_DELAY_MS,
    WHEEL_TIMEOUT_MS,
)


@dataclass(frozen=True)
class WheelSegment:
    label: str
    multiplier: float
    weight: int


SEGMENTS = (
    WheelSegment("Common", 1.1, 26),
    WheelSegment("Uncommon", 1.3, 20),
    WheelSegment("Rare", 1.6, 16),
    WheelSegment("Epic", 2.0, 12),
    WheelSegment("Jackpot", 3.5, 8),
    WheelSegment("Mini-Bank", 2.5, 10),
    WheelSegment("Miss", 0.0, 5),
    WheelSegment("Half Back", 0.5, 3),
)


def segment_outcome(segment: WheelSegment) -> Finish:
    note = f"Landed on **{segment.label}** ({segment.multiplier:g}x)."
    if segment.multiplier > 1:
        return Finish(Outcome.WIN, multiplier=segment.multiplier, notes=[note])
    if segment.multiplier == 1:
        return Finish(Outcome.PUSH, notes=[note])
    return Finish(Outcome.LOSS, multiplier=segment.multiplier, notes=[note])


class WheelSession(GameSession):
    name = "wheel"
    title = "Wheel of Fortune"
    actions = ("spin",)
    cancellable = True
    timeout_ms = WHEEL_TIMEOUT_MS

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.pointer = 0
        self.target: int | None = None
        self.steps_total = 0
        self.steps_taken = 0

    async def act(self, action: str, source: Any) -> StepResult:
        self.target = self.rng.choices(
            range(len(SEGMENTS)), weights=[segment.weight for segment in SEGMENTS]
        )[0]
        self.steps_total = self.rng.randint(WHEEL_MIN_STEPS, WHEEL_MAX_STEPS)
        self.pointer = (self.target - self.steps_total) % len(SEGMENTS)
        return Proceed(commit=True, start_ticking=True)

    def next_tick_delay(self) -> float:
        return (WHEEL_BASE_DELAY_MS + WHEEL_STEP_DELAY_MS * self.steps_taken) / 1000

    async def tick(self) -> StepResult:
        self.steps_taken += 1
        self.pointer = (self.pointer + 1) % len(SEGMENTS)
        if self.steps_taken >= self.steps_total:
            return segment_outcome(SEGMENTS[self.pointer])
        return Proceed()

    def render(self) -> Frame:
        lines = [f"Bet: **{self.bet}** coins"]
        for index, segment in enumerate(SEGMENTS):
            marker = "▶️" if self.target is not None and index == self.pointer else "▫️"
            lines.append(f"{marker} {segment.label} ({segment.multiplier:g}x)")
        return Frame(
            title=self.title,
            lines=lines,
            buttons=[
                self.button("spin", "Spin", style="success"),
                self.button("cancel", "Cancel", style="danger"),
            ],
        )
