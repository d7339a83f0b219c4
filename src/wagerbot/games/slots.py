"""Three-reel slots. The reels stop one per tick after the spin."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any

from wagerbot.core.presentation import Frame
from wagerbot.core.session import Finish, GameSession, Outcome, Proceed, StepResult
from wagerbot.models.constants import SLOTS_TICK_MS, SLOTS_TIMEOUT_MS

REELS = 3
CLOVER = "🍀"
SPINNING = "🌀"


@dataclass(frozen=True)
class SlotSymbol:
    icon: str
    weight: int
    triple: float
    pair: float


SYMBOLS = (
    SlotSymbol("🍒", 25, 5, 2),
    SlotSymbol("🍋", 22, 4, 2),
    SlotSymbol("🔔", 16, 7, 2.5),
    SlotSymbol("⭐", 14, 9, 3),
    SlotSymbol("7️⃣", 10, 14, 4),
    SlotSymbol("💎", 6, 18, 5),
    SlotSymbol(CLOVER, 12, 10, 3.5),
)
SYMBOL_MAP = {symbol.icon: symbol for symbol in SYMBOLS}


def evaluate(reels: list[str], bet: int) -> Finish:
    """Score a stopped row. A lone clover returns half the bet (at least one coin)."""
    counts = Counter(reels)
    icon, count = counts.most_common(1)[0]
    if count == 3:
        multiplier = SYMBOL_MAP[icon].triple
        return Finish(Outcome.WIN, multiplier=multiplier, notes=[f"Triple {icon}! {multiplier:g}x"])
    if count == 2:
        multiplier = SYMBOL_MAP[icon].pair
        return Finish(Outcome.WIN, multiplier=multiplier, notes=[f"Pair of {icon}! {multiplier:g}x"])
    if CLOVER in counts and bet > 0:
        consolation = max(1, bet // 2)
        return Finish(
            Outcome.LOSS,
            multiplier=consolation / bet,
            notes=[f"{CLOVER} Clover consolation."],
        )
    return Finish(Outcome.LOSS, notes=["No matches."])


class SlotsSession(GameSession):
    name = "slots"
    title = "Slots"
    actions = ("spin",)
    cancellable = True
    timeout_ms = SLOTS_TIMEOUT_MS
    tick_ms = SLOTS_TICK_MS

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.result: list[str] = []
        self.stopped = 0
        self.spinning = False

    def spin_reel(self) -> str:
        return self.rng.choices(
            [symbol.icon for symbol in SYMBOLS],
            weights=[symbol.weight for symbol in SYMBOLS],
        )[0]

    async def act(self, action: str, source: Any) -> StepResult:
        self.result = [self.spin_reel() for _ in range(REELS)]
        self.spinning = True
        return Proceed(commit=True, start_ticking=True)

    async def tick(self) -> StepResult:
        self.stopped += 1
        if self.stopped >= REELS:
            self.spinning = False
            return evaluate(self.result, self.stake)
        return Proceed()

    def render(self) -> Frame:
        if not self.result:
            row = " ".join([SPINNING] * REELS)
            status = "Press Spin to roll the reels."
        else:
            shown = self.result[: self.stopped] + [SPINNING] * (REELS - self.stopped)
            row = " ".join(shown)
            status = "Spinning..." if self.spinning else ""
        return Frame(
            title=self.title,
            lines=[f"Bet: **{self.bet}** coins", f"| {row} |", status],
            buttons=[
                self.button("spin", "Spin", style="success"),
                self.button("cancel", "Cancel", style="danger"),
            ],
        )
