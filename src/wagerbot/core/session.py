"""Interactive wager sessions.

A session takes a bet, shows a message with buttons, waits for the owner to
press them (or for a timer), and settles exactly once:

    validate -> debit -> deal -> register -> present -> await -> settle

Every terminal path goes through ``GameSession._settle``, whose first
statement claims the ``resolved`` guard. Whatever arrives after that
(a late click, the expiry timer, a router-side expiry) is a no-op.

Games subclass ``GameSession`` and fill in the hooks: ``actions``,
``timeout_ms``, ``tick_ms``, ``deal``, ``act``, ``tick``, ``render`` and a
``modifiers`` table for the items that can change a result.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, ClassVar

from wagerbot.core.errors import (
    InsufficientBalanceError,
    InvalidBetError,
    LedgerError,
    PresentationError,
)
from wagerbot.core.ledger import Wallet
from wagerbot.core.presentation import (
    COLOR_LOSS,
    COLOR_NEUTRAL,
    COLOR_WIN,
    ButtonSpec,
    ButtonStyle,
    Frame,
    Presenter,
)
from wagerbot.core.router import ComponentRouter
from wagerbot.core.xp import XpTracker
from wagerbot.models.constants import MAX_BET, MIN_BET, SETTLE_RETRY_MS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# States and the terminal-transition table
# ---------------------------------------------------------------------------


class SessionState(StrEnum):
    PROMPT = "prompt"
    ACTIVE = "active"
    RESOLVED = "resolved"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset(
    {SessionState.RESOLVED, SessionState.EXPIRED, SessionState.CANCELLED}
)


class Outcome(StrEnum):
    WIN = "win"
    LOSS = "loss"
    PUSH = "push"


class Trigger(StrEnum):
    WIN = "win"
    LOSS = "loss"
    PUSH = "push"
    CANCEL = "cancel"
    EXPIRE = "expire"


_TRIGGER_TARGETS: dict[Trigger, SessionState] = {
    Trigger.WIN: SessionState.RESOLVED,
    Trigger.LOSS: SessionState.RESOLVED,
    Trigger.PUSH: SessionState.RESOLVED,
    Trigger.CANCEL: SessionState.CANCELLED,
    Trigger.EXPIRE: SessionState.EXPIRED,
}


def transition(state: SessionState, trigger: Trigger) -> SessionState | None:
    """Next state for *trigger*, or None when *state* is already terminal."""
    if state in TERMINAL_STATES:
        return None
    return _TRIGGER_TARGETS[trigger]


def payout_for(trigger: Trigger, stake: int, multiplier: float | None = None) -> int:
    """Coins credited back for a terminal trigger.

    Wins and losses pay ``floor(stake * multiplier)`` (a plain loss has a
    multiplier of 0). A push returns the stake, scaled by *multiplier* when
    one is given so a boosted push pays its bonus. Refunds return the stake.
    A zero stake never pays.
    """
    if stake <= 0:
        return 0
    if trigger in (Trigger.WIN, Trigger.LOSS):
        return math.floor(round(stake * (multiplier or 0.0), 6))
    if trigger is Trigger.PUSH and multiplier is not None:
        return math.floor(round(stake * multiplier, 6))
    return stake


# ---------------------------------------------------------------------------
# Events fed into a session, and results returned by game hooks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ActionEvent:
    """The owner pressed a button. ``source`` is the platform interaction."""

    action: str
    source: Any = None


@dataclass(frozen=True)
class TickEvent:
    pass


@dataclass(frozen=True)
class ExpireEvent:
    pass


@dataclass(frozen=True)
class CancelEvent:
    source: Any = None


SessionEvent = ActionEvent | TickEvent | ExpireEvent | CancelEvent


@dataclass
class Proceed:
    """The game continues.

    ``commit`` locks the player in: every token is disposed and the expiry
    timer is cancelled, so only ticks can finish the game from here.
    """

    render: bool = True
    start_ticking: bool = False
    commit: bool = False


@dataclass
class Finish:
    """The game reached a result. ``multiplier`` scales the stake into the payout."""

    outcome: Outcome
    multiplier: float | None = None
    notes: list[str] = field(default_factory=list)

    @property
    def payout_multiplier(self) -> float:
        if self.multiplier is not None:
            return self.multiplier
        return {Outcome.WIN: 2.0, Outcome.PUSH: 1.0, Outcome.LOSS: 0.0}[self.outcome]


@dataclass
class Reject:
    """The action is not allowed right now; tell the user why."""

    message: str


StepResult = Proceed | Finish | Reject


@dataclass(frozen=True)
class Modifier:
    """An inventory item that can rewrite a result at settlement.

    The item is consumed before ``apply`` runs, and each item fires at most
    once per session.
    """

    item_id: str
    note: str
    applies: Callable[[GameSession, Finish], bool]
    apply: Callable[[GameSession, Finish], Finish]


@dataclass
class Settlement:
    state: SessionState
    outcome: Outcome | None
    stake: int
    payout: int
    balance: int
    notes: list[str] = field(default_factory=list)

    @property
    def net(self) -> int:
        return self.payout - self.stake


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class GameSession:
    """Generic session controller. Subclasses supply the game."""

    name: ClassVar[str] = "game"
    title: ClassVar[str] = "Game"
    actions: ClassVar[tuple[str, ...]] = ()
    cancellable: ClassVar[bool] = False
    ticks_on_start: ClassVar[bool] = False
    timeout_ms: ClassVar[int] = 45_000
    tick_ms: ClassVar[int | None] = None
    settle_retry_ms: ClassVar[int] = SETTLE_RETRY_MS
    modifiers: ClassVar[tuple[Modifier, ...]] = ()

    def __init__(
        self,
        *,
        wallet: Wallet,
        router: ComponentRouter,
        presenter: Presenter,
        bet: int,
        rng: random.Random | None = None,
        xp: XpTracker | None = None,
        min_bet: int = MIN_BET,
        max_bet: int = MAX_BET,
    ) -> None:
        self.wallet = wallet
        self.router = router
        self.presenter = presenter
        self.bet = bet
        self.stake = bet
        self.rng = rng or random.Random()
        self.xp = xp
        self.min_bet = min_bet
        self.max_bet = max_bet

        self.state = SessionState.PROMPT
        self.resolved = False
        self.tokens: dict[str, str] = {}
        self.handle: Any = None
        self.settlement: Settlement | None = None
        self.used_items: set[str] = set()

        self._missing_items: set[str] = set()
        self._unsettled: Finish | None = None
        self._modified: Finish | None = None
        self._turn_lock = asyncio.Lock()
        self._expiry_handle: asyncio.TimerHandle | None = None
        self._tick_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def owner_id(self) -> str:
        return self.wallet.user_id

    @property
    def guild_id(self) -> str:
        return self.wallet.guild_id

    # --- Game hooks ---

    async def deal(self) -> Finish | None:
        """Set up the opening position. Return a Finish when it is already decided."""
        return None

    async def act(self, action: str, source: Any) -> StepResult:
        raise NotImplementedError

    async def tick(self) -> StepResult:
        raise NotImplementedError

    def can_cancel(self) -> bool:
        return self.cancellable

    def next_tick_delay(self) -> float:
        return (self.tick_ms or 1000) / 1000

    def render(self) -> Frame:
        raise NotImplementedError

    def button(
        self,
        action: str,
        label: str,
        style: ButtonStyle = "secondary",
        row: int = 0,
        disabled: bool = False,
    ) -> ButtonSpec:
        """A button bound to *action*'s token; disabled once the token is gone."""
        token = self.tokens.get(action)
        return ButtonSpec(
            token=token,
            label=label,
            style=style,
            row=row,
            disabled=disabled or token is None,
        )

    def render_final(self) -> Frame:
        frame = self.render()
        settlement = self.settlement
        if settlement is None:
            return frame
        lines = [*frame.lines, "", *settlement.notes, self._result_line(settlement)]
        lines.append(f"Balance: **{settlement.balance}** coins")
        buttons = [button.model_copy(update={"disabled": True}) for button in frame.buttons]
        return frame.model_copy(
            update={
                "lines": [line for line in lines if line is not None],
                "buttons": buttons,
                "color": self._result_color(settlement),
            }
        )

    # --- Lifecycle ---

    async def start(self) -> Settlement | None:
        """Debit the bet and put the game on screen.

        Raises InvalidBetError or InsufficientBalanceError before anything is
        debited or registered. Returns the settlement when the game was
        decided without any interaction (a natural, or a failed first render).
        """
        if self.bet < 0 or (self.bet > 0 and not self.min_bet <= self.bet <= self.max_bet):
            raise InvalidBetError(self.bet, self.min_bet, self.max_bet)

        if self.bet > 0:
            balance = await self.wallet.ensure_balance()
            if balance < self.bet:
                raise InsufficientBalanceError(balance, self.bet)
            await self.wallet.withdraw(self.bet)

        natural = await self.deal()
        if natural is not None:
            self._unsettled = natural
            try:
                settlement = await self._settle(Trigger(natural.outcome), natural)
            except LedgerError:
                # No tokens exist yet, so the timer is the only way back in.
                self._arm_expiry(self.settle_retry_ms)
                raise
            await self._present_final()
            return settlement

        expires_in_ms = self.timeout_ms
        for action in self._token_actions():
            self.tokens[action] = self.router.register(
                self.owner_id,
                expires_in_ms,
                self._make_handler(action),
                single_use=False,
                on_expire=self._on_router_expire,
            )

        result = await self.presenter.present(self.render())
        if not result.success:
            logger.warning("session_present_failed game=%s user=%s", self.name, self.owner_id)
            return await self._settle(Trigger.CANCEL)

        self.handle = result.handle
        if self.resolved:
            # Expired while the first render was in flight.
            await self._finalize()
            return self.settlement

        self.state = SessionState.ACTIVE
        self._arm_expiry(expires_in_ms)
        if self.ticks_on_start:
            self._start_ticking()
        logger.info(
            "session_started game=%s guild=%s user=%s bet=%d",
            self.name,
            self.guild_id,
            self.owner_id,
            self.bet,
        )
        return None

    async def handle_event(self, event: SessionEvent) -> Settlement | None:
        """Feed one event into the session. Returns the settlement if this event settled it."""
        if self.resolved:
            if isinstance(event, ActionEvent):
                await self.notify(event.source, "This game is already finished.")
            return None

        # A decided result whose credit failed is retried before anything else.
        if self._unsettled is not None:
            return await self._settle(Trigger(self._unsettled.outcome), self._unsettled)

        if isinstance(event, ExpireEvent):
            return await self._settle(Trigger.EXPIRE)
        if isinstance(event, CancelEvent):
            return await self._settle(Trigger.CANCEL)

        if isinstance(event, TickEvent):
            return await self._step(self.tick, None)

        if event.action == "cancel" and self.cancellable:
            if not self.can_cancel():
                await self.notify(event.source, "You can no longer cancel this game.")
                return None
            return await self._settle(Trigger.CANCEL)
        if event.action not in self.actions:
            await self.notify(event.source, "That action is not available.")
            return None
        return await self._step(lambda: self.act(event.action, event.source), event.source)

    async def cancel(self) -> Settlement | None:
        return await self.handle_event(CancelEvent())

    async def expire(self) -> Settlement | None:
        return await self.handle_event(ExpireEvent())

    # --- Helpers for games ---

    async def use_item(self, item_id: str) -> bool:
        """Spend one *item_id* for this session. Never fires twice, never on a free game."""
        if self.stake <= 0 or item_id in self.used_items or item_id in self._missing_items:
            return False
        if not await self.wallet.consume_if_present(item_id):
            self._missing_items.add(item_id)
            return False
        self.used_items.add(item_id)
        logger.info(
            "session_item_used game=%s user=%s item=%s", self.name, self.owner_id, item_id
        )
        return True

    async def raise_stake(self, amount: int) -> bool:
        """Debit *amount* more and add it to the stake (blackjack double).

        Returns False when the balance cannot cover it or the session settled
        in the meantime; in the latter case the amount is credited back.
        """
        if self.resolved or amount <= 0:
            return False
        try:
            await self.wallet.withdraw(amount)
        except InsufficientBalanceError:
            return False
        if self.resolved:
            await self.wallet.credit(amount)
            return False
        self.stake += amount
        return True

    def commit(self) -> None:
        """Dispose every token and stop the expiry timer."""
        self.router.dispose_all(self.tokens.values())
        self.tokens.clear()
        self._cancel_expiry()

    async def notify(self, source: Any, message: str) -> None:
        if source is None:
            return
        try:
            await self.presenter.notify(source, message)
        except PresentationError:
            logger.warning("session_notify_failed game=%s user=%s", self.name, self.owner_id)

    # --- Internals ---

    def _token_actions(self) -> list[str]:
        actions = list(self.actions)
        if self.cancellable:
            actions.append("cancel")
        return actions

    def _make_handler(self, action: str) -> Callable[[Any], Any]:
        async def handler(source: Any) -> None:
            await self.handle_event(ActionEvent(action, source))

        return handler

    def _on_router_expire(self) -> Any:
        return self.handle_event(ExpireEvent())

    def _on_timer(self) -> None:
        self._expiry_handle = None
        self._spawn(self._run_expiry())

    async def _run_expiry(self) -> None:
        try:
            settlement = await self.handle_event(ExpireEvent())
        except LedgerError:
            if not self.resolved:
                self._arm_expiry(self.settle_retry_ms)
            return
        if settlement is not None and self.handle is None:
            # A natural settled on retry has never been shown.
            await self._present_final()

    def _arm_expiry(self, delay_ms: int) -> None:
        self._cancel_expiry()
        loop = asyncio.get_running_loop()
        self._expiry_handle = loop.call_later(delay_ms / 1000, self._on_timer)

    def _spawn(self, coro: Any) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("session_task_failed game=%s", self.name, exc_info=task.exception())

    def _cancel_expiry(self) -> None:
        if self._expiry_handle is not None:
            self._expiry_handle.cancel()
            self._expiry_handle = None

    async def _step(self, run: Callable[[], Any], source: Any) -> Settlement | None:
        async with self._turn_lock:
            if self.resolved:
                await self.notify(source, "This game is already finished.")
                return None
            result: StepResult = await run()
            if self.resolved:
                return None

            if isinstance(result, Reject):
                await self.notify(source, result.message)
                return None
            if isinstance(result, Finish):
                self._unsettled = result
                return await self._settle(Trigger(result.outcome), result)

            if result.commit:
                self.commit()
            if result.start_ticking:
                self._start_ticking()
            if result.render:
                await self._update()
            return None

    def _start_ticking(self) -> None:
        if self._tick_task is None:
            self._tick_task = asyncio.create_task(
                self._tick_loop(), name=f"{self.name}-ticks-{self.owner_id}"
            )

    async def _tick_loop(self) -> None:
        while not self.resolved:
            await asyncio.sleep(self.next_tick_delay())
            if self.resolved:
                break
            try:
                await self.handle_event(TickEvent())
            except LedgerError:
                logger.exception("session_tick_settle_failed game=%s", self.name)
            except Exception:
                logger.exception("session_tick_failed game=%s user=%s", self.name, self.owner_id)
                await self._abandon()
                break

    async def _abandon(self) -> None:
        """Refund a session whose ticks broke; a pending result is credited instead."""
        try:
            await self.handle_event(CancelEvent())
        except LedgerError:
            if not self.resolved:
                self._arm_expiry(self.settle_retry_ms)

    async def _apply_modifiers(self, finish: Finish) -> Finish:
        if self.stake <= 0:
            return finish
        for modifier in self.modifiers:
            if modifier.item_id in self.used_items:
                continue
            if not modifier.applies(self, finish):
                continue
            if not await self.use_item(modifier.item_id):
                continue
            finish = modifier.apply(self, finish)
            finish = replace(finish, notes=[*finish.notes, modifier.note])
        return finish

    async def _settle(self, trigger: Trigger, finish: Finish | None = None) -> Settlement | None:
        if self.resolved:
            return None
        self.resolved = True

        notes: list[str] = []
        outcome: Outcome | None = None
        try:
            if finish is not None:
                if self._modified is None:
                    self._modified = await self._apply_modifiers(finish)
                final = self._modified
                outcome = final.outcome
                trigger = Trigger(outcome)
                notes = list(final.notes)
                payout = payout_for(trigger, self.stake, final.payout_multiplier)
            else:
                payout = payout_for(trigger, self.stake)

            if payout > 0:
                balance = await self.wallet.credit(payout)
            else:
                balance = await self.wallet.ensure_balance()
        except LedgerError:
            self.resolved = False
            logger.exception(
                "session_settle_failed game=%s user=%s trigger=%s", self.name, self.owner_id, trigger
            )
            raise

        next_state = transition(self.state, trigger) or self.state
        self.state = next_state
        self._unsettled = None
        self.router.dispose_all(self.tokens.values())
        self.tokens.clear()
        self._cancel_expiry()
        if self._tick_task is not None and self._tick_task is not asyncio.current_task():
            self._tick_task.cancel()

        self.settlement = Settlement(
            state=next_state,
            outcome=outcome,
            stake=self.stake,
            payout=payout,
            balance=balance,
            notes=notes,
        )
        logger.info(
            "session_settled game=%s guild=%s user=%s state=%s outcome=%s stake=%d payout=%d",
            self.name,
            self.guild_id,
            self.owner_id,
            next_state,
            outcome,
            self.stake,
            payout,
        )

        if next_state is SessionState.RESOLVED and self.xp is not None and self.stake > 0:
            try:
                await self.xp.award(self.guild_id, self.owner_id, self.stake, outcome)
            except LedgerError:
                logger.warning("session_xp_failed game=%s user=%s", self.name, self.owner_id)

        await self._finalize()
        return self.settlement

    async def _update(self) -> None:
        if self.handle is None:
            return
        try:
            await self.presenter.update(self.handle, self.render())
        except PresentationError:
            logger.warning("session_update_failed game=%s user=%s", self.name, self.owner_id)

    async def _finalize(self) -> None:
        if self.handle is None:
            return
        try:
            await self.presenter.finalize(self.handle, self.render_final())
        except PresentationError:
            logger.warning("session_finalize_failed game=%s user=%s", self.name, self.owner_id)

    async def _present_final(self) -> None:
        result = await self.presenter.present(self.render_final())
        if result.success:
            self.handle = result.handle

    def _result_line(self, settlement: Settlement) -> str:
        if settlement.state is SessionState.EXPIRED:
            return f"Timed out. Your bet of {settlement.stake} coins was refunded."
        if settlement.state is SessionState.CANCELLED:
            return f"Cancelled. Your bet of {settlement.stake} coins was refunded."
        if settlement.stake <= 0:
            return "Free game, no coins were at stake."
        if settlement.outcome is Outcome.WIN:
            return f"You won **{settlement.payout}** coins!"
        if settlement.outcome is Outcome.PUSH:
            if settlement.payout > settlement.stake:
                return f"Push. You got {settlement.payout} coins back."
            return f"Push. Your {settlement.payout} coins were returned."
        if settlement.payout > 0:
            return f"You lost, but got {settlement.payout} coins back."
        return f"You lost {settlement.stake} coins."

    def _result_color(self, settlement: Settlement) -> int:
        if settlement.outcome is Outcome.WIN:
            return COLOR_WIN
        if settlement.outcome is Outcome.LOSS:
            return COLOR_LOSS
        return COLOR_NEUTRAL
