"""Tests for the generic session controller."""

from __future__ import annotations

import asyncio

import pytest

from wagerbot.core.errors import InsufficientBalanceError, InvalidBetError, LedgerError
from wagerbot.core.router import ComponentRouter, DispatchOutcome
from wagerbot.core.session import (
    ActionEvent,
    Finish,
    Outcome,
    SessionState,
    TickEvent,
    Trigger,
    payout_for,
    transition,
)
from wagerbot.core.xp import XpTracker
from wagerbot.games.blackjack import BlackjackSession
from wagerbot.games.crash import CrashSession
from wagerbot.games.flip import FlipSession

GUILD = "guild-1"
USER = "user-1"


class TestTransition:
    @pytest.mark.parametrize(
        ("trigger", "expected"),
        [
            (Trigger.WIN, SessionState.RESOLVED),
            (Trigger.LOSS, SessionState.RESOLVED),
            (Trigger.PUSH, SessionState.RESOLVED),
            (Trigger.CANCEL, SessionState.CANCELLED),
            (Trigger.EXPIRE, SessionState.EXPIRED),
        ],
    )
    def test_live_states(self, trigger, expected):
        assert transition(SessionState.PROMPT, trigger) is expected
        assert transition(SessionState.ACTIVE, trigger) is expected

    @pytest.mark.parametrize(
        "state", [SessionState.RESOLVED, SessionState.EXPIRED, SessionState.CANCELLED]
    )
    def test_terminal_states_absorb(self, state):
        for trigger in Trigger:
            assert transition(state, trigger) is None


class TestPayout:
    def test_win_floors(self):
        assert payout_for(Trigger.WIN, 100, 2.0) == 200
        assert payout_for(Trigger.WIN, 33, 1.15) == 37

    def test_float_noise_does_not_lose_a_coin(self):
        assert payout_for(Trigger.WIN, 100, 1.1) == 110

    def test_loss_pays_only_consolation(self):
        assert payout_for(Trigger.LOSS, 100) == 0
        assert payout_for(Trigger.LOSS, 100, 0.5) == 50

    def test_refunds_return_stake(self):
        assert payout_for(Trigger.PUSH, 80) == 80
        assert payout_for(Trigger.CANCEL, 80) == 80
        assert payout_for(Trigger.EXPIRE, 80) == 80

    def test_boosted_push_pays_bonus(self):
        assert payout_for(Trigger.PUSH, 10, 1.2) == 12
        assert payout_for(Trigger.PUSH, 7, 1.2) == 8

    def test_zero_stake_never_pays(self):
        for trigger in Trigger:
            assert payout_for(trigger, 0, 5.0) == 0

    def test_default_finish_multipliers(self):
        assert Finish(Outcome.WIN).payout_multiplier == 2.0
        assert Finish(Outcome.PUSH).payout_multiplier == 1.0
        assert Finish(Outcome.LOSS).payout_multiplier == 0.0


class TestStart:
    async def test_negative_bet_rejected(self, make_session, ledger, router, presenter):
        session = make_session(FlipSession, -5)
        with pytest.raises(InvalidBetError):
            await session.start()
        assert router.pending_count == 0
        assert presenter.presented == []
        assert await ledger.get_balance(GUILD, USER) == 100

    async def test_bet_over_maximum_rejected(self, make_session, fund, router):
        await fund(5000)
        session = make_session(FlipSession, 2000, max_bet=1000)
        with pytest.raises(InvalidBetError):
            await session.start()
        assert router.pending_count == 0

    async def test_insufficient_balance(self, make_session, ledger, router, presenter):
        session = make_session(FlipSession, 150)
        with pytest.raises(InsufficientBalanceError):
            await session.start()
        assert await ledger.get_balance(GUILD, USER) == 100
        assert router.pending_count == 0
        assert presenter.presented == []

    async def test_debits_and_registers(self, make_session, ledger, router, presenter):
        session = make_session(FlipSession, 40)

        assert await session.start() is None

        assert session.state is SessionState.ACTIVE
        assert await ledger.get_balance(GUILD, USER) == 60
        assert set(session.tokens) == {"heads", "tails", "cancel"}
        assert router.pending_count == 3
        tokens = {button.token for button in presenter.presented[0].buttons}
        assert tokens == set(session.tokens.values())
        assert session.handle == "message-1"

    async def test_failed_present_cancels_and_refunds(
        self, make_session, ledger, router, failing_presenter
    ):
        session = make_session(FlipSession, 40, presenter=failing_presenter)

        settlement = await session.start()

        assert settlement.state is SessionState.CANCELLED
        assert settlement.payout == 40
        assert await ledger.get_balance(GUILD, USER) == 100
        assert router.pending_count == 0


class TestSettlement:
    async def test_win_credits_payout(self, make_session, make_rng, ledger, presenter):
        session = make_session(FlipSession, 30, rng=make_rng(choice="heads"))
        await session.start()

        settlement = await session.handle_event(ActionEvent("heads"))

        assert settlement.state is SessionState.RESOLVED
        assert settlement.outcome is Outcome.WIN
        assert settlement.payout == 60
        assert settlement.net == 30
        assert await ledger.get_balance(GUILD, USER) == 130
        assert "You won **60** coins!" in presenter.finals[-1].lines
        assert all(button.disabled for button in presenter.finals[-1].buttons)

    async def test_loss_keeps_stake(self, make_session, make_rng, ledger, presenter):
        session = make_session(FlipSession, 30, rng=make_rng(choice="tails"))
        await session.start()

        settlement = await session.handle_event(ActionEvent("heads"))

        assert settlement.outcome is Outcome.LOSS
        assert settlement.payout == 0
        assert await ledger.get_balance(GUILD, USER) == 70
        assert "You lost 30 coins." in presenter.finals[-1].lines

    async def test_cancel_refunds(self, make_session, ledger, router):
        session = make_session(FlipSession, 30)
        await session.start()

        settlement = await session.handle_event(ActionEvent("cancel"))

        assert settlement.state is SessionState.CANCELLED
        assert await ledger.get_balance(GUILD, USER) == 100
        assert router.pending_count == 0

    async def test_settles_at_most_once(self, make_session, make_rng, ledger):
        session = make_session(FlipSession, 30, rng=make_rng(choice="heads"))
        await session.start()

        results = await asyncio.gather(
            session.handle_event(ActionEvent("heads")),
            session.expire(),
            session.cancel(),
        )

        settled = [result for result in results if result is not None]
        assert len(settled) == 1
        expected = 130 if settled[0].state is SessionState.RESOLVED else 100
        assert await ledger.get_balance(GUILD, USER) == expected

    async def test_late_click_is_told_game_is_over(self, make_session, make_rng, presenter):
        session = make_session(FlipSession, 30, rng=make_rng(choice="heads"))
        await session.start()
        await session.handle_event(ActionEvent("heads"))

        assert await session.handle_event(ActionEvent("tails", source="click")) is None

        assert presenter.notices == [("click", "This game is already finished.")]

    async def test_unknown_action_is_refused(self, make_session, presenter):
        session = make_session(FlipSession, 30)
        await session.start()

        assert await session.handle_event(ActionEvent("edge", source="click")) is None

        assert presenter.notices == [("click", "That action is not available.")]
        assert not session.resolved

    async def test_free_game_moves_no_coins(self, make_session, make_rng, ledger, presenter):
        await ledger.adjust_inventory_item(GUILD, USER, "flip-charm", 1)
        session = make_session(FlipSession, 0, rng=make_rng(choice="heads"))
        await session.start()

        settlement = await session.handle_event(ActionEvent("heads"))

        assert settlement.outcome is Outcome.WIN
        assert settlement.payout == 0
        assert await ledger.get_balance(GUILD, USER) == 100
        assert session.used_items == set()
        assert "Free game, no coins were at stake." in presenter.finals[-1].lines

    async def test_xp_awarded_on_resolution(self, make_session, make_rng, engine):
        xp = XpTracker(engine)
        session = make_session(FlipSession, 50, rng=make_rng(choice="heads"), xp=xp)
        await session.start()

        await session.handle_event(ActionEvent("heads"))

        assert xp.awarded_today(GUILD, USER) == 9

    async def test_no_xp_for_refunds(self, make_session, engine):
        xp = XpTracker(engine)
        session = make_session(FlipSession, 50, xp=xp)
        await session.start()

        await session.expire()

        assert xp.awarded_today(GUILD, USER) == 0


class TestRouting:
    async def test_owner_click_settles(self, make_session, make_rng, router, ledger):
        session = make_session(FlipSession, 10, rng=make_rng(choice="tails"))
        await session.start()

        outcome = await router.dispatch(session.tokens["tails"], USER, "click")

        assert outcome is DispatchOutcome.OK
        assert session.state is SessionState.RESOLVED
        assert await ledger.get_balance(GUILD, USER) == 110

    async def test_other_user_is_forbidden(self, make_session, router, ledger):
        session = make_session(FlipSession, 10)
        await session.start()
        token = session.tokens["heads"]

        assert await router.dispatch(token, "intruder", "click") is DispatchOutcome.FORBIDDEN

        assert not session.resolved
        assert await ledger.get_balance(GUILD, USER) == 90

    async def test_tokens_die_with_the_session(self, make_session, make_rng, router):
        session = make_session(FlipSession, 10, rng=make_rng(choice="tails"))
        await session.start()
        tokens = dict(session.tokens)

        await router.dispatch(tokens["tails"], USER, "click")

        assert router.pending_count == 0
        for token in tokens.values():
            assert await router.dispatch(token, USER, "click") is DispatchOutcome.UNKNOWN


class TestExpiry:
    async def test_timer_refunds(self, make_session, ledger, router, presenter):
        session = make_session(FlipSession, 50)
        session.timeout_ms = 30
        await session.start()
        assert await ledger.get_balance(GUILD, USER) == 50

        await asyncio.sleep(0.2)

        assert session.state is SessionState.EXPIRED
        assert await ledger.get_balance(GUILD, USER) == 100
        assert router.pending_count == 0
        assert "Timed out. Your bet of 50 coins was refunded." in presenter.finals[-1].lines

    async def test_router_sweep_expires_session(self, make_session, ledger, clock):
        router = ComponentRouter(clock=clock)
        session = make_session(FlipSession, 50, router=router)
        await session.start()

        clock.advance(60)
        assert router.sweep() == 3
        await router.close()

        assert session.state is SessionState.EXPIRED
        assert await ledger.get_balance(GUILD, USER) == 100

    async def test_router_reports_expired_click(self, make_session, ledger, clock):
        router = ComponentRouter(clock=clock)
        session = make_session(FlipSession, 50, router=router)
        await session.start()
        token = session.tokens["heads"]

        clock.advance(60)
        outcome = await router.dispatch(token, USER, "click")
        await router.close()

        assert outcome is DispatchOutcome.EXPIRED
        assert session.state is SessionState.EXPIRED
        assert await ledger.get_balance(GUILD, USER) == 100


class TestLedgerFailure:
    async def test_failed_credit_is_retried_with_same_result(
        self, make_session, make_rng, ledger, fund, monkeypatch
    ):
        await fund(500)
        await ledger.adjust_inventory_item(GUILD, USER, "flip-charm", 2)
        session = make_session(FlipSession, 100, rng=make_rng(choice="heads"))
        await session.start()

        original = session.wallet.credit
        calls = []

        async def flaky_credit(amount):
            calls.append(amount)
            if len(calls) == 1:
                raise LedgerError("database is locked")
            return await original(amount)

        monkeypatch.setattr(session.wallet, "credit", flaky_credit)

        with pytest.raises(LedgerError):
            await session.handle_event(ActionEvent("heads"))
        assert not session.resolved
        assert await ledger.get_balance(GUILD, USER) == 400

        settlement = await session.handle_event(ActionEvent("tails"))

        assert settlement.outcome is Outcome.WIN
        assert settlement.payout == 250
        assert calls == [250, 250]
        assert await ledger.get_balance(GUILD, USER) == 650
        inventory = await ledger.get_inventory(GUILD, USER)
        assert [entry.quantity for entry in inventory] == [1]

    async def test_expiry_after_failed_credit_pays_decided_result(
        self, make_session, make_rng, ledger, monkeypatch
    ):
        session = make_session(FlipSession, 20, rng=make_rng(choice="heads"))
        await session.start()
        original = session.wallet.credit
        failures = [LedgerError("database is locked")]

        async def flaky_credit(amount):
            if failures:
                raise failures.pop()
            return await original(amount)

        monkeypatch.setattr(session.wallet, "credit", flaky_credit)

        with pytest.raises(LedgerError):
            await session.handle_event(ActionEvent("heads"))
        settlement = await session.expire()

        assert settlement.state is SessionState.RESOLVED
        assert await ledger.get_balance(GUILD, USER) == 120

    async def test_failed_natural_credit_is_retried_by_timer(
        self, make_session, ledger, router, presenter, monkeypatch
    ):
        deck = list(reversed(["A", "K", "9", "7"]))
        session = make_session(BlackjackSession, 10, deck=deck)
        session.settle_retry_ms = 20
        original = session.wallet.credit
        failures = [LedgerError("database is locked"), LedgerError("database is locked")]

        async def flaky_credit(amount):
            if failures:
                raise failures.pop()
            return await original(amount)

        monkeypatch.setattr(session.wallet, "credit", flaky_credit)

        with pytest.raises(LedgerError):
            await session.start()
        assert not session.resolved
        assert await ledger.get_balance(GUILD, USER) == 90

        await asyncio.sleep(0.3)

        assert session.state is SessionState.RESOLVED
        assert session.settlement.payout == 25
        assert await ledger.get_balance(GUILD, USER) == 115
        assert router.pending_count == 0
        assert "You won **25** coins!" in presenter.presented[-1].lines


class TestScenarios:
    async def test_crash_cashout_at_two(self, make_session, make_rng, fund, ledger):
        await fund(500)
        session = make_session(CrashSession, 100, rng=make_rng(random=0.5))
        session.tick_ms = 60_000
        await session.start()
        assert await ledger.get_balance(GUILD, USER) == 400

        session.multiplier = 2.0
        settlement = await session.handle_event(ActionEvent("cashout"))

        assert settlement.payout == 200
        assert await ledger.get_balance(GUILD, USER) == 600

    async def test_bet_expires_untouched(self, make_session, ledger):
        session = make_session(FlipSession, 50)
        await session.start()

        settlement = await session.expire()

        assert settlement.state is SessionState.EXPIRED
        assert await ledger.get_balance(GUILD, USER) == 100

    async def test_blackjack_double_debits_twice(self, make_session, fund, ledger):
        await fund(300)
        # Player 10+6, dealer 10+9, double draws a 2 for 18.
        deck = ["2", "9", "10", "6", "10"]
        session = make_session(BlackjackSession, 20, deck=deck)
        await session.start()
        assert await ledger.get_balance(GUILD, USER) == 280

        balances = []
        original = session.wallet.withdraw

        async def watch_withdraw(amount):
            balance = await original(amount)
            balances.append(balance)
            return balance

        session.wallet.withdraw = watch_withdraw
        settlement = await session.handle_event(ActionEvent("double"))

        assert balances == [260]
        assert settlement.stake == 40
        assert settlement.outcome is Outcome.LOSS
        assert await ledger.get_balance(GUILD, USER) == 260


class TestTicking:
    async def test_tick_after_settle_is_ignored(self, make_session, make_rng, ledger):
        session = make_session(CrashSession, 10, rng=make_rng(random=0.5))
        session.tick_ms = 60_000
        await session.start()
        await session.handle_event(ActionEvent("cashout"))

        assert await session.handle_event(TickEvent()) is None
        assert session.multiplier == 1.0
