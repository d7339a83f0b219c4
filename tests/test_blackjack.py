"""Tests for blackjack."""

from __future__ import annotations

import random

import pytest

from wagerbot.core.session import ActionEvent, Outcome, SessionState
from wagerbot.games.blackjack import BlackjackSession, hand_value, is_blackjack, new_deck

GUILD = "guild-1"
USER = "user-1"


def stacked(player, dealer, *draws):
    """A deck that deals *player*, then *dealer*, then *draws* in order."""
    return list(reversed([*player, *dealer, *draws]))


class TestHands:
    @pytest.mark.parametrize(
        ("cards", "value"),
        [
            (["A", "K"], 21),
            (["A", "A", "9"], 21),
            (["A", "A"], 12),
            (["K", "Q", "5"], 25),
            (["7", "8"], 15),
            (["A", "5", "K"], 16),
        ],
    )
    def test_hand_value(self, cards, value):
        assert hand_value(cards) == value

    def test_blackjack_needs_two_cards(self):
        assert is_blackjack(["A", "Q"])
        assert not is_blackjack(["7", "7", "7"])

    def test_new_deck_is_four_decks(self):
        deck = new_deck(random.Random(7))
        assert len(deck) == 52
        assert deck.count("A") == 4


class TestNaturals:
    async def test_player_blackjack_pays_two_and_a_half(self, make_session, ledger, router):
        session = make_session(BlackjackSession, 10, deck=stacked(["A", "K"], ["9", "7"]))

        settlement = await session.start()

        assert settlement.outcome is Outcome.WIN
        assert settlement.payout == 25
        assert await ledger.get_balance(GUILD, USER) == 115
        assert router.pending_count == 0

    async def test_dealer_blackjack(self, make_session, ledger, presenter):
        session = make_session(BlackjackSession, 10, deck=stacked(["10", "6"], ["K", "A"]))

        settlement = await session.start()

        assert settlement.outcome is Outcome.LOSS
        assert await ledger.get_balance(GUILD, USER) == 90
        assert "Dealer has blackjack." in presenter.presented[-1].lines

    async def test_both_blackjack_push(self, make_session, ledger):
        session = make_session(BlackjackSession, 10, deck=stacked(["A", "Q"], ["K", "A"]))

        settlement = await session.start()

        assert settlement.outcome is Outcome.PUSH
        assert await ledger.get_balance(GUILD, USER) == 100


class TestPlay:
    async def test_hit_until_bust(self, make_session, ledger):
        session = make_session(BlackjackSession, 10, deck=stacked(["10", "6"], ["10", "7"], "K"))
        await session.start()

        settlement = await session.handle_event(ActionEvent("hit"))

        assert settlement.outcome is Outcome.LOSS
        assert hand_value(session.player) == 26

    async def test_hit_then_stand_wins(self, make_session, ledger, presenter):
        session = make_session(
            BlackjackSession, 10, deck=stacked(["10", "2"], ["10", "7"], "7")
        )
        await session.start()

        assert await session.handle_event(ActionEvent("hit")) is None
        assert "You: 10 2 7 (19)" in presenter.updates[-1].lines
        settlement = await session.handle_event(ActionEvent("stand"))

        assert settlement.outcome is Outcome.WIN
        assert await ledger.get_balance(GUILD, USER) == 110

    async def test_dealer_draws_to_seventeen(self, make_session, ledger):
        session = make_session(
            BlackjackSession, 10, deck=stacked(["10", "8"], ["10", "4"], "2", "K")
        )
        await session.start()

        settlement = await session.handle_event(ActionEvent("stand"))

        assert session.dealer == ["10", "4", "2", "K"]
        assert settlement.outcome is Outcome.WIN

    async def test_equal_totals_push(self, make_session, ledger):
        session = make_session(BlackjackSession, 10, deck=stacked(["10", "8"], ["J", "8"]))
        await session.start()

        settlement = await session.handle_event(ActionEvent("stand"))

        assert settlement.outcome is Outcome.PUSH
        assert await ledger.get_balance(GUILD, USER) == 100

    async def test_dealer_hand_hidden_while_playing(self, make_session, presenter):
        session = make_session(BlackjackSession, 10, deck=stacked(["10", "8"], ["J", "8"]))
        await session.start()

        assert "Dealer: J ??" in presenter.presented[0].lines


class TestDouble:
    async def test_double_win_pays_on_doubled_stake(self, make_session, fund, ledger):
        await fund(300)
        session = make_session(
            BlackjackSession, 20, deck=stacked(["6", "5"], ["10", "7"], "10")
        )
        await session.start()

        settlement = await session.handle_event(ActionEvent("double"))

        assert session.doubled
        assert settlement.stake == 40
        assert settlement.payout == 80
        assert await ledger.get_balance(GUILD, USER) == 340

    async def test_double_only_on_first_move(self, make_session, ledger, presenter):
        session = make_session(
            BlackjackSession, 10, deck=stacked(["10", "2"], ["10", "7"], "3")
        )
        await session.start()
        await session.handle_event(ActionEvent("hit"))

        assert await session.handle_event(ActionEvent("double", source="click")) is None

        assert ("click", "You can only double on your first move.") in presenter.notices
        assert session.stake == 10

    async def test_double_needs_coins(self, make_session, fund, ledger, presenter):
        await fund(20)
        session = make_session(
            BlackjackSession, 20, deck=stacked(["10", "6"], ["10", "9"], "2")
        )
        await session.start()

        assert await session.handle_event(ActionEvent("double", source="click")) is None

        assert ("click", "You need 20 more coins to double.") in presenter.notices
        assert session.stake == 20
        assert not session.resolved

    async def test_double_refunded_when_session_settles_first(self, make_session, fund, ledger):
        await fund(300)
        session = make_session(BlackjackSession, 20, deck=stacked(["10", "6"], ["10", "9"]))
        await session.start()
        original = session.wallet.withdraw

        async def withdraw_then_expire(amount):
            balance = await original(amount)
            await session.expire()
            return balance

        session.wallet.withdraw = withdraw_then_expire

        assert await session.raise_stake(20) is False

        assert session.state is SessionState.EXPIRED
        assert session.stake == 20
        assert await ledger.get_balance(GUILD, USER) == 300


class TestCancel:
    async def test_cancel_before_first_move(self, make_session, ledger):
        session = make_session(BlackjackSession, 10, deck=stacked(["10", "6"], ["10", "9"]))
        await session.start()

        settlement = await session.handle_event(ActionEvent("cancel"))

        assert settlement.state is SessionState.CANCELLED
        assert await ledger.get_balance(GUILD, USER) == 100

    async def test_no_cancel_after_a_hit(self, make_session, presenter):
        session = make_session(
            BlackjackSession, 10, deck=stacked(["10", "2"], ["10", "7"], "3")
        )
        await session.start()
        await session.handle_event(ActionEvent("hit"))

        assert await session.handle_event(ActionEvent("cancel", source="click")) is None

        assert ("click", "You can no longer cancel this game.") in presenter.notices
        assert not session.resolved


class TestBlackjackItems:
    async def test_peek_shows_dealer_hand(self, make_session, ledger, presenter):
        await ledger.adjust_inventory_item(GUILD, USER, "bj-peek", 1)
        session = make_session(BlackjackSession, 10, deck=stacked(["10", "8"], ["J", "8"]))
        await session.start()

        assert session.peeked
        assert "Dealer: J 8 (18)" in presenter.presented[0].lines

    async def test_dealer_charm_saves_one_point_loss(self, make_session, ledger):
        await ledger.adjust_inventory_item(GUILD, USER, "dealer-charm", 1)
        session = make_session(BlackjackSession, 10, deck=stacked(["10", "8"], ["10", "9"]))
        await session.start()

        settlement = await session.handle_event(ActionEvent("stand"))

        assert settlement.outcome is Outcome.PUSH
        assert await ledger.get_balance(GUILD, USER) == 100

    async def test_dealer_charm_ignores_bigger_losses(self, make_session, ledger):
        await ledger.adjust_inventory_item(GUILD, USER, "dealer-charm", 1)
        session = make_session(BlackjackSession, 10, deck=stacked(["10", "7"], ["10", "9"]))
        await session.start()

        settlement = await session.handle_event(ActionEvent("stand"))

        assert settlement.outcome is Outcome.LOSS
        assert session.used_items == set()

    async def test_boost_on_natural(self, make_session, ledger):
        await ledger.adjust_inventory_item(GUILD, USER, "bj-boost", 1)
        session = make_session(BlackjackSession, 10, deck=stacked(["A", "K"], ["9", "7"]))

        settlement = await session.start()

        assert settlement.payout == 27
        assert "High Roller Token added 20% of your wager." in settlement.notes

    async def test_boost_on_push_pays_bonus(self, make_session, ledger):
        await ledger.adjust_inventory_item(GUILD, USER, "bj-boost", 1)
        session = make_session(BlackjackSession, 10, deck=stacked(["10", "8"], ["J", "8"]))
        await session.start()

        settlement = await session.handle_event(ActionEvent("stand"))

        assert settlement.outcome is Outcome.PUSH
        assert settlement.payout == 12
        assert await ledger.get_balance(GUILD, USER) == 102
        assert session.used_items == {"bj-boost"}

    async def test_charm_and_boost_stack(self, make_session, ledger):
        await ledger.adjust_inventory_item(GUILD, USER, "dealer-charm", 1)
        await ledger.adjust_inventory_item(GUILD, USER, "bj-boost", 1)
        session = make_session(BlackjackSession, 10, deck=stacked(["10", "8"], ["10", "9"]))
        await session.start()

        settlement = await session.handle_event(ActionEvent("stand"))

        assert settlement.outcome is Outcome.PUSH
        assert settlement.payout == 12
        assert session.used_items == {"dealer-charm", "bj-boost"}
