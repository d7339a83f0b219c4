"""Item catalog. Items are consumed by the games that know their ids."""

from __future__ import annotations

from wagerbot.models.economy import EconomyItem

ITEM_CATALOG: list[EconomyItem] = [
    # Flip
    EconomyItem(
        id="lucky-coin",
        name="Lucky Coin",
        description="Rerolls a losing coin flip once.",
        price=120,
        sell_price=60,
        effect="flip_reroll",
        max_stack=5,
    ),
    EconomyItem(
        id="coin-guardian",
        name="Coin Guardian",
        description="Refunds the bet of a lost coin flip.",
        price=150,
        sell_price=75,
        rarity="rare",
        effect="flip_refund",
        max_stack=5,
    ),
    EconomyItem(
        id="flip-charm",
        name="Flip Charm",
        description="Adds half the bet to a winning coin flip.",
        price=180,
        sell_price=90,
        rarity="rare",
        type="booster",
        effect="flip_bonus",
        max_stack=5,
    ),
    # Rock-paper-scissors
    EconomyItem(
        id="reroll-token",
        name="Reroll Token",
        description="Rerolls the opponent's hand after a loss.",
        price=100,
        sell_price=50,
        effect="rps_reroll",
        max_stack=10,
    ),
    EconomyItem(
        id="rps-shield",
        name="RPS Shield",
        description="Turns a loss into a draw.",
        price=140,
        sell_price=70,
        rarity="rare",
        effect="rps_shield",
        max_stack=5,
    ),
    EconomyItem(
        id="rps-edge",
        name="RPS Edge",
        description="Turns a draw into a win.",
        price=200,
        sell_price=100,
        rarity="epic",
        type="booster",
        effect="rps_edge",
        max_stack=3,
    ),
    # Crash
    EconomyItem(
        id="parachute",
        name="Parachute",
        description="Refunds the bet when the rocket crashes.",
        price=160,
        sell_price=80,
        rarity="rare",
        effect="crash_insurance",
        max_stack=5,
    ),
    EconomyItem(
        id="crash-booster",
        name="Crash Booster",
        description="Adds 15% to a cash-out payout.",
        price=170,
        sell_price=85,
        rarity="rare",
        type="booster",
        effect="crash_bonus",
        max_stack=5,
    ),
    EconomyItem(
        id="crash-autocash",
        name="Auto Cashout Chip",
        description="Cashes out automatically at 2.00x.",
        price=130,
        sell_price=65,
        effect="crash_auto",
        max_stack=5,
    ),
    # Blackjack
    EconomyItem(
        id="bj-peek",
        name="Dealer Peek",
        description="Reveals the dealer's hand for one game.",
        price=110,
        sell_price=55,
        effect="blackjack_peek",
        max_stack=5,
    ),
    EconomyItem(
        id="dealer-charm",
        name="Dealer's Charm",
        description="A loss by a single point becomes a push.",
        price=190,
        sell_price=95,
        rarity="rare",
        effect="blackjack_edge",
        max_stack=3,
    ),
    EconomyItem(
        id="bj-boost",
        name="High Roller Token",
        description="Adds 20% of the wager to any blackjack payout.",
        price=220,
        sell_price=110,
        rarity="epic",
        type="booster",
        effect="blackjack_boost",
        max_stack=3,
    ),
    # Horse race
    EconomyItem(
        id="speed-spur",
        name="Speed Spur",
        description="Your horse advances more often.",
        price=120,
        sell_price=60,
        effect="horse_boost",
        max_stack=5,
    ),
    EconomyItem(
        id="horse-whistle",
        name="Horse Whistle",
        description="Your horse starts one step ahead.",
        price=90,
        sell_price=45,
        effect="horse_start",
        max_stack=5,
    ),
    EconomyItem(
        id="horse-rocket",
        name="Rocket Saddle",
        description="Your horse starts two steps ahead.",
        price=210,
        sell_price=105,
        rarity="epic",
        type="booster",
        effect="horse_dash",
        max_stack=3,
    ),
    # Scratch card
    EconomyItem(
        id="scratch-lens",
        name="Scratch Lens",
        description="Your first scratch reveals an extra spot.",
        price=80,
        sell_price=40,
        effect="scratch_reveal",
        max_stack=5,
    ),
    EconomyItem(
        id="scratch-clover",
        name="Scratch Clover",
        description="A losing card pays out as a pair.",
        price=200,
        sell_price=100,
        rarity="epic",
        effect="scratch_luck",
        max_stack=3,
    ),
    EconomyItem(
        id="scratch-bonus",
        name="Lucky Sticker",
        description="Adds 50% to a scratch payout, or refunds half a loss.",
        price=150,
        sell_price=75,
        rarity="rare",
        type="booster",
        effect="scratch_bonus",
        max_stack=5,
    ),
]

ITEM_MAP: dict[str, EconomyItem] = {item.id: item for item in ITEM_CATALOG}
