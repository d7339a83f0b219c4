"""Discord embed and view builders for Wagerbot.

Sessions describe their screen as a ``Frame``; this module turns frames and
ledger results into discord.py objects. Buttons carry router tokens as their
``custom_id``, so clicks are routed by ``WagerBot.on_interaction`` rather
than by view callbacks.
"""

from __future__ import annotations

import discord

from wagerbot.core.presentation import ButtonStyle, Frame
from wagerbot.models.economy import DailyClaim, TransferResult

COLOR_ECONOMY = 0xF1C40F
COLOR_WARNING = 0xE67E22

FOOTER = "Wagerbot"

_BUTTON_STYLES: dict[ButtonStyle, discord.ButtonStyle] = {
    "primary": discord.ButtonStyle.primary,
    "secondary": discord.ButtonStyle.secondary,
    "success": discord.ButtonStyle.success,
    "danger": discord.ButtonStyle.danger,
}


def build_frame_embed(frame: Frame) -> discord.Embed:
    """Render a session frame as an embed."""
    embed = discord.Embed(title=frame.title, description=frame.description, color=frame.color)
    embed.set_footer(text=frame.footer or FOOTER)
    return embed


def build_frame_view(frame: Frame, timeout: float | None = None) -> discord.ui.View | None:
    """Render a frame's buttons. Returns None when the frame has none."""
    if not frame.buttons:
        return None
    view = discord.ui.View(timeout=timeout)
    for spec in frame.buttons:
        kwargs: dict[str, object] = {
            "label": spec.label,
            "style": _BUTTON_STYLES[spec.style],
            "disabled": spec.disabled,
            "row": spec.row,
        }
        if spec.token:
            kwargs["custom_id"] = spec.token
        view.add_item(discord.ui.Button(**kwargs))
    return view


def build_warning_embed(title: str, description: str) -> discord.Embed:
    embed = discord.Embed(title=title, description=description, color=COLOR_WARNING)
    embed.set_footer(text=FOOTER)
    return embed


def build_balance_embed(balance: int, user_name: str = "") -> discord.Embed:
    """Build an embed showing a user's coin balance."""
    embed = discord.Embed(
        title="Balance",
        description=f"You have **{balance}** coins.",
        color=COLOR_ECONOMY,
    )
    if user_name:
        embed.set_author(name=user_name)
    embed.set_footer(text=FOOTER)
    return embed


def build_daily_embed(claim: DailyClaim, reward: int) -> discord.Embed:
    if claim.success:
        description = f"You collected **{reward}** coins. Balance: **{claim.balance}**."
        title = "Daily Reward"
    else:
        title = "Already Claimed"
        description = f"Come back {discord.utils.format_dt(claim.next_available_at, 'R')}."
    embed = discord.Embed(title=title, description=description, color=COLOR_ECONOMY)
    embed.set_footer(text=FOOTER)
    return embed


_TRANSFER_REASONS = {
    "insufficient": "You don't have enough coins for that gift.",
    "same_user": "You can't gift coins to yourself.",
    "invalid_amount": "Gift amount must be positive.",
}


def build_gift_embed(result: TransferResult, amount: int, recipient: str) -> discord.Embed:
    if not result.success:
        return build_warning_embed(
            "Gift Failed", _TRANSFER_REASONS.get(result.reason or "", "The gift failed.")
        )
    embed = discord.Embed(
        title="Gift Sent",
        description=(
            f"You sent **{amount}** coins to {recipient}.\n"
            f"Your balance: **{result.from_balance}**"
        ),
        color=COLOR_ECONOMY,
    )
    embed.set_footer(text=FOOTER)
    return embed
