"""Discord bot for Wagerbot.

Runs alongside FastAPI using the same event loop. Slash commands open game
sessions; button clicks arrive through ``on_interaction`` and are dispatched
by the app's ComponentRouter, which checks ownership and expiry.

The bot is optional: if DISCORD_BOT_TOKEN is not set, nothing starts.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import discord
from discord import Intents, app_commands
from discord.ext import commands

from wagerbot.core.errors import BetError, InvalidBetError, LedgerError
from wagerbot.core.router import ComponentRouter, DispatchOutcome
from wagerbot.discord.embeds import (
    build_balance_embed,
    build_daily_embed,
    build_gift_embed,
    build_warning_embed,
)
from wagerbot.discord.presenter import InteractionPresenter
from wagerbot.games import GAMES

if TYPE_CHECKING:
    from wagerbot.config import Settings
    from wagerbot.core.ledger import Ledger
    from wagerbot.core.session import GameSession
    from wagerbot.core.xp import XpTracker

logger = logging.getLogger(__name__)

DISPATCH_MESSAGES: dict[DispatchOutcome, str] = {
    DispatchOutcome.UNKNOWN: "This interaction is no longer active.",
    DispatchOutcome.FORBIDDEN: "You cannot use this interaction.",
    DispatchOutcome.EXPIRED: "This interaction has expired.",
}
HANDLER_ERROR_MESSAGE = "Something went wrong while handling that interaction."
LEDGER_ERROR_MESSAGE = "The bank is unavailable right now. Please try again in a moment."

GAME_DESCRIPTIONS: dict[str, str] = {
    "flip": "Flip a coin for double or nothing",
    "rps": "Play rock, paper, scissors against the bot",
    "crash": "Cash out before the rocket crashes",
    "blackjack": "Play a hand of blackjack",
    "horserace": "Bet on one of four horses",
    "scratch": "Scratch a card and match symbols",
    "slots": "Spin the slot machine",
    "wheel": "Spin the prize wheel",
}


class WagerBot(commands.Bot):
    """The Wagerbot Discord bot.

    Runs in-process with FastAPI and shares its Ledger, ComponentRouter and
    XpTracker.
    """

    def __init__(
        self,
        settings: Settings,
        ledger: Ledger,
        router: ComponentRouter,
        xp: XpTracker | None = None,
    ) -> None:
        intents = Intents.default()
        super().__init__(
            command_prefix="!",
            intents=intents,
            description="Wagerbot -- coins, items and quick games.",
        )
        self.settings = settings
        self.ledger = ledger
        self.router = router
        self.xp = xp
        self._setup_commands()

    def _setup_commands(self) -> None:
        """Register slash commands on the bot's command tree."""
        for name, game in GAMES.items():
            self.tree.add_command(self._make_game_command(name, game))

        @self.tree.command(name="balance", description="Check your coin balance")
        async def balance_command(interaction: discord.Interaction) -> None:
            await self._handle_balance(interaction)

        @self.tree.command(name="daily", description="Collect your daily coins")
        async def daily_command(interaction: discord.Interaction) -> None:
            await self._handle_daily(interaction)

        @self.tree.command(name="gift", description="Give some of your coins to another member")
        @app_commands.describe(member="Who receives the coins", amount="How many coins to give")
        async def gift_command(
            interaction: discord.Interaction,
            member: discord.Member,
            amount: int,
        ) -> None:
            await self._handle_gift(interaction, member, amount)

    def _make_game_command(self, name: str, game: type[GameSession]) -> app_commands.Command:
        @app_commands.describe(bet="Coins to wager (0 plays for free)")
        async def game_command(interaction: discord.Interaction, bet: int = 0) -> None:
            await self._handle_game(interaction, game, bet)

        return app_commands.Command(
            name=name,
            description=GAME_DESCRIPTIONS.get(name, game.title),
            callback=game_command,
        )

    async def setup_hook(self) -> None:
        """Called when the bot is ready to start. Syncs slash commands."""
        if self.settings.discord_guild_id:
            guild = discord.Object(id=int(self.settings.discord_guild_id))
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logger.info("discord_commands_synced guild_id=%s", self.settings.discord_guild_id)
        else:
            await self.tree.sync()
            logger.info("discord_commands_synced globally")

    async def on_ready(self) -> None:
        user = self.user
        name = user.name if user else "unknown"
        logger.info("discord_bot_ready user=%s", name)

    async def close(self) -> None:
        await super().close()
        logger.info("discord_bot_closed pending=%d", self.router.pending_count)

    # --- Component routing ---

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        """Route button clicks to the session that registered them."""
        if interaction.type is not discord.InteractionType.component:
            return
        custom_id = (interaction.data or {}).get("custom_id")
        if not custom_id:
            return
        await self.route_component(interaction, str(custom_id))

    async def route_component(self, interaction: discord.Interaction, custom_id: str) -> None:
        try:
            outcome = await self.router.dispatch(custom_id, str(interaction.user.id), interaction)
        except Exception:  # Last-resort handler: game and Discord errors
            logger.exception(
                "component_handler_failed custom_id=%s user=%s", custom_id, interaction.user.id
            )
            await self._reply_ephemeral(interaction, HANDLER_ERROR_MESSAGE)
            return

        if outcome is DispatchOutcome.OK:
            if not interaction.response.is_done():
                try:
                    await interaction.response.defer()
                except discord.HTTPException as exc:
                    logger.info("component_defer_failed custom_id=%s err=%s", custom_id, exc)
            return

        logger.debug("component_rejected custom_id=%s outcome=%s", custom_id, outcome)
        await self._reply_ephemeral(interaction, DISPATCH_MESSAGES[outcome])

    async def _reply_ephemeral(self, interaction: discord.Interaction, message: str) -> None:
        try:
            if interaction.response.is_done():
                await interaction.followup.send(message, ephemeral=True)
            else:
                await interaction.response.send_message(message, ephemeral=True)
        except discord.HTTPException as exc:
            logger.info("ephemeral_reply_failed err=%s", exc)

    # --- Command handlers ---

    async def _handle_game(
        self,
        interaction: discord.Interaction,
        game: type[GameSession],
        bet: int,
    ) -> None:
        if interaction.guild_id is None:
            await self._reply_ephemeral(interaction, "Games only work inside a server.")
            return

        wallet = self.ledger.wallet(str(interaction.guild_id), str(interaction.user.id))
        session = game(
            wallet=wallet,
            router=self.router,
            presenter=InteractionPresenter(interaction, view_timeout=game.timeout_ms / 1000),
            bet=bet,
            xp=self.xp,
            min_bet=self.settings.wagerbot_min_bet,
            max_bet=self.settings.wagerbot_max_bet,
        )
        try:
            await session.start()
        except BetError as exc:
            title = "Invalid Bet" if isinstance(exc, InvalidBetError) else "Not Enough Coins"
            await interaction.response.send_message(
                embed=build_warning_embed(title, str(exc)), ephemeral=True
            )
        except LedgerError:
            logger.exception("game_start_failed game=%s user=%s", game.name, interaction.user.id)
            await self._reply_ephemeral(interaction, LEDGER_ERROR_MESSAGE)

    async def _handle_balance(self, interaction: discord.Interaction) -> None:
        if interaction.guild_id is None:
            await self._reply_ephemeral(interaction, "Balances only exist inside a server.")
            return
        try:
            balance = await self.ledger.ensure_balance(
                str(interaction.guild_id), str(interaction.user.id)
            )
        except LedgerError:
            await self._reply_ephemeral(interaction, LEDGER_ERROR_MESSAGE)
            return
        embed = build_balance_embed(balance, interaction.user.display_name)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def _handle_daily(self, interaction: discord.Interaction) -> None:
        if interaction.guild_id is None:
            await self._reply_ephemeral(interaction, "Daily rewards only exist inside a server.")
            return
        try:
            claim = await self.ledger.claim_daily(
                str(interaction.guild_id), str(interaction.user.id)
            )
        except LedgerError:
            await self._reply_ephemeral(interaction, LEDGER_ERROR_MESSAGE)
            return
        embed = build_daily_embed(claim, self.ledger.daily_reward)
        await interaction.response.send_message(embed=embed, ephemeral=not claim.success)

    async def _handle_gift(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        amount: int,
    ) -> None:
        if interaction.guild_id is None:
            await self._reply_ephemeral(interaction, "Gifts only work inside a server.")
            return
        if member.bot:
            await self._reply_ephemeral(interaction, "Bots don't need coins.")
            return
        try:
            result = await self.ledger.transfer_balance(
                str(interaction.guild_id),
                str(interaction.user.id),
                str(member.id),
                amount,
            )
        except LedgerError:
            await self._reply_ephemeral(interaction, LEDGER_ERROR_MESSAGE)
            return
        embed = build_gift_embed(result, amount, member.mention)
        await interaction.response.send_message(embed=embed, ephemeral=not result.success)
        if result.success:
            logger.info(
                "gift_sent guild=%s from=%s to=%s amount=%d",
                interaction.guild_id,
                interaction.user.id,
                member.id,
                amount,
            )


def is_discord_enabled(settings: Settings) -> bool:
    """Check whether Discord integration should be started.

    Returns True only when discord_enabled is True and a token is set.
    """
    return bool(settings.discord_enabled and settings.discord_bot_token)


async def start_discord_bot(
    settings: Settings,
    ledger: Ledger,
    router: ComponentRouter,
    xp: XpTracker | None = None,
) -> WagerBot:
    """Create and start the Discord bot in the current event loop.

    Returns the bot instance so the caller can stop it during shutdown.
    The bot runs as a background task; this function returns immediately
    after starting it.
    """
    bot = WagerBot(settings=settings, ledger=ledger, router=router, xp=xp)

    async def _run_bot() -> None:
        try:
            await bot.start(settings.discord_bot_token)
        except asyncio.CancelledError:
            logger.info("discord_bot_cancelled")
        except Exception:  # Last-resort handler: connection and login errors
            logger.exception("discord_bot_error")
        finally:
            if not bot.is_closed():
                await bot.close()

    asyncio.create_task(_run_bot(), name="discord-bot")
    logger.info("discord_bot_started")
    return bot
