"""Presenter that renders session frames through a Discord interaction.

The slash-command interaction that started a session owns the message;
every later update edits that original response.
"""

from __future__ import annotations

import logging
from typing import Any

import discord

from wagerbot.core.errors import PresentationError
from wagerbot.core.presentation import Frame, PresentResult
from wagerbot.discord.embeds import build_frame_embed, build_frame_view

logger = logging.getLogger(__name__)


class InteractionPresenter:
    """Implements ``wagerbot.core.presentation.Presenter`` for discord.py."""

    def __init__(self, interaction: discord.Interaction, view_timeout: float | None = None) -> None:
        self.interaction = interaction
        self.view_timeout = view_timeout

    def _payload(self, frame: Frame) -> dict[str, Any]:
        view = build_frame_view(frame, timeout=self.view_timeout)
        payload: dict[str, Any] = {"embed": build_frame_embed(frame)}
        if view is not None:
            payload["view"] = view
        return payload

    async def present(self, frame: Frame) -> PresentResult:
        try:
            if self.interaction.response.is_done():
                await self.interaction.edit_original_response(**self._payload(frame))
            else:
                await self.interaction.response.send_message(**self._payload(frame))
        except discord.HTTPException as exc:
            logger.warning("discord_present_failed err=%s", exc)
            return PresentResult(success=False)
        return PresentResult(success=True, handle=self.interaction)

    async def update(self, handle: Any, frame: Frame) -> None:
        try:
            await handle.edit_original_response(**self._payload(frame))
        except discord.HTTPException as exc:
            raise PresentationError(str(exc)) from exc

    async def finalize(self, handle: Any, frame: Frame) -> None:
        payload = self._payload(frame)
        payload.setdefault("view", None)
        try:
            await handle.edit_original_response(**payload)
        except discord.HTTPException as exc:
            raise PresentationError(str(exc)) from exc

    async def notify(self, source: Any, message: str) -> None:
        try:
            if source.response.is_done():
                await source.followup.send(message, ephemeral=True)
            else:
                await source.response.send_message(message, ephemeral=True)
        except discord.HTTPException as exc:
            raise PresentationError(str(exc)) from exc
