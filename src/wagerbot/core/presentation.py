"""Presentation contract between sessions and whatever renders them.

Sessions describe what to show as a ``Frame``; a ``Presenter`` turns frames
into platform messages. The Discord implementation lives in
``wagerbot.discord.presenter``; tests use an in-memory fake.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

ButtonStyle = Literal["primary", "secondary", "success", "danger"]

# Embed colors
COLOR_ACTIVE = 0x3498DB
COLOR_WIN = 0x2ECC71
COLOR_LOSS = 0xE74C3C
COLOR_NEUTRAL = 0x95A5A6


class ButtonSpec(BaseModel):
    """One clickable control. ``token`` is the router token it fires."""

    token: str | None = None
    label: str
    style: ButtonStyle = "secondary"
    disabled: bool = False
    row: int = Field(default=0, ge=0, le=4)


class Frame(BaseModel):
    """Everything a session wants on screen at one moment."""

    title: str
    lines: list[str] = Field(default_factory=list)
    buttons: list[ButtonSpec] = Field(default_factory=list)
    color: int = COLOR_ACTIVE
    footer: str | None = None

    @property
    def description(self) -> str:
        return "\n".join(self.lines)


@dataclass
class PresentResult:
    """Result of the first render. ``handle`` identifies the message for later edits."""

    success: bool
    handle: Any = None


class Presenter(Protocol):
    async def present(self, frame: Frame) -> PresentResult: ...

    async def update(self, handle: Any, frame: Frame) -> None:
        """Replace the message behind *handle*. Raises PresentationError on failure."""
        ...

    async def finalize(self, handle: Any, frame: Frame) -> None:
        """Render the terminal frame; controls should appear disabled or be removed."""
        ...

    async def notify(self, source: Any, message: str) -> None:
        """Send a short notice only the triggering user sees."""
        ...
