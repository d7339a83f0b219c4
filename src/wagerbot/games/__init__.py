"""Game variants built on ``wagerbot.core.session.GameSession``."""

from __future__ import annotations

from wagerbot.core.session import GameSession
from wagerbot.games.blackjack import BlackjackSession
from wagerbot.games.crash import CrashSession
from wagerbot.games.flip import FlipSession
from wagerbot.games.horse import HorseRaceSession
from wagerbot.games.rps import RpsSession
from wagerbot.games.scratch import ScratchSession
from wagerbot.games.slots import SlotsSession
from wagerbot.games.wheel import WheelSession

GAMES: dict[str, type[GameSession]] = {
    game.name: game
    for game in (
        FlipSession,
        RpsSession,
        CrashSession,
        BlackjackSession,
        HorseRaceSession,
        ScratchSession,
        SlotsSession,
        WheelSession,
    )
}

__all__ = [
    "GAMES",
    "BlackjackSession",
    "CrashSession",
    "FlipSession",
    "HorseRaceSession",
    "RpsSession",
    "ScratchSession",
    "SlotsSession",
    "WheelSession",
]
