"""Shared test fixtures."""

from __future__ import annotations

import random
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any
from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from wagerbot.config import Settings
from wagerbot.core.ledger import Ledger
from wagerbot.core.presentation import Frame, PresentResult
from wagerbot.core.router import ComponentRouter
from wagerbot.core.session import GameSession
from wagerbot.db.engine import create_engine, create_tables

GUILD = "guild-1"
USER = "user-1"


class FakePresenter:
    """Records every frame instead of talking to Discord."""

    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.presented: list[Frame] = []
        self.updates: list[Frame] = []
        self.finals: list[Frame] = []
        self.notices: list[tuple[Any, str]] = []

    async def present(self, frame: Frame) -> PresentResult:
        self.presented.append(frame)
        if not self.succeed:
            return PresentResult(success=False)
        return PresentResult(success=True, handle="message-1")

    async def update(self, handle: Any, frame: Frame) -> None:
        self.updates.append(frame)

    async def finalize(self, handle: Any, frame: Frame) -> None:
        self.finals.append(frame)

    async def notify(self, source: Any, message: str) -> None:
        self.notices.append((source, message))

    @property
    def last_frame(self) -> Frame:
        return (self.presented + self.updates + self.finals)[-1]


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    """Test settings with defaults."""
    return Settings(wagerbot_env="development", database_url="sqlite+aiosqlite:///:memory:")


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory database with every ledger table created."""
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def ledger(engine: AsyncEngine) -> Ledger:
    return Ledger(engine, starting_balance=100, daily_reward=100)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def router() -> AsyncGenerator[ComponentRouter, None]:
    router = ComponentRouter()
    yield router
    await router.close()


@pytest.fixture
def presenter() -> FakePresenter:
    return FakePresenter()


@pytest.fixture
def make_rng() -> Callable[..., MagicMock]:
    """Build a Random stand-in whose methods return scripted values."""

    def _make(**methods: Any) -> MagicMock:
        rng = MagicMock(spec=random.Random)
        for name, value in methods.items():
            if isinstance(value, list):
                getattr(rng, name).side_effect = value
            else:
                getattr(rng, name).return_value = value
        return rng

    return _make


@pytest.fixture
def make_session(
    ledger: Ledger,
    router: ComponentRouter,
    presenter: FakePresenter,
) -> Callable[..., GameSession]:
    """Build a session for GUILD/USER wired to the shared fixtures."""

    def _make(
        game: type[GameSession],
        bet: int,
        *,
        user_id: str = USER,
        **kwargs: Any,
    ) -> GameSession:
        kwargs.setdefault("router", router)
        kwargs.setdefault("presenter", presenter)
        return game(wallet=ledger.wallet(GUILD, user_id), bet=bet, **kwargs)

    return _make


@pytest.fixture
def fund(ledger: Ledger) -> Callable[..., Awaitable[int]]:
    """Set a user's balance in GUILD to an exact amount."""

    async def _fund(amount: int, user_id: str = USER) -> int:
        balance = await ledger.ensure_balance(GUILD, user_id)
        return await ledger.adjust_balance(GUILD, user_id, amount - balance)

    return _fund


@pytest.fixture
def failing_presenter() -> FakePresenter:
    return FakePresenter(succeed=False)
