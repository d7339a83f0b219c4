"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from wagerbot.api.deps import RouterDep
from wagerbot.api.economy import router as economy_router
from wagerbot.config import Settings
from wagerbot.core.ledger import Ledger
from wagerbot.core.router import ComponentRouter
from wagerbot.core.xp import XpTracker
from wagerbot.db.engine import create_engine, create_tables

logger = logging.getLogger(__name__)


async def sweep_router(router: ComponentRouter) -> int:
    """Scheduler job: purge expired callbacks on the event loop."""
    return router.sweep()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: create engine/tables, ledger and router, optionally start Discord and the sweep job."""
    settings: Settings = app.state.settings
    engine = create_engine(settings.database_url)
    await create_tables(engine)
    app.state.engine = engine
    app.state.ledger = Ledger(
        engine,
        starting_balance=settings.wagerbot_starting_balance,
        daily_reward=settings.wagerbot_daily_reward,
    )
    app.state.router = ComponentRouter()
    app.state.xp = XpTracker(engine)

    # Start Discord bot if configured
    discord_bot = None
    from wagerbot.discord.bot import is_discord_enabled

    if is_discord_enabled(settings):
        from wagerbot.discord.bot import start_discord_bot

        discord_bot = await start_discord_bot(
            settings, app.state.ledger, app.state.router, app.state.xp
        )
        app.state.discord_bot = discord_bot
        logger.info("discord_bot_integration_started")
    else:
        app.state.discord_bot = None
        logger.info("discord_bot_integration_disabled")

    # Periodic purge of expired router callbacks
    from apscheduler.schedulers.asyncio import AsyncIOScheduler
    from apscheduler.triggers.interval import IntervalTrigger

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        sweep_router,
        trigger=IntervalTrigger(seconds=settings.wagerbot_router_sweep_seconds),
        kwargs={"router": app.state.router},
        id="router_sweep",
        name="Purge expired component callbacks",
        replace_existing=True,
    )
    scheduler.start()
    app.state.scheduler = scheduler
    logger.info("scheduler_started sweep_seconds=%d", settings.wagerbot_router_sweep_seconds)

    yield

    scheduler.shutdown(wait=False)
    logger.info("scheduler_stopped")

    # Shutdown Discord bot if running
    if discord_bot is not None:
        await discord_bot.close()
        logger.info("discord_bot_integration_stopped")

    await app.state.router.close()
    await engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the Wagerbot FastAPI application."""
    settings = settings or Settings()

    logging.basicConfig(
        level=getattr(logging, settings.wagerbot_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Wagerbot",
        version="0.1.0",
        description="Discord economy bot with interactive wager games",
        docs_url="/docs" if settings.wagerbot_env != "production" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.include_router(economy_router)

    @app.get("/health")
    async def health(router: RouterDep) -> dict[str, object]:
        return {
            "status": "ok",
            "env": settings.wagerbot_env,
            "pending_callbacks": router.pending_count,
        }

    return app


app = create_app()
