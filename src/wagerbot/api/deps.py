"""FastAPI dependency injection for the ledger and the component router."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from wagerbot.core.ledger import Ledger
from wagerbot.core.router import ComponentRouter


async def get_ledger(request: Request) -> Ledger:
    """Get the shared Ledger from app state."""
    return request.app.state.ledger


async def get_router(request: Request) -> ComponentRouter:
    """Get the shared ComponentRouter from app state."""
    return request.app.state.router


LedgerDep = Annotated[Ledger, Depends(get_ledger)]
RouterDep = Annotated[ComponentRouter, Depends(get_router)]
