"""Economy API endpoints: leaderboard and single balances."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from wagerbot.api.deps import LedgerDep
from wagerbot.core.errors import LedgerError

router = APIRouter(prefix="/api/guilds", tags=["economy"])


@router.get("/{guild_id}/leaderboard")
async def get_leaderboard(
    guild_id: str,
    ledger: LedgerDep,
    limit: int = Query(default=10, ge=1, le=100),
) -> dict:
    """Richest members of a guild, highest balance first."""
    try:
        rows = await ledger.get_top_balances(guild_id, limit)
    except LedgerError as exc:
        raise HTTPException(status_code=503, detail="Ledger unavailable") from exc
    data = [
        {"rank": rank, "user_id": user_id, "balance": balance}
        for rank, (user_id, balance) in enumerate(rows, start=1)
    ]
    return {"data": data}


@router.get("/{guild_id}/balances/{user_id}")
async def get_balance(guild_id: str, user_id: str, ledger: LedgerDep) -> dict:
    """A member's balance and inventory. Opens an account on first lookup."""
    try:
        balance = await ledger.ensure_balance(guild_id, user_id)
        inventory = await ledger.get_inventory(guild_id, user_id)
    except LedgerError as exc:
        raise HTTPException(status_code=503, detail="Ledger unavailable") from exc
    return {
        "data": {
            "guild_id": guild_id,
            "user_id": user_id,
            "balance": balance,
            "inventory": [
                {"item_id": entry.item_id, "quantity": entry.quantity}
                for entry in inventory
                if entry.quantity > 0
            ],
        }
    }
