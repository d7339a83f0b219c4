"""Repository pattern for database access.

Wraps SQLAlchemy async sessions. Rows are mutated inside the caller's
session; the Ledger owns locking and the business rules (floors, stacks).
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wagerbot.db.models import BalanceRow, InventoryRow, LevelRow


class Repository:
    """Async repository for all ledger tables."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- Balances ---

    async def get_balance_row(self, guild_id: str, user_id: str) -> BalanceRow | None:
        stmt = select(BalanceRow).where(
            BalanceRow.guild_id == guild_id,
            BalanceRow.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_balance(
        self,
        guild_id: str,
        user_id: str,
        starting_balance: int,
    ) -> BalanceRow:
        """Find the user's balance row, creating it with *starting_balance* if missing."""
        row = await self.get_balance_row(guild_id, user_id)
        if row is not None:
            return row

        row = BalanceRow(guild_id=guild_id, user_id=user_id, balance=starting_balance)
        self.session.add(row)
        await self.session.flush()
        return row

    async def apply_balance_delta(self, row: BalanceRow, delta: int, floor: int | None) -> int:
        """Add *delta* to the row, clamping the result at *floor* when one is given."""
        new_balance = row.balance + delta
        if floor is not None:
            new_balance = max(new_balance, floor)
        row.balance = new_balance
        row.updated_at = datetime.now(UTC)
        await self.session.flush()
        return new_balance

    async def get_top_balances(self, guild_id: str, limit: int = 10) -> list[BalanceRow]:
        """Return the richest users in a guild, highest balance first."""
        stmt = (
            select(BalanceRow)
            .where(BalanceRow.guild_id == guild_id)
            .order_by(BalanceRow.balance.desc(), BalanceRow.updated_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # --- Inventory ---

    async def get_inventory(self, guild_id: str, user_id: str) -> list[InventoryRow]:
        stmt = (
            select(InventoryRow)
            .where(
                InventoryRow.guild_id == guild_id,
                InventoryRow.user_id == user_id,
            )
            .order_by(InventoryRow.item_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_inventory_item(
        self,
        guild_id: str,
        user_id: str,
        item_id: str,
    ) -> InventoryRow | None:
        stmt = select(InventoryRow).where(
            InventoryRow.guild_id == guild_id,
            InventoryRow.user_id == user_id,
            InventoryRow.item_id == item_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def adjust_inventory(
        self,
        guild_id: str,
        user_id: str,
        item_id: str,
        delta: int,
        max_stack: int | None = None,
    ) -> InventoryRow:
        """Change an item's quantity, never below zero and never above *max_stack*."""
        row = await self.get_inventory_item(guild_id, user_id, item_id)
        if row is None:
            row = InventoryRow(guild_id=guild_id, user_id=user_id, item_id=item_id, quantity=0)
            self.session.add(row)

        quantity = max(0, row.quantity + delta)
        if max_stack is not None:
            quantity = min(quantity, max_stack)
        row.quantity = quantity
        row.updated_at = datetime.now(UTC)
        await self.session.flush()
        return row

    # --- Levels ---

    async def add_xp(self, guild_id: str, user_id: str, amount: int) -> int:
        """Add XP to a user's level row and return the new total."""
        stmt = select(LevelRow).where(LevelRow.guild_id == guild_id, LevelRow.user_id == user_id)
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            row = LevelRow(guild_id=guild_id, user_id=user_id, xp=0)
            self.session.add(row)
        row.xp += amount
        row.updated_at = datetime.now(UTC)
        await self.session.flush()
        return row.xp
