"""Economy ledger: atomic balance and inventory adjustments.

Every mutation runs in its own transaction while holding an ``asyncio.Lock``
keyed by ``(guild_id, user_id)``, so two sessions settling for the same user
never lose an update. Callers never read-modify-write a balance themselves.

The ledger does not deduplicate: calling ``adjust_balance`` twice credits
twice. Sessions guard against duplicate settlement on their side.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from wagerbot.core.errors import InsufficientBalanceError, LedgerError
from wagerbot.core.items import ITEM_MAP
from wagerbot.db.engine import get_session
from wagerbot.db.repository import Repository
from wagerbot.models.constants import DAILY_COOLDOWN_MS, DAILY_REWARD, STARTING_BALANCE
from wagerbot.models.economy import DailyClaim, InventoryEntry, TransferResult

logger = logging.getLogger(__name__)

LedgerKey = tuple[str, str]


class Ledger:
    """Balance/inventory store shared by every session in the process."""

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        starting_balance: int = STARTING_BALANCE,
        daily_reward: int = DAILY_REWARD,
        daily_cooldown: timedelta = timedelta(milliseconds=DAILY_COOLDOWN_MS),
    ) -> None:
        self.engine = engine
        self.starting_balance = starting_balance
        self.daily_reward = daily_reward
        self.daily_cooldown = daily_cooldown
        # Entries vanish once no transaction holds the lock.
        self._locks: weakref.WeakValueDictionary[LedgerKey, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def wallet(self, guild_id: str, user_id: str) -> Wallet:
        """Return a view of this ledger bound to one user in one guild."""
        return Wallet(self, guild_id, user_id)

    def _lock_for(self, key: LedgerKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def _transaction(self, *keys: LedgerKey) -> AsyncGenerator[Repository, None]:
        """Hold the locks for *keys* (in a stable order) and yield a repository.

        SQLAlchemy failures surface as LedgerError; the transaction is rolled
        back so no partial adjustment survives.
        """
        locks = [self._lock_for(key) for key in sorted(set(keys))]
        for lock in locks:
            await lock.acquire()
        try:
            async with get_session(self.engine) as session:
                yield Repository(session)
        except SQLAlchemyError as exc:
            logger.exception("ledger_transaction_failed keys=%s", keys)
            raise LedgerError(str(exc)) from exc
        finally:
            for lock in reversed(locks):
                lock.release()

    # --- Balances ---

    async def ensure_balance(self, guild_id: str, user_id: str) -> int:
        """Return the user's balance, opening an account with the starting balance if needed."""
        async with self._transaction((guild_id, user_id)) as repo:
            row = await repo.get_or_create_balance(guild_id, user_id, self.starting_balance)
            return row.balance

    get_balance = ensure_balance

    async def adjust_balance(
        self,
        guild_id: str,
        user_id: str,
        delta: int,
        floor: int | None = 0,
    ) -> int:
        """Add *delta* to the balance; the result never drops below *floor*."""
        async with self._transaction((guild_id, user_id)) as repo:
            row = await repo.get_or_create_balance(guild_id, user_id, self.starting_balance)
            balance = await repo.apply_balance_delta(row, delta, floor)
        logger.debug(
            "ledger_adjust guild=%s user=%s delta=%d balance=%d",
            guild_id,
            user_id,
            delta,
            balance,
        )
        return balance

    async def withdraw(self, guild_id: str, user_id: str, amount: int) -> int:
        """Debit exactly *amount* or nothing at all.

        Raises InsufficientBalanceError when the balance cannot cover it, so a
        stake is never silently clamped.
        """
        if amount < 0:
            raise ValueError("withdraw amount must be non-negative")
        async with self._transaction((guild_id, user_id)) as repo:
            row = await repo.get_or_create_balance(guild_id, user_id, self.starting_balance)
            if row.balance < amount:
                raise InsufficientBalanceError(row.balance, amount)
            return await repo.apply_balance_delta(row, -amount, 0)

    async def transfer_balance(
        self,
        guild_id: str,
        from_user_id: str,
        to_user_id: str,
        amount: int,
        floor: int = 0,
    ) -> TransferResult:
        """Move *amount* between two users in one transaction."""
        if amount <= 0:
            return TransferResult(success=False, reason="invalid_amount")
        if from_user_id == to_user_id:
            return TransferResult(success=False, reason="same_user")

        async with self._transaction((guild_id, from_user_id), (guild_id, to_user_id)) as repo:
            sender = await repo.get_or_create_balance(
                guild_id, from_user_id, self.starting_balance
            )
            if sender.balance - amount < floor:
                return TransferResult(success=False, reason="insufficient")
            receiver = await repo.get_or_create_balance(
                guild_id, to_user_id, self.starting_balance
            )
            from_balance = await repo.apply_balance_delta(sender, -amount, floor)
            to_balance = await repo.apply_balance_delta(receiver, amount, None)

        logger.info(
            "ledger_transfer guild=%s from=%s to=%s amount=%d",
            guild_id,
            from_user_id,
            to_user_id,
            amount,
        )
        return TransferResult(success=True, from_balance=from_balance, to_balance=to_balance)

    async def claim_daily(self, guild_id: str, user_id: str) -> DailyClaim:
        """Credit the daily reward unless the cooldown is still running."""
        now = datetime.now(UTC)
        async with self._transaction((guild_id, user_id)) as repo:
            row = await repo.get_or_create_balance(guild_id, user_id, self.starting_balance)
            if row.last_daily_at is not None:
                last = row.last_daily_at
                if last.tzinfo is None:
                    last = last.replace(tzinfo=UTC)
                next_at = last + self.daily_cooldown
                if next_at > now:
                    return DailyClaim(success=False, next_available_at=next_at)
            balance = await repo.apply_balance_delta(row, self.daily_reward, None)
            row.last_daily_at = now
        return DailyClaim(success=True, balance=balance, next_available_at=now + self.daily_cooldown)

    async def get_top_balances(self, guild_id: str, limit: int = 10) -> list[tuple[str, int]]:
        """Return ``(user_id, balance)`` pairs, richest first."""
        try:
            async with get_session(self.engine) as session:
                rows = await Repository(session).get_top_balances(guild_id, limit)
                return [(row.user_id, row.balance) for row in rows]
        except SQLAlchemyError as exc:
            raise LedgerError(str(exc)) from exc

    # --- Inventory ---

    async def get_inventory(self, guild_id: str, user_id: str) -> list[InventoryEntry]:
        async with self._transaction((guild_id, user_id)) as repo:
            rows = await repo.get_inventory(guild_id, user_id)
            return [
                InventoryEntry(
                    user_id=row.user_id,
                    guild_id=row.guild_id,
                    item_id=row.item_id,
                    quantity=row.quantity,
                    updated_at=row.updated_at,
                )
                for row in rows
            ]

    async def adjust_inventory_item(
        self,
        guild_id: str,
        user_id: str,
        item_id: str,
        delta: int,
    ) -> InventoryEntry:
        """Change an item's quantity, respecting the catalog's stack limit."""
        item = ITEM_MAP.get(item_id)
        max_stack = item.max_stack if item else None
        async with self._transaction((guild_id, user_id)) as repo:
            row = await repo.adjust_inventory(guild_id, user_id, item_id, delta, max_stack)
            return InventoryEntry(
                user_id=row.user_id,
                guild_id=row.guild_id,
                item_id=row.item_id,
                quantity=row.quantity,
                updated_at=row.updated_at,
            )

    async def consume_if_present(self, guild_id: str, user_id: str, item_id: str) -> bool:
        """Spend one *item_id* if the user holds any. Returns whether one was spent."""
        async with self._transaction((guild_id, user_id)) as repo:
            row = await repo.get_inventory_item(guild_id, user_id, item_id)
            if row is None or row.quantity <= 0:
                return False
            await repo.adjust_inventory(guild_id, user_id, item_id, -1)
        logger.info("item_consumed guild=%s user=%s item=%s", guild_id, user_id, item_id)
        return True


class Wallet:
    """A Ledger bound to one ``(guild_id, user_id)``. This is what sessions hold."""

    def __init__(self, ledger: Ledger, guild_id: str, user_id: str) -> None:
        self.ledger = ledger
        self.guild_id = guild_id
        self.user_id = user_id

    async def ensure_balance(self) -> int:
        return await self.ledger.ensure_balance(self.guild_id, self.user_id)

    async def adjust_balance(self, delta: int, floor: int | None = 0) -> int:
        return await self.ledger.adjust_balance(self.guild_id, self.user_id, delta, floor)

    async def withdraw(self, amount: int) -> int:
        return await self.ledger.withdraw(self.guild_id, self.user_id, amount)

    async def credit(self, amount: int) -> int:
        return await self.ledger.adjust_balance(self.guild_id, self.user_id, amount, None)

    async def get_inventory(self) -> list[InventoryEntry]:
        return await self.ledger.get_inventory(self.guild_id, self.user_id)

    async def adjust_inventory_item(self, item_id: str, delta: int) -> InventoryEntry:
        return await self.ledger.adjust_inventory_item(
            self.guild_id, self.user_id, item_id, delta
        )

    async def consume_if_present(self, item_id: str) -> bool:
        return await self.ledger.consume_if_present(self.guild_id, self.user_id, item_id)
