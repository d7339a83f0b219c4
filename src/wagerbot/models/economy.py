"""Economy models: catalog items, inventory entries, transfers.

The catalog itself lives in ``wagerbot.core.items``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

ItemRarity = Literal["common", "rare", "epic"]
ItemType = Literal["consumable", "booster"]


class EconomyItem(BaseModel):
    """A purchasable item. Consumables are spent by the games that use them."""

    id: str
    name: str
    description: str
    price: int = Field(ge=0)
    sell_price: int = Field(ge=0)
    rarity: ItemRarity = "common"
    type: ItemType = "consumable"
    effect: str | None = None
    max_stack: int | None = Field(default=None, ge=1)


class InventoryEntry(BaseModel):
    """How many of one item a user holds in one guild."""

    user_id: str
    guild_id: str
    item_id: str
    quantity: int = Field(ge=0)
    updated_at: datetime | None = None


class TransferResult(BaseModel):
    """Outcome of a balance transfer between two users."""

    success: bool
    from_balance: int | None = None
    to_balance: int | None = None
    reason: Literal["insufficient", "same_user", "invalid_amount"] | None = None


class DailyClaim(BaseModel):
    """Outcome of a daily reward claim."""

    success: bool
    balance: int | None = None
    next_available_at: datetime
